"""Java-style ``.properties`` provider.

Purpose
-------
Read ``key=value`` files into a flat source, so dotted keys nest and
comma-separated values read as lists when an item asks for one.

Contents
--------
* :class:`PropertiesProvider` – provider entry point.
* :func:`parse_properties` – line parser (comments, continuations, escapes).
"""

from __future__ import annotations

from typing import Any, Iterator

from ...application.source import FlatSource, Source, SourceInfo
from .base import BaseProvider

_SEPARATORS = frozenset("=:")
_WHITESPACE = frozenset(" \t\f")
_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}


class PropertiesProvider(BaseProvider):
    """Provider for ``.properties`` documents.

    Examples
    --------
    >>> source = PropertiesProvider().string("server.hosts = a,b\\nserver.port: 80")
    >>> source.to_hierarchical()
    {'server': {'hosts': 'a,b', 'port': '80'}}
    >>> [item.value for item in source["server.hosts"].tree.items]
    ['a', 'b']
    """

    type = "properties"

    def _parse(self, text: str) -> Any:
        return parse_properties(text)

    def _build(self, data: Any, info: SourceInfo) -> Source:
        return FlatSource(data, type=self.type, info=info)


def _logical_lines(text: str) -> Iterator[str]:
    """Join continuation lines (odd number of trailing backslashes)."""

    pending: str | None = None
    for raw_line in text.splitlines():
        line = raw_line.lstrip() if pending is not None else raw_line
        if pending is None and line.lstrip()[:1] in ("#", "!"):
            continue
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending = (pending or "") + line[:-1]
            continue
        yield (pending or "") + line
        pending = None
    if pending is not None:
        yield pending


def _unescape(text: str) -> str:
    """Resolve ``\\t``, ``\\n``, ``\\uXXXX`` and ``\\x`` → ``x`` escapes.

    Examples
    --------
    >>> _unescape(r"a\\=b\\u0041\\t")
    'a=bA\\t'
    """

    out: list[str] = []
    index = 0
    while index < len(text):
        char = text[index]
        if char != "\\" or index + 1 >= len(text):
            out.append(char)
            index += 1
            continue
        escaped = text[index + 1]
        if escaped == "u" and index + 6 <= len(text):
            try:
                out.append(chr(int(text[index + 2 : index + 6], 16)))
                index += 6
                continue
            except ValueError:
                pass
        out.append(_ESCAPES.get(escaped, escaped))
        index += 2
    return "".join(out)


def _split_entry(line: str) -> tuple[str, str]:
    index = 0
    length = len(line)
    while index < length:
        char = line[index]
        if char == "\\":
            index += 2
            continue
        if char in _SEPARATORS or char in _WHITESPACE:
            break
        index += 1
    key = line[:index]
    while index < length and line[index] in _WHITESPACE:
        index += 1
    if index < length and line[index] in _SEPARATORS:
        index += 1
    while index < length and line[index] in _WHITESPACE:
        index += 1
    return key, line[index:]


def parse_properties(text: str) -> dict[str, str]:
    """Parse ``.properties`` text into ``{key: value}``.

    Examples
    --------
    >>> parse_properties("# comment\\nkey = value \\\\\\n    continued\\nempty")
    {'key': 'value continued', 'empty': ''}
    """

    entries: dict[str, str] = {}
    for line in _logical_lines(text):
        stripped = line.lstrip()
        if not stripped:
            continue
        key, value = _split_entry(stripped)
        entries[_unescape(key)] = _unescape(value)
    return entries


__all__ = ["PropertiesProvider", "parse_properties"]
