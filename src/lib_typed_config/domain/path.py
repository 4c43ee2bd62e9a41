"""Dotted-name addressing over nested containers.

Purpose
-------
Give every layer one structural representation of ``"a.b.c"`` so trees,
sources, specs and configs agree on what a key means.

Contents
--------
* :class:`KeyPath` – immutable sequence of non-empty segments.
* :func:`to_path` – parse helper accepting strings or existing paths.
* :func:`qualify` – join a prefix and a name, skipping empty parts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence, overload

from .errors import InvalidPathError


@dataclass(frozen=True, slots=True)
class KeyPath(Sequence[str]):
    """Ordered sequence of name segments; the empty path denotes "self".

    Examples
    --------
    >>> path = KeyPath.parse(" network . buffer ")
    >>> path.segments
    ('network', 'buffer')
    >>> str(path[1:])
    'buffer'
    >>> KeyPath.parse("") == KeyPath()
    True
    """

    segments: tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str) -> "KeyPath":
        """Split *text* on ``.`` and trim each segment.

        Raises
        ------
        InvalidPathError
            When any segment is empty after trimming (``"a..b"``, ``"a."``).
        """

        if text == "":
            return cls()
        segments = tuple(segment.strip() for segment in text.split("."))
        if any(not segment for segment in segments):
            raise InvalidPathError(text)
        return cls(segments)

    @property
    def name(self) -> str:
        return ".".join(self.segments)

    def is_empty(self) -> bool:
        return not self.segments

    def starts_with(self, other: "KeyPath") -> bool:
        """Return ``True`` when *other* is a (non-strict) prefix of this path."""

        return self.segments[: len(other.segments)] == other.segments

    def __add__(self, other: object) -> "KeyPath":
        if isinstance(other, KeyPath):
            return KeyPath(self.segments + other.segments)
        if isinstance(other, str):
            return KeyPath(self.segments + to_path(other).segments)
        return NotImplemented

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[str]:
        return iter(self.segments)

    @overload
    def __getitem__(self, index: int) -> str: ...

    @overload
    def __getitem__(self, index: slice) -> "KeyPath": ...

    def __getitem__(self, index: int | slice) -> "str | KeyPath":
        if isinstance(index, slice):
            return KeyPath(self.segments[index])
        return self.segments[index]

    def __str__(self) -> str:
        return self.name


def to_path(value: "str | KeyPath | Sequence[str]") -> KeyPath:
    """Coerce *value* into a :class:`KeyPath`.

    Examples
    --------
    >>> to_path("a.b") == to_path(["a", "b"])
    True
    """

    if isinstance(value, KeyPath):
        return value
    if isinstance(value, str):
        return KeyPath.parse(value)
    return KeyPath(tuple(value))


def qualify(prefix: str, name: str) -> str:
    """Join *prefix* and *name* with a dot, dropping whichever side is empty.

    Examples
    --------
    >>> qualify("network.buffer", "size"), qualify("", "size"), qualify("a", "")
    ('network.buffer.size', 'size', 'a')
    """

    if not prefix:
        return name
    if not name:
        return prefix
    return f"{prefix}.{name}"


__all__ = ["KeyPath", "qualify", "to_path"]
