"""Render config snapshots as JSON, YAML, or ``.properties`` documents.

Purpose
-------
The inverse of the providers: take the resolved values of a config and
produce a document another process (or a later load) can read back.

Contents
--------
* :class:`BaseWriter` – implements the writer port on top of one
  :meth:`BaseWriter.to_text` per format.
* :class:`JsonWriter`, :class:`YamlWriter`, :class:`PropertiesWriter`.

System Role
-----------
Writers read a snapshot once per call (``to_hierarchical_map`` or
``to_flat_map``) and open files only inside ``with`` blocks, so nothing stays
locked after a call returns. The YAML and properties writers honour
``WRITE_DESCRIPTIONS_AS_COMMENTS`` by emitting item descriptions as ``#``
comments.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO, Mapping, TextIO

import yaml

from ..domain.features import Feature
from ..domain.path import qualify
from ..observability import log_debug, make_event

if TYPE_CHECKING:
    from ..application.config import Config


class BaseWriter:
    """Writer port implementation shared by every format."""

    format = "text"

    def __init__(self, config: "Config") -> None:
        self.config = config

    def to_text(self) -> str:
        raise NotImplementedError

    def to_bytes(self) -> bytes:
        return self.to_text().encode("utf-8")

    def to_writer(self, stream: TextIO) -> None:
        stream.write(self.to_text())

    def to_output_stream(self, stream: BinaryIO) -> None:
        stream.write(self.to_bytes())

    def to_file(self, path: str | Path) -> None:
        """Write the document to *path* (UTF-8), replacing existing content."""

        payload = self.to_bytes()
        with open(path, "wb") as handle:
            handle.write(payload)
        log_debug("config_written", **make_event(self.config.name, str(path), {"format": self.format, "size": len(payload)}))

    def _descriptions(self) -> dict[str, str]:
        """Map qualified names to item descriptions when comments are enabled."""

        if not self.config.is_enabled(Feature.WRITE_DESCRIPTIONS_AS_COMMENTS):
            return {}
        return {self.config.name_of(item): item.description for item in self.config.items if item.description}


class JsonWriter(BaseWriter):
    """Write the hierarchical snapshot as indented JSON.

    Examples
    --------
    >>> from lib_typed_config.application.config import Config
    >>> config = Config()
    >>> _ = config.optional(int, 80, "server.port")
    >>> print(JsonWriter(config).to_text())
    {
      "server": {
        "port": 80
      }
    }
    """

    format = "JSON"

    def __init__(self, config: "Config", indent: int = 2) -> None:
        super().__init__(config)
        self.indent = indent

    def to_text(self) -> str:
        return json.dumps(self.config.to_hierarchical_map(), indent=self.indent)


class YamlWriter(BaseWriter):
    """Write the hierarchical snapshot as block-style YAML.

    Examples
    --------
    >>> from lib_typed_config.application.config import Config
    >>> config = Config().enable(Feature.WRITE_DESCRIPTIONS_AS_COMMENTS)
    >>> _ = config.optional(int, 80, "server.port", description="listen port")
    >>> print(YamlWriter(config).to_text(), end="")
    server:
      # listen port
      port: 80
    """

    format = "YAML"

    def to_text(self) -> str:
        data = self.config.to_hierarchical_map()
        descriptions = self._descriptions()
        if not descriptions:
            return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
        lines: list[str] = []
        _render_yaml(data, "", 0, descriptions, lines)
        return "".join(line + "\n" for line in lines)


def _render_yaml(data: Mapping[str, Any], prefix: str, depth: int, descriptions: Mapping[str, str], lines: list[str]) -> None:
    indent = "  " * depth
    for key, value in data.items():
        path = qualify(prefix, str(key))
        description = descriptions.get(path)
        if description:
            lines.extend(f"{indent}# {text}" for text in description.splitlines())
        if isinstance(value, dict) and value:
            lines.append(f"{indent}{_yaml_key(key)}:")
            _render_yaml(value, path, depth + 1, descriptions, lines)
            continue
        rendered = yaml.safe_dump({key: value}, default_flow_style=False, sort_keys=False, allow_unicode=True)
        lines.extend(f"{indent}{line}" for line in rendered.splitlines())


def _yaml_key(key: Any) -> str:
    return yaml.safe_dump(key, default_flow_style=True).splitlines()[0]


class PropertiesWriter(BaseWriter):
    """Write the flat snapshot as ``key=value`` lines.

    Examples
    --------
    >>> from lib_typed_config.application.config import Config
    >>> config = Config()
    >>> _ = config.optional(list[str], ["a", "b"], "server.hosts")
    >>> _ = config.optional(str, "x=y", "server.name")
    >>> print(PropertiesWriter(config).to_text(), end="")
    server.hosts=a,b
    server.name=x\\=y
    """

    format = "properties"

    def to_text(self) -> str:
        descriptions = self._descriptions()
        lines: list[str] = []
        for key, value in self.config.to_flat_map().items():
            description = descriptions.get(key)
            if description:
                lines.extend(f"# {text}" for text in description.splitlines())
            lines.append(f"{_escape(key, is_key=True)}={_escape(value, is_key=False)}")
        return "".join(line + "\n" for line in lines)


_PROPERTY_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t", "\f": "\\f", "=": "\\=", ":": "\\:", "#": "\\#", "!": "\\!"}


def _escape(text: str, is_key: bool) -> str:
    """Escape *text* so :func:`parse_properties` reads it back unchanged.

    Examples
    --------
    >>> _escape("a b", is_key=True), _escape(" lead", is_key=False)
    ('a\\\\ b', '\\\\ lead')
    """

    out: list[str] = []
    for index, char in enumerate(text):
        if char == " " and (is_key or index == 0):
            out.append("\\ ")
        else:
            out.append(_PROPERTY_ESCAPES.get(char, char))
    return "".join(out)


__all__ = ["BaseWriter", "JsonWriter", "PropertiesWriter", "YamlWriter"]
