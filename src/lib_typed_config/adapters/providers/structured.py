"""Structured format providers.

Purpose
-------
Convert JSON, TOML and YAML documents into sources. Each provider is a small
wrapper around ``json`` / ``tomllib`` / ``yaml.safe_load`` so error handling,
observability and source construction stay in :class:`BaseProvider`.

Contents
--------
* :class:`JsonProvider` – ``json.loads``.
* :class:`TomlProvider` – ``tomllib`` (``tomli`` before Python 3.11).
* :class:`YamlProvider` – ``yaml.safe_load``; an empty document is an empty
  source.
"""

from __future__ import annotations

import json
from typing import Any

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[no-redef]

import yaml

from .base import BaseProvider


class JsonProvider(BaseProvider):
    """Provider for JSON documents.

    Examples
    --------
    >>> JsonProvider().string('{"server": {"port": 8080}}').to_hierarchical()
    {'server': {'port': 8080}}
    >>> JsonProvider().string('{"a": 1}').description
    '[type: JSON]'
    """

    type = "JSON"
    parse_errors = (json.JSONDecodeError,)

    def _parse(self, text: str) -> Any:
        return json.loads(text)


class TomlProvider(BaseProvider):
    """Provider for TOML documents.

    Examples
    --------
    >>> TomlProvider().string('[server]\\nport = 8080').to_hierarchical()
    {'server': {'port': 8080}}
    """

    type = "TOML"
    parse_errors = (tomllib.TOMLDecodeError,)

    def _parse(self, text: str) -> Any:
        return tomllib.loads(text)


class YamlProvider(BaseProvider):
    """Provider for YAML documents.

    Examples
    --------
    >>> YamlProvider().string('server:\\n  hosts: [a, b]').to_hierarchical()
    {'server': {'hosts': ['a', 'b']}}
    >>> YamlProvider().string('').to_hierarchical()
    {}
    """

    type = "YAML"
    parse_errors = (yaml.YAMLError,)

    def _parse(self, text: str) -> Any:
        return yaml.safe_load(text)


__all__ = ["JsonProvider", "TomlProvider", "YamlProvider"]
