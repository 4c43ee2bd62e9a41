from __future__ import annotations

import json
from pathlib import Path

import pytest

from lib_typed_config.adapters.providers import JsonProvider, PropertiesProvider, TomlProvider, YamlProvider
from lib_typed_config.adapters.providers.properties import parse_properties
from lib_typed_config.application.source import FlatSource
from lib_typed_config.domain.errors import ParseError, SourceNotFoundError
from tests.support import write_text


def test_toml_provider(tmp_path: Path) -> None:
    path = write_text(tmp_path, "config.toml", "[db]\nport = 5432\n")
    source = TomlProvider().file(path)
    assert source.to_hierarchical() == {"db": {"port": 5432}}
    assert source.description == f"[type: TOML, file: {path}]"


def test_toml_provider_missing_file(tmp_path: Path) -> None:
    with pytest.raises(SourceNotFoundError):
        TomlProvider().file(tmp_path / "missing.toml")


def test_toml_provider_invalid() -> None:
    with pytest.raises(ParseError):
        TomlProvider().string("[db\nport = ")


def test_json_provider_invalid(tmp_path: Path) -> None:
    path = write_text(tmp_path, "config.json", "{invalid}")
    with pytest.raises(ParseError) as info:
        JsonProvider().file(path)
    assert str(path) in str(info.value)


def test_json_provider_valid(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    with path.open("w", encoding="utf-8") as handle:
        json.dump({"feature": True, "hosts": ["a", "b"]}, handle)
    assert JsonProvider().file(path).to_hierarchical() == {"feature": True, "hosts": ["a", "b"]}


def test_json_provider_rejects_non_mappings() -> None:
    with pytest.raises(ParseError):
        JsonProvider().string('"just text"')


def test_yaml_provider_handles_empty_file(tmp_path: Path) -> None:
    path = write_text(tmp_path, "config.yaml", "# empty file\n")
    assert YamlProvider().file(path).to_hierarchical() == {}


def test_yaml_provider_invalid() -> None:
    with pytest.raises(ParseError):
        YamlProvider().string("key: [unclosed")


def test_yaml_provider_keeps_nulls_and_nesting() -> None:
    source = YamlProvider().string("server:\n  port: 80\n  proxy: null\n")
    assert source.to_hierarchical() == {"server": {"port": 80, "proxy": None}}


def test_invalid_utf8_is_a_parse_error() -> None:
    with pytest.raises(ParseError):
        YamlProvider().bytes(b"key: \xff")


def test_properties_provider_builds_a_flat_source() -> None:
    source = PropertiesProvider().string("server.hosts=a,b\nserver.port : 80\n")
    assert isinstance(source, FlatSource)
    assert source.to_hierarchical() == {"server": {"hosts": "a,b", "port": "80"}}
    assert source["server.hosts"].to_value(list[str]) == ["a", "b"]
    assert source.description == "[type: properties]"


def test_properties_numbered_keys_become_lists() -> None:
    source = PropertiesProvider().string("hosts.0=a\nhosts.1=b\n")
    assert source.to_hierarchical() == {"hosts": ["a", "b"]}


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("key=value", {"key": "value"}),
        ("key = value", {"key": "value"}),
        ("key:value", {"key": "value"}),
        ("key value", {"key": "value"}),
        ("# comment\n! other comment\nkey=1", {"key": "1"}),
        ("key=first \\\n    second", {"key": "first second"}),
        ("key=ends with backslash\\\\", {"key": "ends with backslash\\"}),
        ("a\\ b=c\\=d", {"a b": "c=d"}),
        ("tab=\\t\\u0041", {"tab": "\tA"}),
        ("empty", {"empty": ""}),
        ("   \n\nkey=1", {"key": "1"}),
    ],
)
def test_parse_properties(text: str, expected: dict[str, str]) -> None:
    assert parse_properties(text) == expected
