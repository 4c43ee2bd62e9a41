"""``${...}`` path variable substitution."""

from __future__ import annotations

import pytest

from lib_typed_config.application.source import MapSource
from lib_typed_config.application.substitution import PathSubstitutor
from lib_typed_config.domain.errors import UndefinedPathVariableError, WrongTypeError
from lib_typed_config.domain.features import Feature


def substitute(data: dict, **kwargs) -> dict:
    return MapSource(data).substituted(**kwargs).to_hierarchical()


def test_inline_reference_is_replaced_by_text() -> None:
    assert substitute({"key1": "a", "key2": "b${key1}"}) == {"key1": "a", "key2": "ba"}


def test_inline_reference_renders_ints_and_bools() -> None:
    result = substitute({"port": 80, "tls": True, "url": "host:${port}/${tls}"})
    assert result["url"] == "host:80/true"


def test_whole_value_reference_keeps_type_and_structure() -> None:
    result = substitute({"port": 80, "server": {"host": "h"}, "alias": "${port}", "copy": "${server}"})
    assert result["alias"] == 80
    assert result["copy"] == {"host": "h"}


def test_default_is_used_for_undefined_paths() -> None:
    assert substitute({"key": "${missing:-fallback}"}) == {"key": "fallback"}
    assert substitute({"key": "x${missing:-}y"}) == {"key": "xy"}


def test_undefined_path_raises_with_the_text() -> None:
    with pytest.raises(UndefinedPathVariableError) as info:
        MapSource({"key2": "b${key1}"}).substituted()
    assert info.value.text == "b${key1}"


def test_undefined_path_can_be_kept_verbatim() -> None:
    assert substitute({"key2": "b${key1}"}, error_when_undefined=False) == {"key2": "b${key1}"}


def test_escape_is_consumed_once() -> None:
    source = MapSource({"key1": "a", "key2": "b$$$${key1}"})
    once = source.substituted()
    twice = once.substituted()
    assert once.to_hierarchical()["key2"] == "b$$${key1}"
    assert twice.to_hierarchical() == once.to_hierarchical()


def test_escaped_reference_is_not_resolved() -> None:
    assert substitute({"key1": "a", "key2": "$${key1}"})["key2"] == "${key1}"


def test_nested_variables_resolve_inside_out() -> None:
    result = substitute({"key1": "key2", "key2": "v", "key3": "${${key1}}", "key4": "x${${key1}}"})
    assert result["key3"] == "v"
    assert result["key4"] == "xv"


def test_references_resolve_transitively() -> None:
    result = substitute({"a": "${b}", "b": "c${d}", "d": "e"})
    assert result["a"] == "ce"
    assert result["b"] == "ce"


def test_lists_are_substituted() -> None:
    assert substitute({"a": "x", "hosts": ["${a}", "y"]})["hosts"] == ["x", "y"]


def test_keyed_transforms(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TYPED_CONFIG_SUBSTITUTION_TEST", "from-env")
    result = substitute(
        {
            "decoded": "${base64Decoder:SGVsbG8=}",
            "encoded": "${base64Encoder:Hello}",
            "env": "${env:TYPED_CONFIG_SUBSTITUTION_TEST}",
            "url": "${urlEncoder:a b}",
        }
    )
    assert result == {"decoded": "Hello", "encoded": "SGVsbG8=", "env": "from-env", "url": "a+b"}


def test_inline_reference_to_unsupported_types_fails() -> None:
    with pytest.raises(WrongTypeError):
        MapSource({"ratio": 1.5, "text": "r=${ratio}"}).substituted()
    with pytest.raises(WrongTypeError):
        MapSource({"nothing": None, "text": "n=${nothing}"}).substituted()


def test_disabled_feature_skips_substitution() -> None:
    source = MapSource({"key2": "b${key1}"}).disabled(Feature.SUBSTITUTE_SOURCE_BEFORE_LOADED)
    assert source.substituted() is source
    assert source.substituted(enabled=True, error_when_undefined=False).to_hierarchical() == {"key2": "b${key1}"}


def test_sources_without_strings_are_returned_unchanged() -> None:
    source = MapSource({"a": 1, "b": [True]})
    assert source.substituted() is source


def test_substitution_against_another_root() -> None:
    root = MapSource({"host": "example.org"})
    source = MapSource({"url": "https://${host}/"})
    assert source.substituted(root=root).to_hierarchical() == {"url": "https://example.org/"}


def test_replace_substitutes_plain_text() -> None:
    substitutor = PathSubstitutor(MapSource({"name": "demo"}))
    assert substitutor.replace("hello ${name}, $${name}") == "hello demo, ${name}"
