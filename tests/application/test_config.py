"""Config runtime: reads, writes, layers, loading, views and export.

Most tests use :func:`tests.support.make_config`, a root config holding a
``NetworkBufferSpec``. Handler tests declare ad-hoc items so subscriptions
never leak into the shared spec.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from lib_typed_config import Config, Feature, Prefix
from lib_typed_config.application.source import KVSource, MapSource
from lib_typed_config.domain.errors import (
    InvalidLazySetError,
    LayerFrozenError,
    LoadError,
    NameConflictError,
    NoSuchItemError,
    NoSuchPathError,
    ObjectMappingError,
    ParseError,
    RepeatedItemError,
    UnknownPathsError,
    UnsetValueError,
    ValueTypeError,
    WrongTypeError,
)
from tests.support import BufferType, NetworkBufferSpec, make_config

Spec = NetworkBufferSpec

_NAMES = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789-", min_size=1, max_size=12)


# ---------------------------------------------------------------------------
# Reads and writes
# ---------------------------------------------------------------------------


def test_lazy_item_follows_its_dependency_until_pinned() -> None:
    config = make_config()
    config[Spec.size] = 1024
    assert config[Spec.max_size] == 2048
    config["network.buffer.maxSize"] = 0
    assert config[Spec.max_size] == 0
    config[Spec.size] = 1
    assert config[Spec.max_size] == 0


def test_optional_items_start_with_their_default() -> None:
    config = make_config()
    assert config[Spec.name] == "buffer"
    assert config["network.buffer.type"] is BufferType.OFF_HEAP
    assert config[Spec.offset] is None


def test_reading_unset_or_unknown_items() -> None:
    config = make_config()
    with pytest.raises(UnsetValueError) as info:
        config[Spec.size]
    assert info.value.name == "network.buffer.size"
    with pytest.raises(UnsetValueError):
        config[Spec.max_size]
    with pytest.raises(NoSuchItemError):
        config["network.buffer.missing"]
    assert config.get_or_none(Spec.size) is None
    assert config.get_or_none("network.buffer.missing") is None


def test_set_checks_the_declared_type() -> None:
    config = make_config()
    with pytest.raises(ValueTypeError):
        config[Spec.size] = "1024"
    with pytest.raises(TypeError):
        config[Spec.size] = None
    with pytest.raises(ValueTypeError):
        config[Spec.type] = "ON_HEAP"
    config[Spec.offset] = None
    config[Spec.offset] = 3
    assert config[Spec.offset] == 3


def test_lazy_results_are_validated_on_read() -> None:
    config = Config()
    broken = config.lazy(int, lambda _: None, "broken")
    with pytest.raises(InvalidLazySetError):
        config[broken]
    nullable = config.lazy(int | None, lambda _: None, "nullable")
    assert config[nullable] is None
    config.lazy_set(broken, lambda _: "text")
    with pytest.raises(InvalidLazySetError):
        config[broken]


def test_lazy_set_sees_the_current_config() -> None:
    config = make_config()
    config[Spec.size] = 10
    config.lazy_set(Spec.name, lambda current: f"buffer-{current[Spec.size]}")
    assert config[Spec.name] == "buffer-10"


def test_unset_removes_values_and_defaults() -> None:
    config = make_config()
    config[Spec.size] = 1
    del config[Spec.size]
    config.unset(Spec.name)
    with pytest.raises(UnsetValueError):
        config[Spec.size]
    with pytest.raises(UnsetValueError):
        config[Spec.name]


def test_contains_accepts_items_and_names() -> None:
    config = make_config()
    assert Spec.size in config
    assert "network.buffer.maxSize" in config
    assert "network.buffer" not in config
    assert "a..b" not in config
    assert 42 not in config
    assert config.name_of(Spec.type) == "network.buffer.type"
    assert config.items == [Spec.size, Spec.max_size, Spec.name, Spec.type, Spec.offset]


def test_required_validation() -> None:
    config = make_config()
    assert not config.contains_required()
    with pytest.raises(UnsetValueError):
        config.validate_required()
    config[Spec.size] = 1
    assert config.contains_required()
    assert config.validate_required() is config


def test_item_property_reads_and_writes() -> None:
    config = make_config()
    size = config.property("network.buffer.size")
    size.value = 4
    assert size.get() == 4
    assert config[Spec.max_size] == 8


def test_lock_runs_the_block_and_returns_its_result() -> None:
    config = make_config()
    assert config.lock(lambda: config.set(Spec.size, 2) or config[Spec.size]) == 2


# ---------------------------------------------------------------------------
# Items, specs and layers
# ---------------------------------------------------------------------------


def test_repeated_items_and_name_conflicts() -> None:
    with pytest.raises(RepeatedItemError):
        Config(NetworkBufferSpec(), NetworkBufferSpec())
    config = Config()
    config.required(int, "a.b")
    with pytest.raises(NameConflictError):
        config.required(int, "a")
    with pytest.raises(NameConflictError):
        config.required(int, "a.b.c")
    with pytest.raises(NameConflictError):
        config.required(str, "a.b")
    config.required(int, "a.bc")


def test_child_layers_shadow_and_freeze_their_parent() -> None:
    config = make_config()
    config[Spec.size] = 1
    child = config.with_layer("overrides")
    child[Spec.size] = 2
    assert child.name == "overrides"
    assert child.parent is config
    assert (child[Spec.size], config[Spec.size]) == (2, 1)
    assert child[Spec.max_size] == 4
    with pytest.raises(LayerFrozenError):
        config.required(int, "late")
    late = child.required(int, "late")
    assert late in child and late not in config


def test_unset_in_a_child_reveals_the_parent_value() -> None:
    config = make_config()
    config[Spec.size] = 1
    child = config.with_layer()
    child[Spec.size] = 2
    child.unset(Spec.size)
    assert child[Spec.size] == 1


def test_clear_and_clear_all() -> None:
    config = make_config()
    config[Spec.size] = 1
    child = config.with_layer()
    child[Spec.size] = 2
    child.clear()
    assert child[Spec.size] == 1
    child.clear_all()
    with pytest.raises(UnsetValueError):
        child[Spec.size]
    with pytest.raises(UnsetValueError):
        config[Spec.name]


def test_layer_detaches_the_current_layer() -> None:
    config = make_config()
    child = config.with_layer("child")
    extra = child.optional(int, 1, "extra")
    layer = child.layer
    assert layer.parent is None
    assert layer.items == [extra]
    assert child.specs == config.specs


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def test_loading_a_map_creates_a_source_layer(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="lib_typed_config")
    config = make_config()
    source = MapSource({"network": {"buffer": {"size": 1, "type": "ON_HEAP", "offset": None}}})
    loaded = config.with_source(source)
    assert loaded.parent is config
    assert loaded.name == "source: [type: map]"
    assert loaded[Spec.size] == 1
    assert loaded[Spec.type] is BufferType.ON_HEAP
    assert loaded[Spec.offset] is None
    assert loaded.sources == [source]
    assert config.sources == []
    assert any(record.getMessage() == "config_loaded" for record in caplog.records)


def test_snake_case_keys_load_into_little_camel_case_items() -> None:
    config = make_config().from_.map.hierarchical({"network": {"buffer": {"size": 1, "max_size": 5}}})
    assert config[Spec.max_size] == 5


def test_key_folding_can_be_disabled() -> None:
    config = make_config().disable(Feature.LOAD_KEYS_AS_LITTLE_CAMEL_CASE)
    loaded = config.from_.map.hierarchical({"network": {"buffer": {"size": 1, "max_size": 5}}})
    assert loaded[Spec.max_size] == 2


def test_case_insensitive_loading() -> None:
    data = {"network": {"buffer": {"size": 1, "maxsize": 9}}}
    assert make_config().from_.map.hierarchical(data)[Spec.max_size] == 2
    config = make_config().enable(Feature.LOAD_KEYS_CASE_INSENSITIVELY)
    assert config.from_.map.hierarchical(data)[Spec.max_size] == 9
    source = MapSource(data).enabled(Feature.LOAD_KEYS_CASE_INSENSITIVELY)
    assert make_config().with_source(source)[Spec.max_size] == 9


def test_unknown_paths_fail_when_requested() -> None:
    data = {"network": {"buffer": {"size": 1}}, "level1": {"level2": {"invalid": 1}}}
    assert make_config().from_.map.hierarchical(data)[Spec.size] == 1
    strict = make_config().enable(Feature.FAIL_ON_UNKNOWN_PATH)
    with pytest.raises(UnknownPathsError) as info:
        strict.from_.map.hierarchical(data)
    assert info.value.paths == ["level1.level2.invalid"]
    with pytest.raises(UnknownPathsError):
        make_config().with_source(MapSource(data).enabled(Feature.FAIL_ON_UNKNOWN_PATH))


def test_decode_failures_are_wrapped_with_the_item_name() -> None:
    with pytest.raises(LoadError) as info:
        make_config().from_.map.hierarchical({"network": {"buffer": {"size": "abc"}}})
    assert info.value.path == "network.buffer.size"
    assert isinstance(info.value.cause, ParseError)
    with pytest.raises(LoadError) as info:
        make_config().from_.map.hierarchical({"network": {"buffer": {"size": None}}})
    assert isinstance(info.value.cause, WrongTypeError)


def test_substitution_runs_before_loading() -> None:
    data = {"network": {"buffer": {"size": 4, "name": "buf-${network.buffer.size}"}}}
    assert make_config().from_.map.hierarchical(data)[Spec.name] == "buf-4"
    plain = make_config().disable(Feature.SUBSTITUTE_SOURCE_BEFORE_LOADED)
    assert plain.from_.map.hierarchical(data)[Spec.name] == "buf-${network.buffer.size}"


def test_flat_and_kv_maps() -> None:
    flat = make_config().from_.map.flat({"network.buffer.size": "8", "network.buffer.type": "ON_HEAP"})
    assert (flat[Spec.size], flat[Spec.type]) == (8, BufferType.ON_HEAP)
    kv = make_config().from_.map.kv({"network.buffer.size": 8, "network.buffer.offset": None})
    assert (kv[Spec.size], kv[Spec.offset]) == (8, None)


def test_items_added_after_loading_read_the_loaded_sources() -> None:
    config = Config().with_source(MapSource({"some_key": "value"}))
    item = config.required(str, "someKey")
    assert config[item] == "value"


def test_late_items_read_ancestor_sources_oldest_first() -> None:
    base = Config().from_.map.kv({"server.host": "base", "server.port": 80})
    top = base.from_.map.kv({"server.port": 8080})
    host = top.required(str, "server.host")
    port = top.optional(int, 0, "server.port")
    assert (top[host], top[port]) == ("base", 8080)
    assert base.get_or_none("server.host") is None


def test_late_items_wrap_decode_failures() -> None:
    config = Config().from_.map.kv({"count": "many"})
    with pytest.raises(LoadError) as info:
        config.required(int, "count")
    assert info.value.path == "count"


def test_load_handlers_see_the_source() -> None:
    config = make_config()
    seen: list[tuple[str, str]] = []
    config.before_load(lambda source: seen.append(("before", source.description)))
    subscription = config.after_load(lambda source: seen.append(("after", source.description)))
    config.from_.map.kv({"network.buffer.size": 1})
    subscription.close()
    config.from_.map.kv({"network.buffer.size": 2})
    assert seen == [("before", "[type: KV]"), ("after", "[type: KV]"), ("before", "[type: KV]")]


# ---------------------------------------------------------------------------
# Handlers and features
# ---------------------------------------------------------------------------


def test_set_handlers_run_in_order() -> None:
    config = Config()
    item = config.optional(int, 0, "counter")
    events: list[tuple[str, int]] = []
    item.before_set(lambda current, value: events.append(("item before", current[item])))
    config.before_set(lambda changed, value: events.append(("config before", value)))
    item.after_set(lambda current, value: events.append(("item after", current[item])))
    config.after_set(lambda changed, value: events.append(("config after", value)))
    config[item] = 5
    assert events == [("item before", 0), ("config before", 5), ("item after", 5), ("config after", 5)]


def test_ancestor_handlers_fire_for_child_writes() -> None:
    config = Config()
    item = config.optional(int, 0, "counter")
    changed: list[str] = []
    subscription = config.after_set(lambda target, value: changed.append(target.name or ""))
    child = config.with_layer()
    child[item] = 1
    subscription.close()
    child[item] = 2
    assert changed == ["counter"]


def test_feature_toggles_return_copies_sharing_state() -> None:
    config = make_config()
    strict = config.enable(Feature.FAIL_ON_UNKNOWN_PATH)
    assert strict.is_enabled(Feature.FAIL_ON_UNKNOWN_PATH)
    assert not config.is_enabled(Feature.FAIL_ON_UNKNOWN_PATH)
    strict[Spec.size] = 3
    assert config[Spec.size] == 3
    assert strict.with_layer().is_enabled(Feature.FAIL_ON_UNKNOWN_PATH)
    assert not strict.disable(Feature.FAIL_ON_UNKNOWN_PATH).is_enabled(Feature.FAIL_ON_UNKNOWN_PATH)


def test_root_features_can_be_passed_to_the_constructor() -> None:
    config = make_config(features={Feature.OPTIONAL_SOURCE_BY_DEFAULT: True})
    assert config.is_enabled(Feature.OPTIONAL_SOURCE_BY_DEFAULT)


# ---------------------------------------------------------------------------
# Views and merging
# ---------------------------------------------------------------------------


def test_drill_down_view_names_items_relative_to_the_path() -> None:
    config = make_config()
    config[Spec.size] = 2
    buffer = config.at("network.buffer")
    assert buffer["size"] == 2
    assert buffer["maxSize"] == 4
    assert config.at("network").name_of(Spec.size) == "buffer.size"
    assert config.at("") is config
    buffer["size"] = 3
    assert config[Spec.size] == 3
    with pytest.raises(NoSuchPathError):
        config.at("disk")


def test_roll_up_view_adds_a_prefix() -> None:
    config = make_config()
    config[Spec.size] = 2
    rolled = Prefix("app") + config
    assert rolled["app.network.buffer.size"] == 2
    assert rolled.name_of(Spec.size) == "app.network.buffer.size"
    assert "network.buffer.size" not in rolled
    assert Prefix("") + config is config


def test_merged_config_prefers_explicit_values_over_defaults() -> None:
    facade = make_config()
    fallback = make_config()
    fallback[Spec.size] = 5
    fallback[Spec.name] = "fallback"
    merged = facade + fallback
    assert merged[Spec.size] == 5
    assert merged[Spec.name] == "fallback"
    facade[Spec.name] = "facade"
    assert merged[Spec.name] == "facade"
    assert merged[Spec.type] is BufferType.OFF_HEAP


def test_merged_config_writes_to_the_owning_side() -> None:
    facade = Config()
    fallback = Config()
    front = facade.optional(int, 0, "front")
    back = fallback.optional(int, 0, "back")
    merged = facade.with_fallback(fallback)
    merged[front] = 1
    merged[back] = 2
    assert (facade[front], fallback[back]) == (1, 2)
    assert merged.items == [front, back]


def test_late_items_below_a_merged_config_prefer_facade_sources() -> None:
    facade = Config().from_.map.kv({"port": 1})
    fallback = Config().from_.map.kv({"port": 2, "host": "back"})
    child = (facade + fallback).with_layer()
    port = child.required(int, "port")
    host = child.required(str, "host")
    assert (child[port], child[host]) == (1, "back")


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def test_export_shapes() -> None:
    config = make_config()
    config[Spec.size] = 4
    assert config.to_map() == {
        "network.buffer.size": 4,
        "network.buffer.maxSize": 8,
        "network.buffer.name": "buffer",
        "network.buffer.type": "OFF_HEAP",
        "network.buffer.offset": None,
    }
    assert config.to_hierarchical_map() == {
        "network": {"buffer": {"size": 4, "maxSize": 8, "name": "buffer", "type": "OFF_HEAP", "offset": None}}
    }
    assert config.to_flat_map() == {
        "network.buffer.size": "4",
        "network.buffer.maxSize": "8",
        "network.buffer.name": "buffer",
        "network.buffer.type": "OFF_HEAP",
    }


def test_export_skips_unset_items() -> None:
    assert "network.buffer.size" not in make_config().to_map()
    assert "network.buffer.maxSize" not in make_config().to_map()


@given(size=st.integers(min_value=0, max_value=2**31), name=_NAMES, offset=st.none() | st.integers(0, 4096))
@settings(max_examples=40, deadline=None)
def test_exported_maps_load_back_unchanged(size: int, name: str, offset: int | None) -> None:
    """Every export shape round-trips through the matching map loader."""

    config = make_config()
    config[Spec.size] = size
    config[Spec.name] = name
    config[Spec.type] = BufferType.ON_HEAP
    config[Spec.offset] = offset
    expected = config.to_map()
    assert make_config().with_source(KVSource(config.to_map())).to_map() == expected
    assert make_config().from_.map.hierarchical(config.to_hierarchical_map()).to_map() == expected
    assert make_config().from_.map.flat(config.to_flat_map()).to_map() == expected


@dataclass
class Endpoint:
    host: str
    port: int


def test_config_decodes_into_a_class_across_layers() -> None:
    config = Config()
    config.optional(str, "localhost", "host")
    config.required(int, "port")
    child = config.with_layer("overrides")
    child["port"] = 8080
    assert child.to_value(Endpoint) == Endpoint("localhost", 8080)
    with pytest.raises(ObjectMappingError):
        config.to_value(Endpoint)


def test_merged_config_decodes_into_a_class() -> None:
    facade = Config()
    facade.required(int, "port")
    facade["port"] = 80
    fallback = Config()
    fallback.optional(str, "fallback", "host")
    assert (facade + fallback).to_value(Endpoint) == Endpoint("fallback", 80)


def test_config_loaded_from_a_merged_source_decodes_into_a_class() -> None:
    source = MapSource({"host": "facade"}) + MapSource({"host": "fallback", "port": 80})
    config = Config().with_source(source)
    config.required(str, "host")
    config.required(int, "port")
    assert config.to_value(Endpoint) == Endpoint("facade", 80)
