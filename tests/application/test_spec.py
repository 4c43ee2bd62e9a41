"""Spec declaration, prefix inference and composition."""

from __future__ import annotations

import pytest

from lib_typed_config.application.item import optional, required
from lib_typed_config.application.spec import ConfigSpec, Prefix, infer_prefix
from lib_typed_config.domain.errors import InvalidPathError, NoSuchPathError, RepeatedInnerSpecError, RepeatedItemError
from tests.support import NetworkBufferSpec


class TCPServiceSpec(ConfigSpec):
    port = required(int)

    class Tls(ConfigSpec):
        enabled = optional(bool, False)


def test_prefix_is_inferred_from_the_class_name() -> None:
    spec = TCPServiceSpec()
    assert spec.prefix == "tcpService"
    assert [name for name, _ in spec.qualified_items()] == ["tcpService.port", "tcpService.tls.enabled"]


def test_prefix_can_be_given_as_class_keyword_or_argument() -> None:
    assert NetworkBufferSpec().prefix == "network.buffer"
    assert TCPServiceSpec("service").prefix == "service"
    assert ConfigSpec().prefix == ""


@pytest.mark.parametrize(
    ("name", "expected"),
    [("TCPServiceSpec", "tcpService"), ("OKSpec", "ok"), ("Spec", ""), ("Database", "database")],
)
def test_infer_prefix(name: str, expected: str) -> None:
    assert infer_prefix(type(name, (), {})) == expected


def test_invalid_prefix_is_rejected() -> None:
    with pytest.raises(InvalidPathError):
        ConfigSpec("a..b")


def test_qualify_reaches_inner_specs() -> None:
    spec = TCPServiceSpec()
    assert spec.qualify(TCPServiceSpec.port) == "tcpService.port"
    assert spec.qualify(TCPServiceSpec.Tls.enabled) == "tcpService.tls.enabled"
    assert TCPServiceSpec.Tls.enabled in spec


def test_builder_methods_attach_items() -> None:
    spec = ConfigSpec("db")
    url = spec.required(str, "url")
    pool = spec.optional(int, 4, "pool.size")
    derived = spec.lazy(int, lambda config: config[pool] * 2, "pool.max")
    assert spec.items == (url, pool, derived)
    assert url.spec is spec
    assert [name for name, _ in spec.qualified_items()] == ["db.url", "db.pool.size", "db.pool.max"]


def test_repeated_items_and_inner_specs_are_rejected() -> None:
    spec = ConfigSpec("a")
    item = spec.required(int, "x")
    with pytest.raises(RepeatedItemError):
        spec.add_item(item)
    inner = ConfigSpec("b")
    spec.add_inner_spec(inner)
    with pytest.raises(RepeatedInnerSpecError):
        spec.add_inner_spec(inner)


def test_get_drills_into_prefix_and_inner_specs() -> None:
    spec = NetworkBufferSpec()
    assert spec.get("network").prefix == "buffer"
    assert spec["network.buffer"].prefix == ""
    assert spec.get("") is spec
    service = TCPServiceSpec()
    tls = service.get("tcpService.tls")
    assert [name for name, _ in tls.qualified_items()] == ["enabled"]
    with pytest.raises(NoSuchPathError):
        spec.get("disk")
    with pytest.raises(NoSuchPathError):
        service.get("tcpService.missing")


def test_addition_is_a_disjoint_union() -> None:
    first = ConfigSpec("a")
    second = ConfigSpec("b")
    x = first.required(int, "x")
    y = second.required(int, "y")
    union = first + second
    assert union.prefix == ""
    assert [name for name, _ in union.qualified_items()] == ["a.x", "b.y"]
    assert union.qualify(y) == "b.y"
    assert x in union


def test_addition_rejects_shared_items() -> None:
    spec = NetworkBufferSpec()
    with pytest.raises(RepeatedItemError):
        spec + NetworkBufferSpec()


def test_with_fallback_keeps_facade_qualification_for_shared_items() -> None:
    facade = ConfigSpec("facade")
    shared = facade.required(int, "shared")
    fallback = ConfigSpec("fallback", items=[shared])
    only = fallback.required(int, "only")
    merged = facade.with_fallback(fallback)
    assert merged.qualified_items() == [("facade.shared", shared), ("fallback.only", only)]


def test_prefix_relocates_specs() -> None:
    spec = ConfigSpec("buffer")
    size = spec.required(int, "size")
    relocated = Prefix("network") + spec
    assert relocated.qualify(size) == "network.buffer.size"
    assert Prefix() + spec is spec
