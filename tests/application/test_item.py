"""Item declarations and subscription handles."""

from __future__ import annotations

from typing import Optional

import pytest

from lib_typed_config.application.item import LazyItem, OptionalItem, RequiredItem, Subscription, lazy, optional, required
from lib_typed_config.domain.errors import InvalidPathError
from lib_typed_config.domain.path import KeyPath


def test_class_attribute_items_take_the_attribute_name() -> None:
    class Holder:
        port = required(int)
        host = optional(str, "localhost", name="server.host")

    assert Holder.port.name == "port"
    assert Holder.host.name == "server.host"
    assert Holder.host.path == KeyPath(("server", "host"))


def test_variants() -> None:
    required_item = required(int, "size")
    optional_item = optional(str, "buffer", "name")
    lazy_item = lazy(int, lambda config: 1, "maxSize")
    assert isinstance(required_item, RequiredItem) and required_item.is_required
    assert isinstance(optional_item, OptionalItem) and optional_item.is_optional
    assert optional_item.default == "buffer"
    assert isinstance(lazy_item, LazyItem) and lazy_item.is_lazy
    assert not required_item.is_optional and not required_item.is_lazy


def test_optional_types_make_items_nullable() -> None:
    assert optional(Optional[int], None, "offset").nullable
    assert required(int | None, "offset").nullable
    assert required(int, "offset", nullable=True).nullable
    assert not required(int, "offset").nullable


def test_invalid_names_are_rejected_at_declaration() -> None:
    with pytest.raises(InvalidPathError):
        required(int, "a..b")


def test_items_compare_by_identity() -> None:
    first = required(int, "size")
    second = required(int, "size")
    assert first != second
    assert len({first, second}) == 2


def test_item_handlers_are_snapshotted() -> None:
    item = required(int, "size")
    calls: list[str] = []
    subscription = item.before_set(lambda config, value: calls.append("before"))
    item.after_set(lambda config, value: calls.append("after"))
    handlers = item.before_set_handlers()
    subscription.close()
    assert len(handlers) == 1
    assert item.before_set_handlers() == []
    assert len(item.after_set_handlers()) == 1


def test_subscription_close_is_idempotent() -> None:
    handlers: list[object] = []
    subscription = Subscription(handlers, print)
    subscription.close()
    subscription.close()
    assert handlers == []


def test_subscription_removes_only_its_own_registration() -> None:
    handlers: list[object] = []
    first = Subscription(handlers, print)
    Subscription(handlers, print)
    first.close()
    assert handlers == [print]


def test_repr_names_item_and_type() -> None:
    assert repr(required(int, "size")) == "RequiredItem(name='size', type='int')"
