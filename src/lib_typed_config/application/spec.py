"""Config specs: namespaced groups of items with nesting and composition.

Purpose
-------
Group related items under a dotted prefix (``network.buffer``) and compose
specs into larger schemas without copying items.

Contents
--------
* :class:`ConfigSpec` – prefix, items, inner specs, builders and combinators.
* :class:`Prefix` – ``Prefix("a") + spec`` / ``Prefix("a") + config`` relocation.

Declaration
-----------
Items are usually declared as class attributes::

    class ServerSpec(ConfigSpec):
        host = optional(str, "0.0.0.0")
        port = required(int, description="listen port")

        class Tls(ConfigSpec):
            enabled = optional(bool, False)

    server = ServerSpec()          # prefix "server", inner spec "tls"

A subclass infers its prefix from the class name (``Spec`` suffix removed,
leading capitals lowercased) unless one is passed to the constructor or as a
class keyword (``class Buffer(ConfigSpec, prefix="network.buffer")``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from ..domain.errors import NoSuchPathError, RepeatedInnerSpecError, RepeatedItemError
from ..domain.naming import to_little_case
from ..domain.path import KeyPath, qualify, to_path
from .item import Item, LazyItem, OptionalItem, RequiredItem, Thunk


def infer_prefix(cls: type) -> str:
    """Derive the default prefix for a spec class.

    Examples
    --------
    >>> infer_prefix(type("TCPServiceSpec", (), {})), infer_prefix(type("OKSpec", (), {}))
    ('tcpService', 'ok')
    """

    name = cls.__name__
    if name.endswith("Spec"):
        name = name[: -len("Spec")]
    return to_little_case(name)


class ConfigSpec:
    """A namespaced collection of items and inner specs.

    Examples
    --------
    >>> spec = ConfigSpec("network.buffer")
    >>> size = spec.required(int, "size")
    >>> spec.qualify(size)
    'network.buffer.size'
    >>> spec["network"].prefix
    'buffer'
    """

    _class_prefix: str | None = None

    def __init_subclass__(cls, prefix: str | None = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._class_prefix = prefix

    def __init__(
        self,
        prefix: str | None = None,
        items: Iterable[Item[Any]] = (),
        inner_specs: Iterable["ConfigSpec"] = (),
    ) -> None:
        if prefix is None:
            prefix = self._default_prefix()
        to_path(prefix)
        self.prefix = prefix
        self._items: list[Item[Any]] = []
        self._inner_specs: list[ConfigSpec] = []
        for item in self._declared_items():
            self.add_item(item)
        for item in items:
            self.add_item(item)
        for inner in self._declared_inner_specs():
            self.add_inner_spec(inner)
        for inner in inner_specs:
            self.add_inner_spec(inner)

    def _default_prefix(self) -> str:
        cls = type(self)
        if cls._class_prefix is not None:
            return cls._class_prefix
        if cls is ConfigSpec or cls is _FallbackSpec:
            return ""
        return infer_prefix(cls)

    def _declared_items(self) -> list[Item[Any]]:
        found: list[Item[Any]] = []
        for klass in reversed(type(self).__mro__):
            for value in vars(klass).values():
                if isinstance(value, Item) and not any(value is seen for seen in found):
                    found.append(value)
        return found

    def _declared_inner_specs(self) -> list["ConfigSpec"]:
        found: list[ConfigSpec] = []
        for klass in reversed(type(self).__mro__):
            for value in vars(klass).values():
                if isinstance(value, ConfigSpec):
                    found.append(value)
                elif isinstance(value, type) and issubclass(value, ConfigSpec) and value is not type(self):
                    found.append(value())
        return found

    # -- contents -----------------------------------------------------------------

    @property
    def items(self) -> tuple[Item[Any], ...]:
        """Items declared directly on this spec (inner specs excluded)."""

        return tuple(self._items)

    @property
    def inner_specs(self) -> tuple["ConfigSpec", ...]:
        return tuple(self._inner_specs)

    def qualified_items(self) -> list[tuple[str, Item[Any]]]:
        """Every item reachable from this spec with its fully qualified name."""

        entries = [(qualify(self.prefix, item.name or ""), item) for item in self._items]
        for inner in self._inner_specs:
            entries.extend((qualify(self.prefix, name), item) for name, item in inner.qualified_items())
        return entries

    def qualify(self, item: Item[Any]) -> str:
        """Return the name *item* has when this spec is added to a config."""

        for name, candidate in self.qualified_items():
            if candidate is item:
                return name
        return qualify(self.prefix, item.name or "")

    def __contains__(self, item: object) -> bool:
        return any(candidate is item for _, candidate in self.qualified_items())

    # -- mutation -----------------------------------------------------------------

    def add_item(self, item: Item[Any]) -> None:
        """Attach *item* to this spec.

        Raises
        ------
        RepeatedItemError
            When *item* is already part of this spec.
        """

        if item.name is None:
            raise ValueError("items added to a spec need a name")
        if any(existing is item for existing in self._items):
            raise RepeatedItemError(item.name)
        if item.spec is None:
            item.spec = self
        self._items.append(item)

    def add_inner_spec(self, spec: "ConfigSpec") -> None:
        """Nest *spec*; its items are qualified by this spec's prefix.

        Raises
        ------
        RepeatedInnerSpecError
            When *spec* is already nested here.
        """

        if any(existing is spec for existing in self._inner_specs):
            raise RepeatedInnerSpecError(spec.prefix)
        self._inner_specs.append(spec)

    def required(self, type_: Any, name: str, description: str = "", nullable: bool = False) -> RequiredItem[Any]:
        item: RequiredItem[Any] = RequiredItem(type_, name, description, nullable)
        self.add_item(item)
        return item

    def optional(
        self,
        type_: Any,
        default: Any,
        name: str,
        description: str = "",
        nullable: bool = False,
    ) -> OptionalItem[Any]:
        item: OptionalItem[Any] = OptionalItem(type_, default, name, description, nullable)
        self.add_item(item)
        return item

    def lazy(
        self,
        type_: Any,
        thunk: Thunk,
        name: str,
        description: str = "",
        nullable: bool = False,
    ) -> LazyItem[Any]:
        item: LazyItem[Any] = LazyItem(type_, thunk, name, description, nullable)
        self.add_item(item)
        return item

    # -- combinators --------------------------------------------------------------

    def get(self, path: "str | KeyPath") -> "ConfigSpec":
        """Drill down to the part of this spec below *path*.

        Raises
        ------
        NoSuchPathError
            When neither the prefix nor any inner spec lies below *path*.
        """

        target = to_path(path)
        if target.is_empty():
            return self
        own = to_path(self.prefix)
        if own.starts_with(target):
            return ConfigSpec(str(own[len(target) :]), self._items, self._inner_specs)
        if target.starts_with(own):
            rest = target[len(own) :]
            found: list[ConfigSpec] = []
            for inner in self._inner_specs:
                try:
                    found.append(inner.get(rest))
                except NoSuchPathError:
                    continue
            if found:
                return ConfigSpec("", inner_specs=found)
        raise NoSuchPathError(str(target), f"[spec: {self.prefix}]")

    def __getitem__(self, path: "str | KeyPath") -> "ConfigSpec":
        return self.get(path)

    def __add__(self, other: object) -> "ConfigSpec":
        """Disjoint union; sharing an item fails with :class:`RepeatedItemError`."""

        if not isinstance(other, ConfigSpec):
            return NotImplemented
        mine = [item for _, item in self.qualified_items()]
        for name, item in other.qualified_items():
            if any(item is existing for existing in mine):
                raise RepeatedItemError(name)
        return ConfigSpec("", inner_specs=[self, other])

    def with_fallback(self, fallback: "ConfigSpec") -> "ConfigSpec":
        """Union where items shared with *fallback* keep this spec's qualification."""

        return _FallbackSpec(self, fallback)

    def __repr__(self) -> str:
        names = [name for name, _ in self.qualified_items()]
        return f"{type(self).__name__}(prefix={self.prefix!r}, items={names!r})"


class _FallbackSpec(ConfigSpec):
    def __init__(self, facade: ConfigSpec, fallback: ConfigSpec) -> None:
        super().__init__("", inner_specs=[facade, fallback])
        self._facade = facade
        self._fallback = fallback

    def qualified_items(self) -> list[tuple[str, Item[Any]]]:
        entries = self._facade.qualified_items()
        for name, item in self._fallback.qualified_items():
            if not any(item is existing for _, existing in entries):
                entries.append((name, item))
        return entries


@dataclass(frozen=True, slots=True)
class Prefix:
    """Relocate a spec or a config below *path*.

    Examples
    --------
    >>> spec = ConfigSpec("buffer")
    >>> size = spec.required(int, "size")
    >>> (Prefix("network") + spec).qualify(size)
    'network.buffer.size'
    >>> Prefix("") + spec is spec
    True
    """

    path: str = ""

    def __add__(self, other: object) -> Any:
        from .config import Config

        if isinstance(other, ConfigSpec):
            if not self.path:
                return other
            return ConfigSpec(self.path, inner_specs=[other])
        if isinstance(other, Config):
            return other.rolled_up(self.path)
        return NotImplemented


__all__ = ["ConfigSpec", "Prefix", "infer_prefix"]
