"""Layered, mutable configuration runtime.

Purpose
-------
Hold item values for one or more specs, resolve reads through a chain of
layers, load sources into layers, and notify subscribers around every write
and load.

Contents
--------
* :class:`Config` – the public API, written once against a handful of
  primitives (``_item_for_name``, ``_find_state``, ``_write_state``…).
  ``Config(...)`` constructs a root :class:`BaseConfig`.
* :class:`BaseConfig` – one layer: its own values, items and handlers plus an
  optional parent that reads fall through to.
* :class:`MergedConfig` – ``facade.with_fallback(fallback)``.
* :class:`DrillDownConfig` / :class:`RollUpConfig` – ``config.at(path)`` and
  ``Prefix(path) + config`` views that translate item names.
* :class:`ItemProperty` – read/write handle bound to one item.

State model
-----------
Per item and per layer a value is either absent (unset), a concrete
``_Value`` or a ``_Lazy`` thunk. Optional and lazy items are seeded with a
*default* state in the layer they are added to; merged configs prefer
explicit states of either side over defaults of either side.

Thread Safety
-------------
Methods do not lock internally. :meth:`Config.lock` runs a caller block under
the layer's re-entrant lock so callers can serialise writes.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, TypeVar, Union

from ..domain.errors import (
    InvalidLazySetError,
    InvalidPathError,
    LayerFrozenError,
    LoadError,
    NameConflictError,
    NoSuchItemError,
    NoSuchPathError,
    RepeatedItemError,
    SourceError,
    UnknownPathsError,
    UnsetValueError,
    ValueTypeError,
)
from ..domain.features import NO_FEATURES, Feature, FeatureMap, resolve_for_load, with_feature
from ..domain.naming import to_little_camel_case
from ..domain.path import KeyPath, qualify, to_path
from ..domain.tree import EMPTY, NULL, ContainerNode, TreeNode, leaf_paths, node_from_value, to_flat, to_hierarchical, tree_from_dotted
from ..observability import log_debug, log_error, log_info, make_event
from .codec import ValueCodec, describe_type
from .item import Item, LazyItem, OptionalItem, RequiredItem, Subscription, Thunk
from .source import Source
from .spec import ConfigSpec, Prefix

if TYPE_CHECKING:
    from .loader import LoaderNamespace

T = TypeVar("T")

ItemRef = Union[Item[Any], str]
SetHandler = Callable[[Item[Any], Any], None]
LoadHandler = Callable[[Source], None]


@dataclass(slots=True)
class _Value:
    value: Any
    is_default: bool = False


@dataclass(slots=True)
class _Lazy:
    thunk: Thunk
    is_default: bool = False


_State = Union[_Value, _Lazy]


@dataclass
class _LayerState:
    """Everything a layer owns; shared by feature-toggled copies of the layer."""

    name: str
    parent: "Config | None"
    mapper: ValueCodec
    registry: Any = None
    specs: list[ConfigSpec] = field(default_factory=list)
    name_by_item: dict[Item[Any], str] = field(default_factory=dict)
    item_by_name: dict[str, Item[Any]] = field(default_factory=dict)
    values: dict[Item[Any], _State] = field(default_factory=dict)
    sources: list[Source] = field(default_factory=list)
    before_set: list[SetHandler] = field(default_factory=list)
    after_set: list[SetHandler] = field(default_factory=list)
    before_load: list[LoadHandler] = field(default_factory=list)
    after_load: list[LoadHandler] = field(default_factory=list)
    frozen: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock)


def _conflicts(first: str, second: str) -> bool:
    return first == second or first.startswith(second + ".") or second.startswith(first + ".")


class Config:
    """A queryable, mutable, layered configuration.

    ``Config(*specs, name="", mapper=None, features=...)`` builds a root layer.

    Examples
    --------
    >>> from lib_typed_config.application.spec import ConfigSpec
    >>> spec = ConfigSpec("server")
    >>> port = spec.optional(int, 8080, "port")
    >>> config = Config(spec)
    >>> config[port], config["server.port"]
    (8080, 8080)
    >>> child = config.with_layer("overrides")
    >>> child[port] = 9090
    >>> child[port], config[port]
    (9090, 8080)
    """

    _features: FeatureMap = NO_FEATURES

    def __new__(cls, *args: Any, **kwargs: Any) -> "Config":
        if cls is Config:
            return object.__new__(BaseConfig)
        return object.__new__(cls)

    # -- primitives (implemented by every variant) --------------------------------

    def _item_for_name(self, name: str) -> Item[Any] | None:
        raise NotImplementedError

    def _name_for_item(self, item: Item[Any]) -> str | None:
        raise NotImplementedError

    def _entries(self) -> list[tuple[str, Item[Any]]]:
        raise NotImplementedError

    def _find_state(self, item: Item[Any], skip_default: bool = False) -> _State | None:
        raise NotImplementedError

    def _write_state(self, item: Item[Any], state: _State | None) -> None:
        raise NotImplementedError

    def _handlers(self, kind: str) -> list[Any]:
        raise NotImplementedError

    def _subscribe(self, kind: str, handler: Any) -> Subscription:
        raise NotImplementedError

    def _feature_override(self, feature: Feature) -> bool | None:
        raise NotImplementedError

    def _freeze(self) -> None:
        raise NotImplementedError

    def _record_source(self, source: Source) -> None:
        raise NotImplementedError

    def _lock(self) -> threading.RLock:
        raise NotImplementedError

    def _evaluation_context(self) -> "Config":
        return self

    def _registry(self) -> Any:
        return None

    @property
    def name(self) -> str:
        raise NotImplementedError

    @property
    def parent(self) -> "Config | None":
        raise NotImplementedError

    @property
    def mapper(self) -> ValueCodec:
        raise NotImplementedError

    @property
    def specs(self) -> list[ConfigSpec]:
        raise NotImplementedError

    @property
    def sources(self) -> list[Source]:
        raise NotImplementedError

    def add_spec(self, spec: ConfigSpec) -> None:
        raise NotImplementedError

    def add_item(self, item: Item[Any], prefix: str = "") -> None:
        raise NotImplementedError

    def with_layer(self, name: str = "") -> "Config":
        raise NotImplementedError

    # -- item resolution ----------------------------------------------------------

    def _resolve(self, ref: ItemRef) -> tuple[Item[Any], str]:
        if isinstance(ref, Item):
            name = self._name_for_item(ref)
            if name is None:
                raise NoSuchItemError(ref.name or repr(ref))
            return ref, name
        item = self._item_for_name(str(to_path(ref)))
        if item is None:
            raise NoSuchItemError(ref)
        return item, str(to_path(ref))

    @property
    def items(self) -> list[Item[Any]]:
        return [item for _, item in self._entries()]

    def name_of(self, item: Item[Any]) -> str:
        """Return the qualified name *item* has in this config."""

        return self._resolve(item)[1]

    def contains(self, ref: ItemRef) -> bool:
        if isinstance(ref, Item):
            return self._name_for_item(ref) is not None
        try:
            return self._item_for_name(str(to_path(ref))) is not None
        except InvalidPathError:
            return False

    def __contains__(self, ref: object) -> bool:
        if not isinstance(ref, (Item, str)):
            return False
        return self.contains(ref)

    def __iter__(self) -> Iterator[Item[Any]]:
        return iter(self.items)

    # -- reads --------------------------------------------------------------------

    def get(self, ref: ItemRef) -> Any:
        """Return the current value of *ref* (an item or its qualified name).

        Raises
        ------
        NoSuchItemError
            When *ref* is unknown to this config.
        UnsetValueError
            When no layer holds a value for the item.
        InvalidLazySetError
            When a lazy thunk returns ``None`` for a non-nullable item or a
            value of the wrong type.
        """

        item, name = self._resolve(ref)
        state = self._find_state(item)
        if state is None:
            raise UnsetValueError(name)
        return self._evaluate(item, name, state)

    def _evaluate(self, item: Item[Any], name: str, state: _State) -> Any:
        if isinstance(state, _Value):
            return state.value
        value = state.thunk(self._evaluation_context())
        if value is None:
            if not item.nullable:
                raise InvalidLazySetError(f'lazy value of item "{name}" is None but the item is not nullable')
            return None
        if not self.mapper.is_instance(value, item.type):
            raise InvalidLazySetError(
                f'lazy value {value!r} of item "{name}" is not an instance of {describe_type(item.type)}'
            )
        return value

    def get_or_none(self, ref: ItemRef) -> Any:
        """Like :meth:`get` but returns ``None`` for unknown or unset items."""

        try:
            return self.get(ref)
        except (NoSuchItemError, UnsetValueError):
            return None

    def __getitem__(self, ref: ItemRef) -> Any:
        return self.get(ref)

    def contains_required(self) -> bool:
        """``True`` when every required item has a value in some layer."""

        return all(self._find_state(item) is not None for _, item in self._entries() if item.is_required)

    def validate_required(self) -> "Config":
        """Return ``self`` or raise :class:`UnsetValueError` for the first unset required item."""

        for name, item in self._entries():
            if item.is_required and self._find_state(item) is None:
                raise UnsetValueError(name)
        return self

    # -- writes -------------------------------------------------------------------

    def _check_value(self, item: Item[Any], name: str, value: Any) -> None:
        if value is None:
            if not item.nullable:
                raise ValueTypeError(f'item "{name}" is not nullable')
            return
        if not self.mapper.is_instance(value, item.type):
            raise ValueTypeError(
                f'value {value!r} of type {type(value).__name__} is not an instance of '
                f'{describe_type(item.type)} (item "{name}")'
            )

    def _set_checked(self, item: Item[Any], value: Any) -> None:
        for handler in item.before_set_handlers():
            handler(self, value)
        for handler in self._handlers("before_set"):
            handler(item, value)
        self._write_state(item, _Value(value))
        for handler in item.after_set_handlers():
            handler(self, value)
        for handler in self._handlers("after_set"):
            handler(item, value)

    def set(self, ref: ItemRef, value: Any) -> None:
        """Store *value* for *ref* in this config's writable layer.

        Raises
        ------
        ValueTypeError
            When *value* does not match the declared type, or is ``None`` for
            a non-nullable item.
        """

        item, name = self._resolve(ref)
        self._check_value(item, name, value)
        self._set_checked(item, value)

    def __setitem__(self, ref: ItemRef, value: Any) -> None:
        self.set(ref, value)

    def lazy_set(self, ref: ItemRef, thunk: Thunk) -> None:
        """Store *thunk*; it is validated when the item is read."""

        item, _ = self._resolve(ref)
        self._write_state(item, _Lazy(thunk))

    def unset(self, ref: ItemRef) -> None:
        """Remove the value of *ref* from this config's writable layer."""

        item, _ = self._resolve(ref)
        self._write_state(item, None)

    def __delitem__(self, ref: ItemRef) -> None:
        self.unset(ref)

    def clear(self) -> None:
        """Unset every item in the current layer."""

        for item in self.items:
            self._write_state(item, None)

    def clear_all(self) -> None:
        """Unset every item in the current layer and all of its ancestors."""

        self.clear()
        if self.parent is not None:
            self.parent.clear_all()

    # -- subscriptions ------------------------------------------------------------

    def before_set(self, handler: SetHandler) -> Subscription:
        """Call ``handler(item, value)`` before any item of this config is set."""

        return self._subscribe("before_set", handler)

    def after_set(self, handler: SetHandler) -> Subscription:
        """Call ``handler(item, value)`` after any item of this config is set."""

        return self._subscribe("after_set", handler)

    def before_load(self, handler: LoadHandler) -> Subscription:
        """Call ``handler(source)`` before a source is loaded into this config."""

        return self._subscribe("before_load", handler)

    def after_load(self, handler: LoadHandler) -> Subscription:
        """Call ``handler(source)`` after a source has been loaded into this config."""

        return self._subscribe("after_load", handler)

    # -- features -----------------------------------------------------------------

    def is_enabled(self, feature: Feature) -> bool:
        override = self._feature_override(feature)
        return feature.enabled_by_default if override is None else override

    def _with_features(self, features: FeatureMap) -> "Config":
        clone = copy.copy(self)
        clone._features = features
        return clone

    def enable(self, feature: Feature) -> "Config":
        """Return this config with *feature* enabled; the receiver is unchanged."""

        return self._with_features(with_feature(self._features, feature, True))

    def disable(self, feature: Feature) -> "Config":
        """Return this config with *feature* disabled; the receiver is unchanged."""

        return self._with_features(with_feature(self._features, feature, False))

    # -- loading ------------------------------------------------------------------

    def load(self, source: Source) -> "Config":
        """Read every known item from *source* into this config.

        Why
        ----
        Loading is where format-neutral trees meet typed items: the source is
        substituted, its keys normalised, unknown paths optionally rejected,
        and each item decoded through :attr:`mapper`.

        Raises
        ------
        UnknownPathsError
            When ``FAIL_ON_UNKNOWN_PATH`` is enabled and *source* holds paths
            that no item covers.
        LoadError
            When an item's node cannot be decoded; ``cause`` holds the
            original :class:`ParseError`, :class:`WrongTypeError`…
        """

        for handler in self._handlers("before_load"):
            handler(source)
        normalized, fold = self._prepare_load(source)
        entries = self._entries()
        fail_on_unknown = resolve_for_load(
            Feature.FAIL_ON_UNKNOWN_PATH,
            self.is_enabled(Feature.FAIL_ON_UNKNOWN_PATH),
            source.is_enabled(Feature.FAIL_ON_UNKNOWN_PATH),
        )
        if fail_on_unknown:
            known = ContainerNode()
            for name, _ in entries:
                known.set(fold(name), EMPTY)
            unknown = leaf_paths(normalized.tree - known)
            if unknown:
                log_error("unknown_paths", **make_event(self.name, source.description, {"paths": unknown}))
                raise UnknownPathsError(unknown, source.description)

        loaded = self._load_entries(source, normalized, fold, entries)
        self._record_source(source)
        for handler in self._handlers("after_load"):
            handler(source)
        log_info("config_loaded", **make_event(self.name, source.description, {"items": loaded}))
        return self

    def _prepare_load(self, source: Source) -> tuple[Source, Callable[[str], KeyPath]]:
        """Return *source* substituted and normalised, plus the matching item-name folding."""

        lowercased = resolve_for_load(
            Feature.LOAD_KEYS_CASE_INSENSITIVELY,
            self.is_enabled(Feature.LOAD_KEYS_CASE_INSENSITIVELY),
            source.is_enabled(Feature.LOAD_KEYS_CASE_INSENSITIVELY),
        )
        little_camel_cased = resolve_for_load(
            Feature.LOAD_KEYS_AS_LITTLE_CAMEL_CASE,
            self.is_enabled(Feature.LOAD_KEYS_AS_LITTLE_CAMEL_CASE),
            source.is_enabled(Feature.LOAD_KEYS_AS_LITTLE_CAMEL_CASE),
        )
        substituted = source.substituted(
            enabled=None if self.is_enabled(Feature.SUBSTITUTE_SOURCE_BEFORE_LOADED) else False
        )
        normalized = substituted.normalized(lowercased, little_camel_cased)

        def fold(name: str) -> KeyPath:
            segments = to_path(name).segments
            if little_camel_cased:
                segments = tuple(to_little_camel_case(segment) for segment in segments)
            if lowercased:
                segments = tuple(segment.lower() for segment in segments)
            return KeyPath(segments)

        return normalized, fold

    def _load_entries(
        self,
        source: Source,
        normalized: Source,
        fold: Callable[[str], KeyPath],
        entries: Iterable[tuple[str, Item[Any]]],
    ) -> int:
        loaded = 0
        for name, item in entries:
            node = normalized.get_node_or_none(fold(name), lowercased=False)
            if node is None or node is EMPTY:
                continue
            try:
                value = self._decode(item, node)
                self._check_value(item, name, value)
            except (SourceError, ValueTypeError) as exc:
                log_error("source_invalid", **make_event(self.name, source.description, {"item": name}))
                raise LoadError(name, exc) from exc
            self._set_checked(item, value)
            loaded += 1
        return loaded

    def _load_loaded_sources(self, entries: list[tuple[str, Item[Any]]]) -> None:
        """Read newly added *entries* from every source already loaded into this chain, oldest first."""

        if not entries:
            return
        for source in self._loaded_sources():
            normalized, fold = self._prepare_load(source)
            self._load_entries(source, normalized, fold, entries)

    def _loaded_sources(self) -> list[Source]:
        inherited = self.parent._loaded_sources() if self.parent is not None else []
        return [*inherited, *self.sources]

    def reload(self, source: Source) -> "Config":
        """Replace the values of this layer with those of *source*.

        The layer is emptied and *source* loaded under :meth:`lock`; when the
        load fails the previous values and sources are restored before the
        error propagates.
        """

        with self._lock():
            snapshot = self._snapshot()
            self._restore(({}, []))
            try:
                return self.load(source)
            except Exception:
                self._restore(snapshot)
                raise

    def _snapshot(self) -> tuple[dict[Item[Any], _State], list[Source]]:
        raise NotImplementedError

    def _restore(self, snapshot: tuple[dict[Item[Any], _State], list[Source]]) -> None:
        raise NotImplementedError

    def _decode(self, item: Item[Any], node: TreeNode) -> Any:
        if node is NULL and item.nullable:
            return None
        return self.mapper.decode(node, item.type)

    def with_source(self, source: Source) -> "Config":
        """Return a new child layer with *source* loaded into it."""

        return self.with_layer(f"source: {source.description}").load(source)

    @property
    def from_(self) -> "LoaderNamespace":
        """Loaders that build child layers: ``config.from_.json.file(path)``."""

        from .loader import LoaderNamespace

        registry = self._registry()
        if registry is None:
            from ..core import default_registry

            registry = default_registry()
        return LoaderNamespace(self, registry)

    # -- views --------------------------------------------------------------------

    def at(self, path: str) -> "Config":
        """Return a view of the items below *path*, named relative to it.

        Raises
        ------
        NoSuchPathError
            When no item lives below *path*.
        """

        if not to_path(path).segments:
            return self
        view = DrillDownConfig(self, str(to_path(path)))
        if not view._entries():
            raise NoSuchPathError(path, f"[config: {self.name}]")
        return view

    def rolled_up(self, prefix: str) -> "Config":
        """Return a view whose item names gain *prefix* (``Prefix(p) + config``)."""

        if not to_path(prefix).segments:
            return self
        return RollUpConfig(self, str(to_path(prefix)))

    def with_fallback(self, fallback: "Config") -> "Config":
        """Layer this config (the facade) over *fallback*."""

        return MergedConfig(fallback=fallback, facade=self)

    def __add__(self, fallback: object) -> "Config":
        if not isinstance(fallback, Config):
            return NotImplemented
        return self.with_fallback(fallback)

    @property
    def layer(self) -> "Config":
        """The current layer without its ancestors."""

        return self

    # -- ad-hoc items -------------------------------------------------------------

    def required(self, type_: Any, name: str, description: str = "", nullable: bool = False) -> RequiredItem[Any]:
        """Declare and add a required item outside of any spec."""

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
        """Declare and add an optional item outside of any spec."""

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
        """Declare and add a lazy item outside of any spec."""

        item: LazyItem[Any] = LazyItem(type_, thunk, name, description, nullable)
        self.add_item(item)
        return item

    def property(self, ref: ItemRef) -> "ItemProperty":
        """Return a read/write handle bound to *ref*."""

        item, _ = self._resolve(ref)
        return ItemProperty(self, item)

    def lock(self, block: Callable[[], T]) -> T:
        """Run *block* while holding this layer's lock and return its result."""

        with self._lock():
            return block()

    # -- export -------------------------------------------------------------------

    def to_map(self) -> dict[str, Any]:
        """Export ``{qualified name: value}`` for every item with a value.

        Values are exported as plain data through :meth:`ValueCodec.encode`
        (enums by name, durations as ISO text). Unset items are omitted;
        explicit ``None`` values are kept.
        """

        exported: dict[str, Any] = {}
        for name, item in self._entries():
            state = self._find_state(item)
            if state is None:
                continue
            try:
                value = self._evaluate(item, name, state)
            except UnsetValueError:
                continue
            exported[name] = self.mapper.encode(value)
        return exported

    def to_hierarchical_map(self) -> dict[str, Any]:
        """Export values as nested dictionaries."""

        return to_hierarchical(tree_from_dotted(self.to_map()))

    def to_flat_map(self) -> dict[str, str]:
        """Export values as ``{"a.b": "text"}`` (see :func:`to_flat`).

        Examples
        --------
        >>> config = Config()
        >>> _ = config.optional(list[str], ["a", "b"], "letters")
        >>> _ = config.optional(bool, True, "flag")
        >>> config.to_flat_map()
        {'letters': 'a,b', 'flag': 'true'}
        """

        return to_flat(self.to_hierarchical_map())

    def to_tree(self) -> TreeNode:
        """Export values as a tree (usable as the data of a new source)."""

        return node_from_value(self.to_hierarchical_map())

    def to_value(self, type_: Any) -> Any:
        """Decode the resolved values of every layer as one *type_* instance.

        Examples
        --------
        >>> config = Config()
        >>> _ = config.optional(int, 8080, "port")
        >>> config.to_value(dict[str, int])
        {'port': 8080}
        """

        return self.mapper.decode(self.to_tree(), type_)

    def __repr__(self) -> str:
        names = ", ".join(repr(name) for name, _ in self._entries())
        return f"Config(items={{{names}}})"


class BaseConfig(Config):
    """One configuration layer.

    Parameters
    ----------
    *specs:
        Specs added to the new layer right away.
    name:
        Layer name used in logs and ``source: …`` child names.
    parent:
        Layer that reads fall through to; it is frozen by :meth:`with_layer`.
    mapper:
        Value codec; child layers share their parent's.
    features:
        Feature overrides of this config object.
    """

    def __init__(
        self,
        *specs: ConfigSpec,
        name: str = "",
        parent: Config | None = None,
        mapper: ValueCodec | None = None,
        features: FeatureMap = NO_FEATURES,
        registry: Any = None,
    ) -> None:
        if mapper is None:
            mapper = parent.mapper if parent is not None else ValueCodec()
        if registry is None and parent is not None:
            registry = parent._registry()
        self._state = _LayerState(name=name, parent=parent, mapper=mapper, registry=registry)
        self._features = features
        log_debug("layer_created", **make_event(name, None, {"parent": parent.name if parent is not None else None}))
        for spec in specs:
            self.add_spec(spec)

    @property
    def name(self) -> str:
        return self._state.name

    @property
    def parent(self) -> Config | None:
        return self._state.parent

    @property
    def mapper(self) -> ValueCodec:
        return self._state.mapper

    @property
    def specs(self) -> list[ConfigSpec]:
        inherited = self._state.parent.specs if self._state.parent is not None else []
        return [*inherited, *self._state.specs]

    @property
    def sources(self) -> list[Source]:
        return list(self._state.sources)

    @property
    def layer(self) -> Config:
        detached = copy.copy(self)
        detached._state = _LayerState(**{**vars(self._state), "parent": None})
        return detached

    def _registry(self) -> Any:
        return self._state.registry

    def _item_for_name(self, name: str) -> Item[Any] | None:
        item = self._state.item_by_name.get(name)
        if item is None and self._state.parent is not None:
            return self._state.parent._item_for_name(name)
        return item

    def _name_for_item(self, item: Item[Any]) -> str | None:
        name = self._state.name_by_item.get(item)
        if name is None and self._state.parent is not None:
            return self._state.parent._name_for_item(item)
        return name

    def _entries(self) -> list[tuple[str, Item[Any]]]:
        inherited = self._state.parent._entries() if self._state.parent is not None else []
        return [*inherited, *((name, item) for item, name in self._state.name_by_item.items())]

    def _find_state(self, item: Item[Any], skip_default: bool = False) -> _State | None:
        state = self._state.values.get(item)
        if state is not None and not (skip_default and state.is_default):
            return state
        if self._state.parent is not None:
            return self._state.parent._find_state(item, skip_default)
        return None

    def _write_state(self, item: Item[Any], state: _State | None) -> None:
        if self._name_for_item(item) is None:
            raise NoSuchItemError(item.name or repr(item))
        if state is None:
            self._state.values.pop(item, None)
        else:
            self._state.values[item] = state

    def clear(self) -> None:
        self._state.values.clear()

    def _handlers(self, kind: str) -> list[Any]:
        own = list(getattr(self._state, kind))
        if self._state.parent is not None:
            own.extend(self._state.parent._handlers(kind))
        return own

    def _subscribe(self, kind: str, handler: Any) -> Subscription:
        return Subscription(getattr(self._state, kind), handler)

    def _feature_override(self, feature: Feature) -> bool | None:
        if feature in self._features:
            return self._features[feature]
        if self._state.parent is not None:
            return self._state.parent._feature_override(feature)
        return None

    def _freeze(self) -> None:
        self._state.frozen = True

    def _record_source(self, source: Source) -> None:
        self._state.sources.append(source)

    def _lock(self) -> threading.RLock:
        return self._state.lock

    def _snapshot(self) -> tuple[dict[Item[Any], _State], list[Source]]:
        return dict(self._state.values), list(self._state.sources)

    def _restore(self, snapshot: tuple[dict[Item[Any], _State], list[Source]]) -> None:
        values, sources = snapshot
        self._state.values.clear()
        self._state.values.update(values)
        self._state.sources[:] = sources

    def with_layer(self, name: str = "") -> Config:
        """Fork a child layer; this layer is frozen against new specs and items."""

        self._freeze()
        return BaseConfig(name=name, parent=self, mapper=self.mapper)

    def _validate_new(self, entries: Iterable[tuple[str, Item[Any]]]) -> list[tuple[str, Item[Any]]]:
        if self._state.frozen:
            raise LayerFrozenError(self.name)
        existing = self._entries()
        accepted: list[tuple[str, Item[Any]]] = []
        for name, item in entries:
            to_path(name)
            if any(item is other for _, other in existing) or any(item is other for _, other in accepted):
                raise RepeatedItemError(name)
            for other_name, _ in (*existing, *accepted):
                if _conflicts(name, other_name):
                    raise NameConflictError(f'item "{name}" conflicts with existing item "{other_name}"')
            accepted.append((name, item))
        return accepted

    def _register(self, entries: list[tuple[str, Item[Any]]]) -> None:
        for name, item in entries:
            self._state.name_by_item[item] = name
            self._state.item_by_name[name] = item
            if isinstance(item, OptionalItem):
                self._state.values[item] = _Value(item.default, is_default=True)
            elif isinstance(item, LazyItem):
                self._state.values[item] = _Lazy(item.thunk, is_default=True)

    def add_spec(self, spec: ConfigSpec) -> None:
        """Register every item of *spec* under its qualified name.

        Raises
        ------
        LayerFrozenError
            When this layer already has child layers.
        RepeatedItemError
            When an item of *spec* was added before.
        NameConflictError
            When a qualified name equals, or is a path prefix of, another.
        """

        accepted = self._validate_new(spec.qualified_items())
        self._register(accepted)
        self._state.specs.append(spec)
        self._load_loaded_sources(accepted)
        log_debug("spec_added", **make_event(self.name, None, {"prefix": spec.prefix, "items": len(accepted)}))

    def add_item(self, item: Item[Any], prefix: str = "") -> None:
        """Register a single *item* as ``prefix.name``."""

        if item.name is None:
            raise ValueError("items added to a config need a name")
        accepted = self._validate_new([(qualify(prefix, item.name), item)])
        self._register(accepted)
        self._load_loaded_sources(accepted)


class MergedConfig(Config):
    """*facade* layered over *fallback*; writes go to the side that owns the item."""

    def __init__(self, fallback: Config, facade: Config) -> None:
        self.fallback = fallback
        self.facade = facade

    @property
    def name(self) -> str:
        return f"merged(facade={self.facade.name!r}, fallback={self.fallback.name!r})"

    @property
    def parent(self) -> Config | None:
        return None

    @property
    def mapper(self) -> ValueCodec:
        return self.facade.mapper

    @property
    def specs(self) -> list[ConfigSpec]:
        return [*self.facade.specs, *self.fallback.specs]

    @property
    def sources(self) -> list[Source]:
        return [*self.facade.sources, *self.fallback.sources]

    def _loaded_sources(self) -> list[Source]:
        return [*self.fallback._loaded_sources(), *self.facade._loaded_sources()]

    def _registry(self) -> Any:
        return self.facade._registry()

    def _side_for(self, item: Item[Any]) -> Config | None:
        if self.facade._name_for_item(item) is not None:
            return self.facade
        if self.fallback._name_for_item(item) is not None:
            return self.fallback
        return None

    def _item_for_name(self, name: str) -> Item[Any] | None:
        return self.facade._item_for_name(name) or self.fallback._item_for_name(name)

    def _name_for_item(self, item: Item[Any]) -> str | None:
        side = self._side_for(item)
        return side._name_for_item(item) if side is not None else None

    def _entries(self) -> list[tuple[str, Item[Any]]]:
        entries = self.facade._entries()
        seen = {id(item) for _, item in entries}
        entries.extend(entry for entry in self.fallback._entries() if id(entry[1]) not in seen)
        return entries

    def _find_state(self, item: Item[Any], skip_default: bool = False) -> _State | None:
        for side in (self.facade, self.fallback):
            if side._name_for_item(item) is not None:
                state = side._find_state(item, True)
                if state is not None:
                    return state
        if skip_default:
            return None
        for side in (self.facade, self.fallback):
            if side._name_for_item(item) is not None:
                state = side._find_state(item, False)
                if state is not None:
                    return state
        return None

    def _write_state(self, item: Item[Any], state: _State | None) -> None:
        side = self._side_for(item)
        if side is None:
            raise NoSuchItemError(item.name or repr(item))
        side._write_state(item, state)

    def clear(self) -> None:
        self.facade.clear()
        self.fallback.clear()

    def _handlers(self, kind: str) -> list[Any]:
        return [*self.facade._handlers(kind), *self.fallback._handlers(kind)]

    def _subscribe(self, kind: str, handler: Any) -> Subscription:
        return self.facade._subscribe(kind, handler)

    def _feature_override(self, feature: Feature) -> bool | None:
        if feature in self._features:
            return self._features[feature]
        override = self.facade._feature_override(feature)
        if override is None:
            override = self.fallback._feature_override(feature)
        return override

    def _freeze(self) -> None:
        self.facade._freeze()
        self.fallback._freeze()

    def _record_source(self, source: Source) -> None:
        self.facade._record_source(source)

    def _snapshot(self) -> tuple[dict[Item[Any], _State], list[Source]]:
        return self.facade._snapshot()

    def _restore(self, snapshot: tuple[dict[Item[Any], _State], list[Source]]) -> None:
        self.facade._restore(snapshot)

    def _lock(self) -> threading.RLock:
        return self.facade._lock()

    def with_layer(self, name: str = "") -> Config:
        self._freeze()
        return BaseConfig(name=name, parent=self, mapper=self.mapper)

    def add_spec(self, spec: ConfigSpec) -> None:
        self.facade.add_spec(spec)

    def add_item(self, item: Item[Any], prefix: str = "") -> None:
        self.facade.add_item(item, prefix)


class _PrefixView(Config):
    """Shared plumbing of the drill-down and roll-up views."""

    def __init__(self, inner: Config, prefix: str) -> None:
        self.inner = inner
        self.prefix = prefix

    def _outer(self, inner_name: str) -> str | None:
        raise NotImplementedError

    def _inner(self, outer_name: str) -> str | None:
        raise NotImplementedError

    @property
    def name(self) -> str:
        return self.inner.name

    @property
    def mapper(self) -> ValueCodec:
        return self.inner.mapper

    @property
    def sources(self) -> list[Source]:
        return self.inner.sources

    def _registry(self) -> Any:
        return self.inner._registry()

    def _evaluation_context(self) -> Config:
        return self.inner._evaluation_context()

    def _item_for_name(self, name: str) -> Item[Any] | None:
        inner_name = self._inner(name)
        if inner_name is None:
            return None
        return self.inner._item_for_name(inner_name)

    def _name_for_item(self, item: Item[Any]) -> str | None:
        inner_name = self.inner._name_for_item(item)
        return None if inner_name is None else self._outer(inner_name)

    def _entries(self) -> list[tuple[str, Item[Any]]]:
        entries = []
        for inner_name, item in self.inner._entries():
            outer = self._outer(inner_name)
            if outer is not None:
                entries.append((outer, item))
        return entries

    def _find_state(self, item: Item[Any], skip_default: bool = False) -> _State | None:
        return self.inner._find_state(item, skip_default)

    def _write_state(self, item: Item[Any], state: _State | None) -> None:
        self.inner._write_state(item, state)

    def _handlers(self, kind: str) -> list[Any]:
        return self.inner._handlers(kind)

    def _subscribe(self, kind: str, handler: Any) -> Subscription:
        return self.inner._subscribe(kind, handler)

    def _feature_override(self, feature: Feature) -> bool | None:
        if feature in self._features:
            return self._features[feature]
        return self.inner._feature_override(feature)

    def _freeze(self) -> None:
        self.inner._freeze()

    def _record_source(self, source: Source) -> None:
        self.inner._record_source(source)

    def _snapshot(self) -> tuple[dict[Item[Any], _State], list[Source]]:
        return self.inner._snapshot()

    def _restore(self, snapshot: tuple[dict[Item[Any], _State], list[Source]]) -> None:
        self.inner._restore(snapshot)

    def _lock(self) -> threading.RLock:
        return self.inner._lock()


class DrillDownConfig(_PrefixView):
    """``config.at(prefix)``: items below *prefix*, named relative to it.

    Examples
    --------
    >>> config = Config()
    >>> size = config.optional(int, 1, "network.buffer.size")
    >>> config.at("network").name_of(size)
    'buffer.size'
    """

    def _outer(self, inner_name: str) -> str | None:
        if inner_name.startswith(self.prefix + "."):
            return inner_name[len(self.prefix) + 1 :]
        return None

    def _inner(self, outer_name: str) -> str | None:
        return qualify(self.prefix, outer_name)

    @property
    def parent(self) -> Config | None:
        parent = self.inner.parent
        if parent is None:
            return None
        return DrillDownConfig(parent, self.prefix)

    @property
    def specs(self) -> list[ConfigSpec]:
        drilled: list[ConfigSpec] = []
        for spec in self.inner.specs:
            try:
                drilled.append(spec.get(self.prefix))
            except NoSuchPathError:
                continue
        return drilled

    def with_layer(self, name: str = "") -> Config:
        return DrillDownConfig(self.inner.with_layer(name), self.prefix)

    def add_spec(self, spec: ConfigSpec) -> None:
        self.inner.add_spec(Prefix(self.prefix) + spec)

    def add_item(self, item: Item[Any], prefix: str = "") -> None:
        self.inner.add_item(item, qualify(self.prefix, prefix))


class RollUpConfig(_PrefixView):
    """``Prefix(prefix) + config``: every item name gains *prefix*.

    Examples
    --------
    >>> config = Config()
    >>> size = config.optional(int, 1, "size")
    >>> (Prefix("buffer") + config)["buffer.size"]
    1
    """

    def _outer(self, inner_name: str) -> str | None:
        return qualify(self.prefix, inner_name)

    def _inner(self, outer_name: str) -> str | None:
        if outer_name.startswith(self.prefix + "."):
            return outer_name[len(self.prefix) + 1 :]
        return None

    @property
    def parent(self) -> Config | None:
        parent = self.inner.parent
        if parent is None:
            return None
        return RollUpConfig(parent, self.prefix)

    @property
    def specs(self) -> list[ConfigSpec]:
        return [Prefix(self.prefix) + spec for spec in self.inner.specs]

    def with_layer(self, name: str = "") -> Config:
        return RollUpConfig(self.inner.with_layer(name), self.prefix)

    def add_spec(self, spec: ConfigSpec) -> None:
        self.inner.add_spec(spec.get(self.prefix))

    def add_item(self, item: Item[Any], prefix: str = "") -> None:
        if item.name is None:
            raise ValueError("items added to a config need a name")
        full = qualify(prefix, item.name)
        inner_name = self._inner(full)
        if inner_name is None:
            raise NoSuchPathError(full, f"[config: {self.name}]")
        self.inner.add_item(item, inner_name[: len(inner_name) - len(item.name)].rstrip("."))


class ItemProperty:
    """Read/write handle bound to one item of one config.

    Examples
    --------
    >>> config = Config()
    >>> handle = config.property(config.optional(int, 1, "retries"))
    >>> handle.value = 3
    >>> handle.get(), config["retries"]
    (3, 3)
    """

    def __init__(self, config: Config, item: Item[Any]) -> None:
        self.config = config
        self.item = item

    def get(self) -> Any:
        return self.config.get(self.item)

    def set(self, value: Any) -> None:
        self.config.set(self.item, value)

    @property
    def value(self) -> Any:
        return self.get()

    @value.setter
    def value(self, value: Any) -> None:
        self.set(value)


__all__ = [
    "BaseConfig",
    "Config",
    "DrillDownConfig",
    "ItemProperty",
    "MergedConfig",
    "RollUpConfig",
]
