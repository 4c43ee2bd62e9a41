"""Immutable sources: a tree plus metadata plus feature overrides.

Purpose
-------
Providers hand parsed data to the runtime as :class:`Source` objects. A source
answers path queries, can be substituted, case-folded, prefixed and merged, and
every transformation returns a new source (or the same object when nothing
changes).

Contents
--------
* :class:`SourceInfo` – ordered ``key → text`` metadata.
* :class:`Source` – base value object and all transformations.
* :class:`MergedSource` – facade/fallback pair recomputed on every access.
* :class:`MapSource`, :class:`FlatSource`, :class:`KVSource`,
  :class:`ValueSource`, :class:`EmptySource` – constructors for plain data.

System Role
-----------
Sources never log and never perform I/O; adapters build them and the config
runtime consumes them through :meth:`Source.normalized`,
:meth:`Source.substituted` and :meth:`Source.get_node_or_none`.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from ..domain.errors import NoSuchPathError
from ..domain.features import NO_FEATURES, Feature, FeatureMap, is_enabled, with_feature
from ..domain.merged_map import MergedMap
from ..domain.naming import to_little_camel_case
from ..domain.path import KeyPath, to_path
from ..domain.tree import (
    EMPTY,
    ContainerNode,
    TreeNode,
    map_keys,
    node_from_value,
    promote_to_list,
    to_hierarchical,
    tree_from_dotted,
)
from .substitution import PathSubstitutor

if TYPE_CHECKING:
    from .codec import ValueCodec


class SourceInfo(dict[str, str]):
    """Ordered, mutable metadata describing where a source came from.

    Examples
    --------
    >>> info = SourceInfo(type="JSON")
    >>> info.with_(file="/etc/app.json")
    {'type': 'JSON', 'file': '/etc/app.json'}
    >>> info
    {'type': 'JSON'}
    """

    def with_(self, other: Mapping[str, str] | None = None, **entries: str) -> "SourceInfo":
        """Return a copy extended with *other* and *entries* (new keys win)."""

        copy = SourceInfo(self)
        if other:
            copy.update(other)
        copy.update(entries)
        return copy


class Source:
    """A tree of configuration data with metadata and feature overrides.

    Parameters
    ----------
    tree:
        Root node; defaults to an empty container.
    info:
        Metadata rendered by :attr:`description` (``type``, ``file``, ``url``…).
    features:
        Per-source overrides of :class:`~lib_typed_config.domain.features.Feature`.

    Examples
    --------
    >>> source = MapSource({"server": {"port": 8080}})
    >>> source.get("server.port").tree.value
    8080
    >>> source.get_or_none("server.host") is None
    True
    >>> source.description
    '[type: map]'
    """

    def __init__(
        self,
        tree: TreeNode | None = None,
        info: Mapping[str, str] | None = None,
        features: FeatureMap = NO_FEATURES,
    ) -> None:
        self._tree = tree if tree is not None else ContainerNode()
        self._info = SourceInfo(info or {})
        self._features: FeatureMap = MappingProxyType(dict(features))

    @property
    def tree(self) -> TreeNode:
        return self._tree

    @property
    def info(self) -> SourceInfo:
        return self._info

    @property
    def features(self) -> FeatureMap:
        return self._features

    @property
    def description(self) -> str:
        return "[" + ", ".join(f"{key}: {value}" for key, value in self.info.items()) + "]"

    def _derive(self, *, tree: TreeNode | None = None, features: FeatureMap | None = None) -> "Source":
        return Source(
            self.tree if tree is None else tree,
            self.info,
            self.features if features is None else features,
        )

    # -- features -----------------------------------------------------------------

    def is_enabled(self, feature: Feature) -> bool:
        return is_enabled(self.features, feature)

    def enabled(self, *features: Feature) -> "Source":
        """Return a copy with *features* switched on; this source is unchanged."""

        updated = self.features
        for feature in features:
            updated = with_feature(updated, feature, True)
        return self._derive(features=updated)

    def disabled(self, *features: Feature) -> "Source":
        """Return a copy with *features* switched off; this source is unchanged."""

        updated = self.features
        for feature in features:
            updated = with_feature(updated, feature, False)
        return self._derive(features=updated)

    # -- navigation ---------------------------------------------------------------

    def get_node_or_none(
        self,
        path: "str | KeyPath",
        *,
        lowercased: bool | None = None,
        little_camel_cased: bool = False,
    ) -> TreeNode | None:
        """Return the node at *path* or ``None``.

        Key case is folded when *lowercased* is true, which defaults to the
        ``LOAD_KEYS_CASE_INSENSITIVELY`` feature of this source.
        """

        if lowercased is None:
            lowercased = self.is_enabled(Feature.LOAD_KEYS_CASE_INSENSITIVELY)
        return self.tree.get_or_none(path, lowercased=lowercased, little_camel_cased=little_camel_cased)

    def get_or_none(self, path: "str | KeyPath") -> "Source | None":
        """Return the sub-source at *path*; the empty path returns this source."""

        key_path = to_path(path)
        if key_path.is_empty():
            return self
        node = self.get_node_or_none(key_path)
        if node is None:
            return None
        return self._derive(tree=node)

    def get(self, path: "str | KeyPath") -> "Source":
        """Return the sub-source at *path*.

        Raises
        ------
        NoSuchPathError
            When nothing lives at *path*.
        """

        found = self.get_or_none(path)
        if found is None:
            raise NoSuchPathError(str(to_path(path)), self.description)
        return found

    def __getitem__(self, path: "str | KeyPath") -> "Source":
        return self.get(path)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, KeyPath)):
            return False
        return self.get_node_or_none(path) is not None

    # -- transformations ----------------------------------------------------------

    def substituted(
        self,
        root: "Source | None" = None,
        enabled: bool | None = None,
        error_when_undefined: bool = True,
    ) -> "Source":
        """Resolve ``${...}`` variables against *root* (defaults to this source).

        *enabled* defaults to the ``SUBSTITUTE_SOURCE_BEFORE_LOADED`` feature.

        Examples
        --------
        >>> source = MapSource({"key1": 1, "key2": "b${key1}", "key3": "${key1}"})
        >>> source.substituted().to_hierarchical()
        {'key1': 1, 'key2': 'b1', 'key3': 1}
        """

        if enabled is None:
            enabled = self.is_enabled(Feature.SUBSTITUTE_SOURCE_BEFORE_LOADED)
        if not enabled:
            return self
        substitutor = PathSubstitutor(
            root if root is not None else self,
            error_when_undefined=error_when_undefined,
            description=self.description,
        )
        tree = substitutor.substitute(self.tree)
        if tree is self.tree:
            return self
        return self._derive(tree=tree)

    def lowercased(self, enabled: bool = True) -> "Source":
        """Return a view whose container keys are lowercased."""

        if not enabled:
            return self
        return self._derive(tree=map_keys(self.tree, str.lower))

    def little_camel_cased(self, enabled: bool = True) -> "Source":
        """Return a view whose container keys are folded to little camel case."""

        if not enabled:
            return self
        return self._derive(tree=map_keys(self.tree, to_little_camel_case))

    def normalized(self, lowercased: bool = False, little_camel_cased: bool = True) -> "Source":
        """Apply little-camel folding first, then lowercasing."""

        return self.little_camel_cased(little_camel_cased).lowercased(lowercased)

    def with_prefix(self, prefix: "str | KeyPath") -> "Source":
        """Return a source answering only below *prefix*; ``""`` returns ``self``.

        Examples
        --------
        >>> MapSource({"port": 1}).with_prefix("server").to_hierarchical()
        {'server': {'port': 1}}
        """

        key_path = to_path(prefix)
        if key_path.is_empty():
            return self
        tree = self.tree
        for segment in reversed(key_path.segments):
            tree = ContainerNode({segment: tree})
        return self._derive(tree=tree)

    def with_fallback(self, fallback: "Source") -> "Source":
        """Layer this source (the facade) over *fallback*."""

        return MergedSource(self, fallback)

    def __add__(self, fallback: object) -> "Source":
        if not isinstance(fallback, Source):
            return NotImplemented
        return self.with_fallback(fallback)

    # -- export -------------------------------------------------------------------

    def to_hierarchical(self) -> Any:
        return to_hierarchical(self.tree)

    def to_value(self, type_: Any, codec: "ValueCodec | None" = None) -> Any:
        """Decode the whole tree as *type_* through *codec*."""

        if codec is None:
            from .codec import ValueCodec

            codec = ValueCodec()
        return codec.decode(self.tree, type_)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(info={dict(self.info)!r})"


class MergedSource(Source):
    """Facade layered over fallback; tree, info and features are recomputed lazily.

    Examples
    --------
    >>> facade = MapSource({"a": {"b": "facade"}})
    >>> fallback = MapSource({"a": {"b": "fallback", "c": "fallback"}})
    >>> merged = facade + fallback
    >>> merged["a.b"].tree.value, merged["a.c"].tree.value
    ('facade', 'fallback')
    """

    def __init__(self, facade: Source, fallback: Source) -> None:
        self.facade = facade
        self.fallback = fallback

    @property
    def tree(self) -> TreeNode:
        return self.facade.tree.with_fallback(self.fallback.tree)

    @property
    def info(self) -> SourceInfo:
        return SourceInfo(facade=self.facade.description, fallback=self.fallback.description)

    @property
    def features(self) -> FeatureMap:
        return MergedMap(self.fallback.features, self.facade.features)  # type: ignore[arg-type]

    def _with_sides(self, facade: Source, fallback: Source) -> "Source":
        if facade is self.facade and fallback is self.fallback:
            return self
        return MergedSource(facade, fallback)

    def enabled(self, *features: Feature) -> "Source":
        return MergedSource(self.facade.enabled(*features), self.fallback)

    def disabled(self, *features: Feature) -> "Source":
        return MergedSource(self.facade.disabled(*features), self.fallback)

    def get_node_or_none(
        self,
        path: "str | KeyPath",
        *,
        lowercased: bool | None = None,
        little_camel_cased: bool = False,
    ) -> TreeNode | None:
        facade = self.facade.get_node_or_none(path, lowercased=lowercased, little_camel_cased=little_camel_cased)
        fallback = self.fallback.get_node_or_none(path, lowercased=lowercased, little_camel_cased=little_camel_cased)
        if facade is None:
            return fallback
        if fallback is None:
            return facade
        return facade.with_fallback(fallback)

    def get_or_none(self, path: "str | KeyPath") -> "Source | None":
        key_path = to_path(path)
        if key_path.is_empty():
            return self
        facade = self.facade.get_or_none(key_path)
        fallback = self.fallback.get_or_none(key_path)
        if facade is None:
            return fallback
        if fallback is None:
            return facade
        return MergedSource(facade, fallback)

    def substituted(
        self,
        root: "Source | None" = None,
        enabled: bool | None = None,
        error_when_undefined: bool = True,
    ) -> "Source":
        anchor = root if root is not None else self
        return self._with_sides(
            self.facade.substituted(anchor, enabled, error_when_undefined),
            self.fallback.substituted(anchor, enabled, error_when_undefined),
        )

    def lowercased(self, enabled: bool = True) -> "Source":
        return self._with_sides(self.facade.lowercased(enabled), self.fallback.lowercased(enabled))

    def little_camel_cased(self, enabled: bool = True) -> "Source":
        return self._with_sides(self.facade.little_camel_cased(enabled), self.fallback.little_camel_cased(enabled))

    def with_prefix(self, prefix: "str | KeyPath") -> "Source":
        return self._with_sides(self.facade.with_prefix(prefix), self.fallback.with_prefix(prefix))

    def __repr__(self) -> str:
        return f"MergedSource(facade={self.facade!r}, fallback={self.fallback!r})"


class MapSource(Source):
    """Source over a hierarchical mapping (nested dicts and lists)."""

    def __init__(
        self,
        data: Mapping[str, Any],
        type: str = "map",
        info: Mapping[str, str] | None = None,
        features: FeatureMap = NO_FEATURES,
    ) -> None:
        super().__init__(node_from_value(dict(data)), SourceInfo(type=type).with_(info), features)


class FlatSource(Source):
    """Source over ``{"a.b": "text"}`` entries whose strings also read as lists.

    Examples
    --------
    >>> source = FlatSource({"empty": "", "single": "a", "multiple": "a,b"})
    >>> [len(source[key].tree.items) for key in ("empty", "single", "multiple")]
    [0, 1, 2]
    """

    def __init__(
        self,
        data: Mapping[str, Any],
        prefix: str = "",
        type: str = "flat",
        allow_conflict: bool = False,
        info: Mapping[str, str] | None = None,
        features: FeatureMap = NO_FEATURES,
    ) -> None:
        tree = promote_to_list(tree_from_dotted(data, allow_conflict=allow_conflict))
        if prefix:
            tree = tree.get_or_none(prefix) or EMPTY
        super().__init__(tree, SourceInfo(type=type).with_(info), features)


class KVSource(Source):
    """Source over ``{"a.b": value}`` entries holding typed values."""

    def __init__(
        self,
        data: Mapping[str, Any],
        type: str = "KV",
        info: Mapping[str, str] | None = None,
        features: FeatureMap = NO_FEATURES,
    ) -> None:
        super().__init__(tree_from_dotted(data), SourceInfo(type=type).with_(info), features)


class ValueSource(Source):
    """Source wrapping a single value (scalar, list, or mapping)."""

    def __init__(self, value: Any, type: str = "value", info: Mapping[str, str] | None = None) -> None:
        super().__init__(node_from_value(value), SourceInfo(type=type).with_(info))


class EmptySource(Source):
    """Source with no data; what optional providers return for missing inputs."""

    def __init__(self, info: Mapping[str, str] | None = None, features: FeatureMap = NO_FEATURES) -> None:
        super().__init__(ContainerNode(), SourceInfo(type="empty").with_(info), features)


__all__ = [
    "EmptySource",
    "FlatSource",
    "KVSource",
    "MapSource",
    "MergedSource",
    "Source",
    "SourceInfo",
    "ValueSource",
]
