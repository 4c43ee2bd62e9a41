"""Tree value model shared by sources and configs.

Purpose
-------
Represent configuration data independently of the format it was read from.
Parsers hand in plain Python data, the tree normalises it into a small tagged
union, and the config runtime reads typed values back out.

Contents
--------
* :data:`EMPTY` / :data:`NULL` – absence versus explicit null.
* :class:`ValueNode` – scalar leaf that remembers its pre-substitution text.
* :class:`StringListNode` – a string leaf that also reads as a list (flat
  sources store lists as comma-joined strings).
* :class:`ListNode` – ordered children, addressable as ``"0"``, ``"1"``…
* :class:`ContainerNode` – named children with structural ``set`` by path.
* :func:`node_from_value`, :func:`to_hierarchical`, :func:`to_flat`, :func:`promote_to_list`,
  :func:`leaf_paths` – conversions used by sources, writers, and loaders.

System Role
-----------
Merging (:meth:`TreeNode.with_fallback`) and diffing (:meth:`TreeNode.minus`)
live here because they only depend on the node shapes. The module never logs
and never performs I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Iterable, Iterator

from .errors import PathConflictError
from .naming import to_little_camel_case
from .path import KeyPath, to_path


class TreeNode:
    """Base class of every node variant.

    ``children`` is the uniform traversal view: containers expose their named
    children, lists expose ``"0"``, ``"1"``…, leaves expose nothing.
    """

    __slots__ = ("comments",)

    def __init__(self, comments: str = "") -> None:
        self.comments = comments

    @property
    def children(self) -> Mapping[str, "TreeNode"]:
        return {}

    @property
    def is_leaf(self) -> bool:
        """``True`` for every variant that merges as a single unit."""

        return True

    def get_or_none(
        self,
        path: "str | KeyPath",
        *,
        lowercased: bool = False,
        little_camel_cased: bool = False,
    ) -> "TreeNode | None":
        """Walk *path* through :attr:`children`, optionally folding key case.

        Exact key matches always win; folding is only consulted when no child
        has the exact segment as its key.

        Examples
        --------
        >>> tree = node_from_value({"some_key": {"Inner": 1}})
        >>> tree.get_or_none("someKey.inner", lowercased=True, little_camel_cased=True).value
        1
        >>> tree.get_or_none("someKey") is None
        True
        """

        node: TreeNode = self
        for segment in to_path(path):
            child = _find_child(node.children, segment, lowercased, little_camel_cased)
            if child is None:
                return None
            node = child
        return node

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, KeyPath)):
            return False
        return self.get_or_none(path) is not None

    def set(self, path: "str | KeyPath", node: "TreeNode") -> None:
        """Insert *node* at *path*; only containers accept insertions."""

        raise PathConflictError(str(to_path(path)))

    def with_fallback(self, fallback: "TreeNode") -> "TreeNode":
        """Merge *fallback* under this node (this node is the facade).

        ``EMPTY`` is the identity on both sides; two containers merge key by
        key; in every other combination the facade wins outright.

        Examples
        --------
        >>> facade = node_from_value({"a": {"b": "facade"}})
        >>> fallback = node_from_value({"a": {"b": "fallback", "c": "fallback"}})
        >>> to_hierarchical(facade.with_fallback(fallback))
        {'a': {'b': 'facade', 'c': 'fallback'}}
        """

        return self

    def __add__(self, facade: "TreeNode") -> "TreeNode":
        """``fallback + facade`` reads as "facade layered over fallback"."""

        if not isinstance(facade, TreeNode):
            return NotImplemented
        return facade.with_fallback(self)

    def minus(self, other: "TreeNode") -> "TreeNode":
        """Return the part of this container that *other* does not cover.

        Leaves (``EMPTY`` included) never contribute to a diff, so both
        ``x - x`` and ``x - EMPTY`` yield :data:`EMPTY`.
        """

        if self.is_leaf or other.is_leaf:
            return EMPTY
        remaining: dict[str, TreeNode] = {}
        other_children = other.children
        for key, child in self.children.items():
            if key not in other_children:
                remaining[key] = child
                continue
            diff = child.minus(other_children[key])
            if diff is not EMPTY:
                remaining[key] = diff
        if not remaining:
            return EMPTY
        return ContainerNode(remaining)

    def __sub__(self, other: "TreeNode") -> "TreeNode":
        if not isinstance(other, TreeNode):
            return NotImplemented
        return self.minus(other)


def _find_child(
    children: Mapping[str, TreeNode],
    segment: str,
    lowercased: bool,
    little_camel_cased: bool,
) -> TreeNode | None:
    """Return the child matching *segment* after the requested folding."""

    exact = children.get(segment)
    if exact is not None or not (lowercased or little_camel_cased):
        return exact
    wanted = segment.lower() if lowercased else segment
    for key, child in children.items():
        candidate = to_little_camel_case(key) if little_camel_cased else key
        if lowercased:
            candidate = candidate.lower()
        if candidate == wanted:
            return child
    return None


class _EmptyNode(TreeNode):
    __slots__ = ()

    def with_fallback(self, fallback: TreeNode) -> TreeNode:
        return fallback

    def __repr__(self) -> str:
        return "EMPTY"


class _NullNode(TreeNode):
    __slots__ = ()

    def __repr__(self) -> str:
        return "NULL"


EMPTY: TreeNode = _EmptyNode()
"""Absence of any value; identity element of :meth:`TreeNode.with_fallback`."""

NULL: TreeNode = _NullNode()
"""Explicit null, distinct from :data:`EMPTY`."""


class ValueNode(TreeNode):
    """A scalar leaf.

    ``substituted`` and ``original_value`` let repeated substitution start
    from the untouched text, so escapes are consumed exactly once.
    """

    __slots__ = ("value", "substituted", "original_value")

    def __init__(
        self,
        value: Any,
        *,
        substituted: bool = False,
        original_value: Any = None,
        comments: str = "",
    ) -> None:
        super().__init__(comments)
        self.value = value
        self.substituted = substituted
        self.original_value = original_value

    @property
    def source_text(self) -> Any:
        """The value substitution should start from."""

        return self.original_value if self.substituted else self.value

    def substitute(self, text: str) -> "ValueNode":
        """Return a substituted copy holding *text*."""

        return ValueNode(text, substituted=True, original_value=self.source_text, comments=self.comments)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValueNode):
            return NotImplemented
        return type(self.value) is type(other.value) and self.value == other.value

    def __hash__(self) -> int:
        return hash((type(self.value), self.value))

    def __repr__(self) -> str:
        return f"ValueNode({self.value!r})"


class StringListNode(ValueNode):
    """A string leaf from a flat source that also reads as a list.

    ``""`` reads as the empty list, a string with commas as its comma-split
    parts, any other string as a one-element list.

    Examples
    --------
    >>> [len(StringListNode(text).items) for text in ("", "a", "a,b")]
    [0, 1, 2]
    """

    __slots__ = ()

    @property
    def items(self) -> list[TreeNode]:
        if self.value == "":
            return []
        return [ValueNode(part) for part in self.value.split(",")]

    @property
    def children(self) -> Mapping[str, TreeNode]:
        return {str(index): item for index, item in enumerate(self.items)}

    def substitute(self, text: str) -> "StringListNode":
        return StringListNode(text, substituted=True, original_value=self.source_text, comments=self.comments)

    def __repr__(self) -> str:
        return f"StringListNode({self.value!r})"


class ListNode(TreeNode):
    """Ordered children; merges as a single unit."""

    __slots__ = ("items",)

    def __init__(self, items: Iterable[TreeNode], comments: str = "") -> None:
        super().__init__(comments)
        self.items: list[TreeNode] = list(items)

    @property
    def children(self) -> Mapping[str, TreeNode]:
        return {str(index): item for index, item in enumerate(self.items)}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ListNode):
            return NotImplemented
        return self.items == other.items

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ListNode({self.items!r})"


class ContainerNode(TreeNode):
    """Named children; the only variant that accepts :meth:`set`."""

    __slots__ = ("_children",)

    def __init__(self, children: Mapping[str, TreeNode] | None = None, comments: str = "") -> None:
        super().__init__(comments)
        self._children: dict[str, TreeNode] = dict(children or {})

    @property
    def children(self) -> dict[str, TreeNode]:
        return self._children

    @property
    def is_leaf(self) -> bool:
        return False

    def set(self, path: "str | KeyPath", node: TreeNode) -> None:
        """Insert *node* at *path*, creating intermediate containers.

        Raises
        ------
        PathConflictError
            When *path* is empty or runs through an existing leaf.

        Examples
        --------
        >>> tree = ContainerNode({"a": ContainerNode({"b": EMPTY})})
        >>> tree.set("a.b", EMPTY)
        >>> tree.set("a.b.c", EMPTY)
        Traceback (most recent call last):
        ...
        lib_typed_config.domain.errors.PathConflictError: "a.b.c" conflicts with an existing path
        """

        key_path = to_path(path)
        if key_path.is_empty():
            raise PathConflictError("")
        cursor: ContainerNode = self
        for segment in key_path.segments[:-1]:
            child = cursor._children.get(segment)
            if child is None:
                child = ContainerNode()
                cursor._children[segment] = child
            elif not isinstance(child, ContainerNode):
                raise PathConflictError(key_path.name)
            cursor = child
        cursor._children[key_path.segments[-1]] = node

    def with_fallback(self, fallback: TreeNode) -> TreeNode:
        if not isinstance(fallback, ContainerNode):
            return self
        merged: dict[str, TreeNode] = {}
        for key, child in self._children.items():
            other = fallback._children.get(key)
            merged[key] = child if other is None else child.with_fallback(other)
        for key, other in fallback._children.items():
            if key not in merged:
                merged[key] = other
        return ContainerNode(merged, self.comments)

    def map_keys(self, transform: Callable[[str], str]) -> "ContainerNode":
        """Return a deep copy with every container key passed through *transform*."""

        return ContainerNode({transform(key): _map_keys(child, transform) for key, child in self._children.items()})

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContainerNode):
            return NotImplemented
        return self._children == other._children

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ContainerNode({self._children!r})"


def _map_keys(node: TreeNode, transform: Callable[[str], str]) -> TreeNode:
    if isinstance(node, ContainerNode):
        return node.map_keys(transform)
    if isinstance(node, ListNode):
        return ListNode((_map_keys(item, transform) for item in node.items), node.comments)
    return node


def map_keys(node: TreeNode, transform: Callable[[str], str]) -> TreeNode:
    """Apply *transform* to every container key below *node*."""

    return _map_keys(node, transform)


def node_from_value(value: Any) -> TreeNode:
    """Build a tree from plain Python data.

    Mappings become containers (keys are stringified, dots are kept), lists,
    tuples and sets become list nodes, ``None`` becomes :data:`NULL`.

    Examples
    --------
    >>> node_from_value({"a": [1, None]})
    ContainerNode({'a': ListNode([ValueNode(1), NULL])})
    """

    if isinstance(value, TreeNode):
        return value
    if value is None:
        return NULL
    if isinstance(value, Mapping):
        return ContainerNode({str(key): node_from_value(child) for key, child in value.items()})
    if isinstance(value, (list, tuple, set, frozenset)):
        return ListNode(node_from_value(item) for item in value)
    return ValueNode(value)


def tree_from_dotted(entries: Mapping[str, Any], *, allow_conflict: bool = False) -> ContainerNode:
    """Build a container from ``{"a.b": value}`` style entries."""

    root = ContainerNode()
    for path, value in entries.items():
        try:
            root.set(path, node_from_value(value))
        except PathConflictError:
            if not allow_conflict:
                raise
    return root


def promote_to_list(node: ContainerNode) -> TreeNode:
    """Turn flat-source strings into list-capable leaves.

    String values become :class:`StringListNode`; containers whose keys are
    exactly ``"0"`` … ``"n"`` become :class:`ListNode`.

    Examples
    --------
    >>> promoted = promote_to_list(tree_from_dotted({"list.0": "a", "list.1": "b"}))
    >>> promoted.children["list"]
    ListNode([StringListNode('a'), StringListNode('b')])
    """

    children: dict[str, TreeNode] = {}
    for key, child in node.children.items():
        if isinstance(child, ContainerNode):
            children[key] = promote_to_list(child)
        elif isinstance(child, ValueNode) and not isinstance(child, StringListNode) and isinstance(child.value, str):
            children[key] = StringListNode(child.value, comments=child.comments)
        else:
            children[key] = child
    indices = _contiguous_indices(children)
    if indices and len(indices) == len(children):
        return ListNode((children[index] for index in indices), node.comments)
    return ContainerNode(children, node.comments)


def _contiguous_indices(children: Mapping[str, TreeNode]) -> list[str]:
    indices: list[str] = []
    while str(len(indices)) in children:
        indices.append(str(len(indices)))
    return indices


def to_hierarchical(node: TreeNode) -> Any:
    """Export *node* as plain Python data (dicts, lists, scalars, ``None``).

    ``EMPTY`` children are dropped; an ``EMPTY`` root exports as ``{}``.

    Examples
    --------
    >>> to_hierarchical(node_from_value({"a": {"b": [1, 2]}, "c": None}))
    {'a': {'b': [1, 2]}, 'c': None}
    """

    if node is EMPTY:
        return {}
    if node is NULL:
        return None
    if isinstance(node, ValueNode):
        return node.value
    if isinstance(node, ListNode):
        return [to_hierarchical(item) for item in node.items if item is not EMPTY]
    return {key: to_hierarchical(child) for key, child in node.children.items() if child is not EMPTY}


def leaf_paths(node: TreeNode) -> list[str]:
    """List the dotted paths of every leaf below *node*.

    Examples
    --------
    >>> leaf_paths(node_from_value({"level1": {"level2": {"invalid": 1}}, "top": [1]}))
    ['level1.level2.invalid', 'top']
    """

    return list(_iter_leaf_paths(node, ""))


def _iter_leaf_paths(node: TreeNode, prefix: str) -> Iterator[str]:
    if node.is_leaf or not node.children:
        if prefix:
            yield prefix
        return
    for key, child in node.children.items():
        yield from _iter_leaf_paths(child, f"{prefix}.{key}" if prefix else key)


def to_flat(value: Any, prefix: str = "") -> dict[str, str]:
    """Export hierarchical data as ``{"a.b": "text"}`` (the flat-source shape).

    Lists of scalars are joined with ``,`` unless an element contains a
    comma; lists holding mappings or lists are exploded to ``a.b.0``…
    ``None`` values are omitted.

    Examples
    --------
    >>> to_flat({"server": {"hosts": ["a", "b"], "tls": True, "peers": [{"id": 1}]}})
    {'server.hosts': 'a,b', 'server.tls': 'true', 'server.peers.0.id': '1'}
    """

    flat: dict[str, str] = {}
    _flatten(value, prefix, flat)
    return flat


def _flat_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flatten(value: Any, prefix: str, out: dict[str, str]) -> None:
    if isinstance(value, Mapping):
        for key, child in value.items():
            _flatten(child, f"{prefix}.{key}" if prefix else str(key), out)
    elif isinstance(value, list):
        explode = any(isinstance(child, (Mapping, list)) or "," in _flat_text(child) for child in value)
        if not value:
            out[prefix] = ""
        elif explode:
            for index, child in enumerate(value):
                _flatten(child, f"{prefix}.{index}" if prefix else str(index), out)
        else:
            out[prefix] = ",".join(_flat_text(child) for child in value if child is not None)
    elif value is not None:
        out[prefix] = _flat_text(value)


__all__ = [
    "EMPTY",
    "NULL",
    "ContainerNode",
    "ListNode",
    "StringListNode",
    "TreeNode",
    "ValueNode",
    "leaf_paths",
    "map_keys",
    "node_from_value",
    "promote_to_list",
    "to_flat",
    "to_hierarchical",
    "tree_from_dotted",
]
