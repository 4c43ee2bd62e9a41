"""``${...}`` path-variable substitution over trees.

Purpose
-------
Let configuration values reference other values (``"${server.host}:8080"``),
fall back to defaults (``"${port:-80}"``), and apply keyed transforms
(``"${base64Decoder:SGk=}"``) before items read them.

Contents
--------
* :data:`DEFAULT_TRANSFORMS` – keyed transforms available by default.
* :class:`PathSubstitutor` – resolves references against a root lookup.

Syntax
------
``${path}``
    Inline reference; when it is the whole value the referenced node replaces
    the leaf (so numbers stay numbers and subtrees are copied).
``${path:-default}``
    Use *default* when *path* is undefined.
``${key:payload}``
    Keyed transform (case-insensitive key).
``$${``
    Escaped literal ``${``; one escape is consumed per pass, and every pass
    restarts from the original text.
"""

from __future__ import annotations

import base64
import os
import re
from typing import Callable, Final, Mapping, Protocol
from urllib.parse import quote_plus, unquote_plus

from ..domain.errors import InvalidPathError, UndefinedPathVariableError, WrongTypeError
from ..domain.path import KeyPath
from ..domain.tree import NULL, ContainerNode, ListNode, TreeNode, ValueNode

_REFERENCE: Final[re.Pattern[str]] = re.compile(r"\$\{(.+)\}", re.DOTALL)
_PREFIX: Final[str] = "${"
_DEFAULT_DELIMITER: Final[str] = ":-"


def _base64_decode(payload: str) -> str:
    return base64.b64decode(payload).decode("utf-8")


def _base64_encode(payload: str) -> str:
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


DEFAULT_TRANSFORMS: Final[Mapping[str, Callable[[str], str | None]]] = {
    "base64decoder": _base64_decode,
    "base64encoder": _base64_encode,
    "urldecoder": unquote_plus,
    "urlencoder": quote_plus,
    "env": os.environ.get,
}


class NodeLookup(Protocol):
    """Anything that resolves a dotted path to a tree node (sources do)."""

    def get_node_or_none(self, path: "str | KeyPath") -> TreeNode | None: ...


class PathSubstitutor:
    """Substitute path variables in trees against *root*.

    Examples
    --------
    >>> from lib_typed_config.application.source import MapSource
    >>> from lib_typed_config.domain.tree import to_hierarchical, node_from_value
    >>> root = MapSource({"key1": "a", "key2": "b${key1}"})
    >>> to_hierarchical(PathSubstitutor(root).substitute(root.tree))
    {'key1': 'a', 'key2': 'ba'}
    """

    def __init__(
        self,
        root: NodeLookup,
        *,
        error_when_undefined: bool = True,
        transforms: Mapping[str, Callable[[str], str | None]] | None = None,
        description: str = "",
    ) -> None:
        self._root = root
        self._error_when_undefined = error_when_undefined
        self._transforms = {key.lower(): fn for key, fn in (transforms or DEFAULT_TRANSFORMS).items()}
        self._description = description

    def substitute(self, node: TreeNode) -> TreeNode:
        """Return *node* with every string leaf substituted.

        Nodes without strings are returned unchanged (same object).
        """

        if isinstance(node, ValueNode):
            if not isinstance(node.value, str):
                return node
            return self._substitute_leaf(node)
        if isinstance(node, ListNode):
            items = [self.substitute(item) for item in node.items]
            if all(new is old for new, old in zip(items, node.items)):
                return node
            return ListNode(items, node.comments)
        if isinstance(node, ContainerNode):
            children = {key: self.substitute(child) for key, child in node.children.items()}
            if all(children[key] is child for key, child in node.children.items()):
                return node
            return ContainerNode(children, node.comments)
        return node

    def replace(self, text: str) -> str:
        """Substitute every variable in *text* and return the resulting string."""

        return self._replace(text, text)

    def _substitute_leaf(self, node: ValueNode) -> TreeNode:
        text = node.source_text
        if not isinstance(text, str):
            return node
        match = _REFERENCE.fullmatch(text)
        if match is not None:
            inner = match.group(1)
            if _PREFIX in inner:
                inner = self._replace(inner, text)
            referenced = self._lookup_node(inner.strip())
            if referenced is not None:
                return self.substitute(referenced)
        return node.substitute(self._replace(text, text))

    def _replace(self, text: str, whole: str) -> str:
        out: list[str] = []
        index = 0
        while index < len(text):
            start = text.find(_PREFIX, index)
            if start < 0:
                out.append(text[index:])
                break
            if start > index and text[start - 1] == "$":
                out.append(text[index : start - 1])
                out.append(_PREFIX)
                index = start + len(_PREFIX)
                continue
            end = _find_closing(text, start + len(_PREFIX))
            if end < 0:
                out.append(text[index:])
                break
            out.append(text[index:start])
            name = text[start + len(_PREFIX) : end]
            if _PREFIX in name:
                name = self._replace(name, whole)
            out.append(self._resolve(name, text[start : end + 1], whole))
            index = end + 1
        return "".join(out)

    def _resolve(self, name: str, raw: str, whole: str) -> str:
        key, delimiter, default = name.partition(_DEFAULT_DELIMITER)
        value = self._lookup_text(key)
        if value is None and delimiter:
            value = default
        if value is None:
            if self._error_when_undefined:
                raise UndefinedPathVariableError(whole, self._description)
            return raw
        return value

    def _lookup_text(self, key: str) -> str | None:
        transform_key, colon, payload = key.partition(":")
        if colon:
            transform = self._transforms.get(transform_key.lower())
            if transform is not None:
                return transform(payload)
        node = self._lookup_node(key.strip())
        if node is None:
            return None
        return self._as_text(node, key)

    def _lookup_node(self, path: str) -> TreeNode | None:
        try:
            return self._root.get_node_or_none(path)
        except InvalidPathError:
            return None

    def _as_text(self, node: TreeNode, key: str) -> str:
        if isinstance(node, ValueNode):
            value = node.value
            if isinstance(value, str):
                source_text = node.source_text
                return self._replace(source_text, source_text) if isinstance(source_text, str) else value
            if isinstance(value, bool):
                return "true" if value else "false"
            if isinstance(value, int):
                return str(value)
            raise WrongTypeError(f'path variable "{key}" refers to {type(value).__name__}, expected a string or integer')
        kind = "null" if node is NULL else type(node).__name__
        raise WrongTypeError(f'path variable "{key}" refers to {kind}, expected a string or integer')


def _find_closing(text: str, position: int) -> int:
    """Return the index of the ``}`` closing the variable opened before *position*."""

    depth = 1
    index = position
    while index < len(text):
        if text.startswith(_PREFIX, index):
            depth += 1
            index += len(_PREFIX)
            continue
        if text[index] == "}":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return -1


__all__ = ["DEFAULT_TRANSFORMS", "NodeLookup", "PathSubstitutor"]
