"""Value codec: typed decoding of tree nodes and plain export of values.

Purpose
-------
Items declare Python types (``int``, ``list[str]``, ``dict[str, Endpoint]``,
``timedelta``, dataclasses, pydantic models…). The codec is the single bridge
between those declarations and the format-neutral tree: it applies the
primitive cast rules itself and delegates structured targets to pydantic.

Contents
--------
* :class:`ValueCodec` – ``decode`` / ``encode`` / ``is_instance`` plus
  per-type registration of custom decoders.

System Role
-----------
Each root config owns one codec (its ``mapper``); child layers share it.
Failures surface as domain errors (:class:`ParseError`,
:class:`WrongTypeError`, :class:`ObjectMappingError`,
:class:`UnsupportedMapKeyError`, :class:`UnsupportedTypeError`) which the
config runtime wraps into :class:`LoadError` with the failing item name.
"""

from __future__ import annotations

import collections.abc as abc
import types
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Callable, Literal, Union, get_args, get_origin

from pydantic import PydanticSchemaGenerationError, PydanticUserError, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..domain.errors import (
    ObjectMappingError,
    ParseError,
    UnsupportedMapKeyError,
    UnsupportedNodeTypeError,
    UnsupportedTypeError,
    WrongTypeError,
)
from ..domain.tree import EMPTY, NULL, ContainerNode, ListNode, StringListNode, TreeNode, ValueNode, to_hierarchical
from ..domain.units import SizeInBytes, parse_duration

Decoder = Callable[[Any], Any]

_SEQUENCE_ORIGINS = (list, abc.Sequence, abc.MutableSequence, abc.Iterable, abc.Collection)
_SET_ORIGINS = (set, frozenset, abc.Set, abc.MutableSet)
_MAPPING_ORIGINS = (dict, abc.Mapping, abc.MutableMapping)
_TEMPORAL = (datetime, date, time)


def describe_type(type_: Any) -> str:
    """Return a readable name for *type_* used in error messages."""

    return getattr(type_, "__name__", None) or repr(type_)


def _is_union(origin: Any) -> bool:
    return origin is Union or origin is types.UnionType


def split_optional(type_: Any) -> tuple[Any, bool]:
    """Split ``T | None`` into ``(T, True)``; other types return ``(type_, False)``.

    Examples
    --------
    >>> split_optional(int | None)
    (<class 'int'>, True)
    >>> split_optional(str)
    (<class 'str'>, False)
    """

    if _is_union(get_origin(type_)):
        args = get_args(type_)
        if type(None) in args:
            rest = tuple(arg for arg in args if arg is not type(None))
            if len(rest) == 1:
                return rest[0], True
            return Union[rest], True  # type: ignore[return-value]
    return type_, False


class ValueCodec:
    """Decode tree nodes into declared Python types and export values back.

    Examples
    --------
    >>> from lib_typed_config.domain.tree import node_from_value
    >>> codec = ValueCodec()
    >>> codec.decode(node_from_value("1.5ms"), timedelta)
    datetime.timedelta(microseconds=1500)
    >>> codec.decode(node_from_value({"a": ["1", "2"]}), dict[str, list[int]])
    {'a': [1, 2]}
    """

    def __init__(self) -> None:
        self._decoders: dict[Any, Decoder] = {}
        self._adapters: dict[Any, TypeAdapter[Any]] = {}

    def register(self, type_: Any, decoder: Decoder) -> None:
        """Decode *type_* with *decoder*, which receives the plain exported value."""

        self._decoders[type_] = decoder

    def unregister(self, type_: Any) -> None:
        self._decoders.pop(type_, None)

    # -- decoding -----------------------------------------------------------------

    def decode(self, node: TreeNode, type_: Any) -> Any:
        """Return the value of *node* as *type_*.

        Raises
        ------
        ParseError
            A string literal could not be parsed (``"yes"`` as ``bool``).
        WrongTypeError
            The node shape does not fit (a container read as ``int``).
        ObjectMappingError
            pydantic rejected the data for a structured type.
        UnsupportedMapKeyError
            A mapping type declares keys other than ``str``, ``int`` or enums.
        UnsupportedTypeError
            No strategy exists for *type_*.
        """

        origin = get_origin(type_)
        if type_ is Any or type_ is object:
            return to_hierarchical(node)
        if origin is Annotated:
            return self.decode(node, get_args(type_)[0])
        if _is_union(origin):
            return self._decode_union(node, type_)
        if node is NULL:
            if type_ is type(None):
                return None
            raise WrongTypeError(f"null cannot be read as {describe_type(type_)}")
        if node is EMPTY:
            raise UnsupportedNodeTypeError(f"an empty node cannot be read as {describe_type(type_)}")
        if type_ in self._decoders:
            return self._decoders[type_](to_hierarchical(node))
        if origin is Literal:
            return self._decode_literal(node, type_)
        if type_ in (list, tuple, set, frozenset) or origin in (*_SEQUENCE_ORIGINS, *_SET_ORIGINS, tuple):
            return self._decode_collection(node, type_, origin or type_)
        if type_ is dict or origin in _MAPPING_ORIGINS:
            return self._decode_mapping(node, type_)
        if isinstance(type_, type):
            scalar = self._decode_scalar(node, type_)
            if scalar is not _NO_SCALAR:
                return scalar
        return self._decode_structured(node, type_)

    def _decode_union(self, node: TreeNode, type_: Any) -> Any:
        args = get_args(type_)
        if node is NULL and type(None) in args:
            return None
        candidates = [arg for arg in args if arg is not type(None)]
        if len(candidates) == 1:
            return self.decode(node, candidates[0])
        last: Exception | None = None
        for candidate in candidates:
            try:
                return self.decode(node, candidate)
            except (ParseError, WrongTypeError, ObjectMappingError, UnsupportedNodeTypeError) as exc:
                last = exc
        raise WrongTypeError(f"value matches none of {describe_type(type_)}: {last}") from last

    def _decode_literal(self, node: TreeNode, type_: Any) -> Any:
        value = _scalar_value(node, type_)
        for option in get_args(type_):
            if value == option or (isinstance(option, str) and str(value) == option):
                return option
        raise ParseError(f'"{value}" is not one of {list(get_args(type_))}')

    def _decode_collection(self, node: TreeNode, type_: Any, origin: Any) -> Any:
        items = _list_items(node, type_)
        args = get_args(type_)
        if origin is tuple:
            if not args or (len(args) == 2 and args[1] is Ellipsis):
                element = args[0] if args else Any
                return tuple(self.decode(item, element) for item in items)
            if len(args) != len(items):
                raise WrongTypeError(f"expected {len(args)} elements for {describe_type(type_)}, got {len(items)}")
            return tuple(self.decode(item, element) for item, element in zip(items, args))
        element = args[0] if args else Any
        decoded = [self.decode(item, element) for item in items]
        if origin in (frozenset,):
            return frozenset(decoded)
        if origin in _SET_ORIGINS:
            return set(decoded)
        return decoded

    def _decode_mapping(self, node: TreeNode, type_: Any) -> dict[Any, Any]:
        args = get_args(type_)
        key_type, value_type = (args[0], args[1]) if len(args) == 2 else (str, Any)
        if not _is_supported_key(key_type):
            raise UnsupportedMapKeyError(f"unsupported map key type {describe_type(key_type)}")
        if not isinstance(node, ContainerNode):
            raise WrongTypeError(f"{_kind(node)} cannot be read as {describe_type(type_)}")
        return {
            _decode_key(key, key_type): self.decode(child, value_type)
            for key, child in node.children.items()
            if child is not EMPTY
        }

    def _decode_scalar(self, node: TreeNode, type_: type) -> Any:
        if issubclass(type_, Enum):
            return _decode_enum(node, type_)
        if type_ is bool:
            return _decode_bool(node)
        if type_ is int:
            return _decode_int(node)
        if type_ is float:
            return _decode_float(node)
        if type_ is str:
            value = _scalar_value(node, type_)
            if isinstance(value, str):
                return value
            raise WrongTypeError(f"{type(value).__name__} cannot be read as str")
        if type_ is Decimal:
            value = _scalar_value(node, type_)
            if isinstance(value, bool):
                raise WrongTypeError("bool cannot be read as Decimal")
            try:
                return Decimal(str(value))
            except InvalidOperation as exc:
                raise ParseError(f'"{value}" is not a decimal number') from exc
        if type_ is timedelta:
            return _decode_timedelta(node)
        if type_ is SizeInBytes:
            return _decode_size(node)
        if type_ in _TEMPORAL:
            return self._decode_temporal(node, type_)
        return _NO_SCALAR

    def _decode_temporal(self, node: TreeNode, type_: type) -> Any:
        value = _scalar_value(node, type_)
        if type(value) is type_:
            return value
        if not isinstance(value, str):
            raise WrongTypeError(f"{type(value).__name__} cannot be read as {type_.__name__}")
        try:
            return self._adapter(type_).validate_python(value)
        except PydanticValidationError as exc:
            raise ParseError(f'"{value}" is not a valid {type_.__name__}') from exc

    def _decode_structured(self, node: TreeNode, type_: Any) -> Any:
        adapter = self._adapter(type_)
        try:
            return adapter.validate_python(to_hierarchical(node))
        except PydanticValidationError as exc:
            raise ObjectMappingError(f"cannot map value to {describe_type(type_)}: {exc}") from exc

    def _adapter(self, type_: Any) -> TypeAdapter[Any]:
        try:
            adapter = self._adapters.get(type_)
        except TypeError:
            adapter = None
        if adapter is None:
            try:
                adapter = TypeAdapter(type_)
            except (PydanticSchemaGenerationError, PydanticUserError) as exc:
                raise UnsupportedTypeError(f"type {describe_type(type_)} is not supported") from exc
            try:
                self._adapters[type_] = adapter
            except TypeError:
                pass
        return adapter

    # -- export -------------------------------------------------------------------

    def encode(self, value: Any) -> Any:
        """Export *value* as plain data (enums by name, durations as ISO text).

        Examples
        --------
        >>> from enum import Enum
        >>> class Kind(Enum):
        ...     ON_HEAP = 1
        >>> ValueCodec().encode({"kind": Kind.ON_HEAP, "sizes": (1, 2)})
        {'kind': 'ON_HEAP', 'sizes': [1, 2]}
        """

        if value is None or isinstance(value, (str, bool, int, float)):
            return value
        if isinstance(value, Enum):
            return value.name
        if isinstance(value, SizeInBytes):
            return value.bytes
        if isinstance(value, abc.Mapping):
            return {_encode_key(key): self.encode(child) for key, child in value.items()}
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self.encode(child) for child in value]
        try:
            adapter = self._adapter(type(value))
        except UnsupportedTypeError:
            return value
        return adapter.dump_python(value, mode="json")

    # -- type checks --------------------------------------------------------------

    def is_instance(self, value: Any, type_: Any) -> bool:
        """Return ``True`` when *value* conforms to the declared *type_*.

        Examples
        --------
        >>> codec = ValueCodec()
        >>> codec.is_instance([1, 2], list[int]), codec.is_instance(True, int), codec.is_instance(1, float)
        (True, False, True)
        """

        if type_ is Any or type_ is object:
            return True
        if type_ is None or type_ is type(None):
            return value is None
        origin = get_origin(type_)
        args = get_args(type_)
        if origin is Annotated:
            return self.is_instance(value, args[0])
        if _is_union(origin):
            return any(self.is_instance(value, arg) for arg in args)
        if origin is Literal:
            return value in args
        if origin is tuple:
            if not isinstance(value, tuple):
                return False
            if not args or (len(args) == 2 and args[1] is Ellipsis):
                return all(self.is_instance(item, args[0]) for item in value) if args else True
            return len(args) == len(value) and all(self.is_instance(v, t) for v, t in zip(value, args))
        if origin in _MAPPING_ORIGINS:
            if not isinstance(value, abc.Mapping):
                return False
            if len(args) != 2:
                return True
            return all(self.is_instance(k, args[0]) and self.is_instance(v, args[1]) for k, v in value.items())
        if origin is not None and isinstance(origin, type):
            if not isinstance(value, origin) or isinstance(value, (str, bytes)) and origin in _SEQUENCE_ORIGINS:
                return False
            return all(self.is_instance(item, args[0]) for item in value) if args else True
        if type_ is float:
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if type_ is int:
            return isinstance(value, int) and not isinstance(value, bool)
        if isinstance(type_, type):
            try:
                return isinstance(value, type_)
            except TypeError:
                return True
        return True


class _NoScalar:
    __slots__ = ()


_NO_SCALAR = _NoScalar()


def _kind(node: TreeNode) -> str:
    if node is NULL:
        return "null"
    if isinstance(node, ContainerNode):
        return "a mapping"
    if isinstance(node, ListNode):
        return "a list"
    if isinstance(node, ValueNode):
        return type(node.value).__name__
    return type(node).__name__


def _scalar_value(node: TreeNode, type_: Any) -> Any:
    if not isinstance(node, ValueNode):
        raise WrongTypeError(f"{_kind(node)} cannot be read as {describe_type(type_)}")
    return node.value


def _list_items(node: TreeNode, type_: Any) -> list[TreeNode]:
    if isinstance(node, (ListNode, StringListNode)):
        return list(node.items)
    raise WrongTypeError(f"{_kind(node)} cannot be read as {describe_type(type_)}")


def _decode_bool(node: TreeNode) -> bool:
    value = _scalar_value(node, bool)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
        raise ParseError(f'"{value}" is not a boolean (expected true or false)')
    raise WrongTypeError(f"{type(value).__name__} cannot be read as bool")


def _decode_int(node: TreeNode) -> int:
    value = _scalar_value(node, int)
    if isinstance(value, bool):
        raise WrongTypeError("bool cannot be read as int")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as exc:
            raise ParseError(f'"{value}" is not an integer') from exc
    raise WrongTypeError(f"{type(value).__name__} cannot be read as int")


def _decode_float(node: TreeNode) -> float:
    value = _scalar_value(node, float)
    if isinstance(value, bool):
        raise WrongTypeError("bool cannot be read as float")
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as exc:
            raise ParseError(f'"{value}" is not a number') from exc
    raise WrongTypeError(f"{type(value).__name__} cannot be read as float")


def _decode_timedelta(node: TreeNode) -> timedelta:
    value = _scalar_value(node, timedelta)
    if isinstance(value, timedelta):
        return value
    if isinstance(value, str):
        return parse_duration(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return timedelta(milliseconds=value)
    raise WrongTypeError(f"{type(value).__name__} cannot be read as timedelta")


def _decode_size(node: TreeNode) -> SizeInBytes:
    value = _scalar_value(node, SizeInBytes)
    if isinstance(value, SizeInBytes):
        return value
    if isinstance(value, str):
        return SizeInBytes.parse(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return SizeInBytes(value)
    raise WrongTypeError(f"{type(value).__name__} cannot be read as SizeInBytes")


def _decode_enum(node: TreeNode, type_: type[Enum]) -> Enum:
    value = _scalar_value(node, type_)
    if isinstance(value, type_):
        return value
    if isinstance(value, str):
        try:
            return type_[value.strip()]
        except KeyError as exc:
            raise ParseError(f'"{value}" is not a member of {type_.__name__}') from exc
    raise WrongTypeError(f"{type(value).__name__} cannot be read as {type_.__name__}")


def _is_supported_key(key_type: Any) -> bool:
    if key_type is str or key_type is int or key_type is Any:
        return True
    return isinstance(key_type, type) and issubclass(key_type, Enum)


def _decode_key(key: str, key_type: Any) -> Any:
    if key_type is int:
        try:
            return int(key)
        except ValueError as exc:
            raise ParseError(f'map key "{key}" is not an integer') from exc
    if isinstance(key_type, type) and issubclass(key_type, Enum):
        try:
            return key_type[key]
        except KeyError as exc:
            raise ParseError(f'map key "{key}" is not a member of {key_type.__name__}') from exc
    return key


def _encode_key(key: Any) -> Any:
    if isinstance(key, Enum):
        return key.name
    return key


__all__ = ["ValueCodec", "describe_type", "split_optional"]
