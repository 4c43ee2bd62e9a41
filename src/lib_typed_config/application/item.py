"""Typed configuration slots: required, optional, and lazy items.

An item is declared once (usually as a class attribute of a
:class:`~lib_typed_config.application.spec.ConfigSpec`) and then used as the
key for every read and write on a config. Items compare by identity, so two
items with the same name in different specs stay distinct.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar

from ..domain.path import KeyPath, to_path
from .codec import split_optional

if TYPE_CHECKING:
    from .config import Config
    from .spec import ConfigSpec

T = TypeVar("T")

SetHandler = Callable[["Config", Any], None]
Thunk = Callable[["Config"], Any]


class Subscription:
    """Handle returned by every ``before_*`` / ``after_*`` registration.

    ``close()`` removes the handler; the handle is also a context manager.

    Examples
    --------
    >>> handlers = []
    >>> with Subscription(handlers, print):
    ...     len(handlers)
    1
    >>> len(handlers)
    0
    """

    __slots__ = ("_handlers", "_handler")

    def __init__(self, handlers: list[Any], handler: Any) -> None:
        self._handlers = handlers
        self._handler = handler
        handlers.append(handler)

    def close(self) -> None:
        for index, registered in enumerate(self._handlers):
            if registered is self._handler:
                del self._handlers[index]
                return

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Item(Generic[T]):
    """Base class of every item variant.

    Parameters
    ----------
    type_:
        Declared Python type; ``T | None`` makes the item nullable.
    name:
        Dotted name relative to the owning spec. Class-attribute items take
        the attribute name when omitted.
    description:
        Free text exported as a comment by writers that support it.
    nullable:
        Whether ``None`` is a legal value.
    """

    def __init__(
        self,
        type_: Any,
        name: str | None = None,
        description: str = "",
        nullable: bool = False,
    ) -> None:
        _, optional = split_optional(type_)
        self.type = type_
        self.name = name
        self.description = description
        self.nullable = nullable or optional
        self.spec: ConfigSpec | None = None
        self._before_set: list[SetHandler] = []
        self._after_set: list[SetHandler] = []
        if name is not None:
            to_path(name)

    def __set_name__(self, owner: type, name: str) -> None:
        if self.name is None:
            self.name = name

    @property
    def path(self) -> KeyPath:
        return to_path(self.name or "")

    @property
    def is_required(self) -> bool:
        return False

    @property
    def is_optional(self) -> bool:
        return False

    @property
    def is_lazy(self) -> bool:
        return False

    def before_set(self, handler: SetHandler) -> Subscription:
        """Call ``handler(config, new_value)`` before every set of this item."""

        return Subscription(self._before_set, handler)

    def after_set(self, handler: SetHandler) -> Subscription:
        """Call ``handler(config, new_value)`` after every set of this item."""

        return Subscription(self._after_set, handler)

    on_set = after_set

    def before_set_handlers(self) -> list[SetHandler]:
        return list(self._before_set)

    def after_set_handlers(self) -> list[SetHandler]:
        return list(self._after_set)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, type={getattr(self.type, '__name__', self.type)!r})"


class RequiredItem(Item[T]):
    """An item with no default; reading it before any set fails."""

    @property
    def is_required(self) -> bool:
        return True


class OptionalItem(Item[T]):
    """An item whose *default* is present from the moment it is added."""

    def __init__(
        self,
        type_: Any,
        default: T,
        name: str | None = None,
        description: str = "",
        nullable: bool = False,
    ) -> None:
        super().__init__(type_, name, description, nullable)
        self.default = default

    @property
    def is_optional(self) -> bool:
        return True


class LazyItem(Item[T]):
    """An item derived from other items by ``thunk(config)`` at read time."""

    def __init__(
        self,
        type_: Any,
        thunk: Thunk,
        name: str | None = None,
        description: str = "",
        nullable: bool = False,
    ) -> None:
        super().__init__(type_, name, description, nullable)
        self.thunk = thunk

    @property
    def is_lazy(self) -> bool:
        return True


def required(type_: Any, name: str | None = None, description: str = "", nullable: bool = False) -> RequiredItem[Any]:
    """Declare a required item (usually as a spec class attribute).

    Examples
    --------
    >>> class ServerSpec:
    ...     port = required(int, description="listen port")
    >>> ServerSpec.port.name, ServerSpec.port.is_required
    ('port', True)
    """

    return RequiredItem(type_, name, description, nullable)


def optional(
    type_: Any,
    default: Any,
    name: str | None = None,
    description: str = "",
    nullable: bool = False,
) -> OptionalItem[Any]:
    """Declare an optional item with *default*."""

    return OptionalItem(type_, default, name, description, nullable)


def lazy(
    type_: Any,
    thunk: Thunk,
    name: str | None = None,
    description: str = "",
    nullable: bool = False,
) -> LazyItem[Any]:
    """Declare a lazy item computed by ``thunk(config)``."""

    return LazyItem(type_, thunk, name, description, nullable)


__all__ = [
    "Item",
    "LazyItem",
    "OptionalItem",
    "RequiredItem",
    "Subscription",
    "lazy",
    "optional",
    "required",
]
