"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by the value model, the config
runtime, the providers, and consuming applications. The hierarchy lives in the
domain layer so outer layers may raise and catch it without creating cyclic
imports.

Contents
--------
* :class:`ConfigError` – umbrella base class for every failure of the library.
* Addressing errors – :class:`InvalidPathError`, :class:`PathConflictError`.
* Registry errors – :class:`NoSuchItemError`, :class:`RepeatedItemError`,
  :class:`RepeatedInnerSpecError`, :class:`NameConflictError`,
  :class:`LayerFrozenError`.
* Value state errors – :class:`UnsetValueError`, :class:`InvalidLazySetError`,
  :class:`ValueTypeError`.
* :class:`SourceError` and its children – everything that goes wrong while
  reading, substituting, or decoding a source.

System Role
-----------
Errors carry their diagnostic fields as attributes (``path``, ``name``,
``paths``, ``text``, ``cause``) so callers inspect failures programmatically
instead of parsing messages. :class:`LoadError` is the single wrapper used when
a low-level failure crosses the source → item boundary.
"""

from __future__ import annotations

from typing import Iterable


class ConfigError(Exception):
    """Base type for all exceptions emitted by ``lib_typed_config``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class InvalidPathError(ConfigError):
    """Raised when a dotted path contains an empty segment.

    Examples
    --------
    >>> str(InvalidPathError("a..b"))
    '"a..b" is an invalid path'
    """

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f'"{path}" is an invalid path')


class PathConflictError(ConfigError):
    """Raised when a path is used both as a leaf and as an ancestor."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f'"{path}" conflicts with an existing path')


class NoSuchItemError(ConfigError):
    """Raised when an item (or item name) is unknown to a config."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'cannot find item "{name}" in config')


class RepeatedItemError(ConfigError):
    """Raised when the same item object is registered twice."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'item "{name}" has been added')


class RepeatedInnerSpecError(ConfigError):
    """Raised when an inner spec is nested into the same spec twice."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'spec "{name}" has been added')


class NameConflictError(ConfigError):
    """Raised when two qualified item names cannot coexist in one namespace."""


class LayerFrozenError(ConfigError):
    """Raised when specs or items are added to a layer that already has children."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'layer "{name}" has child layers and can no longer accept items')


class UnsetValueError(ConfigError):
    """Raised when an item has no value in any layer."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'item "{name}" is unset')


class InvalidLazySetError(ConfigError):
    """Raised when a lazy thunk yields a value that does not fit its item."""


class ValueTypeError(ConfigError, TypeError):
    """Raised when a value does not match the declared type of an item."""


class SourceError(ConfigError):
    """Base type for failures that happen while reading or decoding sources."""


class NoSuchPathError(SourceError):
    """Raised when a path is absent from a source."""

    def __init__(self, path: str, description: str = "") -> None:
        self.path = path
        suffix = f" in source {description}" if description else ""
        super().__init__(f'cannot find path "{path}"{suffix}')


class WrongTypeError(SourceError):
    """Raised when a node cannot be interpreted as the requested type."""


class UnsupportedTypeError(SourceError):
    """Raised when the value codec has no strategy for a target type."""


class UnsupportedNodeTypeError(SourceError):
    """Raised when a tree node variant cannot be converted at all."""


class UnknownPathsError(SourceError):
    """Raised when ``FAIL_ON_UNKNOWN_PATH`` is active and a source has undeclared paths."""

    def __init__(self, paths: Iterable[str], description: str = "") -> None:
        self.paths = list(paths)
        suffix = f" in source {description}" if description else ""
        super().__init__(f"cannot find {', '.join(self.paths)}{suffix}")


class UndefinedPathVariableError(SourceError):
    """Raised when ``${...}`` references a path that cannot be resolved.

    ``text`` holds the full text whose substitution failed.
    """

    def __init__(self, text: str, description: str = "") -> None:
        self.text = text
        suffix = f" in source {description}" if description else ""
        super().__init__(f'"{text}" contains an undefined path variable{suffix}')


class ParseError(SourceError):
    """Raised when a literal (duration, size, date, number) is malformed."""


class LoadError(SourceError):
    """Wrap a lower-level failure while loading the value at ``path``.

    Why
    ----
    Low-level codec errors say *what* went wrong; the wrapper records *where*
    so callers can point at the offending configuration key.

    Attributes
    ----------
    path:
        Qualified item name (or source path) whose value failed to load.
    cause:
        The original exception, also available as ``__cause__``.
    """

    def __init__(self, path: str, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f'failed to load "{path}": {cause}')


class ObjectMappingError(SourceError):
    """Raised when a tree cannot be mapped onto a structured target type."""


class UnsupportedMapKeyError(SourceError):
    """Raised when a mapping item declares a key type the codec cannot build."""


class UnsupportedExtensionError(SourceError):
    """Raised when no provider is registered for a file extension."""

    def __init__(self, extension: str) -> None:
        self.extension = extension
        super().__init__(f'cannot find provider for extension "{extension}"')


class SourceNotFoundError(SourceError):
    """Raised when a file, URL, or resource does not exist and is not optional."""


class InvalidRemoteRepoError(SourceError):
    """Raised when a remote repository cannot be used as a configuration source."""


class InvalidWatchKeyError(SourceError):
    """Raised on read when the watch that feeds a layer has been invalidated."""


__all__ = [
    "ConfigError",
    "InvalidLazySetError",
    "InvalidPathError",
    "InvalidRemoteRepoError",
    "InvalidWatchKeyError",
    "LayerFrozenError",
    "LoadError",
    "NameConflictError",
    "NoSuchItemError",
    "NoSuchPathError",
    "ObjectMappingError",
    "ParseError",
    "PathConflictError",
    "RepeatedInnerSpecError",
    "RepeatedItemError",
    "SourceError",
    "SourceNotFoundError",
    "UndefinedPathVariableError",
    "UnknownPathsError",
    "UnsetValueError",
    "UnsupportedExtensionError",
    "UnsupportedMapKeyError",
    "UnsupportedNodeTypeError",
    "UnsupportedTypeError",
    "ValueTypeError",
    "WrongTypeError",
]
