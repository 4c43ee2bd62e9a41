"""Extension → provider registry.

Purpose
-------
Let loaders pick a provider from a file name (``app.yaml`` → YAML) without
a process-wide singleton. Registries are plain objects: the composition root
builds a populated one, tests build their own.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from ...application.ports import Provider
from ...application.source import Source
from ...domain.errors import UnsupportedExtensionError
from ...observability import log_debug, make_event


def _normalize(extension: str) -> str:
    """Return *extension* lowercased without a leading dot.

    Examples
    --------
    >>> _normalize('.YML')
    'yml'
    """

    return extension.strip().lstrip(".").lower()


class ExtensionRegistry:
    """Mutable mapping from file extensions to providers.

    Examples
    --------
    >>> from lib_typed_config.adapters.providers.structured import JsonProvider
    >>> registry = ExtensionRegistry({"json": JsonProvider()})
    >>> isinstance(registry.dispatch_extension(".JSON"), JsonProvider)
    True
    >>> registry.dispatch_extension("ini")
    Traceback (most recent call last):
    ...
    lib_typed_config.domain.errors.UnsupportedExtensionError: cannot find provider for extension "ini"
    """

    def __init__(self, providers: Mapping[str, Provider] | None = None) -> None:
        self._providers: dict[str, Provider] = {}
        for extension, provider in (providers or {}).items():
            self._providers[_normalize(extension)] = provider

    def register(self, extension: str, provider: Provider) -> None:
        key = _normalize(extension)
        self._providers[key] = provider
        log_debug("extension_registered", **make_event("registry", None, {"extension": key, "provider": type(provider).__name__}))

    def unregister(self, extension: str) -> None:
        key = _normalize(extension)
        if self._providers.pop(key, None) is not None:
            log_debug("extension_unregistered", **make_event("registry", None, {"extension": key}))

    def lookup(self, extension: str) -> Provider:
        key = _normalize(extension)
        try:
            return self._providers[key]
        except KeyError as exc:
            raise UnsupportedExtensionError(key) from exc

    dispatch_extension = lookup

    def provider_for_path(self, path: str | Path) -> Provider:
        """Return the provider matching the suffix of *path*."""

        return self.lookup(Path(path).suffix)

    def file(self, path: str | Path, optional: bool = False) -> Source:
        """Parse *path* with the provider chosen by its extension."""

        return self.provider_for_path(path).file(path, optional=optional)

    @property
    def extensions(self) -> tuple[str, ...]:
        return tuple(sorted(self._providers))

    def __contains__(self, extension: object) -> bool:
        return isinstance(extension, str) and _normalize(extension) in self._providers


__all__ = ["ExtensionRegistry"]
