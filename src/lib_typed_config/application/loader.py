"""Loaders: bind a provider to a config and return new child layers.

Every call returns ``config.with_source(...)``: a fresh layer under the
config, never a mutation of it. ``config.from_`` exposes a
:class:`LoaderNamespace` so reads look like
``config.from_.yaml.file("app.yaml")``.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO, Callable, Mapping, TextIO

from ..domain.features import Feature
from .ports import Provider, ProviderRegistry
from .source import FlatSource, KVSource, MapSource, Source

if TYPE_CHECKING:
    from ..adapters.watch import Watch
    from .config import Config


class Loader:
    """Load sources produced by *provider* into child layers of *config*.

    ``optional`` arguments default to the ``OPTIONAL_SOURCE_BY_DEFAULT``
    feature of the config.
    """

    def __init__(self, config: "Config", provider: Provider) -> None:
        self.config = config
        self.provider = provider

    def _optional(self, optional: bool | None) -> bool:
        if optional is None:
            return self.config.is_enabled(Feature.OPTIONAL_SOURCE_BY_DEFAULT)
        return optional

    def reader(self, stream: TextIO) -> "Config":
        return self.config.with_source(self.provider.reader(stream))

    def input_stream(self, stream: BinaryIO) -> "Config":
        return self.config.with_source(self.provider.input_stream(stream))

    def string(self, text: str) -> "Config":
        return self.config.with_source(self.provider.string(text))

    def bytes(self, data: bytes) -> "Config":
        return self.config.with_source(self.provider.bytes(data))

    def file(self, path: str | Path, optional: bool | None = None) -> "Config":
        return self.config.with_source(self.provider.file(path, optional=self._optional(optional)))

    def url(self, url: str, optional: bool | None = None) -> "Config":
        return self.config.with_source(self.provider.url(url, optional=self._optional(optional)))

    def resource(self, name: str, optional: bool | None = None, package: str | None = None) -> "Config":
        return self.config.with_source(
            self.provider.resource(name, optional=self._optional(optional), package=package)
        )

    def watch_file(
        self,
        path: str | Path,
        period: float = 5.0,
        on_change: Callable[["Config", Source], None] | None = None,
        optional: bool | None = None,
    ) -> "Watch":
        """Load *path* now and reload it whenever its content changes."""

        from ..adapters.watch import watch_file

        return watch_file(
            self.config,
            self.provider,
            path,
            period=period,
            on_change=on_change,
            optional=self._optional(optional),
        )

    def watch_url(
        self,
        url: str,
        period: float = 5.0,
        on_change: Callable[["Config", Source], None] | None = None,
        optional: bool | None = None,
    ) -> "Watch":
        """Load *url* now and reload it whenever the fetched content changes."""

        from ..adapters.watch import watch_url

        return watch_url(
            self.config,
            self.provider,
            url,
            period=period,
            on_change=on_change,
            optional=self._optional(optional),
        )


class MapLoader:
    """``config.from_.map``: load plain Python mappings."""

    def __init__(self, config: "Config") -> None:
        self.config = config

    def hierarchical(self, data: Mapping[str, Any]) -> "Config":
        """Load nested dictionaries (``{"server": {"port": 80}}``)."""

        return self.config.with_source(MapSource(data))

    def flat(self, data: Mapping[str, str]) -> "Config":
        """Load dotted keys holding strings (``{"server.port": "80"}``)."""

        return self.config.with_source(FlatSource(data))

    def kv(self, data: Mapping[str, Any]) -> "Config":
        """Load dotted keys holding typed values (``{"server.port": 80}``)."""

        return self.config.with_source(KVSource(data))


class LoaderNamespace:
    """Entry points behind ``config.from_``."""

    def __init__(self, config: "Config", registry: ProviderRegistry) -> None:
        self.config = config
        self.registry = registry

    def provider(self, extension: str) -> Loader:
        """Loader for the provider registered under *extension*."""

        return Loader(self.config, self.registry.lookup(extension))

    @property
    def json(self) -> Loader:
        return self.provider("json")

    @property
    def toml(self) -> Loader:
        return self.provider("toml")

    @property
    def yaml(self) -> Loader:
        return self.provider("yaml")

    @property
    def properties(self) -> Loader:
        return self.provider("properties")

    @property
    def map(self) -> MapLoader:
        return MapLoader(self.config)

    def source(self, source: Source) -> "Config":
        return self.config.with_source(source)

    def env(self, prefix: str = "", environ: Mapping[str, str] | None = None, nested: bool = True) -> "Config":
        """Load environment variables (optionally only those starting with *prefix*)."""

        from ..adapters.providers.env import EnvProvider

        return self.config.with_source(EnvProvider(environ=environ).env(prefix, nested=nested))


__all__ = ["Loader", "LoaderNamespace", "MapLoader"]
