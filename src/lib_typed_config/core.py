"""Composition root for ``lib_typed_config``.

Purpose
-------
Wire the format adapters into the application layer: build the default
extension registry and offer two entry points for the common case of "these
files, then the environment".

Contents
--------
* :func:`default_registry` – registry with JSON, TOML, YAML and properties.
* :func:`read_sources` – spec-less merge of files plus environment, with
  provenance; used by the CLI.
* :func:`load_config` – typed counterpart: one child layer per file, then
  one for the environment.

System Role
-----------
The only module (besides the CLI) that knows every concrete adapter.
:attr:`Config.from_` falls back to :func:`default_registry` when a config was
built without a registry.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping

from .adapters.providers import EnvProvider, ExtensionRegistry, JsonProvider, PropertiesProvider, TomlProvider, YamlProvider
from .application.config import Config
from .application.merge import merge_layers
from .application.source import Source
from .application.spec import ConfigSpec
from .observability import bind_trace_id, log_info, make_event


def default_registry() -> ExtensionRegistry:
    """Return a fresh registry for ``json``, ``toml``, ``yaml``/``yml`` and ``properties``.

    Examples
    --------
    >>> default_registry().extensions
    ('json', 'properties', 'toml', 'yaml', 'yml')
    """

    yaml_provider = YamlProvider()
    return ExtensionRegistry(
        {
            "json": JsonProvider(),
            "toml": TomlProvider(),
            "yaml": yaml_provider,
            "yml": yaml_provider,
            "properties": PropertiesProvider(),
        }
    )


def read_sources(
    paths: Iterable[str | Path],
    registry: ExtensionRegistry | None = None,
    optional: bool = False,
    env_prefix: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> tuple[Source, dict[str, dict[str, str]]]:
    """Merge *paths* (later files win) and optionally the environment on top.

    Why
    ----
    Operators inspecting a deployment do not have the application's specs at
    hand; they still want the effective tree and where each key came from.

    Parameters
    ----------
    paths:
        Files ordered from lowest to highest precedence; the provider is
        chosen by extension.
    registry:
        Extension registry; defaults to :func:`default_registry`.
    optional:
        Skip missing files instead of raising ``SourceNotFoundError``.
    env_prefix:
        When given, environment variables starting with ``<prefix>_`` form
        the top layer.
    environ:
        Environment mapping (defaults to :data:`os.environ`).

    Returns
    -------
    tuple[Source, dict[str, dict[str, str]]]
        ``(merged, provenance)``.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> base = Path(tmp.name) / "base.json"
    >>> _ = base.write_text('{"service": {"port": 80, "name": "demo"}}', encoding="utf-8")
    >>> merged, meta = read_sources([base], env_prefix="DEMO", environ={"DEMO_SERVICE_PORT": "81"})
    >>> merged.to_hierarchical()
    {'service': {'port': '81', 'name': 'demo'}}
    >>> meta["service.port"]["source"]
    '[type: system-environment]'
    >>> tmp.cleanup()
    """

    bind_trace_id(None)
    registry = registry or default_registry()
    sources = [registry.file(path, optional=optional) for path in paths]
    if env_prefix is not None:
        sources.append(EnvProvider(environ=environ).env(env_prefix).lowercased())
    merged, provenance = merge_layers(sources)
    log_info("sources_merged", **make_event("read_sources", None, {"sources": len(sources), "keys": len(provenance)}))
    return merged, provenance


def load_config(
    *specs: ConfigSpec,
    paths: Iterable[str | Path] = (),
    registry: ExtensionRegistry | None = None,
    optional: bool = False,
    env_prefix: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Build a config for *specs* and layer *paths* and the environment over it.

    Each file becomes one child layer (later files win); the environment, when
    *env_prefix* is given, becomes the topmost layer.

    Examples
    --------
    >>> spec = ConfigSpec("server")
    >>> port = spec.optional(int, 8080, "port")
    >>> config = load_config(spec, env_prefix="APP", environ={"APP_SERVER_PORT": "9090"})
    >>> config[port]
    9090
    """

    registry = registry or default_registry()
    config = Config(*specs, registry=registry)
    for path in paths:
        config = config.with_source(registry.file(path, optional=optional))
    if env_prefix is not None:
        config = config.with_source(EnvProvider(environ=environ).env(env_prefix))
    return config


__all__ = ["default_registry", "load_config", "read_sources"]
