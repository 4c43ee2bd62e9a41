"""Typed, layered configuration for Python applications.

Declare items in specs, stack sources (files, URLs, environment, maps) as
layers of a :class:`Config`, and read values back with their declared types::

    class ServerSpec(ConfigSpec):
        host = optional(str, "0.0.0.0")
        port = required(int)

    config = Config(ServerSpec()).from_.yaml.file("server.yaml").from_.env("APP")
    config[ServerSpec.port]
"""

from __future__ import annotations

from .adapters.providers import (
    EnvProvider,
    ExtensionRegistry,
    JsonProvider,
    PropertiesProvider,
    TomlProvider,
    YamlProvider,
)
from .adapters.watch import Watch
from .adapters.writers import JsonWriter, PropertiesWriter, YamlWriter
from .application.codec import ValueCodec
from .application.config import Config, ItemProperty
from .application.item import Item, LazyItem, OptionalItem, RequiredItem, Subscription, lazy, optional, required
from .application.merge import merge_layers
from .application.source import EmptySource, FlatSource, KVSource, MapSource, Source, SourceInfo, ValueSource
from .application.spec import ConfigSpec, Prefix
from .core import default_registry, load_config, read_sources
from .domain.errors import (
    ConfigError,
    InvalidLazySetError,
    InvalidPathError,
    InvalidRemoteRepoError,
    InvalidWatchKeyError,
    LayerFrozenError,
    LoadError,
    NameConflictError,
    NoSuchItemError,
    NoSuchPathError,
    ObjectMappingError,
    ParseError,
    PathConflictError,
    RepeatedInnerSpecError,
    RepeatedItemError,
    SourceError,
    SourceNotFoundError,
    UndefinedPathVariableError,
    UnknownPathsError,
    UnsetValueError,
    UnsupportedExtensionError,
    UnsupportedMapKeyError,
    UnsupportedNodeTypeError,
    UnsupportedTypeError,
    ValueTypeError,
    WrongTypeError,
)
from .domain.features import Feature
from .domain.path import KeyPath
from .domain.units import SizeInBytes, parse_duration
from .observability import bind_trace_id, get_logger

__all__ = [
    "Config",
    "ConfigError",
    "ConfigSpec",
    "EmptySource",
    "EnvProvider",
    "ExtensionRegistry",
    "Feature",
    "FlatSource",
    "InvalidLazySetError",
    "InvalidPathError",
    "InvalidRemoteRepoError",
    "InvalidWatchKeyError",
    "Item",
    "ItemProperty",
    "JsonProvider",
    "JsonWriter",
    "KVSource",
    "KeyPath",
    "LayerFrozenError",
    "LazyItem",
    "LoadError",
    "MapSource",
    "NameConflictError",
    "NoSuchItemError",
    "NoSuchPathError",
    "ObjectMappingError",
    "OptionalItem",
    "ParseError",
    "PathConflictError",
    "Prefix",
    "PropertiesProvider",
    "PropertiesWriter",
    "RepeatedInnerSpecError",
    "RepeatedItemError",
    "RequiredItem",
    "SizeInBytes",
    "Source",
    "SourceError",
    "SourceInfo",
    "SourceNotFoundError",
    "Subscription",
    "TomlProvider",
    "UndefinedPathVariableError",
    "UnknownPathsError",
    "UnsetValueError",
    "UnsupportedExtensionError",
    "UnsupportedMapKeyError",
    "UnsupportedNodeTypeError",
    "UnsupportedTypeError",
    "ValueCodec",
    "ValueSource",
    "ValueTypeError",
    "Watch",
    "WrongTypeError",
    "YamlProvider",
    "YamlWriter",
    "bind_trace_id",
    "default_registry",
    "get_logger",
    "lazy",
    "load_config",
    "merge_layers",
    "optional",
    "parse_duration",
    "read_sources",
    "required",
]
