"""Format providers that turn raw input into sources."""

from .base import BaseProvider
from .env import EnvProvider
from .properties import PropertiesProvider
from .registry import ExtensionRegistry
from .structured import JsonProvider, TomlProvider, YamlProvider

__all__ = [
    "BaseProvider",
    "EnvProvider",
    "ExtensionRegistry",
    "JsonProvider",
    "PropertiesProvider",
    "TomlProvider",
    "YamlProvider",
]
