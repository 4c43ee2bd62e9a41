from __future__ import annotations

from pathlib import Path

import pytest

from lib_typed_config import default_registry
from lib_typed_config.adapters.providers import ExtensionRegistry, JsonProvider, PropertiesProvider, YamlProvider
from lib_typed_config.application.ports import Provider, ProviderRegistry
from lib_typed_config.domain.errors import UnsupportedExtensionError
from tests.support import make_config, write_text


def test_default_registry_covers_every_format() -> None:
    registry = default_registry()
    assert registry.extensions == ("json", "properties", "toml", "yaml", "yml")
    assert registry.lookup("yml") is registry.lookup("yaml")
    assert ".TOML" in registry
    assert 3 not in registry


def test_registries_are_independent() -> None:
    first = default_registry()
    second = default_registry()
    first.unregister("json")
    assert "json" not in first
    assert "json" in second


def test_register_and_unregister() -> None:
    registry = ExtensionRegistry()
    provider = PropertiesProvider()
    registry.register(".CONF", provider)
    assert registry.lookup("conf") is provider
    registry.unregister("conf")
    registry.unregister("conf")
    with pytest.raises(UnsupportedExtensionError) as info:
        registry.lookup("conf")
    assert info.value.extension == "conf"


def test_provider_for_path_and_file(tmp_path: Path) -> None:
    registry = ExtensionRegistry({"json": JsonProvider(), "yaml": YamlProvider()})
    path = write_text(tmp_path, "app.yaml", "a: 1\n")
    assert isinstance(registry.provider_for_path(path), YamlProvider)
    assert registry.file(path).to_hierarchical() == {"a": 1}
    assert registry.file(tmp_path / "missing.json", optional=True).to_hierarchical() == {}
    with pytest.raises(UnsupportedExtensionError):
        registry.provider_for_path(tmp_path / "app.ini")


def test_providers_satisfy_the_port() -> None:
    for provider in (JsonProvider(), YamlProvider(), PropertiesProvider()):
        assert isinstance(provider, Provider)
    assert isinstance(default_registry(), ProviderRegistry)


def test_custom_extensions_reach_config_loaders() -> None:
    registry = default_registry()
    registry.register("conf", PropertiesProvider())
    config = make_config(registry=registry)
    assert config.from_.provider("conf").string("network.buffer.size=3")["network.buffer.size"] == 3
