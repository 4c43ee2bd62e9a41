"""Shared fixtures for the test suite.

``NetworkBufferSpec`` covers every item flavour (required, lazy, optional,
enum-typed, nullable) so config, loader, writer and watch tests exercise the
same schema.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from lib_typed_config import Config, ConfigSpec, lazy, optional, required


class BufferType(Enum):
    OFF_HEAP = "off-heap"
    ON_HEAP = "on-heap"


class NetworkBufferSpec(ConfigSpec, prefix="network.buffer"):
    size = required(int, description="size of buffer in KB")
    max_size = lazy(int, lambda config: config[NetworkBufferSpec.size] * 2, name="maxSize", description="max size of buffer in KB")
    name = optional(str, "buffer", description="name of buffer")
    type = optional(BufferType, BufferType.OFF_HEAP, description="type of network buffer")
    offset = optional(int | None, None, description="initial offset of buffer")


def make_config(**kwargs) -> Config:
    """Return a root config holding a fresh :class:`NetworkBufferSpec`."""

    return Config(NetworkBufferSpec(), **kwargs)


def write_text(directory: Path, name: str, content: str) -> Path:
    """Write *content* to ``directory / name`` and return the path."""

    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
