"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts that format adapters satisfy so loaders and
the composition root can work with any provider or writer without importing
concrete implementations.

Contents
--------
* :class:`Provider` – turns text, bytes, streams, files, URLs and package
  resources into a :class:`~lib_typed_config.application.source.Source`.
* :class:`Writer` – renders a config snapshot as text, bytes or files.
* :class:`ProviderRegistry` – extension → provider lookup injected into
  loaders.

System Role
-----------
These protocols enforce Dependency Inversion. Adapters implement them; the
application layer only ever talks to the abstractions.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Protocol, TextIO, runtime_checkable

from .source import Source


@runtime_checkable
class Provider(Protocol):
    """Build sources from raw input.

    Why
    ----
    Every convenience entry point (``string``, ``bytes``, ``file``, ``url``,
    ``resource``) funnels into :meth:`reader` / :meth:`input_stream`, so a
    new format only has to know how to parse text.

    Methods
    -------
    :meth:`file`, :meth:`url`, :meth:`resource`
        Honour ``optional``: a missing input yields an empty source instead of
        :class:`~lib_typed_config.domain.errors.SourceNotFoundError`.
    """

    def reader(self, stream: TextIO) -> Source:
        """Parse a text stream."""

    def input_stream(self, stream: BinaryIO) -> Source:
        """Parse a UTF-8 byte stream."""

    def string(self, text: str) -> Source:
        """Parse *text*."""

    def bytes(self, data: bytes) -> Source:
        """Parse UTF-8 *data*."""

    def file(self, path: str | Path, optional: bool = False) -> Source:
        """Parse the file at *path*."""

    def url(self, url: str, optional: bool = False) -> Source:
        """Fetch and parse *url* (``http(s)://`` or ``file://``)."""

    def resource(self, name: str, optional: bool = False, package: str | None = None) -> Source:
        """Parse a package resource."""


@runtime_checkable
class Writer(Protocol):
    """Render a config snapshot.

    Why
    ----
    Writers derive every output from one snapshot and release files before
    returning.
    """

    def to_text(self) -> str:
        """Return the rendered document."""

    def to_bytes(self) -> bytes:
        """Return the rendered document encoded as UTF-8."""

    def to_writer(self, stream: TextIO) -> None:
        """Write the rendered document to a text stream."""

    def to_output_stream(self, stream: BinaryIO) -> None:
        """Write the rendered document to a byte stream."""

    def to_file(self, path: str | Path) -> None:
        """Write the rendered document to *path*."""


@runtime_checkable
class ProviderRegistry(Protocol):
    """Extension → provider lookup."""

    def register(self, extension: str, provider: Provider) -> None:
        """Map *extension* to *provider*, replacing any previous mapping."""

    def unregister(self, extension: str) -> None:
        """Forget *extension*."""

    def lookup(self, extension: str) -> Provider:
        """Return the provider for *extension* or raise ``UnsupportedExtensionError``."""
