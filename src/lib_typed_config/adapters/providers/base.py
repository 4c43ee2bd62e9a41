"""Shared plumbing for every format provider.

Purpose
-------
Concrete providers only know how to parse text. Everything else (reading
files, fetching URLs, resolving package resources, honouring ``optional``,
converting parser failures, logging) lives here once.

Contents
--------
* :class:`BaseProvider` – template implementing the provider port.
* :func:`fetch_url` – ``httpx`` download used by providers and watchers.
"""

from __future__ import annotations

import io
from importlib import resources
from pathlib import Path
from typing import Any, BinaryIO, ClassVar, Mapping, TextIO
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx

from ...application.source import EmptySource, MapSource, Source, SourceInfo
from ...domain.errors import ParseError, SourceNotFoundError
from ...observability import log_debug, log_error, make_event

HTTP_TIMEOUT = 30.0
MAX_REDIRECTS = 5


def fetch_url(url: str) -> bytes | None:
    """Return the body at *url*, or ``None`` when the resource does not exist.

    ``file://`` URLs are read from disk; ``http(s)://`` URLs go through
    ``httpx`` with redirects followed.

    Raises
    ------
    SourceNotFoundError
        On transport failures and non-404 error statuses.
    """

    parsed = urlparse(url)
    if parsed.scheme == "file":
        path = Path(url2pathname(parsed.path))
        return path.read_bytes() if path.is_file() else None
    try:
        response = httpx.get(url, follow_redirects=True, timeout=HTTP_TIMEOUT)
        if response.status_code == 404:
            return None
        response.raise_for_status()
    except httpx.HTTPError as exc:
        log_error("source_fetch_failed", **make_event("provider", url, {"error": str(exc)}))
        raise SourceNotFoundError(f"cannot fetch {url}: {exc}") from exc
    log_debug("source_fetched", **make_event("provider", url, {"size": len(response.content)}))
    return response.content


class BaseProvider:
    """Common behaviour of the structured and line-based providers.

    Subclasses set :attr:`type` and :attr:`parse_errors` and implement
    :meth:`_parse`; :meth:`_build` may be overridden to pick a source class.
    """

    type: ClassVar[str] = "text"
    parse_errors: ClassVar[tuple[type[BaseException], ...]] = ()

    def _parse(self, text: str) -> Any:
        raise NotImplementedError

    def _build(self, data: Any, info: SourceInfo) -> Source:
        return MapSource(self._ensure_mapping(data, info), type=self.type, info=info)

    @staticmethod
    def _ensure_mapping(data: Any, info: Mapping[str, str]) -> Mapping[str, Any]:
        """Ensure *data* behaves like a mapping, otherwise raise ``ParseError``.

        Examples
        --------
        >>> BaseProvider._ensure_mapping({"key": 1}, {})
        {'key': 1}
        >>> BaseProvider._ensure_mapping(42, {"file": "demo.json"})
        Traceback (most recent call last):
        ...
        lib_typed_config.domain.errors.ParseError: {'file': 'demo.json'} did not produce a mapping
        """

        if data is None:
            return {}
        if not isinstance(data, Mapping):
            raise ParseError(f"{dict(info) or 'input'} did not produce a mapping")
        return data

    def _from_text(self, text: str, origin: Mapping[str, str] | None = None) -> Source:
        info = SourceInfo(origin or {})
        try:
            data = self._parse(text)
        except self.parse_errors as exc:
            log_error("source_invalid", **make_event("provider", str(dict(info)) or None, {"format": self.type, "error": str(exc)}))
            raise ParseError(f"invalid {self.type} in {dict(info) or 'input'}: {exc}") from exc
        source = self._build(data, info)
        log_debug("source_loaded", **make_event("provider", source.description))
        return source

    def _from_bytes(self, data: bytes, origin: Mapping[str, str] | None = None) -> Source:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"{dict(origin or {}) or 'input'} is not valid UTF-8: {exc}") from exc
        return self._from_text(text, origin)

    def _missing(self, origin: Mapping[str, str], optional: bool, message: str) -> Source:
        if optional:
            log_debug("source_missing_optional", **make_event("provider", str(dict(origin))))
            return EmptySource(info=origin)
        log_error("source_missing", **make_event("provider", str(dict(origin))))
        raise SourceNotFoundError(message)

    # -- port ---------------------------------------------------------------------

    def reader(self, stream: TextIO) -> Source:
        return self._from_text(stream.read())

    def input_stream(self, stream: BinaryIO) -> Source:
        return self._from_bytes(stream.read())

    def string(self, text: str) -> Source:
        return self.reader(io.StringIO(text))

    def bytes(self, data: bytes) -> Source:
        return self.input_stream(io.BytesIO(data))

    def file(self, path: str | Path, optional: bool = False) -> Source:
        """Parse the file at *path*.

        Raises
        ------
        SourceNotFoundError
            When the file is missing and *optional* is false.
        """

        file_path = Path(path)
        origin = {"file": str(file_path)}
        if not file_path.is_file():
            return self._missing(origin, optional, f"configuration file not found: {file_path}")
        payload = file_path.read_bytes()
        log_debug("source_read", **make_event("provider", str(file_path), {"size": len(payload)}))
        return self._from_bytes(payload, origin)

    def url(self, url: str, optional: bool = False) -> Source:
        """Fetch and parse *url*; a 404 counts as missing."""

        origin = {"url": url}
        payload = fetch_url(url)
        if payload is None:
            return self._missing(origin, optional, f"configuration URL not found: {url}")
        return self._from_bytes(payload, origin)

    def resource(self, name: str, optional: bool = False, package: str | None = None) -> Source:
        """Parse a package resource.

        *name* is ``"package:relative/path"`` unless *package* is given.
        """

        if package is None:
            package, separator, name = name.partition(":")
            if not separator:
                raise SourceNotFoundError(f'resource "{package}" needs a "package:path" name')
        origin = {"resource": f"{package}:{name}"}
        try:
            target = resources.files(package).joinpath(name)
        except ModuleNotFoundError:
            return self._missing(origin, optional, f"package {package} not found for resource {name}")
        if not target.is_file():
            return self._missing(origin, optional, f"resource {name} not found in package {package}")
        return self._from_bytes(target.read_bytes(), origin)


__all__ = ["BaseProvider", "fetch_url"]
