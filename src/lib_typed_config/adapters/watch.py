"""Reload a config layer whenever a watched file or URL changes.

Purpose
-------
Long-running services want edits to ``app.yaml`` picked up without a
restart. A watch loads the document into a fresh child layer, then polls it
on a daemon thread and reloads that same layer whenever the bytes change.

Contents
--------
* :class:`Watch` – handle owning the polling thread (``cancel()``, context
  manager, :meth:`Watch.poll` for a synchronous check).
* :func:`watch_file` / :func:`watch_url` – constructors used by
  :class:`~lib_typed_config.application.loader.Loader`.

System Role
-----------
Reloads go through :meth:`Config.reload`: under the layer lock the new source
replaces the old one, and a document that fails to parse or load leaves the
previous values in place. ``on_change(layer, source)`` is called after a
successful reload. Failures on the polling thread are logged, never raised. A watched
document that disappears invalidates the watch: every item read through the
layer then raises :class:`InvalidWatchKeyError` and polling stops.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Mapping

from ..application.ports import Provider
from ..application.source import Source
from ..domain.errors import ConfigError, InvalidWatchKeyError
from ..observability import log_error, log_info, log_warning, make_event
from .providers.base import fetch_url

if TYPE_CHECKING:
    from ..application.config import Config

ChangeHandler = Callable[["Config", Source], None]


class Watch:
    """Handle of a running watch.

    Attributes
    ----------
    config:
        The child layer holding the watched document's values.
    """

    def __init__(
        self,
        config: "Config",
        fetch: Callable[[], bytes | None],
        parse: Callable[[bytes], Source],
        description: str,
        period: float,
        on_change: ChangeHandler | None,
        last: bytes | None,
    ) -> None:
        self.config = config
        self.description = description
        self.period = period
        self._fetch = fetch
        self._parse = parse
        self._on_change = on_change
        self._last = last
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name=f"watch {description}", daemon=True)
        self._thread.start()
        log_info("watch_started", **make_event(config.name, description, {"period": period}))

    @property
    def active(self) -> bool:
        return not self._stopped.is_set()

    def _run(self) -> None:
        while not self._stopped.wait(self.period):
            try:
                self.poll()
            except Exception as exc:
                log_error("watch_poll_failed", **make_event(self.config.name, self.description, {"error": repr(exc)}))

    def poll(self) -> bool:
        """Check the document once; return ``True`` when the layer was reloaded."""

        try:
            payload = self._fetch()
        except (OSError, ConfigError) as exc:
            log_warning("watch_poll_failed", **make_event(self.config.name, self.description, {"error": str(exc)}))
            return False
        if payload is None:
            if self._last is not None:
                self._invalidate()
            return False
        if payload == self._last:
            return False
        return self._reload(payload)

    def _reload(self, payload: bytes) -> bool:
        try:
            source = self._parse(payload)
            self.config.reload(source)
        except ConfigError as exc:
            log_error("watch_reload_failed", **make_event(self.config.name, self.description, {"error": str(exc)}))
            return False
        self._last = payload
        log_info("watch_reloaded", **make_event(self.config.name, source.description))
        if self._on_change is not None:
            self._on_change(self.config, source)
        return True

    def _invalidate(self) -> None:
        description = self.description

        def invalid(_: Any) -> Any:
            raise InvalidWatchKeyError(f"watch of {description} is no longer valid")

        def mark() -> None:
            for item in self.config.items:
                self.config.lazy_set(item, invalid)

        self.config.lock(mark)
        self._stopped.set()
        log_warning("watch_invalidated", **make_event(self.config.name, description))

    def cancel(self) -> None:
        """Stop polling; a reload already in progress runs to completion."""

        if self._stopped.is_set():
            return
        self._stopped.set()
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout=self.period)
        log_info("watch_cancelled", **make_event(self.config.name, self.description))

    def __enter__(self) -> "Watch":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()

    def __repr__(self) -> str:
        return f"Watch({self.description!r}, active={self.active})"


def _parser(provider: Provider, origin: Mapping[str, str]) -> Callable[[bytes], Source]:
    def parse(payload: bytes) -> Source:
        source = provider.bytes(payload)
        source.info.update(origin)
        return source

    return parse


def _start(
    config: "Config",
    fetch: Callable[[], bytes | None],
    parse: Callable[[bytes], Source],
    missing: Callable[[], Source],
    description: str,
    period: float,
    on_change: ChangeHandler | None,
) -> Watch:
    payload = fetch()
    source = missing() if payload is None else parse(payload)
    layer = config.with_source(source)
    return Watch(layer, fetch, parse, description, period, on_change, payload)


def watch_file(
    config: "Config",
    provider: Provider,
    path: str | Path,
    period: float = 5.0,
    on_change: ChangeHandler | None = None,
    optional: bool = False,
) -> Watch:
    """Load *path* into a child layer of *config* and keep it in sync.

    Raises
    ------
    SourceNotFoundError
        When the file is missing and *optional* is false.
    """

    file_path = Path(path)

    def fetch() -> bytes | None:
        try:
            return file_path.read_bytes()
        except FileNotFoundError:
            return None

    return _start(
        config,
        fetch,
        _parser(provider, {"file": str(file_path)}),
        lambda: provider.file(file_path, optional=optional),
        str(file_path),
        period,
        on_change,
    )


def watch_url(
    config: "Config",
    provider: Provider,
    url: str,
    period: float = 5.0,
    on_change: ChangeHandler | None = None,
    optional: bool = False,
) -> Watch:
    """Load *url* into a child layer of *config* and refetch it every *period* seconds."""

    return _start(
        config,
        lambda: fetch_url(url),
        _parser(provider, {"url": url}),
        lambda: provider.url(url, optional=optional),
        url,
        period,
        on_change,
    )


__all__ = ["Watch", "watch_file", "watch_url"]
