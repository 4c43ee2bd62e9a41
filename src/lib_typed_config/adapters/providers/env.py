"""Environment variable provider.

Purpose
-------
Expose process environment variables as a flat source so ``SERVER_PORT=80``
can override ``server.port``.

Key behaviours
--------------
* An optional prefix (``default_env_prefix("my-app") == "MY_APP"``) keeps
  unrelated variables out; the prefix and its trailing ``_`` are stripped.
* With ``nested=True`` every ``_`` becomes a ``.``; names that do not form a
  valid dotted path afterwards (``A__B``) are skipped.
* The source loads keys case-insensitively and is never substituted, so
  ``$`` characters in variables stay literal.
"""

from __future__ import annotations

import os
import re
from typing import Mapping

from ...application.source import FlatSource, Source
from ...domain.features import Feature
from ...observability import log_debug, make_event

_VALID_KEY = re.compile(r"\w+(\.\w+)*")


def default_env_prefix(slug: str) -> str:
    """Return the canonical environment prefix for *slug*.

    Examples
    --------
    >>> default_env_prefix('lib-typed-config')
    'LIB_TYPED_CONFIG'
    """

    return slug.replace("-", "_").upper()


class EnvProvider:
    """Build sources from an environment mapping.

    Parameters
    ----------
    environ:
        Mapping to read from. Defaults to :data:`os.environ`.

    Examples
    --------
    >>> env = {"DEMO_SERVER_PORT": "80", "DEMO_SERVER_HOSTS": "a,b", "OTHER": "x"}
    >>> source = EnvProvider(environ=env).env("DEMO")
    >>> source.to_hierarchical()
    {'SERVER': {'HOSTS': 'a,b', 'PORT': '80'}}
    >>> source.description
    '[type: system-environment]'
    """

    def __init__(self, *, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def env(self, prefix: str = "", nested: bool = True) -> Source:
        """Return variables (optionally filtered by *prefix*) as a flat source."""

        prefix = f"{prefix}_" if prefix and not prefix.endswith("_") else prefix
        collected: dict[str, str] = {}
        for key in sorted(self._environ):
            if prefix and not key.startswith(prefix):
                continue
            stripped = key[len(prefix) :]
            path = stripped.replace("_", ".") if nested else stripped
            if not _VALID_KEY.fullmatch(path):
                continue
            collected[path] = self._environ[key]
        log_debug("source_loaded", **make_event("provider", "system-environment", {"keys": len(collected)}))
        source = FlatSource(collected, type="system-environment", allow_conflict=True)
        return source.enabled(Feature.LOAD_KEYS_CASE_INSENSITIVELY).disabled(Feature.SUBSTITUTE_SOURCE_BEFORE_LOADED)


__all__ = ["EnvProvider", "default_env_prefix"]
