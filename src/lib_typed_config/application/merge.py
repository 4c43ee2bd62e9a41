"""Merge a stack of sources while tracking which source supplied each key.

Purpose
-------
The CLI and :func:`lib_typed_config.core.read_sources` work without specs:
they layer several sources and want to know, for every dotted key, which
source won. The merge itself is :meth:`Source.with_fallback`; this module
adds the provenance bookkeeping.

Contents
    - ``merge_layers``: public entry point driven by a simple loop.
    - ``_record``: walks one source tree and overwrites provenance entries.
    - ``_clear_branch``: drops provenance below a key that changed shape.
"""

from __future__ import annotations

from typing import Iterable

from ..domain.tree import EMPTY, ContainerNode, TreeNode
from .source import EmptySource, Source


def merge_layers(sources: Iterable[Source]) -> tuple[Source, dict[str, dict[str, str]]]:
    """Merge *sources* (lowest precedence first) and report provenance.

    Why
    ----
    Operators debugging a layered setup need both the effective values and
    the file each value came from.

    Parameters
    ----------
    sources:
        Sources ordered from lowest to highest precedence.

    Returns
    -------
    tuple[Source, dict[str, dict[str, str]]]
        ``(merged, provenance)`` where ``provenance`` maps dotted keys to
        ``{"source": description, "key": dotted}``.

    Examples
    --------
    >>> from lib_typed_config.application.source import MapSource
    >>> merged, meta = merge_layers([
    ...     MapSource({"service": {"timeout": 5, "name": "a"}}, type="app"),
    ...     MapSource({"service": {"timeout": 10}}, type="env"),
    ... ])
    >>> merged.to_hierarchical()["service"], meta["service.timeout"]["source"]
    ({'timeout': 10, 'name': 'a'}, '[type: env]')
    """

    merged: Source = EmptySource()
    meta: dict[str, dict[str, str]] = {}
    for source in sources:
        merged = source.with_fallback(merged)
        _record(meta, source.tree, source.description, [])
    return merged, meta


def _record(meta: dict[str, dict[str, str]], node: TreeNode, description: str, segments: list[str]) -> None:
    """Recursively record *description* for every leaf below *node*."""

    if isinstance(node, ContainerNode):
        if segments:
            meta.pop(".".join(segments), None)
        for key, child in node.children.items():
            _record(meta, child, description, segments + [key])
        return
    if node is EMPTY or not segments:
        return
    dotted = ".".join(segments)
    _clear_branch(meta, dotted)
    meta[dotted] = {"source": description, "key": dotted}


def _clear_branch(meta: dict[str, dict[str, str]], prefix: str) -> None:
    """Remove provenance entries that belong to *prefix* or its descendants."""

    for meta_key in list(meta.keys()):
        if meta_key == prefix or meta_key.startswith(prefix + "."):
            meta.pop(meta_key, None)


__all__ = ["merge_layers"]
