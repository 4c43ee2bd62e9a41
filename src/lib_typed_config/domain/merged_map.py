"""Two-map facade/fallback view used to merge feature maps without copying."""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Iterator, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class MergedMap(MutableMapping[K, V]):
    """Present *facade* over *fallback* as one mutable mapping.

    Reads check the facade first, writes always land in the facade, deletions
    remove the key from whichever side holds it, and iteration yields the
    union of both key sets with facade entries shadowing fallback ones.

    Both maps are stored by reference; when either is read-only the
    corresponding mutating operation raises ``TypeError``.

    Examples
    --------
    >>> merged = MergedMap(fallback={"b": 3, "c": 4}, facade={"a": 1, "b": 2})
    >>> dict(merged)
    {'a': 1, 'b': 2, 'c': 4}
    >>> merged["d"] = 5
    >>> merged.facade["d"], "d" in merged.fallback
    (5, False)
    """

    def __init__(self, fallback: MutableMapping[K, V], facade: MutableMapping[K, V]) -> None:
        self.fallback = fallback
        self.facade = facade

    def __getitem__(self, key: K) -> V:
        if key in self.facade:
            return self.facade[key]
        return self.fallback[key]

    def __setitem__(self, key: K, value: V) -> None:
        self.facade[key] = value

    def __delitem__(self, key: K) -> None:
        found = False
        if key in self.facade:
            del self.facade[key]
            found = True
        if key in self.fallback:
            del self.fallback[key]
            found = True
        if not found:
            raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        return key in self.facade or key in self.fallback

    def __iter__(self) -> Iterator[K]:
        yield from self.facade
        for key in self.fallback:
            if key not in self.facade:
                yield key

    def __len__(self) -> int:
        return len(self.facade) + sum(1 for key in self.fallback if key not in self.facade)

    def clear(self) -> None:
        self.facade.clear()
        self.fallback.clear()

    def __repr__(self) -> str:
        return f"MergedMap({dict(self)!r})"


__all__ = ["MergedMap"]
