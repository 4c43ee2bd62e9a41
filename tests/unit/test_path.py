"""Dotted path parsing and composition."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lib_typed_config.domain.errors import InvalidPathError
from lib_typed_config.domain.path import KeyPath, qualify, to_path

SEGMENT = st.text(alphabet="abcXYZ_019", min_size=1, max_size=6)


def test_parse_trims_whitespace_per_segment() -> None:
    """Whitespace around segments is not part of the name."""

    assert KeyPath.parse(" network . buffer ").segments == ("network", "buffer")


@pytest.mark.parametrize("text", ["a..b", "a.", ".a", " . "])
def test_parse_rejects_empty_segments(text: str) -> None:
    """An empty segment anywhere makes the whole path invalid."""

    with pytest.raises(InvalidPathError) as info:
        KeyPath.parse(text)
    assert info.value.path == text


def test_empty_string_is_the_self_path() -> None:
    path = KeyPath.parse("")
    assert path == KeyPath()
    assert path.is_empty()
    assert str(path) == ""


def test_sequence_access() -> None:
    """Indexing returns names, slicing returns paths."""

    path = KeyPath.parse("a.b.c")
    assert path[0] == "a"
    assert path[1:] == KeyPath(("b", "c"))
    assert len(path) == 3
    assert list(path) == ["a", "b", "c"]


def test_concatenation_and_prefix_checks() -> None:
    path = KeyPath.parse("a") + "b.c"
    assert path == KeyPath(("a", "b", "c"))
    assert path.starts_with(KeyPath.parse("a.b"))
    assert not path.starts_with(KeyPath.parse("b"))
    assert path.starts_with(KeyPath())


def test_paths_are_hashable_and_structural() -> None:
    assert {KeyPath.parse("a.b"), to_path(["a", "b"])} == {KeyPath(("a", "b"))}


def test_qualify_skips_empty_sides() -> None:
    assert qualify("network.buffer", "size") == "network.buffer.size"
    assert qualify("", "size") == "size"
    assert qualify("network", "") == "network"


@given(st.lists(SEGMENT, min_size=1, max_size=5))
def test_parse_round_trips_through_str(segments: list[str]) -> None:
    """Joining segments and parsing them back yields the same path."""

    path = KeyPath.parse(".".join(segments))
    assert path.segments == tuple(segments)
    assert KeyPath.parse(str(path)) == path
