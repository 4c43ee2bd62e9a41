"""Duration and size literal parsing."""

from __future__ import annotations

from datetime import timedelta

import pytest

from lib_typed_config.domain.errors import ParseError
from lib_typed_config.domain.units import SizeInBytes, parse_duration


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1.5ms", timedelta(microseconds=1500)),
        ("P2DT3H4M", timedelta(days=2, hours=3, minutes=4)),
        ("PT1.5S", timedelta(seconds=1.5)),
        ("200", timedelta(milliseconds=200)),
        ("10 seconds", timedelta(seconds=10)),
        ("1m", timedelta(minutes=1)),
        ("2 hours", timedelta(hours=2)),
        ("1 day", timedelta(days=1)),
        ("500us", timedelta(microseconds=500)),
        ("-3s", timedelta(seconds=-3)),
    ],
)
def test_parse_duration(text: str, expected: timedelta) -> None:
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "ms", "10 fortnights", "1.2.3s"])
def test_parse_duration_rejects_malformed_input(text: str) -> None:
    with pytest.raises(ParseError):
        parse_duration(text)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1k", 1024),
        ("1K", 1024),
        ("1KiB", 1024),
        ("1.5kB", 1500),
        ("2 megabytes", 2_000_000),
        ("1 kibibyte", 1024),
        ("3G", 3 * 1024**3),
        ("42", 42),
        ("7 bytes", 7),
    ],
)
def test_parse_size(text: str, expected: int) -> None:
    assert SizeInBytes.parse(text).bytes == expected


@pytest.mark.parametrize("text", ["1kb", "", "kB", "-1", "1.x2k"])
def test_parse_size_rejects_malformed_input(text: str) -> None:
    """Lowercase ``kb`` is ambiguous and rejected like any unknown unit."""

    with pytest.raises(ParseError):
        SizeInBytes.parse(text)


def test_size_cannot_be_negative() -> None:
    with pytest.raises(ValueError):
        SizeInBytes(-1)


def test_size_converts_to_int() -> None:
    assert int(SizeInBytes(5)) == 5
    assert SizeInBytes.parse("1k") == SizeInBytes(1024)
