"""Human-friendly duration and size literals.

Purpose
-------
Configuration files write ``"30s"`` or ``"512MiB"`` far more often than ISO
durations or raw byte counts. This module turns those literals into
:class:`datetime.timedelta` and :class:`SizeInBytes` values.

Contents
--------
* :func:`parse_duration` – ISO-8601 first, then ``<number><unit>``.
* :class:`SizeInBytes` – non-negative byte count with :meth:`SizeInBytes.parse`.

Both raise :class:`~lib_typed_config.domain.errors.ParseError` on malformed
input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Final

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import ParseError

_NANOS_PER_UNIT: Final[dict[str, int]] = {
    "": 1_000_000,
    "ms": 1_000_000,
    "millis": 1_000_000,
    "milliseconds": 1_000_000,
    "us": 1_000,
    "micros": 1_000,
    "microseconds": 1_000,
    "ns": 1,
    "nanos": 1,
    "nanoseconds": 1,
    "d": 86_400 * 10**9,
    "days": 86_400 * 10**9,
    "h": 3_600 * 10**9,
    "hours": 3_600 * 10**9,
    "s": 10**9,
    "seconds": 10**9,
    "m": 60 * 10**9,
    "minutes": 60 * 10**9,
}

_INTEGER = re.compile(r"[+-]?[0-9]+")
_DIGITS = re.compile(r"[0-9]+")
_MAX_BYTES: Final[int] = 2**63 - 1

_TIMEDELTA_ADAPTER: Final[TypeAdapter[timedelta]] = TypeAdapter(timedelta)


def _split_units(text: str) -> tuple[str, str]:
    """Split *text* into its number part and its trailing run of letters."""

    index = len(text)
    while index > 0 and text[index - 1].isalpha():
        index -= 1
    return text[:index].strip(), text[index:]


def parse_duration(text: str) -> timedelta:
    """Parse *text* as an ISO-8601 duration or a ``<number><unit>`` literal.

    Why
    ----
    Accept both the portable ISO form and the terse form operators type by
    hand. A bare number means milliseconds.

    Parameters
    ----------
    text:
        Literal such as ``"P2DT3H4M"``, ``"1.5ms"``, ``"10 seconds"``, ``"200"``.

    Returns
    -------
    datetime.timedelta
        Parsed duration; sub-microsecond precision is rounded away.

    Raises
    ------
    ParseError
        When the number or the unit cannot be understood.

    Examples
    --------
    >>> parse_duration("1.5ms") == timedelta(microseconds=1500)
    True
    >>> parse_duration("P2DT3H4M") == timedelta(days=2, hours=3, minutes=4)
    True
    >>> parse_duration("200") == timedelta(milliseconds=200)
    True
    """

    stripped = text.strip()
    if stripped.lstrip("+-")[:1] in ("P", "p"):
        try:
            return _TIMEDELTA_ADAPTER.validate_python(stripped)
        except PydanticValidationError:
            pass
    number, unit = _split_units(stripped)
    if not number:
        raise ParseError(f'no number in duration value "{text}"')
    if len(unit) > 2 and not unit.endswith("s"):
        unit += "s"
    nanos_per_unit = _NANOS_PER_UNIT.get(unit)
    if nanos_per_unit is None:
        raise ParseError(f'could not parse time unit "{unit}" (try ns, us, ms, s, m, h, d)')
    try:
        if _INTEGER.fullmatch(number):
            nanos = int(number) * nanos_per_unit
        else:
            nanos = int(Decimal(number) * nanos_per_unit)
    except (InvalidOperation, ValueError) as exc:
        raise ParseError(f'could not parse duration number "{number}"') from exc
    return timedelta(microseconds=round(nanos / 1000))


def _build_size_units() -> dict[str, int]:
    units: dict[str, int] = {"": 1, "b": 1, "B": 1, "byte": 1, "bytes": 1}
    decimal_prefixes = ("kilo", "mega", "giga", "tera", "peta", "exa", "zetta", "yotta")
    binary_prefixes = ("kibi", "mebi", "gibi", "tebi", "pebi", "exbi", "zebi", "yobi")
    for power, (decimal, binary) in enumerate(zip(decimal_prefixes, binary_prefixes), start=1):
        decimal_bytes = 1000**power
        binary_bytes = 1024**power
        units[f"{decimal}byte"] = units[f"{decimal}bytes"] = decimal_bytes
        units[f"{binary}byte"] = units[f"{binary}bytes"] = binary_bytes
        letter = binary[0]
        units[letter] = units[letter.upper()] = binary_bytes
        units[f"{letter.upper()}i"] = units[f"{letter.upper()}iB"] = binary_bytes
        units[f"{decimal[0]}B" if power == 1 else f"{decimal[0].upper()}B"] = decimal_bytes
    return units


_SIZE_UNITS: Final[dict[str, int]] = _build_size_units()


@dataclass(frozen=True, slots=True)
class SizeInBytes:
    """A non-negative number of bytes.

    Examples
    --------
    >>> SizeInBytes.parse("1k").bytes, SizeInBytes.parse("1.5kB").bytes
    (1024, 1500)
    >>> SizeInBytes(-1)
    Traceback (most recent call last):
    ...
    ValueError: size in bytes cannot be negative
    """

    bytes: int

    def __post_init__(self) -> None:
        if self.bytes < 0:
            raise ValueError("size in bytes cannot be negative")

    @classmethod
    def parse(cls, text: str) -> "SizeInBytes":
        """Parse ``<number><unit>`` where units follow the kB/KiB conventions.

        ``k``, ``K``, ``Ki``, ``KiB`` and ``kibibytes`` are powers of two;
        ``kB``, ``MB`` and ``kilobytes`` are powers of ten.
        """

        number, unit = _split_units(text.strip())
        if not number:
            raise ParseError(f'no number in size-in-bytes value "{text}"')
        multiplier = _SIZE_UNITS.get(unit)
        if multiplier is None:
            raise ParseError(f'could not parse size-in-bytes unit "{unit}" (try k, K, kB, KiB, kilobytes, kibibytes)')
        try:
            if _DIGITS.fullmatch(number):
                result = int(number) * multiplier
            else:
                result = int(Decimal(number) * multiplier)
        except (InvalidOperation, ValueError) as exc:
            raise ParseError(f'could not parse size-in-bytes number "{number}"') from exc
        if result < 0 or result > _MAX_BYTES:
            raise ParseError(f'size-in-bytes value is out of range for a 64-bit long: "{text}"')
        return cls(result)

    def __int__(self) -> int:
        return self.bytes


__all__ = ["SizeInBytes", "parse_duration"]
