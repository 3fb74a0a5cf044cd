"""Placeholder parsing for output templates.

A template string of the exact form ``{identifier}`` is a placeholder.
Parsing happens once, when a template is compiled, and yields one of a
closed set of variants:

- ``Lookup``: plain raw-data lookup by rule name;
- ``ClockField``: ``currentYear``, ``currentMonth``, ``currentDay``,
  ``currentDate``;
- ``MonthExpansion``: ``months``;
- ``DayIndex``: ``daysN``;
- ``DayRange``: ``daysN-M``.

Examples:
    >>> parse_placeholder("{price}")
    Lookup(name='price')
    >>> parse_placeholder("{days1-31}")
    DayRange(start=1, end=31)
    >>> parse_placeholder("price") is None
    True
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from xpath_to_json.common.clock import CLOCK_FIELDS

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")
_DAY_INDEX_RE = re.compile(r"days(\d+)")
_DAY_RANGE_RE = re.compile(r"days(\d+)-(\d+)")


@dataclass(frozen=True)
class Lookup:
    name: str


@dataclass(frozen=True)
class ClockField:
    name: str


@dataclass(frozen=True)
class MonthExpansion:
    pass


@dataclass(frozen=True)
class DayIndex:
    index: int


@dataclass(frozen=True)
class DayRange:
    start: int
    end: int


Placeholder = Lookup | ClockField | MonthExpansion | DayIndex | DayRange


def parse_placeholder(text: str) -> Placeholder | None:
    """Parse a template string into a placeholder.

    Args:
        text: A string taken from a template (key or value).

    Returns:
        The placeholder variant, or None if the string is not a placeholder.
    """
    identifier = placeholder_identifier(text)
    if identifier is None:
        return None

    if identifier in CLOCK_FIELDS:
        return ClockField(identifier)
    if identifier == "months":
        return MonthExpansion()
    if day := _DAY_INDEX_RE.fullmatch(identifier):
        return DayIndex(int(day.group(1)))
    if days := _DAY_RANGE_RE.fullmatch(identifier):
        return DayRange(int(days.group(1)), int(days.group(2)))
    return Lookup(identifier)


def placeholder_identifier(text: Any) -> str | None:
    """Return the identifier inside ``{...}``, or None for other values."""
    if not isinstance(text, str):
        return None
    match = _PLACEHOLDER_RE.fullmatch(text)
    return match.group(1) if match else None
