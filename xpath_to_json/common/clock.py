"""Clock collaborators for date placeholders in output templates.

The projector never reads the system time directly; it asks a Clock. Tests
pass a FixedClock to pin "today".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Protocol


class Clock(Protocol):
    """Source of the current date."""

    def today(self) -> date: ...


class SystemClock:
    """Clock reading the current UTC date."""

    def today(self) -> date:
        return datetime.now(timezone.utc).date()


@dataclass(frozen=True)
class FixedClock:
    """Clock that always returns the same date."""

    fixed: date

    def today(self) -> date:
        return self.fixed


# Reserved template identifiers rendered from the clock's date.
CLOCK_FIELDS: dict[str, Callable[[date], str]] = {
    "currentYear": lambda d: str(d.year),
    "currentMonth": lambda d: str(d.month),
    "currentDay": lambda d: str(d.day),
    "currentDate": lambda d: d.strftime("%Y-%m-%d"),
}
