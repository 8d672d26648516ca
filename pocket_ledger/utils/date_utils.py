"""Month key and clock utilities

Month keys are zero-padded ``YYYY-MM`` strings, so plain string comparison
orders them chronologically.
"""

import calendar
import re
from datetime import date
from typing import List

from pocket_ledger.domain.exceptions import InvalidMonthError

_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def month_key(value: date) -> str:
    """Canonical YYYY-MM key for a date"""
    return f"{value.year:04d}-{value.month:02d}"


def validate_month(month: str) -> str:
    """Return the month unchanged, or raise InvalidMonthError"""
    if not isinstance(month, str) or not _MONTH_RE.match(month):
        raise InvalidMonthError(f"Invalid month key: {month!r} (expected YYYY-MM)")
    return month


def parse_month(month: str) -> tuple[int, int]:
    validate_month(month)
    year, mon = month.split("-")
    return int(year), int(mon)


def next_month(month: str) -> str:
    year, mon = parse_month(month)
    if mon == 12:
        return f"{year + 1:04d}-01"
    return f"{year:04d}-{mon + 1:02d}"


def previous_month(month: str) -> str:
    year, mon = parse_month(month)
    if mon == 1:
        return f"{year - 1:04d}-12"
    return f"{year:04d}-{mon - 1:02d}"


def months_in_range(start: str, end: str) -> List[str]:
    """All month keys from start to end (inclusive); empty if start > end"""
    validate_month(end)
    months = []
    current = validate_month(start)
    while current <= end:
        months.append(current)
        current = next_month(current)
    return months


def day_in_month(month: str, day: int) -> date:
    """Date for a day-of-month, clamped to the month's last day"""
    year, mon = parse_month(month)
    last_day = calendar.monthrange(year, mon)[1]
    return date(year, mon, max(1, min(day, last_day)))


class Clock:
    """Source of "today" for the engines"""

    def today(self) -> date:
        raise NotImplementedError

    def current_month(self) -> str:
        return month_key(self.today())


class SystemClock(Clock):
    def today(self) -> date:
        return date.today()


class FixedClock(Clock):
    """Clock pinned to a date; tests move it across month boundaries"""

    def __init__(self, today: date):
        self._today = today

    def today(self) -> date:
        return self._today

    def set(self, today: date) -> None:
        self._today = today
