"""Calendar helpers for month-keyed snapshots and fiscal years."""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator
from zoneinfo import ZoneInfo

from wealthtrack.services.errors import ValidationError

_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True, order=True)
class YearMonth:
    """A calendar month, rendered as ``YYYY-MM``."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValidationError(f"month must be between 1 and 12, got {self.month}")
        if not 1 <= self.year <= 9999:
            raise ValidationError(f"year out of range: {self.year}")

    @classmethod
    def parse(cls, value: str) -> "YearMonth":
        match = _YEAR_MONTH_RE.match(value.strip()) if value else None
        if match is None:
            raise ValidationError(f"Invalid year-month {value!r}; expected YYYY-MM")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def of(cls, day: date) -> "YearMonth":
        return cls(day.year, day.month)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def next(self) -> "YearMonth":
        if self.month == 12:
            return YearMonth(self.year + 1, 1)
        return YearMonth(self.year, self.month + 1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def month_range(start: YearMonth, end: YearMonth) -> list[YearMonth]:
    """Return every month from ``start`` to ``end`` inclusive."""

    if start > end:
        return []
    months: list[YearMonth] = []
    current = start
    while current <= end:
        months.append(current)
        current = current.next()
    return months


def add_months(day: date, months: int) -> date:
    """Shift ``day`` by whole months, clamping to the end of shorter months."""

    index = day.month - 1 + months
    year = day.year + index // 12
    month = index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def iter_monthly(start: date, end: date) -> Iterator[date]:
    """Yield ``start`` and the same day of each following month up to ``end``."""

    step = 0
    current = start
    while current <= end:
        yield current
        step += 1
        current = add_months(start, step)


def today(tz: str) -> date:
    return datetime.now(ZoneInfo(tz)).date()


def current_year_month(tz: str) -> YearMonth:
    return YearMonth.of(today(tz))


def fiscal_year_bounds(day: date, start_month: int = 4) -> tuple[date, date]:
    """Return the first and last day of the fiscal year containing ``day``."""

    start_year = day.year if day.month >= start_month else day.year - 1
    fy_start = date(start_year, start_month, 1)
    return fy_start, add_months(fy_start, 12) - timedelta(days=1)


__all__ = [
    "YearMonth",
    "month_range",
    "add_months",
    "iter_monthly",
    "today",
    "current_year_month",
    "fiscal_year_bounds",
]
