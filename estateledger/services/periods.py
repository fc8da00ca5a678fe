from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

_YEAR_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True, order=True)
class YearMonth:
    """A calendar month. Ordering is chronological."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month out of range: {self.month}")
        if not 1 <= self.year <= 9999:
            raise ValueError(f"Year out of range: {self.year}")

    @classmethod
    def from_date(cls, value: date) -> "YearMonth":
        return cls(value.year, value.month)

    @classmethod
    def parse(cls, value: str) -> "YearMonth":
        match = _YEAR_MONTH_PATTERN.match((value or "").strip())
        if not match:
            raise ValueError(f"Not a YYYY-MM month: {value!r}")
        return cls(int(match.group(1)), int(match.group(2)))

    def add_months(self, count: int) -> "YearMonth":
        return YearMonth.from_date(self.first_day() + relativedelta(months=count))

    def next(self) -> "YearMonth":
        return self.add_months(1)

    def previous(self) -> "YearMonth":
        return self.add_months(-1)

    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def contains(self, value: date) -> bool:
        return self.first_day() <= value <= self.last_day()

    def label(self) -> str:
        return self.first_day().strftime("%B %Y")

    def short_label(self) -> str:
        return self.first_day().strftime("%b %Y")

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def parse_date(value: Any) -> Optional[date]:
    """Coerce stored date values (date, datetime or ISO text) to a date; None when unusable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return isoparse(text).date()
        except (ValueError, OverflowError):
            return None
    return None


def parse_year_month(value: Optional[str]) -> Optional[YearMonth]:
    if not value:
        return None
    try:
        return YearMonth.parse(value)
    except ValueError:
        return None
