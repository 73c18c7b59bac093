# payroll_api/services/salary_calendar.py
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Iterator, Optional, Tuple

# Sunday is the only weekly off-day
WEEKLY_OFF_DAY = calendar.SUNDAY

PER_DAY_QUANTUM = Decimal("0.000001")


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from `start` through `end` inclusive."""
    cur = start
    while cur <= end:
        yield cur
        cur += timedelta(days=1)


@dataclass(frozen=True)
class Period:
    """Inclusive date range of one salary month."""
    start: date
    end: date

    @classmethod
    def for_month(cls, year: int, month: int) -> "Period":
        last = calendar.monthrange(year, month)[1]
        return cls(date(year, month, 1), date(year, month, last))

    def __iter__(self) -> Iterator[date]:
        return iter_dates(self.start, self.end)

    def from_date(self, since: Optional[date]) -> "Period":
        """Clip the start to `since` when it falls later than the period start."""
        if since is None or since <= self.start:
            return self
        return Period(since, self.end)


@dataclass(frozen=True)
class HolidayCalendar:
    dates: frozenset = frozenset()

    @classmethod
    def from_dates(cls, dates: Iterable[date]) -> "HolidayCalendar":
        return cls(frozenset(dates))

    def __contains__(self, d: date) -> bool:
        return d in self.dates


@dataclass(frozen=True)
class EligibleDay:
    date: date
    is_holiday: bool


@dataclass(frozen=True)
class EligibilityCalendar:
    days: Tuple[EligibleDay, ...] = ()

    @property
    def total_eligible_working_days(self) -> int:
        return len(self.days)

    def __bool__(self) -> bool:
        return bool(self.days)

    def __iter__(self) -> Iterator[EligibleDay]:
        return iter(self.days)

    def per_day_salary(self, monthly_salary) -> Decimal:
        """Monthly salary amortized over the eligible days, rounded to 6 places."""
        if not self.days:
            raise ValueError("no eligible days to spread the salary over")
        rate = Decimal(str(monthly_salary)) / Decimal(self.total_eligible_working_days)
        return rate.quantize(PER_DAY_QUANTUM, rounding=ROUND_HALF_UP)


def build_eligibility_calendar(
    period: Period,
    join_date: Optional[date],
    holidays: HolidayCalendar,
) -> EligibilityCalendar:
    """
    Paid days for one employee: every non-Sunday from max(join_date, period.start)
    through period.end. Holidays stay in the list, flagged, and are paid
    regardless of attendance. An employee who joins after the period ends gets
    an empty calendar.
    """
    days = tuple(
        EligibleDay(d, d in holidays)
        for d in period.from_date(join_date)
        if d.weekday() != WEEKLY_OFF_DAY
    )
    return EligibilityCalendar(days)
