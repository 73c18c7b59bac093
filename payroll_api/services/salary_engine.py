# payroll_api/services/salary_engine.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from payroll_api.common.errors import (
    Forbidden,
    PendingApprovalDuringProcessing,
    PendingApprovals,
    Unauthorized,
)
from payroll_api.models.attendance import STATUS_HALF_DAY, STATUS_PRESENT
from payroll_api.models.profile import ROLE_ADMIN
from payroll_api.services.salary_calendar import (
    EligibilityCalendar,
    EligibleDay,
    HolidayCalendar,
    Period,
    build_eligibility_calendar,
)

log = logging.getLogger(__name__)

GROSS_QUANTUM = Decimal("0.01")
HALF_DAY_FACTOR = Decimal("0.5")
ZERO = Decimal("0")


# ---------- value objects ----------

@dataclass(frozen=True)
class Identity:
    user_id: Any
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass(frozen=True)
class SalariedEmployee:
    id: Any
    join_date: Optional[date]
    monthly_salary: Decimal


@dataclass(frozen=True)
class AttendanceEntry:
    date: date
    status: str
    is_approved: Optional[bool]  # None = pending


class AttendanceIndex:
    """Read-only view of one employee's attendance keyed by date."""

    __slots__ = ("_by_date",)

    def __init__(self, by_date: Mapping[date, AttendanceEntry]):
        self._by_date = MappingProxyType(dict(by_date))

    @classmethod
    def from_entries(cls, entries: Iterable[AttendanceEntry]) -> "AttendanceIndex":
        return cls({e.date: e for e in entries})

    def get(self, d: date) -> Optional[AttendanceEntry]:
        return self._by_date.get(d)

    def __len__(self):
        return len(self._by_date)


@dataclass(frozen=True)
class EarningSnapshot:
    employee_id: Any
    monthly_salary: Decimal
    total_eligible_working_days: int
    per_day_salary: Decimal
    gross_earned: Decimal

    def as_row(self, cycle_id) -> Dict[str, Any]:
        return {
            "cycle_id": cycle_id,
            "employee_id": self.employee_id,
            "monthly_salary": self.monthly_salary,
            "total_eligible_working_days": self.total_eligible_working_days,
            "per_day_salary": self.per_day_salary,
            "gross_earned": self.gross_earned,
        }


@dataclass(frozen=True)
class LockResult:
    cycle_id: Any
    inserted: int


# ---------- precondition gate ----------

def authorize_admin(resolve: Callable[[str], Optional[Identity]], token: str) -> Identity:
    identity = resolve(token) if token else None
    if identity is None or identity.user_id is None:
        raise Unauthorized()
    if not identity.is_admin:
        raise Forbidden()
    return identity


def ensure_no_pending_approvals(store, period: Period) -> None:
    pending = store.count_pending_attendance(period.start, period.end)
    if pending:
        log.warning("salary lock refused for %s..%s: %d pending approvals",
                    period.start, period.end, pending)
        raise PendingApprovals(pending)


# ---------- earnings computer ----------

def day_credit(day: EligibleDay, entry: Optional[AttendanceEntry], per_day: Decimal, employee_id=None) -> Decimal:
    if day.is_holiday:
        return per_day
    if entry is None:
        # no row is the same as absent
        return ZERO
    if entry.is_approved is None:
        raise PendingApprovalDuringProcessing(employee_id, day.date)
    if entry.is_approved is False:
        return ZERO
    if entry.status == STATUS_PRESENT:
        return per_day
    if entry.status == STATUS_HALF_DAY:
        return per_day * HALF_DAY_FACTOR
    # absent / on_leave: leave pay is handled outside the lock
    return ZERO


def compute_earning(
    employee: SalariedEmployee,
    eligible: EligibilityCalendar,
    attendance: AttendanceIndex,
) -> EarningSnapshot:
    """Gross pay for one employee; raises PendingApprovalDuringProcessing on a pending row."""
    per_day = eligible.per_day_salary(employee.monthly_salary)
    gross = sum(
        (day_credit(day, attendance.get(day.date), per_day, employee.id) for day in eligible),
        ZERO,
    )
    return EarningSnapshot(
        employee_id=employee.id,
        monthly_salary=Decimal(str(employee.monthly_salary)),
        total_eligible_working_days=eligible.total_eligible_working_days,
        per_day_salary=per_day,
        gross_earned=gross.quantize(GROSS_QUANTUM, rounding=ROUND_HALF_UP),
    )


def compute_cycle_earnings(store, period: Period, holidays: HolidayCalendar) -> List[EarningSnapshot]:
    out: List[EarningSnapshot] = []
    for emp in store.list_salaried_employees():
        eligible = build_eligibility_calendar(period, emp.join_date, holidays)
        if not eligible:
            log.debug("employee %s has no eligible days in %s..%s, skipped",
                      emp.id, period.start, period.end)
            continue
        attendance = AttendanceIndex.from_entries(
            store.list_attendance(emp.id, period.start, period.end)
        )
        out.append(compute_earning(emp, eligible, attendance))
    return out


# ---------- lock ----------

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _discard(store, cycle_id) -> None:
    # the lock's own failure is what the caller must see
    try:
        store.discard_cycle(cycle_id)
    except Exception:
        log.exception("could not discard salary cycle %s", cycle_id)


def lock_salary_cycle(
    store,
    year: int,
    month: int,
    admin_id,
    now: Callable[[], datetime] = _utcnow,
) -> LockResult:
    """
    Lock (year, month): refuse while approvals are pending, register the cycle,
    snapshot gross earnings for every active salaried employee and write them
    as one batch. Any failure after the cycle is registered discards it.

    The cycle is inserted without checking for an existing one for the same
    period; uniqueness is left to the store.
    """
    period = Period.for_month(year, month)
    log.info("locking salary cycle %04d-%02d (admin=%s)", year, month, admin_id)

    ensure_no_pending_approvals(store, period)

    cycle_id = store.insert_cycle(year, month, admin_id, now())
    log.info("salary cycle %s registered for %04d-%02d", cycle_id, year, month)

    try:
        holidays = HolidayCalendar.from_dates(store.list_holiday_dates(period.start, period.end))
        earnings = compute_cycle_earnings(store, period, holidays)
        if earnings:
            store.insert_earnings([e.as_row(cycle_id) for e in earnings])
        store.commit()
    except PendingApprovalDuringProcessing:
        log.error("pending attendance appeared while locking %04d-%02d; aborting", year, month)
        _discard(store, cycle_id)
        raise
    except Exception:
        log.exception("salary lock %04d-%02d failed; discarding cycle %s", year, month, cycle_id)
        _discard(store, cycle_id)
        raise

    log.info("salary cycle %s locked with %d earnings rows", cycle_id, len(earnings))
    return LockResult(cycle_id=cycle_id, inserted=len(earnings))
