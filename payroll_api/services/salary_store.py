# payroll_api/services/salary_store.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from flask import current_app

from payroll_api.extensions import db
from payroll_api.models.attendance import Attendance, Holiday
from payroll_api.models.profile import Profile, ROLE_EMPLOYEE
from payroll_api.models.salary import SalaryCycle, SalaryEarning, SalaryPayment
from payroll_api.services.salary_engine import AttendanceEntry, Identity, SalariedEmployee


# ---------- row serializers ----------
def _iso(v):
    return v.isoformat() if v else None

def _flt(x):
    return float(x) if x is not None else None

def row_cycle(c: SalaryCycle) -> Dict[str, Any]:
    return {
        "id": c.id,
        "year": c.year,
        "month": c.month,
        "locked_by": c.locked_by,
        "locked_at": _iso(c.locked_at),
    }

def row_earning(e: SalaryEarning) -> Dict[str, Any]:
    return {
        "id": e.id,
        "cycle_id": e.cycle_id,
        "employee_id": e.employee_id,
        "monthly_salary": _flt(e.monthly_salary),
        "total_eligible_working_days": e.total_eligible_working_days,
        "per_day_salary": _flt(e.per_day_salary),
        "gross_earned": _flt(e.gross_earned),
        "created_at": _iso(e.created_at),
    }

def row_payment(p: SalaryPayment) -> Dict[str, Any]:
    return {
        "id": p.id,
        "cycle_id": p.cycle_id,
        "employee_id": p.employee_id,
        "amount": _flt(p.amount),
        "note": p.note,
        "paid_at": _iso(p.paid_at),
    }


class SqlSalaryStore:
    """
    Record store backed by the app's own tables.

    The lock's writes share one session transaction: insert_cycle only
    flushes, commit() makes cycle and earnings visible together and
    discard_cycle() rolls both back.
    """

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    # --- lock engine reads ---
    def count_pending_attendance(self, start: date, end: date) -> int:
        return (
            self.session.query(Attendance.id)
            .filter(Attendance.date >= start, Attendance.date <= end)
            .filter(Attendance.is_approved.is_(None))
            .count()
        )

    def list_holiday_dates(self, start: date, end: date) -> List[date]:
        rows = (
            self.session.query(Holiday.date)
            .filter(Holiday.date >= start, Holiday.date <= end)
            .filter(Holiday.is_holiday.is_(True))
            .all()
        )
        return [r[0] for r in rows]

    def list_salaried_employees(self) -> List[SalariedEmployee]:
        rows = (
            self.session.query(Profile)
            .filter(Profile.role == ROLE_EMPLOYEE)
            .filter(Profile.is_active.is_(True))
            .filter(Profile.monthly_salary.isnot(None))
            .order_by(Profile.id.asc())
            .all()
        )
        return [SalariedEmployee(p.id, p.join_date, Decimal(str(p.monthly_salary))) for p in rows]

    def list_attendance(self, employee_id, start: date, end: date) -> List[AttendanceEntry]:
        rows = (
            self.session.query(Attendance)
            .filter(Attendance.employee_id == employee_id)
            .filter(Attendance.date >= start, Attendance.date <= end)
            .all()
        )
        return [AttendanceEntry(a.date, a.status, a.is_approved) for a in rows]

    # --- lock engine writes ---
    def insert_cycle(self, year: int, month: int, locked_by, locked_at: datetime):
        c = SalaryCycle(year=year, month=month, locked_by=locked_by, locked_at=locked_at)
        self.session.add(c)
        self.session.flush()
        return c.id

    def insert_earnings(self, rows: List[Dict[str, Any]]) -> None:
        self.session.add_all([SalaryEarning(**r) for r in rows])
        self.session.flush()

    def discard_cycle(self, cycle_id) -> None:
        self.session.rollback()

    def commit(self) -> None:
        self.session.commit()

    # --- projections ---
    def find_cycle(self, year: int, month: int) -> Optional[Dict[str, Any]]:
        c = (
            self.session.query(SalaryCycle)
            .filter_by(year=year, month=month)
            .order_by(SalaryCycle.id.asc())
            .first()
        )
        return row_cycle(c) if c else None

    def list_earnings(self, cycle_id) -> List[Dict[str, Any]]:
        q = self.session.query(SalaryEarning).filter_by(cycle_id=cycle_id).order_by(SalaryEarning.id.asc())
        return [row_earning(e) for e in q.all()]

    def list_payments(self, cycle_id) -> List[Dict[str, Any]]:
        q = self.session.query(SalaryPayment).filter_by(cycle_id=cycle_id).order_by(SalaryPayment.id.asc())
        return [row_payment(p) for p in q.all()]

    def insert_payment(self, cycle_id, employee_id, amount: Decimal, note: Optional[str], created_by=None) -> Dict[str, Any]:
        p = SalaryPayment(cycle_id=cycle_id, employee_id=employee_id, amount=amount,
                          note=note, created_by=created_by)
        self.session.add(p)
        self.session.commit()
        return row_payment(p)

    def employee_earnings(self, employee_id, limit: int = 12) -> List[Dict[str, Any]]:
        q = (
            self.session.query(SalaryEarning)
            .filter_by(employee_id=employee_id)
            .order_by(SalaryEarning.created_at.desc(), SalaryEarning.id.desc())
            .limit(limit)
        )
        return [row_earning(e) for e in q.all()]

    def employee_payments(self, employee_id, limit: int = 50) -> List[Dict[str, Any]]:
        q = (
            self.session.query(SalaryPayment)
            .filter_by(employee_id=employee_id)
            .order_by(SalaryPayment.paid_at.desc(), SalaryPayment.id.desc())
            .limit(limit)
        )
        return [row_payment(p) for p in q.all()]

    # --- identity ---
    def find_identity(self, user_id) -> Optional[Identity]:
        p = self.session.get(Profile, user_id)
        if not p:
            return None
        return Identity(user_id=p.id, role=p.role)


def get_salary_store():
    """Store for the current app, chosen by SALARY_STORE_BACKEND."""
    backend = (current_app.config.get("SALARY_STORE_BACKEND") or "sql").lower()
    if backend == "rest":
        from payroll_api.services.postgrest_store import RestSalaryStore
        return RestSalaryStore.from_config(current_app.config)
    return SqlSalaryStore()
