# payroll_api/services/postgrest_store.py
"""
Record store backed by a remote PostgREST (Supabase) project.

Reads and inserts go through the REST interface with the service-role key.
There is no cross-request transaction, so discard_cycle() deletes the cycle
row it is handed.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests

from payroll_api.common.errors import UpstreamError
from payroll_api.models.profile import ROLE_EMPLOYEE
from payroll_api.services.salary_engine import AttendanceEntry, Identity, SalariedEmployee

log = logging.getLogger(__name__)


def _d(s) -> Optional[date]:
    if not s:
        return None
    try:
        return date.fromisoformat(str(s)[:10])
    except ValueError:
        return None


def _jsonable(v):
    if isinstance(v, Decimal):
        return str(v)
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    return v


class PostgrestClient:
    def __init__(self, base_url: str, service_key: str, timeout: float = 30, session=None):
        if not base_url or not service_key:
            raise UpstreamError("POSTGREST_URL and POSTGREST_SERVICE_KEY must be configured")
        self.base = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.http = session or requests.Session()

    def _headers(self, bearer: Optional[str] = None, **extra) -> Dict[str, str]:
        h = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {bearer or self.service_key}",
        }
        h.update(extra)
        return h

    def _send(self, method: str, path: str, **kw):
        url = f"{self.base}{path}"
        try:
            res = self.http.request(method, url, timeout=self.timeout, **kw)
        except requests.RequestException as e:
            log.error("%s %s failed: %s", method, path, e)
            raise UpstreamError(str(e)) from e
        if not res.ok:
            log.error("%s %s -> %s: %s", method, path, res.status_code, res.text)
            raise UpstreamError(res.text or res.reason or "upstream request failed", status=res.status_code)
        return res

    def select(self, table: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        res = self._send("GET", f"/rest/v1/{table}", params=params, headers=self._headers())
        data = res.json()
        return data if isinstance(data, list) else []

    def insert(self, table: str, body, returning: bool = True):
        headers = self._headers(**{"Content-Type": "application/json"})
        if returning:
            headers["Prefer"] = "return=representation"
        res = self._send("POST", f"/rest/v1/{table}", json=body, headers=headers)
        return res.json() if returning else None

    def delete(self, table: str, params: Dict[str, Any]) -> None:
        self._send("DELETE", f"/rest/v1/{table}", params=params, headers=self._headers())

    def auth_user(self, token: str) -> Optional[Dict[str, Any]]:
        """User behind an access token, or None when the auth service rejects it."""
        try:
            res = self.http.get(f"{self.base}/auth/v1/user", headers=self._headers(bearer=token),
                                timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(str(e)) from e
        if not res.ok:
            return None
        user = res.json()
        return user if isinstance(user, dict) and user.get("id") else None


def _first(data) -> Dict[str, Any]:
    if isinstance(data, list):
        return data[0] if data else {}
    return data or {}


class RestSalaryStore:
    def __init__(self, client: PostgrestClient):
        self.client = client

    @classmethod
    def from_config(cls, config, session=None) -> "RestSalaryStore":
        return cls(PostgrestClient(
            config.get("POSTGREST_URL"),
            config.get("POSTGREST_SERVICE_KEY"),
            timeout=float(config.get("POSTGREST_TIMEOUT") or 30),
            session=session,
        ))

    @staticmethod
    def _range(start: date, end: date) -> List[str]:
        return [f"gte.{start.isoformat()}", f"lte.{end.isoformat()}"]

    # --- lock engine reads ---
    def count_pending_attendance(self, start: date, end: date) -> int:
        rows = self.client.select("attendance", {
            "date": self._range(start, end),
            "is_approved": "is.null",
            "select": "id,employee_id,date",
        })
        return len(rows)

    def list_holiday_dates(self, start: date, end: date) -> List[date]:
        rows = self.client.select("holidays", {
            "date": self._range(start, end),
            "select": "date,is_holiday",
        })
        return [_d(h["date"]) for h in rows if h.get("is_holiday")]

    def list_salaried_employees(self) -> List[SalariedEmployee]:
        rows = self.client.select("profiles", {
            "role": f"eq.{ROLE_EMPLOYEE}",
            "is_active": "eq.true",
            "monthly_salary": "not.is.null",
            "select": "id,join_date,monthly_salary",
        })
        return [
            SalariedEmployee(p["id"], _d(p.get("join_date")), Decimal(str(p["monthly_salary"])))
            for p in rows
        ]

    def list_attendance(self, employee_id, start: date, end: date) -> List[AttendanceEntry]:
        rows = self.client.select("attendance", {
            "employee_id": f"eq.{employee_id}",
            "date": self._range(start, end),
            "select": "date,status,is_approved",
        })
        return [AttendanceEntry(_d(a["date"]), a.get("status"), a.get("is_approved")) for a in rows]

    # --- lock engine writes ---
    def insert_cycle(self, year: int, month: int, locked_by, locked_at: datetime):
        data = self.client.insert("salary_cycles", {
            "year": year,
            "month": month,
            "locked_by": locked_by,
            "locked_at": locked_at.isoformat(),
        })
        return _first(data).get("id")

    def insert_earnings(self, rows: List[Dict[str, Any]]) -> None:
        body = [{k: _jsonable(v) for k, v in r.items()} for r in rows]
        self.client.insert("salary_earnings", body, returning=False)

    def discard_cycle(self, cycle_id) -> None:
        if cycle_id is None:
            return
        log.warning("deleting salary cycle %s after failed lock", cycle_id)
        self.client.delete("salary_cycles", {"id": f"eq.{cycle_id}"})

    def commit(self) -> None:
        pass

    # --- projections ---
    def find_cycle(self, year: int, month: int) -> Optional[Dict[str, Any]]:
        rows = self.client.select("salary_cycles", {
            "year": f"eq.{year}",
            "month": f"eq.{month}",
            "select": "*",
            "order": "id.asc",
            "limit": 1,
        })
        return rows[0] if rows else None

    def list_earnings(self, cycle_id) -> List[Dict[str, Any]]:
        return self.client.select("salary_earnings", {"cycle_id": f"eq.{cycle_id}", "select": "*"})

    def list_payments(self, cycle_id) -> List[Dict[str, Any]]:
        return self.client.select("salary_payments", {"cycle_id": f"eq.{cycle_id}", "select": "*"})

    def insert_payment(self, cycle_id, employee_id, amount: Decimal, note: Optional[str], created_by=None) -> Dict[str, Any]:
        data = self.client.insert("salary_payments", {
            "cycle_id": cycle_id,
            "employee_id": employee_id,
            "amount": _jsonable(amount),
            "note": note,
        })
        return _first(data)

    def employee_earnings(self, employee_id, limit: int = 12) -> List[Dict[str, Any]]:
        return self.client.select("salary_earnings", {
            "employee_id": f"eq.{employee_id}",
            "select": "id,cycle_id,monthly_salary,total_eligible_working_days,per_day_salary,gross_earned,created_at",
            "order": "created_at.desc",
            "limit": limit,
        })

    def employee_payments(self, employee_id, limit: int = 50) -> List[Dict[str, Any]]:
        return self.client.select("salary_payments", {
            "employee_id": f"eq.{employee_id}",
            "select": "id,cycle_id,amount,paid_at,note",
            "order": "paid_at.desc",
            "limit": limit,
        })

    # --- identity ---
    def find_identity(self, user_id) -> Optional[Identity]:
        rows = self.client.select("profiles", {"id": f"eq.{user_id}", "select": "role"})
        if not rows:
            return None
        return Identity(user_id=user_id, role=rows[0].get("role"))

    def resolve_token(self, token: str) -> Optional[Identity]:
        user = self.client.auth_user(token)
        if not user:
            return None
        return self.find_identity(user["id"])
