from __future__ import annotations
from datetime import MAXYEAR as MAX_YEAR, MINYEAR as MIN_YEAR
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from flask import Blueprint, g, request

from payroll_api.common.auth import admin_required
from payroll_api.common.errors import ValidationError
from payroll_api.common.http import ok
from payroll_api.services.salary_engine import lock_salary_cycle
from payroll_api.services.salary_store import get_salary_store

bp = Blueprint("salary", __name__, url_prefix="/api/v1/salary")

# ---------- helpers ----------
def _body() -> Dict[str, Any]:
    """JSON object body; an empty body counts as {}."""
    if not request.get_data(cache=True).strip():
        return {}
    data = request.get_json(silent=True, force=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON body", code="INVALID_BODY")
    return data

def _period(src) -> tuple[int, int]:
    year, month = src.get("year"), src.get("month")
    if not year or not month:
        raise ValidationError("year and month required", code="MISSING_PARAMETERS")
    year, month = _whole(year), _whole(month)
    if year is None or month is None:
        raise ValidationError("year and month must be integers")
    if not (1 <= month <= 12):
        raise ValidationError("month must be between 1 and 12")
    if not (MIN_YEAR <= year <= MAX_YEAR):
        raise ValidationError(f"year must be between {MIN_YEAR} and {MAX_YEAR}")
    return year, month

def _whole(x) -> Optional[int]:
    # 2025, 2025.0 and "2025" pass; 2025.9 and true do not
    if isinstance(x, bool):
        return None
    if isinstance(x, int):
        return x
    if isinstance(x, float):
        return int(x) if x.is_integer() else None
    if isinstance(x, str) and x.strip().lstrip("-").isdigit():
        return int(x)
    return None

def _ident(x):
    # numeric ids for local tables, anything else (uuids) passed through
    if isinstance(x, str) and x.strip().isdigit():
        return int(x)
    return x

def _dec(x) -> Optional[Decimal]:
    if x is None or x == "":
        return None
    try:
        return Decimal(str(x))
    except InvalidOperation:
        return None

# ---------- routes ----------
@bp.post("/lock")
@admin_required
def lock_cycle():
    year, month = _period(_body())
    result = lock_salary_cycle(get_salary_store(), year, month, g.identity.user_id)
    return ok({"cycle_id": result.cycle_id, "inserted": result.inserted})

@bp.get("/cycle")
@admin_required
def get_cycle():
    year, month = _period(request.args)
    store = get_salary_store()
    cycle = store.find_cycle(year, month)
    if cycle is None:
        return ok({"cycle": None, "earnings": [], "payments": []})
    return ok({
        "cycle": cycle,
        "earnings": store.list_earnings(cycle["id"]),
        "payments": store.list_payments(cycle["id"]),
    })

@bp.post("/payments")
@admin_required
def add_payment():
    j = _body()
    cycle_id, employee_id, amount = j.get("cycle_id"), j.get("employee_id"), j.get("amount")
    if not cycle_id or not employee_id or not amount:
        raise ValidationError("cycle_id, employee_id, amount required", code="MISSING_PARAMETERS")
    amt = _dec(amount)
    if amt is None or not amt.is_finite() or amt <= 0:
        raise ValidationError("amount must be a positive number")
    note = j.get("note")
    if note is not None:
        note = str(note).strip()[:255] or None

    row = get_salary_store().insert_payment(
        _ident(cycle_id), _ident(employee_id), amt, note, created_by=g.identity.user_id,
    )
    return ok(row, 201)
