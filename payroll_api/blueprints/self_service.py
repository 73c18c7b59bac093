from flask import Blueprint, g, request

from payroll_api.common.auth import identity_required
from payroll_api.common.http import ok
from payroll_api.services.salary_store import get_salary_store

self_service_bp = Blueprint("self_service", __name__, url_prefix="/api/v1/self")

def _limit(name: str, default: int, cap: int) -> int:
    try:
        return min(max(int(request.args.get(name, default)), 1), cap)
    except (TypeError, ValueError):
        return default

@self_service_bp.route("/salary", methods=["GET"])
@identity_required
def own_salary():
    """
    Earnings snapshots and recorded payments for the logged-in employee,
    most recent first.
    """
    store = get_salary_store()
    uid = g.identity.user_id
    return ok({
        "earnings": store.employee_earnings(uid, limit=_limit("earnings_limit", 12, 60)),
        "payments": store.employee_payments(uid, limit=_limit("payments_limit", 50, 200)),
    })
