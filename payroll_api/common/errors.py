# payroll_api/common/errors.py
from flask import current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from payroll_api.common.http import fail
from payroll_api.extensions import db


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


# ---------- authorization ----------

class MissingToken(APIError):
    def __init__(self):
        super().__init__("MISSING_TOKEN", "Missing auth token", status_code=401)


class Unauthorized(APIError):
    def __init__(self, message="Invalid or expired token"):
        super().__init__("UNAUTHORIZED", message, status_code=401)


class Forbidden(APIError):
    def __init__(self, message="Not authorized"):
        super().__init__("NOT_AUTHORIZED", message, status_code=403)


# ---------- validation ----------

class ValidationError(APIError):
    def __init__(self, message, code="INVALID_PARAMETERS"):
        super().__init__(code, message, status_code=400)


# ---------- salary lock preconditions ----------

class PendingApprovals(APIError):
    """Attendance in the target month is still waiting for approval."""
    def __init__(self, count: int):
        super().__init__(
            "PENDING_APPROVALS",
            "Pending attendance approvals exist",
            status_code=400,
            payload={"count": count},
        )
        self.count = count


class PendingApprovalDuringProcessing(APIError):
    """
    An attendance row turned pending after the upfront check passed.
    The whole lock is abandoned; no earnings are written.
    """
    def __init__(self, employee_id=None, on_date=None):
        payload = None
        if employee_id is not None:
            payload = {"employee_id": employee_id, "date": on_date.isoformat() if on_date else None}
        super().__init__(
            "PENDING_DURING_PROCESSING",
            "Pending attendance found during processing",
            status_code=409,
            payload=payload,
        )


# ---------- record store ----------

class UpstreamError(APIError):
    def __init__(self, message, status=None):
        super().__init__(
            "UPSTREAM_ERROR",
            message,
            status_code=502,
            payload={"upstream_status": status} if status else None,
        )


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _dup(e: IntegrityError):
        db.session.rollback()
        return fail("Duplicate or FK constraint failed", status=409, code="CONSTRAINT_ERROR",
                    detail=str(e.orig) if getattr(e, "orig", None) else str(e))

    @app.errorhandler(Exception)
    def _500(e: Exception):
        current_app.logger.exception(e)
        return fail("Internal server error", status=500, code="UPSTREAM_ERROR", detail=str(e))
