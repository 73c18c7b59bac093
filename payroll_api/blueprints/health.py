from flask import Blueprint, jsonify
from sqlalchemy import text
from payroll_api.extensions import db

bp = Blueprint("health", __name__, url_prefix="/api")

@bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        db_ok = False
    return jsonify({"success": True, "status": "ok", "db": db_ok}), 200
