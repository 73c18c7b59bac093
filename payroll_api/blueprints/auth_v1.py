from datetime import timedelta

from flask import Blueprint, g, request, jsonify
from flask_jwt_extended import create_access_token

from payroll_api.common.auth import identity_required
from payroll_api.common.http import ok
from payroll_api.models.profile import Profile

bp = Blueprint("auth_v1", __name__, url_prefix="/api/v1/auth")

def _profile_payload(p: Profile):
    return {"id": p.id, "email": p.email, "full_name": p.full_name, "role": p.role}

@bp.post("/login")
def login():
    data = request.get_json(silent=True, force=True)
    if not isinstance(data, dict):
        data = {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    p = Profile.query.filter_by(email=email).first()
    if not p or not p.is_active or not p.check_password(password):
        return jsonify({"success": False, "error": {"message": "Invalid credentials"}}), 401

    access = create_access_token(
        identity=str(p.id),
        additional_claims={"email": p.email, "name": p.full_name},
        expires_delta=timedelta(days=1),
    )
    return jsonify({"success": True, "access": access, "user": _profile_payload(p)}), 200

@bp.get("/me")
@identity_required
def me():
    return ok({"id": g.identity.user_id, "role": g.identity.role})
