# payroll_api/common/auth.py
from __future__ import annotations

import re
from functools import wraps
from typing import Optional

from flask import current_app, g, request
from flask_jwt_extended import decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from payroll_api.common.errors import MissingToken, Unauthorized
from payroll_api.services.salary_engine import Identity, authorize_admin
from payroll_api.services.salary_store import SqlSalaryStore, get_salary_store

_BEARER = re.compile(r"^Bearer\s+", re.IGNORECASE)


# ---------- helpers ----------

def bearer_token() -> str:
    auth = request.headers.get("Authorization", "")
    return _BEARER.sub("", auth).strip()


def resolve_jwt(token: str) -> Optional[Identity]:
    """
    Map a flask-jwt-extended access token to the profile it was issued for.
    The role always comes from the profile row, never from token claims.
    """
    try:
        claims = decode_token(token)
        user_id = int(claims["sub"])
    except (JWTExtendedException, PyJWTError, KeyError, TypeError, ValueError):
        return None
    return SqlSalaryStore().find_identity(user_id)


def resolve_identity(token: str) -> Optional[Identity]:
    store = get_salary_store()
    if hasattr(store, "resolve_token"):
        return store.resolve_token(token)
    return resolve_jwt(token)


# ---------- decorators ----------

def identity_required(fn):
    """Any resolvable caller; the identity is stored on g.identity."""
    @wraps(fn)
    def inner(*args, **kwargs):
        token = bearer_token()
        if not token:
            raise MissingToken()
        identity = resolve_identity(token)
        if identity is None:
            raise Unauthorized()
        g.identity = identity
        return fn(*args, **kwargs)
    return inner


def admin_required(fn):
    @wraps(fn)
    def inner(*args, **kwargs):
        token = bearer_token()
        if not token:
            raise MissingToken()
        g.identity = authorize_admin(resolve_identity, token)
        current_app.logger.debug("admin %s authorized for %s", g.identity.user_id, request.path)
        return fn(*args, **kwargs)
    return inner
