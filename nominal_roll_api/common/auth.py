# nominal_roll_api/common/auth.py
from __future__ import annotations

from functools import wraps

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from nominal_roll_api.common.http import fail
from nominal_roll_api.extensions import db
from nominal_roll_api.models.enums import UserRole
from nominal_roll_api.models.user import User

ADMIN_ROLES = (UserRole.ADMIN.value, UserRole.SUPERADMIN.value)


def current_user() -> User | None:
    """User behind the JWT of this request (session identity map makes repeat calls cheap)."""
    uid = get_jwt_identity()
    if uid is None or not str(uid).isdigit():
        return None
    return db.session.get(User, int(uid))


def requires_roles(*codes: str):
    """
    Require a signed-in user holding AT LEAST ONE of the given role codes.
    - No codes: any signed-in user passes.
    - 'superadmin' always passes.
    - Tokens minted for a single purpose (password reset) are refused.
    - Role comes from the JWT if present; falls back to DB.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            claims = get_jwt() or {}
            if claims.get("purpose"):
                return fail("Unauthorized", status=401)

            user = current_user()
            if user is None:
                return fail("Unauthorized", status=401)

            role = claims.get("role") or user.role
            if role == UserRole.SUPERADMIN.value or not codes:
                return fn(*args, **kwargs)
            if role not in codes:
                return fail("Forbidden", status=403)
            return fn(*args, **kwargs)
        return inner
    return outer


def requires_admin(fn):
    return requires_roles(*ADMIN_ROLES)(fn)
