import hashlib
import hmac
from datetime import timedelta

from flask import Blueprint, current_app
from flask_jwt_extended import (
    create_access_token, create_refresh_token, decode_token,
    jwt_required, get_jwt_identity,
)
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from nominal_roll_api.common.auth import current_user, requires_roles
from nominal_roll_api.common.errors import Conflict, NotFound, ValidationFailed
from nominal_roll_api.common.http import ok, fail, json_body
from nominal_roll_api.common.rows import staff_row, user_row
from nominal_roll_api.extensions import db
from nominal_roll_api.models.enums import UserRole
from nominal_roll_api.models.staff import StaffMember
from nominal_roll_api.models.user import User
from nominal_roll_api.services.access import actor_staff, check_login_gate, login_authorised

bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")

MIN_PASSWORD = 6
RESET_PURPOSE = "password_reset"


def _claims(u: User) -> dict:
    return {"role": u.role, "emiscode": u.emiscode, "staff_id": u.staff_id, "name": u.full_name}


def _password_stamp(u: User) -> str:
    """Changes whenever the password does, so a reset token works once."""
    return hashlib.sha256(u.password_hash.encode("utf-8")).hexdigest()[:16]


def _check_password_rules(pw: str):
    if len(pw or "") < MIN_PASSWORD:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD} characters long.")


def _find_login(identifier: str) -> User | None:
    identifier = (identifier or "").strip()
    if not identifier:
        return None
    if "@" in identifier:
        return User.query.filter_by(email=identifier.lower()).first()
    return User.query.filter_by(staff_id=identifier).first()


@bp.post("/signup")
def signup():
    data = json_body()
    staff_id = (data.get("staff_id") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    try:
        emiscode = int(data.get("emiscode"))
    except (TypeError, ValueError):
        raise ValidationFailed("staff_id, emiscode, email and password are required")
    if not (staff_id and email and password):
        raise ValidationFailed("staff_id, emiscode, email and password are required")
    _check_password_rules(password)

    staff = (StaffMember.active()
             .filter(StaffMember.staff_id == staff_id, StaffMember.emiscode == emiscode)
             .first())
    if not staff:
        raise NotFound("No staff record matches this Staff ID and EMIS code.")
    if User.query.filter((User.email == email) | (User.staff_id == staff_id)).first():
        raise Conflict("An account with this email or Staff ID already exists.")

    role = UserRole.ADMIN if (staff.stafftype or "").strip().lower() == "headteacher" else UserRole.TEACHER
    u = User(email=email, staff_id=staff_id, emiscode=emiscode, role=role.value, full_name=staff.name)
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    current_app.logger.info("signup staff_id=%s role=%s", staff_id, u.role)
    return ok(user_row(u, authorised=login_authorised(u, staff)), status=201)


@bp.post("/login")
def login():
    data = json_body()
    identifier = data.get("identifier") or data.get("email") or data.get("staff_id")
    u = _find_login(identifier)
    if not u or not u.check_password(data.get("password") or ""):
        return fail("Invalid credentials", status=401)

    staff = check_login_gate(u)
    claims = _claims(u)
    access = create_access_token(identity=str(u.id), additional_claims=claims)
    refresh = create_refresh_token(identity=str(u.id), additional_claims={"role": u.role})
    return ok({
        "access": access,
        "refresh": refresh,
        "user": user_row(u, authorised=True),
        "staff": staff_row(staff) if staff else None,
    })


@bp.post("/refresh")
@jwt_required(refresh=True)
def refresh():
    uid = get_jwt_identity()
    u = db.session.get(User, int(uid)) if uid and str(uid).isdigit() else None
    if not u:
        return fail("Unauthorized", status=401)
    check_login_gate(u)
    return ok({"access": create_access_token(identity=str(u.id), additional_claims=_claims(u))})


@bp.post("/logout")
@requires_roles()
def logout():
    # tokens are stateless; the client discards them
    return ok({"logged_out": True})


@bp.get("/me")
@requires_roles()
def me():
    u = current_user()
    staff = actor_staff(u)
    return ok({
        "user": user_row(u, authorised=login_authorised(u, staff)),
        "staff": staff_row(staff) if staff else None,
    })


@bp.post("/change-password")
@requires_roles()
def change_password():
    data = json_body()
    u = current_user()
    if not u.check_password(data.get("current_password") or ""):
        raise ValidationFailed("Current password is incorrect.")
    new_pw = data.get("new_password") or ""
    _check_password_rules(new_pw)
    u.set_password(new_pw)
    db.session.commit()
    return ok({"changed": True})


@bp.post("/password-reset")
def password_reset_request():
    """Always answers the same way so the endpoint cannot be used to probe accounts."""
    data = json_body()
    u = _find_login(data.get("email") or data.get("identifier"))
    out = {"requested": True}
    if u:
        minutes = current_app.config.get("RESET_TOKEN_MINUTES", 30)
        token = create_access_token(
            identity=str(u.id),
            additional_claims={"purpose": RESET_PURPOSE, "pwd": _password_stamp(u)},
            expires_delta=timedelta(minutes=minutes),
        )
        # no mail transport in this deployment; operators pick the token up from the log
        current_app.logger.info("password reset requested user=%s token=%s", u.id, token)
        if current_app.config.get("EXPOSE_RESET_TOKEN"):
            out["token"] = token
    return ok(out, status=202)


@bp.post("/password-reset/confirm")
def password_reset_confirm():
    data = json_body()
    token = data.get("token") or ""
    new_pw = data.get("new_password") or ""
    _check_password_rules(new_pw)
    try:
        decoded = decode_token(token)
    except (JWTExtendedException, PyJWTError) as e:
        current_app.logger.warning("password reset with bad token: %s", e)
        return fail("Invalid or expired reset token", status=400, code="BAD_RESET_TOKEN")
    if decoded.get("purpose") != RESET_PURPOSE:
        return fail("Invalid or expired reset token", status=400, code="BAD_RESET_TOKEN")

    uid = decoded.get("sub")
    u = db.session.get(User, int(uid)) if uid and str(uid).isdigit() else None
    if not u or not hmac.compare_digest(str(decoded.get("pwd") or ""), _password_stamp(u)):
        current_app.logger.warning("password reset token replayed or stale user=%s", uid)
        return fail("Invalid or expired reset token", status=400, code="BAD_RESET_TOKEN")
    u.set_password(new_pw)
    db.session.commit()
    current_app.logger.info("password reset completed user=%s", u.id)
    return ok({"reset": True})
