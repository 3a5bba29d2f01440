from flask import Blueprint, request

from nominal_roll_api.common.auth import current_user, requires_admin
from nominal_roll_api.common.errors import ValidationFailed
from nominal_roll_api.common.http import ok, json_body
from nominal_roll_api.common.rows import staff_row
from nominal_roll_api.services import access

bp = Blueprint("access", __name__, url_prefix="/api/v1/access")


def _school(actor, requested):
    school = access.scope_emiscode(actor, requested)
    if school is None:
        raise ValidationFailed("emiscode is required")
    return school


@bp.get("/staff")
@requires_admin
def staff_list():
    school = _school(current_user(), request.args.get("emiscode"))
    return ok([staff_row(x) for x in access.staff_for_authorization(school)], emiscode=school)


@bp.post("/authorize")
@requires_admin
def authorize():
    data = json_body()
    n = access.authorize_many(data.get("staff_ids"), current_user(), data.get("emiscode"))
    return ok({"changed": n})


@bp.post("/revoke")
@requires_admin
def revoke():
    data = json_body()
    n = access.revoke_many(data.get("staff_ids"), current_user(), data.get("emiscode"))
    return ok({"changed": n})
