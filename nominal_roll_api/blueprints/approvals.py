from flask import Blueprint, request

from nominal_roll_api.common.auth import current_user, requires_admin, requires_roles
from nominal_roll_api.common.errors import Forbidden, NotFound, ValidationFailed
from nominal_roll_api.common.http import ok, json_body
from nominal_roll_api.common.rows import approval_row, staff_row
from nominal_roll_api.models.enums import DerivedStatus
from nominal_roll_api.services import approval_ledger as ledger
from nominal_roll_api.services import staff_directory as directory
from nominal_roll_api.services.access import actor_staff, can_manage_school, ensure_school_authority, scope_emiscode

bp = Blueprint("approvals", __name__, url_prefix="/api/v1/approvals")

_BUCKETS = {
    "pending": DerivedStatus.PENDING,
    "approved": DerivedStatus.APPROVED,
    "disapproved": DerivedStatus.DISAPPROVED,
}


def _expected_version(data):
    raw = data.get("expected_version")
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationFailed("expected_version must be integer")


@bp.put("/<int:staff_member_id>")
@requires_admin
def set_approval(staff_member_id):
    """Record this month's decision for one staff member of the actor's school."""
    actor = current_user()
    data = json_body()
    x = directory.get_staff(staff_member_id)
    if x.is_archived:
        raise ValidationFailed("Archived staff cannot be approved.")
    ensure_school_authority(actor, x.emiscode)
    row = ledger.set_approval(x.id, x.emiscode, actor.id, data.get("status"),
                              expected_version=_expected_version(data))
    return ok({
        "approval": approval_row(row),
        "approval_status": ledger.derive_status(row, x.emiscode).value,
    })


@bp.get("")
@requires_admin
def list_month():
    actor = current_user()
    month = ledger.parse_month(request.args.get("month"))
    if request.args.get("scope") == "all":
        if not actor.is_superadmin:
            raise Forbidden("Only superadmins can list every school.")
        rows = ledger.get_approvals_for_month(month)
    else:
        school = scope_emiscode(actor, request.args.get("emiscode"))
        rows = (ledger.get_approvals_for_school_month(school, month) if school is not None
                else ledger.get_approvals_for_month(month))
    return ok([approval_row(a) for a in rows], month=month.isoformat())


@bp.get("/<any(pending, approved, disapproved):bucket>")
@requires_admin
def list_bucket(bucket):
    actor = current_user()
    month = ledger.parse_month(request.args.get("month"))
    school = scope_emiscode(actor, request.args.get("emiscode"))
    if school is not None:
        parts = ledger.partition_school(school, month)
    else:
        parts = ledger.partition_staff(directory.all_active_staff(), month)

    items = parts[_BUCKETS[bucket]]
    data = [dict(staff_row(x), approval=approval_row(a) if a else None) for x, a in items]
    return ok(data, month=month.isoformat(), total=len(data))


@bp.get("/me")
@requires_roles()
def my_status():
    actor = current_user()
    x = actor_staff(actor)
    if x is None:
        raise NotFound("Your account is not linked to a staff record.")
    month = ledger.parse_month(request.args.get("month"))
    entry = ledger.get_approval_for_staff_month(x.id, month)
    return ok({
        "month": month.isoformat(),
        "approval_status": ledger.derive_status(entry, x.emiscode).value,
        "approval": approval_row(entry) if entry else None,
        "history": [approval_row(a) for a in ledger.approval_history(x.id)],
    })


@bp.get("/<int:staff_member_id>/history")
@requires_roles()
def history(staff_member_id):
    actor = current_user()
    x = directory.get_staff(staff_member_id)
    if not (can_manage_school(actor, x.emiscode) or actor.staff_id == x.staff_id):
        raise Forbidden("You cannot view this record.")
    return ok([approval_row(a) for a in ledger.approval_history(x.id)])
