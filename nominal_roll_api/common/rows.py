# nominal_roll_api/common/rows.py
"""JSON shapes shared by several blueprints."""
from nominal_roll_api.models.staff import StaffMember
from nominal_roll_api.models.approval import MonthlyApproval
from nominal_roll_api.models.pull_history import PullHistoryEntry
from nominal_roll_api.models.user import User

STAFF_DATE_FIELDS = (
    "dob", "date_obtained_acad", "date_obtained_prof",
    "date_first_app", "date_promoted", "date_posted_present_sta",
)

STAFF_TEXT_FIELDS = (
    "staff_id", "name", "school", "unit", "rank", "stafftype", "status", "status_desc",
    "email", "phone", "phone2", "resident_add", "residential_gps",
    "ssnit", "gh_card", "nhis", "ntc_num",
    "bank_name", "bank_branch", "account",
    "acad_qual", "prof_qual", "level", "subject",
    "profile_image_url",
)

def _iso(v):
    return v.isoformat() if v else None

def staff_row(x: StaffMember) -> dict:
    row = {"id": x.id, "emiscode": x.emiscode}
    for f in STAFF_TEXT_FIELDS:
        row[f] = getattr(x, f)
    for f in STAFF_DATE_FIELDS:
        row[f] = _iso(getattr(x, f))
    row["authorised"] = bool(x.authorised)
    row["is_archived"] = bool(x.is_archived)
    row["archival_state"] = x.archival_state.value
    row["created_at"] = _iso(x.created_at)
    row["updated_at"] = _iso(x.updated_at)
    return row

def approval_row(a: MonthlyApproval) -> dict:
    return {
        "id": a.id,
        "staff_member_id": a.staff_member_id,
        "month_start_date": _iso(a.month_start_date),
        "status": a.status,
        "emiscode": a.emiscode,
        "approved_by_user_id": a.approved_by_user_id,
        "approved_at": _iso(a.approved_at),
        "version": a.version,
    }

def pull_row(e: PullHistoryEntry) -> dict:
    return {
        "id": e.id,
        "staff_member_id": e.staff_member_id,
        "pulled_name": e.staff_member.name if e.staff_member else None,
        "original": {"emiscode": e.prior_emiscode, "school": e.prior_school, "unit": e.prior_unit},
        "pulled_to_school": e.pulled_to_school,
        "pulled_to_emiscode": e.pulled_to_emiscode,
        "timestamp": _iso(e.created_at),
    }

def user_row(u: User, authorised: bool | None = None) -> dict:
    row = {
        "id": u.id,
        "email": u.email,
        "staff_id": u.staff_id,
        "emiscode": u.emiscode,
        "role": u.role,
        "name": u.full_name,
    }
    if authorised is not None:
        row["authorised"] = authorised
    return row
