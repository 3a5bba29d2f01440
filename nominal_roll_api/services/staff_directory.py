from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List

from sqlalchemy import or_

from nominal_roll_api.common.errors import (
    APIError, Conflict, NotFound, PartialFailure, ValidationFailed, error_message,
)
from nominal_roll_api.common.paging import fetch_page
from nominal_roll_api.common.rows import staff_row, STAFF_DATE_FIELDS
from nominal_roll_api.extensions import db
from nominal_roll_api.models.enums import StaffStatus
from nominal_roll_api.models.staff import StaffMember
from nominal_roll_api.services import profile_images

log = logging.getLogger(__name__)

# descriptive fields a staff member may correct on their own record
SELF_EDITABLE_FIELDS = (
    "email", "phone", "phone2", "dob", "resident_add", "residential_gps",
    "ssnit", "gh_card", "nhis", "ntc_num",
    "bank_name", "bank_branch", "account",
    "acad_qual", "date_obtained_acad", "prof_qual", "date_obtained_prof",
    "level", "subject", "date_first_app", "date_promoted", "date_posted_present_sta",
)

# admins may additionally edit these; location/archive/authorisation have their own operations
ADMIN_EDITABLE_FIELDS = SELF_EDITABLE_FIELDS + ("name", "rank", "stafftype", "status", "status_desc")


def parse_date(val):
    if not val: return None
    if isinstance(val, date): return val
    for fmt in ("%Y-%m-%d", "%d-%m-%Y", "%Y/%m/%d"):
        try: return datetime.strptime(val, fmt).date()
        except (TypeError, ValueError): pass
    raise ValidationFailed(f"Invalid date: {val!r}")


def coerce_status(val) -> str:
    try:
        return StaffStatus(val).value
    except ValueError:
        allowed = ", ".join(s.value for s in StaffStatus)
        raise ValidationFailed(f"status must be one of: {allowed}")


def _as_int(val, field_name):
    if val is None or val == "":
        return None
    try:
        return int(val)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{field_name} must be integer")


# ---------- reads ----------

def staff_by_emiscode(emiscode: int) -> List[StaffMember]:
    return (StaffMember.active()
            .filter(StaffMember.emiscode == emiscode)
            .order_by(StaffMember.name.asc())
            .all())


def all_active_staff() -> List[StaffMember]:
    return StaffMember.active().order_by(StaffMember.name.asc()).all()


def get_staff(pk: int) -> StaffMember:
    x = db.session.get(StaffMember, pk)
    if not x:
        raise NotFound("Staff member not found")
    return x


def get_by_staff_id(staff_id: str) -> StaffMember:
    """Lookup by business key, archived rows included."""
    x = StaffMember.query.filter_by(staff_id=(staff_id or "").strip()).first()
    if not x:
        raise NotFound("Staff member not found")
    return x


def find_in_master_list(staff_id: str) -> StaffMember:
    """Lookup by business key among active rows only (the pull search)."""
    x = StaffMember.active().filter(StaffMember.staff_id == (staff_id or "").strip()).first()
    if not x:
        raise NotFound(f"No staff member found with Staff ID: {staff_id}")
    return x


def archived_staff(emiscode: int | None = None) -> List[StaffMember]:
    q = StaffMember.query.filter(StaffMember.is_archived.is_(True))
    if emiscode is not None:
        q = q.filter(StaffMember.emiscode == emiscode)
    return q.order_by(StaffMember.name.asc()).all()


def search_staff(page: int, size: int, term: str | None = None):
    """
    Paginated search over active staff.
    Numeric terms are treated as (partial) staff IDs; anything else matches
    name, school or rank. Returns (rows, has_next_page).
    """
    q = StaffMember.active()
    term = (term or "").strip()
    if term:
        if term.isdigit():
            q = q.filter(StaffMember.staff_id.like(f"%{term}%"))
        else:
            like = f"%{term}%"
            q = q.filter(or_(StaffMember.name.ilike(like),
                             StaffMember.school.ilike(like),
                             StaffMember.rank.ilike(like)))
        q = q.order_by(StaffMember.name.asc(), StaffMember.id.asc())
    else:
        q = q.order_by(StaffMember.id.asc())
    return fetch_page(q, page, size)


def distinct_schools() -> list[dict]:
    """One entry per emiscode (first school name seen wins), sorted by school name."""
    rows = (db.session.query(StaffMember.emiscode, StaffMember.school)
            .order_by(StaffMember.id.asc())
            .all())
    seen: dict[int, str] = {}
    for code, school in rows:
        if code and school and code not in seen:
            seen[code] = school
    return sorted(({"emiscode": c, "school": s} for c, s in seen.items()),
                  key=lambda r: r["school"].lower())


def school_name_for(emiscode: int) -> str | None:
    for row in distinct_schools():
        if row["emiscode"] == emiscode:
            return row["school"]
    return None


# ---------- writes ----------

def add_staff(data: dict, image=None) -> StaffMember:
    """
    Create a staff record (never authorised on creation). If an image is
    supplied it is validated first; a storage failure after the insert leaves
    the record in place and raises PartialFailure carrying it.
    """
    staff_id = (data.get("staff_id") or "").strip()
    name = (data.get("name") or "").strip()
    school = (data.get("school") or "").strip()
    emiscode = _as_int(data.get("emiscode"), "emiscode")
    if not (staff_id and name and school and emiscode):
        raise ValidationFailed("staff_id, name, school and emiscode are required")
    if image is not None:
        profile_images.validate_image(image)
    if StaffMember.query.filter_by(staff_id=staff_id).first():
        raise Conflict("A staff member with this Staff ID already exists", code="DUPLICATE_STAFF_ID")

    x = StaffMember(
        staff_id=staff_id,
        name=name,
        school=school,
        emiscode=emiscode,
        unit=(data.get("unit") or "").strip() or None,
        status=coerce_status(data.get("status") or StaffStatus.AT_POST.value),
        authorised=False,
        is_archived=False,
    )
    _apply(x, data, ADMIN_EDITABLE_FIELDS, skip=("name", "status"))
    db.session.add(x)
    db.session.commit()
    log.info("staff created staff_id=%s emiscode=%s", x.staff_id, x.emiscode)

    if image is not None:
        try:
            x.profile_image_url = profile_images.upload_profile_image(image, x.staff_id)
            db.session.commit()
        except (APIError, OSError) as e:
            db.session.rollback()
            log.warning("image upload failed after creating staff_id=%s: %s", x.staff_id, e)
            raise PartialFailure(
                f"Staff member {x.name} was created, but the image upload failed: "
                f"{error_message(e, 'unknown storage error')}",
                payload=staff_row(x),
            )
    return x


def update_staff(x: StaffMember, updates: dict, allowed=ADMIN_EDITABLE_FIELDS) -> StaffMember:
    unknown = [k for k in updates if k not in allowed]
    if unknown:
        raise ValidationFailed(f"Fields not editable here: {', '.join(sorted(unknown))}")
    _apply(x, updates, allowed)
    db.session.commit()
    return x


def set_profile_image(x: StaffMember, image) -> StaffMember:
    x.profile_image_url = profile_images.upload_profile_image(image, x.staff_id)
    db.session.commit()
    return x


def _apply(x: StaffMember, data: dict, allowed, skip=()):
    for key in allowed:
        if key in skip or key not in data:
            continue
        val = data[key]
        if key in STAFF_DATE_FIELDS:
            val = parse_date(val)
        elif key == "status":
            val = coerce_status(val)
        elif key == "name":
            val = (val or "").strip()
            if not val:
                raise ValidationFailed("name cannot be empty")
        elif isinstance(val, str):
            val = val.strip() or None
        setattr(x, key, val)
