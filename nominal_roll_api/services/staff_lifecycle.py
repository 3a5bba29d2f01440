from __future__ import annotations

import logging
from typing import List

from flask import current_app

from nominal_roll_api.common.errors import (
    Forbidden, NoOpTransfer, NotFound, SelfArchive, ValidationFailed,
)
from nominal_roll_api.extensions import db
from nominal_roll_api.models.pull_history import PullHistoryEntry
from nominal_roll_api.models.staff import StaffMember
from nominal_roll_api.models.user import User
from nominal_roll_api.services import approval_ledger
from nominal_roll_api.services.access import actor_staff, ensure_school_authority
from nominal_roll_api.services.staff_directory import coerce_status, school_name_for

log = logging.getLogger(__name__)


def _history_limit() -> int:
    return int(current_app.config.get("PULL_HISTORY_LIMIT", 10))


def _resolve_target(actor: User, target_emiscode, target_school, target_unit):
    """(emiscode, school, unit) the actor is pulling into."""
    if actor.is_superadmin:
        if target_emiscode in (None, ""):
            raise ValidationFailed("target emiscode is required")
        try:
            code = int(target_emiscode)
        except (TypeError, ValueError):
            raise ValidationFailed("emiscode must be integer")
        school = (target_school or "").strip() or school_name_for(code)
        if not school:
            raise ValidationFailed(f"Unknown school for emiscode {code}")
        return code, school, (target_unit or "").strip() or None

    own = actor_staff(actor)
    if own is None or actor.emiscode is None:
        raise ValidationFailed("Your account is not linked to a staff record.")
    if target_emiscode not in (None, "") and str(target_emiscode) != str(actor.emiscode):
        raise Forbidden("You can only pull staff into your own school.")
    ensure_school_authority(actor, actor.emiscode)
    if own.emiscode == actor.emiscode:
        school, unit = own.school, own.unit
    else:
        school, unit = school_name_for(actor.emiscode), None
    if not school:
        raise ValidationFailed(f"Unknown school for emiscode {actor.emiscode}")
    return actor.emiscode, school, (target_unit or "").strip() or unit


def _follow_login(staff: StaffMember):
    """A login's school tracks the staff record it belongs to."""
    u = User.query.filter_by(staff_id=staff.staff_id).first()
    if u is not None and u.emiscode != staff.emiscode:
        log.info("login user=%s follows staff_id=%s to emiscode=%s", u.id, staff.staff_id, staff.emiscode)
        u.emiscode = staff.emiscode


def _prune_history(actor_id: int):
    keep = _history_limit()
    stale = (PullHistoryEntry.query
             .filter_by(actor_user_id=actor_id)
             .order_by(PullHistoryEntry.id.desc())
             .offset(keep)
             .all())
    for e in stale:
        db.session.delete(e)


def pull_staff(staff: StaffMember, actor: User, target_emiscode=None, target_school=None, target_unit=None):
    """
    Move a staff record to the actor's school (or, for a superadmin, any named school).

    Location and the undo entry are committed together. The ledger is not
    touched; the returned derived status is the one seen at the new school.
    Returns (staff, history_entry, derived_status).
    """
    if staff.is_archived:
        log.warning("pull refused: staff_id=%s is archived", staff.staff_id)
        raise ValidationFailed("Archived staff cannot be pulled.")

    code, school, unit = _resolve_target(actor, target_emiscode, target_school, target_unit)
    if staff.emiscode == code:
        log.warning("pull refused: staff_id=%s already at emiscode=%s", staff.staff_id, code)
        raise NoOpTransfer()

    entry = PullHistoryEntry(
        actor_user_id=actor.id,
        staff_member_id=staff.id,
        prior_emiscode=staff.emiscode,
        prior_school=staff.school,
        prior_unit=staff.unit,
        pulled_to_emiscode=code,
        pulled_to_school=school,
    )
    staff.emiscode = code
    staff.school = school
    staff.unit = unit
    _follow_login(staff)
    db.session.add(entry)
    db.session.flush()
    _prune_history(actor.id)
    db.session.commit()

    log.info("staff pulled staff_id=%s from=%s to=%s by=%s",
             staff.staff_id, entry.prior_emiscode, code, actor.id)
    return staff, entry, approval_ledger.status_for(staff)


def pull_history(actor: User) -> List[PullHistoryEntry]:
    return (PullHistoryEntry.query
            .filter_by(actor_user_id=actor.id)
            .order_by(PullHistoryEntry.id.desc())
            .limit(_history_limit())
            .all())


def undo_pull(entry_id: int, actor: User) -> StaffMember:
    """Put the staff member back where the actor's pull found them and drop the entry."""
    entry = db.session.get(PullHistoryEntry, entry_id)
    if entry is None or entry.actor_user_id != actor.id:
        raise NotFound("Pull history entry not found")

    staff = entry.staff_member
    if staff.is_archived:
        raise ValidationFailed("Archived staff cannot be moved.")
    if staff.emiscode != entry.pulled_to_emiscode:
        log.warning("undo refused: staff_id=%s moved since pull entry=%s", staff.staff_id, entry.id)
        raise ValidationFailed("This staff member has moved since the pull; it can no longer be undone.")

    staff.emiscode = entry.prior_emiscode
    staff.school = entry.prior_school
    staff.unit = entry.prior_unit
    _follow_login(staff)
    db.session.delete(entry)
    db.session.commit()
    log.info("pull undone staff_id=%s back to=%s by=%s", staff.staff_id, staff.emiscode, actor.id)
    return staff


def archive_staff(staff: StaffMember, actor: User) -> StaffMember:
    if actor.staff_id and staff.staff_id == actor.staff_id:
        log.warning("self-archive refused user=%s", actor.id)
        raise SelfArchive()
    ensure_school_authority(actor, staff.emiscode)
    if staff.is_archived:
        return staff
    staff.is_archived = True
    db.session.commit()
    log.info("staff archived staff_id=%s by=%s", staff.staff_id, actor.id)
    return staff


def restore_staff(staff: StaffMember, actor: User) -> StaffMember:
    ensure_school_authority(actor, staff.emiscode)
    if not staff.is_archived:
        return staff
    staff.is_archived = False
    db.session.commit()
    log.info("staff restored staff_id=%s by=%s", staff.staff_id, actor.id)
    return staff


def update_status(staff: StaffMember, status, description, actor: User) -> StaffMember:
    """Any employment status may follow any other; the description is free text."""
    ensure_school_authority(actor, staff.emiscode)
    staff.status = coerce_status(status)
    staff.status_desc = (description or "").strip() or None
    db.session.commit()
    log.info("status updated staff_id=%s status=%s by=%s", staff.staff_id, staff.status, actor.id)
    return staff
