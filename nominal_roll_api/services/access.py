from __future__ import annotations

import logging
from typing import Iterable, List

from nominal_roll_api.common.errors import Forbidden, LoginDenied, ValidationFailed
from nominal_roll_api.extensions import db
from nominal_roll_api.models.staff import StaffMember
from nominal_roll_api.models.user import User

log = logging.getLogger(__name__)


def actor_staff(actor: User) -> StaffMember | None:
    """The staff record behind a signed-in user (archived rows included)."""
    if not actor or not actor.staff_id:
        return None
    return StaffMember.query.filter_by(staff_id=actor.staff_id).first()


def can_manage_school(actor: User, emiscode: int | None) -> bool:
    if actor is None:
        return False
    if actor.is_superadmin:
        return True
    return actor.is_admin and emiscode is not None and actor.emiscode == emiscode


def ensure_school_authority(actor: User, emiscode: int | None):
    if not can_manage_school(actor, emiscode):
        log.warning("school authority denied user=%s emiscode=%s", getattr(actor, "id", None), emiscode)
        raise Forbidden("You do not have authority over this school.")


def scope_emiscode(actor: User, requested=None) -> int | None:
    """
    School a request operates on. Admins and teachers are pinned to their own
    emiscode; a superadmin picks one with ``requested`` or gets None (all schools).
    """
    if actor.is_superadmin:
        if requested in (None, ""):
            return None
        try:
            return int(requested)
        except (TypeError, ValueError):
            raise ValidationFailed("emiscode must be integer")
    if requested not in (None, "") and str(requested) != str(actor.emiscode):
        raise Forbidden("You do not have authority over this school.")
    return actor.emiscode


def login_authorised(user: User, staff: StaffMember | None) -> bool:
    if user.is_admin:
        return True
    return bool(staff and staff.authorised)


def check_login_gate(user: User) -> StaffMember | None:
    """Raise LoginDenied if this account may not sign in; return its staff record otherwise."""
    staff = actor_staff(user)
    if staff is not None and staff.is_archived:
        log.warning("login refused for archived staff_id=%s", user.staff_id)
        raise LoginDenied("This account has been archived. Please contact your administrator.",
                          code="ACCOUNT_ARCHIVED")
    if not login_authorised(user, staff):
        log.warning("login refused for unauthorised staff_id=%s", user.staff_id)
        raise LoginDenied("Your account has not been authorised yet. Please contact your headteacher.",
                          code="NOT_AUTHORISED")
    return staff


def staff_for_authorization(emiscode: int) -> List[StaffMember]:
    return (StaffMember.active()
            .filter(StaffMember.emiscode == emiscode)
            .order_by(StaffMember.name.asc())
            .all())


def _set_authorised(staff_ids: Iterable[str], actor: User, value: bool, emiscode=None) -> int:
    if staff_ids is not None and not isinstance(staff_ids, (list, tuple, set)):
        raise ValidationFailed("staff_ids must be a list")
    ids = sorted({str(s).strip() for s in (staff_ids or []) if str(s).strip()})
    if not ids:
        raise ValidationFailed("staff_ids is required")

    school = scope_emiscode(actor, emiscode)
    q = (StaffMember.active()
         .filter(StaffMember.staff_id.in_(ids))
         .filter(StaffMember.authorised.isnot(value)))
    if school is not None:
        q = q.filter(StaffMember.emiscode == school)

    rows = q.all()
    for x in rows:
        x.authorised = value
    db.session.commit()
    log.info("%s %d staff by user=%s emiscode=%s",
             "authorised" if value else "revoked", len(rows), actor.id, school)
    return len(rows)


def authorize_many(staff_ids, actor: User, emiscode=None) -> int:
    """Grant login to the given staff of the actor's school. Returns rows changed."""
    return _set_authorised(staff_ids, actor, True, emiscode)


def revoke_many(staff_ids, actor: User, emiscode=None) -> int:
    """Block future logins. Tokens already issued stay valid until they expire."""
    return _set_authorised(staff_ids, actor, False, emiscode)
