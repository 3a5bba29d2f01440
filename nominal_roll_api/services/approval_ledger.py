from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Dict, List

from sqlalchemy.exc import IntegrityError

from nominal_roll_api.common.errors import ApprovalConflict, ValidationFailed
from nominal_roll_api.extensions import db
from nominal_roll_api.models.approval import MonthlyApproval
from nominal_roll_api.models.enums import ApprovalStatus, DerivedStatus
from nominal_roll_api.models.staff import StaffMember

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def month_start(d: date) -> date:
    return date(d.year, d.month, 1)


def current_month_start() -> date:
    """Ledger key for "this month", recomputed from the wall clock on every call."""
    return month_start(_utcnow().date())


def parse_month(raw: str | None) -> date:
    """'YYYY-MM' or 'YYYY-MM-DD' → first of that month; empty → current month."""
    if not raw:
        return current_month_start()
    for fmt in ("%Y-%m", "%Y-%m-%d"):
        try:
            return month_start(datetime.strptime(raw.strip(), fmt).date())
        except ValueError:
            pass
    raise ValidationFailed("month must be YYYY-MM")


def derive_status(entry: MonthlyApproval | None, emiscode: int | None = None) -> DerivedStatus:
    """
    The only place that decides what a missing ledger row means.

    - no entry → Pending
    - entry recorded while the staff member sat at another school → Pending
      (a decision belongs to the school that made it)
    - otherwise the stored decision
    """
    if entry is None:
        return DerivedStatus.PENDING
    if emiscode is not None and entry.emiscode != emiscode:
        return DerivedStatus.PENDING
    return DerivedStatus(entry.status)


def _coerce_status(status) -> ApprovalStatus:
    try:
        return ApprovalStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in ApprovalStatus)
        raise ValidationFailed(f"status must be one of: {allowed}")


def _load(staff_member_id: int, month: date) -> MonthlyApproval | None:
    return MonthlyApproval.query.filter_by(
        staff_member_id=staff_member_id, month_start_date=month
    ).first()


def _check_version(row: MonthlyApproval | None, expected_version: int | None):
    if expected_version is None:
        return
    current = row.version if row is not None else 0
    if current != expected_version:
        raise ApprovalConflict(
            payload={"expected_version": expected_version, "current_version": current}
        )


def _overwrite(row: MonthlyApproval, status: ApprovalStatus, emiscode: int, approver_id, stamp: datetime):
    row.status = status.value
    row.emiscode = emiscode
    row.approved_by_user_id = approver_id
    row.approved_at = stamp
    row.version = (row.version or 0) + 1


def set_approval(
    staff_member_id: int,
    emiscode: int,
    approver_id: int | None,
    status,
    expected_version: int | None = None,
) -> MonthlyApproval:
    """
    Upsert the decision for (staff member, current month).

    The month key is always derived from the clock here. An existing decision
    for the month is overwritten in place (latest write wins, no flip history).
    Pass ``expected_version`` (0 = "no decision yet") to turn a concurrent
    overwrite into ApprovalConflict instead.
    """
    st = _coerce_status(status)
    now = _utcnow()
    month = month_start(now.date())
    stamp = now.replace(tzinfo=None)

    row = _load(staff_member_id, month)
    _check_version(row, expected_version)

    if row is None:
        row = MonthlyApproval(
            staff_member_id=staff_member_id,
            month_start_date=month,
            status=st.value,
            emiscode=emiscode,
            approved_by_user_id=approver_id,
            approved_at=stamp,
            version=1,
        )
        db.session.add(row)
        try:
            db.session.commit()
        except IntegrityError:
            # another writer inserted the same (staff, month) first; fall back to update
            db.session.rollback()
            row = _load(staff_member_id, month)
            if row is None:
                raise
            _check_version(row, expected_version)
            _overwrite(row, st, emiscode, approver_id, stamp)
            db.session.commit()
    else:
        _overwrite(row, st, emiscode, approver_id, stamp)
        db.session.commit()

    log.info("approval set staff_member=%s month=%s status=%s by=%s v%s",
             staff_member_id, month.isoformat(), st.value, approver_id, row.version)
    return row


def get_approvals_for_school_month(emiscode: int, month: date) -> List[MonthlyApproval]:
    return (MonthlyApproval.query
            .filter_by(emiscode=emiscode, month_start_date=month_start(month))
            .order_by(MonthlyApproval.staff_member_id.asc())
            .all())


def get_approvals_for_month(month: date) -> List[MonthlyApproval]:
    return (MonthlyApproval.query
            .filter_by(month_start_date=month_start(month))
            .order_by(MonthlyApproval.emiscode.asc(), MonthlyApproval.staff_member_id.asc())
            .all())


def get_approval_for_staff_month(staff_member_id: int, month: date) -> MonthlyApproval | None:
    return _load(staff_member_id, month_start(month))


def approval_history(staff_member_id: int) -> List[MonthlyApproval]:
    return (MonthlyApproval.query
            .filter_by(staff_member_id=staff_member_id)
            .order_by(MonthlyApproval.month_start_date.desc())
            .all())


def status_for(staff: StaffMember, month: date | None = None) -> DerivedStatus:
    month = month or current_month_start()
    return derive_status(get_approval_for_staff_month(staff.id, month), staff.emiscode)


def _entries_for(staff: List[StaffMember], month: date) -> Dict[int, MonthlyApproval]:
    ids = [s.id for s in staff]
    if not ids:
        return {}
    rows = (MonthlyApproval.query
            .filter(MonthlyApproval.month_start_date == month,
                    MonthlyApproval.staff_member_id.in_(ids))
            .all())
    return {a.staff_member_id: a for a in rows}


def derive_many(staff: List[StaffMember], month: date | None = None) -> Dict[int, DerivedStatus]:
    """staff.id -> derived status for ``month``, one ledger query for the whole list."""
    month = month_start(month) if month else current_month_start()
    by_staff = _entries_for(staff, month)
    return {s.id: derive_status(by_staff.get(s.id), s.emiscode) for s in staff}


def partition_staff(staff: List[StaffMember], month: date | None = None) -> Dict[DerivedStatus, list]:
    """
    Split staff by derived status for ``month``.
    Each value is a list of (StaffMember, MonthlyApproval | None), in input order.
    """
    month = month_start(month) if month else current_month_start()
    by_staff = _entries_for(staff, month)

    out: Dict[DerivedStatus, list] = {s: [] for s in DerivedStatus}
    for member in staff:
        entry = by_staff.get(member.id)
        out[derive_status(entry, member.emiscode)].append((member, entry))
    return out


def partition_school(emiscode: int, month: date | None = None) -> Dict[DerivedStatus, list]:
    """Active staff of a school split by derived status, ordered by name."""
    staff = (StaffMember.active()
             .filter(StaffMember.emiscode == emiscode)
             .order_by(StaffMember.name.asc())
             .all())
    return partition_staff(staff, month)
