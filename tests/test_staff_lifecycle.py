from datetime import date

import pytest

from nominal_roll_api.common.errors import (
    Forbidden, NoOpTransfer, NotFound, SelfArchive, ValidationFailed,
)
from nominal_roll_api.models.approval import MonthlyApproval
from nominal_roll_api.models.enums import DerivedStatus, UserRole
from nominal_roll_api.models.pull_history import PullHistoryEntry
from nominal_roll_api.services import access, approval_ledger as ledger, staff_directory as directory
from nominal_roll_api.services import staff_lifecycle as lifecycle

from conftest import make_staff, make_user, make_headteacher


def test_pull_to_current_school_is_rejected(session):
    admin, _ = make_headteacher(session, "9100", 100)
    x = make_staff(session, "1001", emiscode=100)
    with pytest.raises(NoOpTransfer):
        lifecycle.pull_staff(x, admin)
    assert PullHistoryEntry.query.count() == 0


def test_pull_moves_location_and_leaves_ledger(session, freeze_month):
    freeze_month(2026, 3)
    admin, head = make_headteacher(session, "9200", 200, school="Hill School")
    head.unit = "Primary"
    session.commit()
    x = make_staff(session, "1001", emiscode=100, unit="JHS")
    ledger.set_approval(x.id, 100, None, "Approved")

    staff, entry, status = lifecycle.pull_staff(x, admin)

    assert (staff.emiscode, staff.school, staff.unit) == (200, "Hill School", "Primary")
    assert (entry.prior_emiscode, entry.prior_unit) == (100, "JHS")
    row = MonthlyApproval.query.one()
    assert (row.emiscode, row.status) == (100, "Approved")
    assert status == DerivedStatus.PENDING


def test_approved_at_old_school_is_pending_at_new_school(session, freeze_month):
    freeze_month(2026, 3)
    old_admin, _ = make_headteacher(session, "9100", 100)
    new_admin, _ = make_headteacher(session, "9200", 200)
    a = make_staff(session, "1001", emiscode=100)

    ledger.set_approval(a.id, a.emiscode, old_admin.id, "Approved")
    assert ledger.status_for(a) == DerivedStatus.APPROVED

    lifecycle.pull_staff(a, new_admin)
    assert ledger.status_for(a, date(2026, 3, 1)) == DerivedStatus.PENDING
    pending = ledger.partition_school(200)[DerivedStatus.PENDING]
    assert a.id in [s.id for s, _ in pending]

    # deciding again at the new school overwrites the month's row
    ledger.set_approval(a.id, a.emiscode, new_admin.id, "Disapproved")
    assert MonthlyApproval.query.count() == 1
    assert ledger.status_for(a) == DerivedStatus.DISAPPROVED


def test_admin_cannot_pull_into_another_school(session):
    admin, _ = make_headteacher(session, "9200", 200)
    x = make_staff(session, "1001", emiscode=100)
    with pytest.raises(Forbidden):
        lifecycle.pull_staff(x, admin, target_emiscode=300)


def test_superadmin_pull_needs_known_target(session):
    make_staff(session, "3001", emiscode=300, school="Lake School")
    sa = make_user(session, "0001", role=UserRole.SUPERADMIN.value, emiscode=None)
    x = make_staff(session, "1001", emiscode=100)

    with pytest.raises(ValidationFailed):
        lifecycle.pull_staff(x, sa)
    with pytest.raises(ValidationFailed):
        lifecycle.pull_staff(x, sa, target_emiscode=999)

    staff, _, _ = lifecycle.pull_staff(x, sa, target_emiscode=300)
    assert (staff.emiscode, staff.school) == (300, "Lake School")


def test_archived_staff_cannot_be_pulled(session):
    admin, _ = make_headteacher(session, "9200", 200)
    x = make_staff(session, "1001", emiscode=100, is_archived=True)
    with pytest.raises(ValidationFailed):
        lifecycle.pull_staff(x, admin)


def test_undo_restores_prior_location(session):
    admin, _ = make_headteacher(session, "9200", 200)
    x = make_staff(session, "1001", emiscode=100, school="Old School", unit="A")
    _, entry, _ = lifecycle.pull_staff(x, admin)

    lifecycle.undo_pull(entry.id, admin)
    assert (x.emiscode, x.school, x.unit) == (100, "Old School", "A")
    assert PullHistoryEntry.query.count() == 0

    with pytest.raises(NotFound):
        lifecycle.undo_pull(entry.id, admin)


def test_undo_belongs_to_the_actor(session):
    admin, _ = make_headteacher(session, "9200", 200)
    other, _ = make_headteacher(session, "9300", 300)
    x = make_staff(session, "1001", emiscode=100)
    _, entry, _ = lifecycle.pull_staff(x, admin)
    with pytest.raises(NotFound):
        lifecycle.undo_pull(entry.id, other)


def test_undo_refused_after_staff_moved_on(session):
    first, _ = make_headteacher(session, "9200", 200)
    second, _ = make_headteacher(session, "9300", 300)
    x = make_staff(session, "1001", emiscode=100)
    _, entry, _ = lifecycle.pull_staff(x, first)
    lifecycle.pull_staff(x, second)
    with pytest.raises(ValidationFailed):
        lifecycle.undo_pull(entry.id, first)


def test_pull_history_is_capped(app, session):
    app.config["PULL_HISTORY_LIMIT"] = 3
    admin, _ = make_headteacher(session, "9200", 200)
    for i in range(5):
        lifecycle.pull_staff(make_staff(session, f"10{i}", emiscode=100), admin)

    history = lifecycle.pull_history(admin)
    assert [e.staff_member.staff_id for e in history] == ["104", "103", "102"]
    assert PullHistoryEntry.query.count() == 3


def test_archive_hides_from_active_views_and_restore_brings_back(session, freeze_month):
    freeze_month(2026, 3)
    admin, _ = make_headteacher(session, "9100", 100)
    x = make_staff(session, "1001", emiscode=100)

    def visible():
        return (
            x.id in [s.id for s in directory.staff_by_emiscode(100)],
            x.id in [s.id for s, _ in ledger.partition_school(100)[DerivedStatus.PENDING]],
            x.id in [s.id for s in access.staff_for_authorization(100)],
        )

    assert visible() == (True, True, True)
    lifecycle.archive_staff(x, admin)
    assert visible() == (False, False, False)
    assert [s.id for s in directory.archived_staff(100)] == [x.id]
    with pytest.raises(NotFound):
        directory.find_in_master_list("1001")
    assert directory.get_by_staff_id("1001").id == x.id

    lifecycle.restore_staff(x, admin)
    assert visible() == (True, True, True)


def test_archive_is_idempotent(session):
    admin, _ = make_headteacher(session, "9100", 100)
    x = make_staff(session, "1001", emiscode=100)
    lifecycle.archive_staff(x, admin)
    lifecycle.archive_staff(x, admin)
    assert x.is_archived is True
    assert x.archival_state.value == "Archived"


def test_cannot_archive_own_record(session):
    admin, head = make_headteacher(session, "9100", 100)
    with pytest.raises(SelfArchive):
        lifecycle.archive_staff(head, admin)
    assert head.is_archived is False


def test_archive_needs_authority_over_school(session):
    admin, _ = make_headteacher(session, "9200", 200)
    teacher = make_user(session, "1002", emiscode=100)
    x = make_staff(session, "1001", emiscode=100)
    with pytest.raises(Forbidden):
        lifecycle.archive_staff(x, admin)
    with pytest.raises(Forbidden):
        lifecycle.archive_staff(x, teacher)

    sa = make_user(session, "0001", role=UserRole.SUPERADMIN.value, emiscode=None)
    lifecycle.archive_staff(x, sa)
    assert x.is_archived is True


def test_any_status_may_follow_any_other(session):
    admin, _ = make_headteacher(session, "9100", 100)
    x = make_staff(session, "1001", emiscode=100)
    for st in ("VACATED POST", "AT POST", "TRANSFERRED", "ON LEAVE", "AT POST"):
        lifecycle.update_status(x, st, "note", admin)
        assert x.status == st
    lifecycle.update_status(x, "ON LEAVE", "  ", admin)
    assert x.status_desc is None
    with pytest.raises(ValidationFailed):
        lifecycle.update_status(x, "RETIRED", None, admin)


def test_pulled_headteacher_manages_the_new_school(session):
    sa = make_user(session, "0001", role=UserRole.SUPERADMIN.value, emiscode=None)
    make_staff(session, "2001", emiscode=200, school="River School")
    admin, own = make_headteacher(session, "9100", 100)

    _, entry, _ = lifecycle.pull_staff(own, sa, target_emiscode=200)
    assert admin.emiscode == 200
    assert access.scope_emiscode(admin) == 200

    x = make_staff(session, "3001", emiscode=300)
    lifecycle.pull_staff(x, admin)
    assert (x.emiscode, x.school) == (200, "River School")

    with pytest.raises(Forbidden):
        lifecycle.pull_staff(make_staff(session, "3002", emiscode=300), admin, target_emiscode=100)

    lifecycle.undo_pull(entry.id, sa)
    assert (own.emiscode, admin.emiscode) == (100, 100)
