from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from nominal_roll_api.common.errors import ApprovalConflict, ValidationFailed
from nominal_roll_api.models.approval import MonthlyApproval
from nominal_roll_api.models.enums import DerivedStatus
from nominal_roll_api.services import approval_ledger as ledger

from conftest import make_staff, make_headteacher


def test_no_entry_reads_as_pending(session, freeze_month):
    freeze_month(2026, 3)
    x = make_staff(session, "1001")
    assert ledger.derive_status(None) == DerivedStatus.PENDING
    assert ledger.status_for(x) == DerivedStatus.PENDING
    assert MonthlyApproval.query.count() == 0


def test_month_key_is_first_of_current_month(session, freeze_month):
    freeze_month(2026, 3, day=31)
    x = make_staff(session, "1001")
    row = ledger.set_approval(x.id, x.emiscode, None, "Approved")
    assert row.month_start_date == date(2026, 3, 1)
    assert ledger.current_month_start() == date(2026, 3, 1)


def test_approve_then_disapprove_keeps_one_row(session, freeze_month):
    freeze_month(2026, 3)
    x = make_staff(session, "1001")
    admin, _ = make_headteacher(session, "9001", 100)

    ledger.set_approval(x.id, 100, admin.id, "Approved")
    ledger.set_approval(x.id, 100, admin.id, "Disapproved")

    rows = MonthlyApproval.query.filter_by(staff_member_id=x.id).all()
    assert len(rows) == 1
    assert rows[0].status == "Disapproved"
    assert rows[0].version == 2
    assert ledger.status_for(x) == DerivedStatus.DISAPPROVED


def test_last_write_wins_without_version(session, freeze_month):
    freeze_month(2026, 3)
    x = make_staff(session, "1001")
    first = ledger.set_approval(x.id, 100, None, "Disapproved")
    second = ledger.set_approval(x.id, 100, None, "Approved")
    assert first.id == second.id
    assert ledger.status_for(x) == DerivedStatus.APPROVED


def test_expected_version_detects_concurrent_overwrite(session, freeze_month):
    freeze_month(2026, 3)
    x = make_staff(session, "1001")

    # 0 means "nobody has decided yet"
    row = ledger.set_approval(x.id, 100, None, "Approved", expected_version=0)
    assert row.version == 1

    with pytest.raises(ApprovalConflict) as exc:
        ledger.set_approval(x.id, 100, None, "Disapproved", expected_version=0)
    assert exc.value.payload == {"expected_version": 0, "current_version": 1}

    row = ledger.set_approval(x.id, 100, None, "Disapproved", expected_version=1)
    assert row.version == 2
    assert row.status == "Disapproved"


def test_new_month_starts_pending(session, freeze_month):
    freeze_month(2026, 3)
    x = make_staff(session, "1001")
    ledger.set_approval(x.id, 100, None, "Approved")
    assert ledger.status_for(x) == DerivedStatus.APPROVED

    freeze_month(2026, 4)
    assert ledger.status_for(x) == DerivedStatus.PENDING
    assert ledger.status_for(x, date(2026, 3, 1)) == DerivedStatus.APPROVED


def test_decision_from_other_school_reads_pending(session, freeze_month):
    freeze_month(2026, 3)
    x = make_staff(session, "1001", emiscode=100)
    row = ledger.set_approval(x.id, 100, None, "Approved")
    assert ledger.derive_status(row, 100) == DerivedStatus.APPROVED
    assert ledger.derive_status(row, 200) == DerivedStatus.PENDING


def test_invalid_status_rejected(session, freeze_month):
    freeze_month(2026, 3)
    x = make_staff(session, "1001")
    with pytest.raises(ValidationFailed):
        ledger.set_approval(x.id, 100, None, "Pending")


def test_partition_school_and_queries(session, freeze_month):
    freeze_month(2026, 3)
    a = make_staff(session, "1001", name="Abena")
    b = make_staff(session, "1002", name="Kofi")
    c = make_staff(session, "1003", name="Yaw")
    make_staff(session, "1004", name="Zed", is_archived=True)
    make_staff(session, "2001", emiscode=200)

    ledger.set_approval(a.id, 100, None, "Approved")
    ledger.set_approval(b.id, 100, None, "Disapproved")

    parts = ledger.partition_school(100)
    assert [s.staff_id for s, _ in parts[DerivedStatus.APPROVED]] == ["1001"]
    assert [s.staff_id for s, _ in parts[DerivedStatus.DISAPPROVED]] == ["1002"]
    assert [s.staff_id for s, _ in parts[DerivedStatus.PENDING]] == ["1003"]

    month = date(2026, 3, 1)
    assert len(ledger.get_approvals_for_school_month(100, month)) == 2
    assert ledger.get_approvals_for_school_month(200, month) == []
    assert len(ledger.get_approvals_for_month(month)) == 2
    assert ledger.get_approval_for_staff_month(c.id, month) is None


def test_history_is_newest_first(session, freeze_month):
    x = make_staff(session, "1001")
    freeze_month(2026, 1)
    ledger.set_approval(x.id, 100, None, "Approved")
    freeze_month(2026, 2)
    ledger.set_approval(x.id, 100, None, "Disapproved")
    months = [a.month_start_date for a in ledger.approval_history(x.id)]
    assert months == [date(2026, 2, 1), date(2026, 1, 1)]


def test_parse_month(app, freeze_month):
    freeze_month(2026, 5)
    assert ledger.parse_month("2026-02") == date(2026, 2, 1)
    assert ledger.parse_month("2026-02-17") == date(2026, 2, 1)
    assert ledger.parse_month(None) == date(2026, 5, 1)
    with pytest.raises(ValidationFailed):
        ledger.parse_month("Feb 2026")


def _lose_insert_race(monkeypatch, times=1):
    """Make set_approval miss the existing row, as if it landed between read and commit."""
    real = ledger._load
    calls = {"n": 0}

    def fake(staff_member_id, month):
        calls["n"] += 1
        if calls["n"] <= times:
            return None
        return real(staff_member_id, month)

    monkeypatch.setattr(ledger, "_load", fake)


def test_insert_race_falls_back_to_update(session, freeze_month, monkeypatch):
    freeze_month(2026, 3)
    x = make_staff(session, "1001")
    ledger.set_approval(x.id, 100, None, "Disapproved")

    _lose_insert_race(monkeypatch)
    row = ledger.set_approval(x.id, 100, None, "Approved")

    rows = MonthlyApproval.query.filter_by(staff_member_id=x.id).all()
    assert len(rows) == 1
    assert rows[0].id == row.id
    assert (row.status, row.version) == ("Approved", 2)


def test_insert_race_still_honours_expected_version(session, freeze_month, monkeypatch):
    freeze_month(2026, 3)
    x = make_staff(session, "1001")
    ledger.set_approval(x.id, 100, None, "Disapproved")

    _lose_insert_race(monkeypatch)
    with pytest.raises(ApprovalConflict):
        ledger.set_approval(x.id, 100, None, "Approved", expected_version=0)

    row = MonthlyApproval.query.filter_by(staff_member_id=x.id).one()
    assert (row.status, row.version) == ("Disapproved", 1)


def test_insert_race_without_a_winner_propagates(session, freeze_month, monkeypatch):
    freeze_month(2026, 3)
    x = make_staff(session, "1001")
    ledger.set_approval(x.id, 100, None, "Disapproved")

    _lose_insert_race(monkeypatch, times=2)
    with pytest.raises(IntegrityError):
        ledger.set_approval(x.id, 100, None, "Approved")
    assert MonthlyApproval.query.filter_by(staff_member_id=x.id).count() == 1
