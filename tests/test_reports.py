from datetime import date

import pytest

from nominal_roll_api.common.errors import Forbidden, NotFound
from nominal_roll_api.services import approval_ledger as ledger
from nominal_roll_api.services import reports
from nominal_roll_api.services.ranks import RANKS, is_standard_rank, standardize_rank

from conftest import make_staff

TODAY = date(2026, 3, 15)


@pytest.mark.parametrize("raw,expected", [
    ("Superintendent 1", "Superintendent I"),
    ("  superintendent ii ", "Superintendent II"),
    ("ASSISTANT DIRECTOR 2", "Assistant Director II"),
    ("teacher", "Teacher"),
    ("Director-General", "Director-General"),
    ("Head of Maths", "Head of Maths"),
    ("", "Unspecified"),
    (None, "Unspecified"),
])
def test_standardize_rank(raw, expected):
    assert standardize_rank(raw) == expected


def test_is_standard_rank_requires_exact_name():
    assert len(RANKS) == len(set(RANKS))
    assert is_standard_rank("Senior Superintendent I")
    assert not is_standard_rank("senior superintendent 1")
    assert not is_standard_rank(None)


def test_retirement_forecast_window_and_order(app, session):
    make_staff(session, "1", name="Later", dob=date(1966, 12, 1))
    make_staff(session, "2", name="Sooner", dob=date(1966, 4, 1))
    make_staff(session, "3", name="Retired", dob=date(1966, 3, 14))
    make_staff(session, "4", name="Young", dob=date(1990, 1, 1))
    make_staff(session, "5", name="No dob")

    out = reports.build_report("retirement-forecast", 100, today=TODAY)
    assert [r["name"] for r in out] == ["Sooner", "Later"]
    assert out[0]["retirement_date"] == "2026-04-01"


def test_demographics_groups(session):
    make_staff(session, "1", dob=date(2000, 1, 1), date_first_app=date(2024, 1, 1))
    make_staff(session, "2", dob=date(1970, 6, 1), date_first_app=date(1995, 1, 1))
    make_staff(session, "3")

    out = reports.build_report("demographics", 100, today=TODAY)
    assert out["age_groups"] == {"<30": 1, "30-39": 0, "40-49": 0, "50-59": 1, "60+": 0, "Unknown": 1}
    assert out["service_groups"] == {"0-5": 1, "6-10": 0, "11-20": 0, "21+": 1, "Unknown": 1}


def test_data_audit_lists_missing_fields(session):
    make_staff(session, "1", name="Complete", bank_name="GCB", account="1", ssnit="S",
               gh_card="G", dob=date(1980, 1, 1), rank="Teacher")
    make_staff(session, "2", name="Gaps", bank_name="GCB", ssnit="S", rank="teacher")

    out = reports.build_report("data-audit", 100)
    assert len(out) == 1
    assert out[0]["name"] == "Gaps"
    assert out[0]["missing"] == ["Bank Details", "Ghana Card", "Date of Birth", "Standard Rank"]


def test_nominal_roll_derives_status_per_row(session, freeze_month):
    freeze_month(2026, 3)
    a = make_staff(session, "1", name="A")
    make_staff(session, "2", name="B")
    make_staff(session, "3", name="C", is_archived=True)
    ledger.set_approval(a.id, 100, None, "Approved")

    out = reports.build_report("nominal-roll", 100, month=date(2026, 3, 1))
    assert [(r["staff_id"], r["approval_status"]) for r in out] == [("1", "Approved"), ("2", "Pending")]

    out = reports.build_report("nominal-roll", 100, month=date(2026, 2, 1))
    assert {r["approval_status"] for r in out} == {"Pending"}


def test_school_summary_is_superadmin_only(session):
    make_staff(session, "1", emiscode=100, school="Bay")
    make_staff(session, "2", emiscode=200, school="Axe", status="ON LEAVE")
    with pytest.raises(Forbidden):
        reports.build_report("school-summary", 100)

    out = reports.build_report("school-summary", None, is_superadmin=True)
    assert [r["school"] for r in out] == ["Axe", "Bay"]
    assert out[0]["on_leave"] == 1 and out[0]["total"] == 1


def test_unknown_report(session):
    with pytest.raises(NotFound):
        reports.build_report("payroll", 100)


def test_dashboard_counts(session, freeze_month):
    freeze_month(2026, 3)
    a = make_staff(session, "1", rank="Superintendent 1")
    make_staff(session, "2", status="VACATED POST", rank="Superintendent I")
    make_staff(session, "3", status="TRANSFERRED")
    ledger.set_approval(a.id, 100, None, "Disapproved")

    out = reports.dashboard(100)
    assert out["totals"] == {"total": 3, "at_post": 1, "on_leave": 0, "transferred": 1, "vacated": 1}
    assert out["approval"] == {"pending": 2, "approved": 0, "disapproved": 1}
    assert out["rank_distribution"] == {"Superintendent I": 2, "Unspecified": 1}
    assert out["month"] == "2026-03-01"
    assert reports.build_report("attrition", 100) == {"transferred": 1, "vacated": 1}
