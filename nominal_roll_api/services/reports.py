from __future__ import annotations

import logging
from collections import Counter
from datetime import date
from typing import Dict, List

from flask import current_app

from nominal_roll_api.common.errors import Forbidden, NotFound
from nominal_roll_api.common.rows import staff_row
from nominal_roll_api.models.enums import DerivedStatus, StaffStatus
from nominal_roll_api.models.staff import StaffMember
from nominal_roll_api.services import approval_ledger
from nominal_roll_api.services.ranks import standardize_rank, is_standard_rank

log = logging.getLogger(__name__)

AGE_GROUPS = ("<30", "30-39", "40-49", "50-59", "60+", "Unknown")
SERVICE_GROUPS = ("0-5", "6-10", "11-20", "21+", "Unknown")


# ---------- helpers ----------

def scoped_staff(emiscode: int | None) -> List[StaffMember]:
    """Active staff of one school, or of every school when ``emiscode`` is None."""
    q = StaffMember.active()
    if emiscode is not None:
        q = q.filter(StaffMember.emiscode == emiscode)
    return q.order_by(StaffMember.name.asc()).all()


def _filter_term(staff: List[StaffMember], term: str | None) -> List[StaffMember]:
    if not term:
        return staff
    t = term.lower()
    return [s for s in staff if t in (s.name or "").lower() or t in (s.staff_id or "").lower()]


def years_between(start: date | None, today: date) -> int | None:
    """Whole years elapsed, counting a year only once its anniversary has passed."""
    if not start:
        return None
    years = today.year - start.year
    if (today.month, today.day) < (start.month, start.day):
        years -= 1
    return years


def add_years(d: date, years: int) -> date:
    try:
        return d.replace(year=d.year + years)
    except ValueError:
        # 29 Feb in a non-leap target year
        return d.replace(year=d.year + years, day=28)


def _age_group(age):
    if age is None: return "Unknown"
    if age < 30: return "<30"
    if age <= 39: return "30-39"
    if age <= 49: return "40-49"
    if age <= 59: return "50-59"
    return "60+"


def _service_group(years):
    if years is None: return "Unknown"
    years = max(0, years)
    if years <= 5: return "0-5"
    if years <= 10: return "6-10"
    if years <= 20: return "11-20"
    return "21+"


def _count(staff, attr) -> Dict[str, int]:
    c = Counter(getattr(s, attr) for s in staff if getattr(s, attr))
    return dict(sorted(c.items(), key=lambda kv: (-kv[1], kv[0])))


def _status_counts(staff) -> Dict[str, int]:
    c = Counter(s.status for s in staff)
    return {
        "total": len(staff),
        "at_post": c.get(StaffStatus.AT_POST.value, 0),
        "on_leave": c.get(StaffStatus.ON_LEAVE.value, 0),
        "transferred": c.get(StaffStatus.TRANSFERRED.value, 0),
        "vacated": c.get(StaffStatus.VACATED_POST.value, 0),
    }


def rank_distribution(staff) -> Dict[str, int]:
    c = Counter(standardize_rank(s.rank) for s in staff)
    return dict(sorted(c.items(), key=lambda kv: (-kv[1], kv[0])))


# ---------- dashboard ----------

def dashboard(emiscode: int | None, month: date | None = None) -> dict:
    month = month or approval_ledger.current_month_start()
    staff = scoped_staff(emiscode)
    derived = approval_ledger.derive_many(staff, month)
    pending = [s for s in staff if derived[s.id] == DerivedStatus.PENDING]
    counts = _status_counts(staff)
    return {
        "emiscode": emiscode,
        "month": month.isoformat(),
        "totals": counts,
        "approval": {
            "pending": len(pending),
            "approved": sum(1 for v in derived.values() if v == DerivedStatus.APPROVED),
            "disapproved": sum(1 for v in derived.values() if v == DerivedStatus.DISAPPROVED),
        },
        "status_chart": [
            {"name": StaffStatus.AT_POST.value, "value": counts["at_post"]},
            {"name": StaffStatus.ON_LEAVE.value, "value": counts["on_leave"]},
            {"name": StaffStatus.TRANSFERRED.value, "value": counts["transferred"]},
            {"name": StaffStatus.VACATED_POST.value, "value": counts["vacated"]},
        ],
        "rank_distribution": rank_distribution(staff),
        "recent_pending": [{"id": s.id, "staff_id": s.staff_id, "name": s.name, "rank": s.rank}
                           for s in pending[:5]],
    }


# ---------- reports ----------

def school_summary(staff, **_):
    per_school: Dict[str, list] = {}
    for s in staff:
        per_school.setdefault(s.school or "Unknown School", []).append(s)
    return [dict(school=name, **_status_counts(members))
            for name, members in sorted(per_school.items(), key=lambda kv: kv[0].lower())]


def retirement_forecast(staff, today: date | None = None, term=None, **_):
    """Staff whose retirement date falls within the next twelve months, soonest first."""
    today = today or date.today()
    horizon = add_years(today, 1)
    age = int(current_app.config.get("RETIREMENT_AGE", 60))
    out = []
    for s in _filter_term(staff, term):
        if not s.dob:
            continue
        retires_on = add_years(s.dob, age)
        if today <= retires_on <= horizon:
            out.append((retires_on, s))
    out.sort(key=lambda t: (t[0], t[1].name))
    return [{"id": s.id, "staff_id": s.staff_id, "name": s.name, "school": s.school,
             "retirement_date": d.isoformat()} for d, s in out]


def demographics(staff, today: date | None = None, **_):
    today = today or date.today()
    ages = Counter(_age_group(years_between(s.dob, today)) for s in staff)
    service = Counter(_service_group(years_between(s.date_first_app, today)) for s in staff)
    return {
        "age_groups": {g: ages.get(g, 0) for g in AGE_GROUPS},
        "service_groups": {g: service.get(g, 0) for g in SERVICE_GROUPS},
        "rank_distribution": rank_distribution(staff),
    }


def qualifications(staff, **_):
    return {
        "academic": _count(staff, "acad_qual"),
        "professional": _count(staff, "prof_qual"),
        "subjects": _count(staff, "subject"),
    }


def attrition(staff, **_):
    counts = _status_counts(staff)
    return {"transferred": counts["transferred"], "vacated": counts["vacated"]}


def data_audit(staff, term=None, **_):
    out = []
    for s in _filter_term(staff, term):
        missing = []
        if not s.bank_name or not s.account: missing.append("Bank Details")
        if not s.ssnit: missing.append("SSNIT")
        if not s.gh_card: missing.append("Ghana Card")
        if not s.dob: missing.append("Date of Birth")
        if s.rank and not is_standard_rank(s.rank): missing.append("Standard Rank")
        if missing:
            out.append({"id": s.id, "staff_id": s.staff_id, "name": s.name,
                        "school": s.school, "missing": missing})
    return out


def nominal_roll(staff, month: date | None = None, term=None, **_):
    """Every active staff row with its derived approval status for ``month``."""
    month = month or approval_ledger.current_month_start()
    staff = _filter_term(staff, term)
    derived = approval_ledger.derive_many(staff, month)
    return [dict(staff_row(s), approval_status=derived[s.id].value) for s in staff]


REPORTS = {
    "school-summary": school_summary,
    "retirement-forecast": retirement_forecast,
    "demographics": demographics,
    "qualifications": qualifications,
    "attrition": attrition,
    "data-audit": data_audit,
    "nominal-roll": nominal_roll,
}

# cross-school views
SUPERADMIN_ONLY = {"school-summary"}


def build_report(report_type: str, emiscode: int | None, *, is_superadmin=False,
                 month: date | None = None, term: str | None = None, today: date | None = None):
    fn = REPORTS.get(report_type)
    if fn is None:
        raise NotFound(f"Unknown report: {report_type}")
    if report_type in SUPERADMIN_ONLY and not is_superadmin:
        raise Forbidden("This report is only available to superadmins.")
    staff = scoped_staff(emiscode)
    log.info("report %s emiscode=%s rows=%d", report_type, emiscode, len(staff))
    return fn(staff, month=month, term=term, today=today)
