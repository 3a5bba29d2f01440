from flask import Blueprint, request

from nominal_roll_api.common.auth import current_user, requires_admin
from nominal_roll_api.common.http import ok
from nominal_roll_api.common.paging import text_q
from nominal_roll_api.services import reports
from nominal_roll_api.services.access import scope_emiscode
from nominal_roll_api.services.approval_ledger import parse_month

bp = Blueprint("reports", __name__, url_prefix="/api/v1/reports")


@bp.get("/dashboard")
@requires_admin
def dashboard():
    actor = current_user()
    school = scope_emiscode(actor, request.args.get("emiscode"))
    return ok(reports.dashboard(school, parse_month(request.args.get("month"))))


@bp.get("/<report_type>")
@requires_admin
def report(report_type):
    actor = current_user()
    school = scope_emiscode(actor, request.args.get("emiscode"))
    data = reports.build_report(
        report_type, school,
        is_superadmin=actor.is_superadmin,
        month=parse_month(request.args.get("month")),
        term=text_q(),
    )
    return ok(data, report=report_type, emiscode=school)
