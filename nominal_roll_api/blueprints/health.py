from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from nominal_roll_api.common.http import ok, fail
from nominal_roll_api.extensions import db

bp = Blueprint("health", __name__, url_prefix="/api")


@bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        current_app.logger.error("health check: database unreachable: %s", e)
        return fail("database unavailable", status=503, code="DB_DOWN")
    return ok({"status": "ok"})
