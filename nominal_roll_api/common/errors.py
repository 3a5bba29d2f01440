# nominal_roll_api/common/errors.py
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException
from nominal_roll_api.common.http import fail


class APIError(Exception):
    """Custom API Error class; subclasses pin the code and HTTP status."""
    code = "API_ERROR"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message=None, code=None, status_code=None, payload=None):
        self.message = message or self.default_message
        super().__init__(self.message)
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.payload = payload


class ValidationFailed(APIError):
    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Invalid request"


class NotFound(APIError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class Forbidden(APIError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Forbidden"


class Conflict(APIError):
    code = "CONFLICT"
    status_code = 409
    default_message = "Conflict"


class NoOpTransfer(ValidationFailed):
    code = "NOOP_TRANSFER"
    default_message = "This staff member is already assigned to that school."


class SelfArchive(ValidationFailed):
    code = "SELF_ARCHIVE"
    default_message = "You cannot archive your own record."


class ApprovalConflict(Conflict):
    code = "APPROVAL_CONFLICT"
    default_message = "The approval for this month was changed by someone else."


class ImageTooLarge(APIError):
    code = "IMAGE_TOO_LARGE"
    status_code = 413
    default_message = "Image file size should not exceed 2MB."


class PartialFailure(APIError):
    """One half of a two-step action went through; ``payload`` carries what did."""
    code = "PARTIAL_FAILURE"
    status_code = 207


class LoginDenied(APIError):
    code = "LOGIN_DENIED"
    status_code = 403
    default_message = "This account is not allowed to sign in."


def error_message(err, default: str) -> str:
    """Best-effort readable message: plain string, then .message, then .detail/.details."""
    if isinstance(err, str):
        return err or default
    for attr in ("message", "detail", "details"):
        v = getattr(err, attr, None)
        if isinstance(v, str) and v.strip():
            return v
    if isinstance(err, dict):
        for key in ("message", "detail", "details"):
            v = err.get(key)
            if isinstance(v, str) and v.strip():
                return v
    return default


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        return fail(e.message, status=e.status_code, code=e.code, data=e.payload)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _integrity(e: IntegrityError):
        from nominal_roll_api.extensions import db
        db.session.rollback()
        # 409 for unique/FK violations
        return fail("Duplicate or FK constraint failed", status=409, code="CONSTRAINT_ERROR",
                    detail=str(e.orig) if getattr(e, "orig", None) else str(e))

    @app.errorhandler(Exception)
    def _500(e: Exception):
        app.logger.exception(e)
        return fail("Internal server error", status=500)
