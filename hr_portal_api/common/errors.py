# hr_portal_api/common/errors.py
import logging

from flask import Blueprint
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError
from hr_portal_api.common.http import fail

log = logging.getLogger(__name__)

bp_errors = Blueprint("errors", __name__)


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


@bp_errors.app_errorhandler(APIError)
def _api_error(e: APIError):
    return fail(e.message, status=e.status_code, code=e.code, details=e.payload)

@bp_errors.app_errorhandler(HTTPException)
def _http(e: HTTPException):
    return fail(e.name or "HTTP error", status=e.code or 400, details=e.description)

@bp_errors.app_errorhandler(IntegrityError)
def _integrity(e: IntegrityError):
    # 409 for unique/FK violations
    return fail("Conflict / integrity error", status=409,
                details=str(e.orig) if getattr(e, "orig", None) else str(e))

@bp_errors.app_errorhandler(Exception)
def _unhandled(e: Exception):
    log.exception("unhandled error: %s", e)
    return fail("Internal server error", status=500, details=str(e) or e.__class__.__name__)
