"""Standardised API error responses.

Every error leaving the API has the same envelope::

    {"error": "<human message>", "code": "ERR_...", "details": {...}}

``details`` is omitted when empty.

Usage
-----
    from app.utils.errors import api_error, E

    return api_error(E.FORBIDDEN, decision.reason, details={"required": perm})

Core exceptions (``app.core.exceptions``) and HTTP errors raised by Flask
(404, 405, 413, 415, 429, 500) are converted once, app-wide, by
``register_error_handlers``; blueprints let core exceptions propagate.
"""

from __future__ import annotations

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from app.core.exceptions import GovernanceError, InvalidStateError

logger = logging.getLogger(__name__)


class E:
    """Machine-readable error codes, grouped by HTTP status."""

    # 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    VALIDATION_CONSTRAINT = "ERR_VALIDATION_CONSTRAINT"
    # 401: gateway identity headers missing
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    # 403
    FORBIDDEN = "ERR_FORBIDDEN"
    # 404
    NOT_FOUND = "ERR_NOT_FOUND"
    # 405
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    # 409: lifecycle transition from the wrong status
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    # 413 / 415
    PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"
    UNSUPPORTED_MEDIA_TYPE = "ERR_UNSUPPORTED_MEDIA_TYPE"
    # 429
    RATE_LIMITED = "ERR_RATE_LIMITED"
    # 500
    INTERNAL = "ERR_INTERNAL"


_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_CONSTRAINT: 400,
    E.UNAUTHENTICATED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.METHOD_NOT_ALLOWED: 405,
    E.CONFLICT_STATE: 409,
    E.PAYLOAD_TOO_LARGE: 413,
    E.UNSUPPORTED_MEDIA_TYPE: 415,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
}

# GovernanceError.kind -> error code
_KIND_CODES: dict[str, str] = {
    "validation_error": E.VALIDATION_INVALID,
    "invalid_state": E.CONFLICT_STATE,
    "not_found": E.NOT_FOUND,
}

# Flask/werkzeug HTTP status -> error code
_HTTP_CODES: dict[int, str] = {
    404: E.NOT_FOUND,
    405: E.METHOD_NOT_ALLOWED,
    413: E.PAYLOAD_TOO_LARGE,
    415: E.UNSUPPORTED_MEDIA_TYPE,
    429: E.RATE_LIMITED,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return ``(response, status)`` carrying the standard error envelope.

    ``status`` defaults from ``code``; unknown codes answer 400.
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or _DEFAULT_STATUS.get(code, 400)


def _governance_error_response(exc: GovernanceError):
    code = _KIND_CODES.get(exc.kind, E.INTERNAL)

    if isinstance(exc, InvalidStateError):
        logger.info("Rejected transition: %s", exc)
        return api_error(code, str(exc), details={
            "current_status": exc.current_status,
            "action": exc.action,
            "allowed_from": list(exc.allowed_from),
        })

    if exc.kind == "not_found":
        # ids and organization stay in the logs only
        logger.info("Not found: %s", exc)
        return api_error(code, f"{exc.resource} not found")

    if code == E.INTERNAL:
        logger.error("Unmapped governance error: %s", exc)
        return api_error(code, "Internal server error")

    return api_error(code, str(exc), details=getattr(exc, "details", None))


def register_error_handlers(app):
    """Install JSON handlers for core exceptions and HTTP errors."""

    app.register_error_handler(GovernanceError, _governance_error_response)

    def _http_error(exc: HTTPException):
        code = _HTTP_CODES.get(exc.code)
        if code is None:
            return exc
        details = None
        if exc.code == 429:
            details = {"limit": exc.description}
        return api_error(code, exc.name, details=details)

    for status in _HTTP_CODES:
        app.register_error_handler(status, _http_error)

    @app.errorhandler(500)
    def _server_error(exc):
        logger.error("500 error: %s", exc, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")
