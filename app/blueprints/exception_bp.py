"""
Risk Exception Blueprint.

Endpoints:
    GET  /api/v1/projects/<project_id>/exceptions   — list (optional ?status=)
    POST /api/v1/projects/<project_id>/exceptions   — request a new exception
    GET  /api/v1/exceptions/<exception_id>          — fetch with effective status
    POST /api/v1/exceptions/<exception_id>/approve  — requested → approved
    POST /api/v1/exceptions/<exception_id>/deny     — requested → denied
    POST /api/v1/exceptions/<exception_id>/revoke   — approved → revoked
    GET  /api/v1/exceptions/expirations             — expiry scan for actor's org

Layer contract:
    - No ORM calls here — all DB work delegated to exception_service.
    - Tenant + RBAC decided by app.middleware.actor_context.authorize before
      any service call that mutates.
    - Core errors (ValidationError, InvalidStateError, NotFoundError) are
      converted by the app-wide handlers in app.utils.errors.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from app.middleware.actor_context import authorize, get_actor, require_actor
from app.services import exception_service
from app.services.exception_lifecycle import ExceptionStatus
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

exception_bp = Blueprint("exceptions", __name__, url_prefix="/api/v1")

VALID_STORED_STATUSES = frozenset(
    s.value for s in ExceptionStatus if s is not ExceptionStatus.EXPIRED
)
MAX_WARNING_DAYS = 90


@exception_bp.route("/projects/<project_id>/exceptions", methods=["GET"])
@require_actor
def list_exceptions(project_id: str):
    """List the project's exceptions in the actor's organization.

    Query params:
        status (str, optional): requested|approved|denied|revoked
    """
    actor = get_actor()
    err = authorize("project:read", actor.organization_id, resource="Project")
    if err:
        return err

    status = request.args.get("status", type=str)
    if status and status not in VALID_STORED_STATUSES:
        return api_error(
            E.VALIDATION_INVALID,
            f"Invalid status '{status}'.",
            details={"valid_values": sorted(VALID_STORED_STATUSES)},
        )

    items = exception_service.list_exceptions(actor.organization_id, project_id, status)
    return jsonify({
        "items": [exception_service.serialize(e) for e in items],
        "total": len(items),
    }), 200


@exception_bp.route("/projects/<project_id>/exceptions", methods=["POST"])
@require_actor
def request_exception(project_id: str):
    """Request a new risk exception.

    Body (JSON):
        title (str, required)
        justification (str, required)
        compensating_controls (list[str], required, non-empty)
        duration_days (int, required, 1-365)
        organization_id (str, optional): defaults to the actor's organization.
        risk_id, control_id (str, optional)
    """
    actor = get_actor()
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")

    organization_id = data.get("organization_id") or actor.organization_id
    err = authorize("exception:request", organization_id, resource="Project")
    if err:
        return err

    payload = {
        **data,
        "project_id": project_id,
        "organization_id": organization_id,
        "requested_by": actor.user_id,
    }
    exc = exception_service.request_exception(payload)
    return jsonify(exception_service.serialize(exc)), 201


@exception_bp.route("/exceptions/expirations", methods=["GET"])
@require_actor
def check_expirations():
    """Expired and expiring-soon approved exceptions in the actor's organization.

    Query params:
        warning_days (int, optional): lookahead window, default from config.
    """
    actor = get_actor()
    err = authorize("project:read", actor.organization_id)
    if err:
        return err

    default_days = current_app.config.get("EXCEPTION_EXPIRY_WARNING_DAYS", 7)
    raw_days = request.args.get("warning_days")
    try:
        warning_days = default_days if raw_days is None else int(raw_days)
    except ValueError:
        warning_days = None
    if warning_days is None or not 0 <= warning_days <= MAX_WARNING_DAYS:
        return api_error(
            E.VALIDATION_INVALID,
            f"warning_days must be between 0 and {MAX_WARNING_DAYS}",
        )

    report, _ = exception_service.scan_expirations(
        actor.organization_id, warning_days=warning_days,
    )
    body = report.to_dict()
    body["warning_days"] = warning_days
    return jsonify(body), 200


@exception_bp.route("/exceptions/<exception_id>", methods=["GET"])
@require_actor
def get_exception(exception_id: str):
    exc = exception_service.get_exception_any_org(exception_id)
    err = authorize("project:read", exc.organization_id, resource="RiskException")
    if err:
        return err
    return jsonify(exception_service.serialize(exc)), 200


# ── Transitions ──────────────────────────────────────────────────────────────

_ACTION_PERMISSION = {
    "approve": "exception:approve",
    "deny": "exception:approve",
    "revoke": "exception:revoke",
}


def _transition(exception_id: str, action: str, notes: str | None = None):
    exc = exception_service.get_exception_any_org(exception_id)
    err = authorize(_ACTION_PERMISSION[action], exc.organization_id, resource="RiskException")
    if err:
        return err

    actor = get_actor()
    updated = exception_service.transition_exception(
        actor.organization_id, exception_id, action, actor.user_id, notes=notes,
    )
    return jsonify(exception_service.serialize(updated)), 200


def _required_text(data: dict, *names: str) -> str | None:
    for name in names:
        value = data.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


@exception_bp.route("/exceptions/<exception_id>/approve", methods=["POST"])
@require_actor
def approve_exception(exception_id: str):
    """Approve a requested exception; expires_at = now + duration_days."""
    return _transition(exception_id, "approve")


@exception_bp.route("/exceptions/<exception_id>/deny", methods=["POST"])
@require_actor
def deny_exception(exception_id: str):
    """Deny a requested exception.

    Body (JSON):
        notes (str, required): reason, stored verbatim.
    """
    data = request.get_json(silent=True) or {}
    notes = data.get("notes") if isinstance(data, dict) else None
    if not isinstance(notes, str) or not notes.strip():
        return api_error(E.VALIDATION_REQUIRED, "notes is required")
    return _transition(exception_id, "deny", notes)


@exception_bp.route("/exceptions/<exception_id>/revoke", methods=["POST"])
@require_actor
def revoke_exception(exception_id: str):
    """Revoke an approved exception.

    Body (JSON):
        reason (str, required)
    """
    data = request.get_json(silent=True) or {}
    reason = _required_text(data, "reason", "notes") if isinstance(data, dict) else None
    if reason is None:
        return api_error(E.VALIDATION_REQUIRED, "reason is required")
    return _transition(exception_id, "revoke", reason)
