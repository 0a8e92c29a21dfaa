"""
Risk Exception Service — persistence around the pure lifecycle.

Loads rows, hands them to app.services.exception_lifecycle as frozen
RiskException values, and writes back whatever the lifecycle returns.

Layer contract:
    - All state rules live in exception_lifecycle; nothing here decides
      whether a transition is allowed.
    - All queries are scoped by organization_id, except ``get_exception_any_org``
      which exists so the blueprint can run the tenant check itself.
    - This module owns db.session.commit().
"""

from __future__ import annotations

import logging
from datetime import datetime

from app.core.exceptions import NotFoundError, ValidationError
from app.models import db
from app.models.governance import RiskExceptionRecord
from app.services import exception_lifecycle as lifecycle
from app.services.exception_lifecycle import (
    ExceptionStatus,
    ExpirationReport,
    RiskException,
)

logger = logging.getLogger(__name__)


def _to_domain(record: RiskExceptionRecord) -> RiskException:
    return RiskException.from_dict(record.to_dict())


def _write(record: RiskExceptionRecord, exc: RiskException) -> None:
    record.project_id = exc.project_id
    record.organization_id = exc.organization_id
    record.risk_id = exc.risk_id
    record.control_id = exc.control_id
    record.title = exc.title
    record.justification = exc.justification
    record.compensating_controls = list(exc.compensating_controls)
    record.status = exc.status.value
    record.requested_by = exc.requested_by
    record.requested_at = exc.requested_at
    record.approved_by = exc.approved_by
    record.approved_at = exc.approved_at
    record.expires_at = exc.expires_at
    record.duration_days = exc.duration_days
    record.notes = exc.notes
    record.created_at = exc.created_at
    record.updated_at = exc.updated_at


def serialize(exc: RiskException, now: datetime | None = None) -> dict:
    """API shape: stored fields plus the derived ``effective_status``."""
    data = exc.to_dict()
    data["effective_status"] = lifecycle.effective_status(exc, now).value
    return data


# ═════════════════════════════════════════════════════════════════════════════
# Queries
# ═════════════════════════════════════════════════════════════════════════════

def get_exception_any_org(exception_id: str) -> RiskException:
    """Unscoped fetch. Callers must run the tenant check before using the result."""
    record = db.session.get(RiskExceptionRecord, exception_id)
    if record is None:
        raise NotFoundError("RiskException", exception_id)
    return _to_domain(record)


def get_exception(organization_id: str, exception_id: str) -> RiskException:
    record = (
        RiskExceptionRecord.query
        .filter_by(id=exception_id, organization_id=organization_id)
        .first()
    )
    if record is None:
        raise NotFoundError("RiskException", exception_id, organization_id)
    return _to_domain(record)


def list_exceptions(
    organization_id: str,
    project_id: str | None = None,
    status: str | None = None,
) -> list[RiskException]:
    q = RiskExceptionRecord.query.filter_by(organization_id=organization_id)
    if project_id is not None:
        q = q.filter_by(project_id=project_id)
    if status is not None:
        q = q.filter_by(status=status)
    return [_to_domain(r) for r in q.order_by(RiskExceptionRecord.created_at.desc()).all()]


# ═════════════════════════════════════════════════════════════════════════════
# Commands
# ═════════════════════════════════════════════════════════════════════════════

def request_exception(data: dict) -> RiskException:
    """Validate and store a new exception in ``requested`` status."""
    exc = lifecycle.create_risk_exception(data)
    record = RiskExceptionRecord(id=exc.id)
    _write(record, exc)
    db.session.add(record)
    db.session.commit()
    logger.info(
        "Risk exception %s requested by %s (org=%s project=%s, %d days)",
        exc.id, exc.requested_by, exc.organization_id, exc.project_id, exc.duration_days,
        extra={"exception_id": exc.id, "project_id": exc.project_id},
    )
    return exc


def transition_exception(
    organization_id: str,
    exception_id: str,
    action: str,
    actor_id: str,
    *,
    notes: str | None = None,
) -> RiskException:
    """Apply approve / deny / revoke and persist the new record.

    Raises:
        NotFoundError: no such exception in the organization.
        InvalidStateError: transition not valid from the current status.
        ValidationError: unknown action or missing actor.
    """
    record = (
        RiskExceptionRecord.query
        .filter_by(id=exception_id, organization_id=organization_id)
        .first()
    )
    if record is None:
        raise NotFoundError("RiskException", exception_id, organization_id)

    current = _to_domain(record)
    if action == "approve":
        updated = lifecycle.approve_exception(current, actor_id)
    elif action == "deny":
        updated = lifecycle.deny_exception(current, actor_id, notes or "")
    elif action == "revoke":
        updated = lifecycle.revoke_exception(current, actor_id, notes or "")
    else:
        raise ValidationError(f"Unknown action: {action}", details={"action": action})

    _write(record, updated)
    db.session.commit()
    logger.info(
        "Risk exception %s: %s -> %s by %s",
        exception_id, current.status.value, updated.status.value, actor_id,
        extra={"exception_id": exception_id, "project_id": updated.project_id},
    )
    return updated


def scan_expirations(
    organization_id: str | None = None,
    *,
    now: datetime | None = None,
    warning_days: int = lifecycle.DEFAULT_EXPIRY_WARNING_DAYS,
    mark_reminders: bool = False,
) -> tuple[ExpirationReport, int]:
    """Run the expiry scan over stored approved exceptions.

    Args:
        organization_id: limit to one organization; None scans all (job use).
        mark_reminders: flag expiring-soon rows as reminded so the scheduled
            job only reminds once per exception.

    Returns:
        (report, reminders_marked)
    """
    q = RiskExceptionRecord.query.filter_by(status=ExceptionStatus.APPROVED.value)
    if organization_id is not None:
        q = q.filter_by(organization_id=organization_id)
    records = {r.id: r for r in q.all()}

    report = lifecycle.check_expirations(
        [_to_domain(r) for r in records.values()], now=now, warning_days=warning_days,
    )

    reminded = 0
    if mark_reminders:
        for exc in report.expiring_soon:
            record = records[exc.id]
            if not record.expiry_reminder_sent:
                record.expiry_reminder_sent = True
                reminded += 1
        if reminded:
            db.session.commit()

    return report, reminded
