"""
Risk Exception Lifecycle — time-bound waivers with compensating controls.

Status transitions:

    requested ──approve──► approved ──revoke──► revoked
        │
        └──deny──► denied

``expired`` is never stored. It is derived from ``expires_at`` by
``effective_status`` and by the periodic ``check_expirations`` scan.

Every function here is pure: inputs are frozen dataclasses, transitions
return a new record via ``dataclasses.replace``, nothing touches the
database. Persisting the result is the caller's job
(see app.services.exception_service).

Usage:
    from app.services.exception_lifecycle import (
        approve_exception, check_expirations, create_risk_exception,
    )

    exc = create_risk_exception({...})
    exc = approve_exception(exc, approver_id="user-7")
    report = check_expirations([exc])
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from types import MappingProxyType

from app.core.exceptions import InvalidStateError, ValidationError

logger = logging.getLogger(__name__)

MIN_DURATION_DAYS = 1
MAX_DURATION_DAYS = 365
DEFAULT_EXPIRY_WARNING_DAYS = 7


class ExceptionStatus(str, Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    DENIED = "denied"
    REVOKED = "revoked"
    EXPIRED = "expired"  # derived only


# Transition rules: action -> statuses it is valid from, status it produces
EXCEPTION_TRANSITIONS = MappingProxyType({
    "approve": {"from": (ExceptionStatus.REQUESTED,), "to": ExceptionStatus.APPROVED},
    "deny": {"from": (ExceptionStatus.REQUESTED,), "to": ExceptionStatus.DENIED},
    "revoke": {"from": (ExceptionStatus.APPROVED,), "to": ExceptionStatus.REVOKED},
})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError(f"Invalid timestamp: {value!r}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class RiskException:
    id: str
    project_id: str
    organization_id: str
    title: str
    justification: str
    compensating_controls: tuple[str, ...]
    requested_by: str
    duration_days: int
    status: ExceptionStatus = ExceptionStatus.REQUESTED
    risk_id: str | None = None
    control_id: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    expires_at: datetime | None = None
    notes: str | None = None
    requested_at: datetime = field(default_factory=_utcnow)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "organization_id": self.organization_id,
            "risk_id": self.risk_id,
            "control_id": self.control_id,
            "title": self.title,
            "justification": self.justification,
            "compensating_controls": list(self.compensating_controls),
            "requested_by": self.requested_by,
            "requested_at": _iso(self.requested_at),
            "approved_by": self.approved_by,
            "approved_at": _iso(self.approved_at),
            "expires_at": _iso(self.expires_at),
            "duration_days": self.duration_days,
            "status": self.status.value,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RiskException":
        """Rebuild a record from ``to_dict`` output (or a stored row)."""
        try:
            status = ExceptionStatus(data.get("status", ExceptionStatus.REQUESTED.value))
        except ValueError as exc:
            raise ValidationError(
                f"Unknown exception status: {data.get('status')!r}",
                details={"status": "unknown"},
            ) from exc
        now = _utcnow()
        return cls(
            id=data["id"],
            project_id=data["project_id"],
            organization_id=data["organization_id"],
            title=data["title"],
            justification=data["justification"],
            compensating_controls=tuple(data.get("compensating_controls") or ()),
            requested_by=data["requested_by"],
            duration_days=int(data["duration_days"]),
            status=status,
            risk_id=data.get("risk_id"),
            control_id=data.get("control_id"),
            approved_by=data.get("approved_by"),
            approved_at=parse_timestamp(data.get("approved_at")),
            expires_at=parse_timestamp(data.get("expires_at")),
            notes=data.get("notes"),
            requested_at=parse_timestamp(data.get("requested_at")) or now,
            created_at=parse_timestamp(data.get("created_at")) or now,
            updated_at=parse_timestamp(data.get("updated_at")) or now,
        )


@dataclass(frozen=True)
class ExpirationReport:
    expired: tuple[RiskException, ...] = ()
    expiring_soon: tuple[RiskException, ...] = ()

    def to_dict(self) -> dict:
        expired = []
        for exc in self.expired:
            item = exc.to_dict()
            item["effective_status"] = ExceptionStatus.EXPIRED.value
            expired.append(item)
        return {
            "expired": expired,
            "expiring_soon": [exc.to_dict() for exc in self.expiring_soon],
        }


# ═════════════════════════════════════════════════════════════════════════════
# Validation
# ═════════════════════════════════════════════════════════════════════════════

_REQUIRED_TEXT_FIELDS = (
    "project_id", "organization_id", "title", "justification", "requested_by",
)


def validate_exception_input(data: dict) -> dict[str, str]:
    """Return a field -> message map of problems (empty when valid)."""
    errors: dict[str, str] = {}
    if not isinstance(data, dict):
        return {"_": "expected an object"}

    for name in _REQUIRED_TEXT_FIELDS:
        value = data.get(name)
        if not isinstance(value, str) or not value.strip():
            errors[name] = "required"

    controls = data.get("compensating_controls")
    if not isinstance(controls, (list, tuple)) or not controls:
        errors["compensating_controls"] = "at least one compensating control is required"
    elif any(not isinstance(c, str) or not c.strip() for c in controls):
        errors["compensating_controls"] = "each compensating control must be a non-empty string"

    duration = data.get("duration_days")
    if isinstance(duration, bool) or not isinstance(duration, int):
        errors["duration_days"] = "must be an integer"
    elif not MIN_DURATION_DAYS <= duration <= MAX_DURATION_DAYS:
        errors["duration_days"] = f"must be between {MIN_DURATION_DAYS} and {MAX_DURATION_DAYS}"

    for name in ("risk_id", "control_id"):
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            errors[name] = "must be a string"

    return errors


# ═════════════════════════════════════════════════════════════════════════════
# Lifecycle
# ═════════════════════════════════════════════════════════════════════════════

def create_risk_exception(
    data: dict,
    *,
    now: datetime | None = None,
    exception_id: str | None = None,
) -> RiskException:
    """Build a new exception in ``requested`` status.

    ``expires_at`` stays None until approval; the clock starts at approval.

    Raises:
        ValidationError: missing fields, empty compensating controls, or
            duration_days outside 1-365.
    """
    errors = validate_exception_input(data)
    if errors:
        raise ValidationError("Invalid risk exception request", details=errors)

    now = now or _utcnow()
    return RiskException(
        id=exception_id or str(uuid.uuid4()),
        project_id=data["project_id"].strip(),
        organization_id=data["organization_id"].strip(),
        risk_id=data.get("risk_id"),
        control_id=data.get("control_id"),
        title=data["title"].strip(),
        justification=data["justification"].strip(),
        compensating_controls=tuple(c.strip() for c in data["compensating_controls"]),
        requested_by=data["requested_by"].strip(),
        duration_days=data["duration_days"],
        status=ExceptionStatus.REQUESTED,
        requested_at=now,
        created_at=now,
        updated_at=now,
    )


def _guard_transition(exc: RiskException, action: str) -> ExceptionStatus:
    rule = EXCEPTION_TRANSITIONS[action]
    if exc.status not in rule["from"]:
        raise InvalidStateError(
            "RiskException",
            exc.id,
            current=exc.status.value,
            action=action,
            allowed_from=tuple(s.value for s in rule["from"]),
        )
    return rule["to"]


def _require_actor(actor_id, field_name: str) -> str:
    if not isinstance(actor_id, str) or not actor_id.strip():
        raise ValidationError(f"{field_name} is required", details={field_name: "required"})
    return actor_id.strip()


def approve_exception(
    exc: RiskException,
    approver_id: str,
    *,
    now: datetime | None = None,
) -> RiskException:
    """Approve a requested exception; expiry runs from the approval instant.

    Raises:
        InvalidStateError: exception is not in ``requested`` status.
    """
    approver_id = _require_actor(approver_id, "approved_by")
    new_status = _guard_transition(exc, "approve")
    now = now or _utcnow()
    return replace(
        exc,
        status=new_status,
        approved_by=approver_id,
        approved_at=now,
        expires_at=now + timedelta(days=exc.duration_days),
        updated_at=now,
    )


def deny_exception(
    exc: RiskException,
    approver_id: str,
    notes: str,
    *,
    now: datetime | None = None,
) -> RiskException:
    """Deny a requested exception, storing ``notes`` verbatim.

    Raises:
        InvalidStateError: exception is not in ``requested`` status.
    """
    approver_id = _require_actor(approver_id, "approved_by")
    new_status = _guard_transition(exc, "deny")
    now = now or _utcnow()
    return replace(
        exc,
        status=new_status,
        approved_by=approver_id,
        approved_at=now,
        notes=notes,
        updated_at=now,
    )


def revoke_exception(
    exc: RiskException,
    revoked_by: str,
    reason: str,
    *,
    now: datetime | None = None,
) -> RiskException:
    """Withdraw an approved exception before it expires.

    Raises:
        InvalidStateError: exception is not in ``approved`` status.
    """
    revoked_by = _require_actor(revoked_by, "revoked_by")
    new_status = _guard_transition(exc, "revoke")
    now = now or _utcnow()
    return replace(
        exc,
        status=new_status,
        notes=f"Revoked by {revoked_by}: {reason}",
        updated_at=now,
    )


def is_expired(exc: RiskException, now: datetime | None = None) -> bool:
    now = now or _utcnow()
    return (
        exc.status == ExceptionStatus.APPROVED
        and exc.expires_at is not None
        and exc.expires_at < now
    )


def effective_status(exc: RiskException, now: datetime | None = None) -> ExceptionStatus:
    """Stored status, except approved records past ``expires_at`` read as expired."""
    if is_expired(exc, now):
        return ExceptionStatus.EXPIRED
    return exc.status


def check_expirations(
    exceptions,
    now: datetime | None = None,
    warning_days: int = DEFAULT_EXPIRY_WARNING_DAYS,
) -> ExpirationReport:
    """Bucket approved exceptions into expired and expiring-soon.

    Only ``approved`` records are considered. ``expired`` holds those whose
    ``expires_at`` is strictly before ``now``; ``expiring_soon`` holds the
    rest that expire within ``warning_days``. Records are returned unchanged.
    """
    now = now or _utcnow()
    horizon = now + timedelta(days=warning_days)
    expired: list[RiskException] = []
    expiring_soon: list[RiskException] = []

    for exc in exceptions:
        if exc.status != ExceptionStatus.APPROVED or exc.expires_at is None:
            continue
        if exc.expires_at < now:
            expired.append(exc)
        elif exc.expires_at <= horizon:
            expiring_soon.append(exc)

    if expired or expiring_soon:
        logger.info(
            "Exception expiry scan: %d expired, %d expiring within %d days",
            len(expired), len(expiring_soon), warning_days,
        )
    return ExpirationReport(tuple(expired), tuple(expiring_soon))
