"""Risk exception and intake result storage.

Rows are organization-scoped (``organization_id``); every query in
app.services.exception_service and app.services.intake_service filters on it.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String, Text

from app.models import db


def _utcnow():
    return datetime.now(timezone.utc)


def _uuid():
    return str(uuid.uuid4())


def _iso(value):
    # SQLite drops the offset; stored values are UTC
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class RiskExceptionRecord(db.Model):
    """Stored risk exception. Status is the stored status; ``expired`` is never written."""

    __tablename__ = "risk_exceptions"
    __table_args__ = (
        Index("ix_risk_exceptions_org_project", "organization_id", "project_id"),
        Index("ix_risk_exceptions_org_status", "organization_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    organization_id = Column(String(64), nullable=False, index=True)
    project_id = Column(String(64), nullable=False)
    risk_id = Column(String(64), nullable=True)
    control_id = Column(String(64), nullable=True)
    title = Column(String(200), nullable=False)
    justification = Column(Text, nullable=False)
    compensating_controls = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="requested")  # requested | approved | denied | revoked
    requested_by = Column(String(64), nullable=False)
    requested_at = Column(DateTime(timezone=True), default=_utcnow)
    approved_by = Column(String(64), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    duration_days = Column(Integer, nullable=False)
    expiry_reminder_sent = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "project_id": self.project_id,
            "risk_id": self.risk_id,
            "control_id": self.control_id,
            "title": self.title,
            "justification": self.justification,
            "compensating_controls": list(self.compensating_controls or []),
            "status": self.status,
            "requested_by": self.requested_by,
            "requested_at": _iso(self.requested_at),
            "approved_by": self.approved_by,
            "approved_at": _iso(self.approved_at),
            "expires_at": _iso(self.expires_at),
            "duration_days": self.duration_days,
            "expiry_reminder_sent": self.expiry_reminder_sent,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class IntakeResultRecord(db.Model):
    """One scored intake submission; the latest per project is the current triage."""

    __tablename__ = "intake_results"

    id = Column(String(36), primary_key=True, default=_uuid)
    organization_id = Column(String(64), nullable=False, index=True)
    project_id = Column(String(64), nullable=False, index=True)
    responses = Column(JSON, nullable=False, default=list)
    total_score = Column(Integer, nullable=False)
    max_score = Column(Integer, nullable=False, default=100)
    risk_path = Column(String(20), nullable=False)  # fast_track | standard | elevated_review | high_risk
    recommended_actions = Column(JSON, nullable=False, default=list)
    submitted_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "project_id": self.project_id,
            "responses": list(self.responses or []),
            "total_score": self.total_score,
            "max_score": self.max_score,
            "risk_path": self.risk_path,
            "recommended_actions": list(self.recommended_actions or []),
            "submitted_by": self.submitted_by,
            "created_at": _iso(self.created_at),
        }
