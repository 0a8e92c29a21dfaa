"""Intake Service — stores scored intake submissions per project."""

import logging

from app.core.exceptions import NotFoundError
from app.models import db
from app.models.governance import IntakeResultRecord
from app.services.intake_scorecard import IntakeResult

logger = logging.getLogger(__name__)


def save_intake_result(
    organization_id: str,
    result: IntakeResult,
    submitted_by: str | None = None,
) -> dict:
    record = IntakeResultRecord(
        organization_id=organization_id,
        project_id=result.project_id,
        responses=[r.to_dict() for r in result.responses],
        total_score=result.total_score,
        max_score=result.max_score,
        risk_path=result.risk_path.value,
        recommended_actions=list(result.recommended_actions),
        submitted_by=submitted_by,
        created_at=result.created_at,
    )
    db.session.add(record)
    db.session.commit()
    logger.info(
        "Intake scored for project %s: %d -> %s",
        result.project_id, result.total_score, result.risk_path.value,
    )
    return record.to_dict()


def get_latest_intake(organization_id: str, project_id: str) -> dict:
    record = (
        IntakeResultRecord.query
        .filter_by(organization_id=organization_id, project_id=project_id)
        .order_by(IntakeResultRecord.created_at.desc())
        .first()
    )
    if record is None:
        raise NotFoundError("IntakeResult", project_id, organization_id)
    return record.to_dict()
