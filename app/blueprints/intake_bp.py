"""
Pilot Intake Blueprint.

Endpoints:
    GET  /api/v1/intake/questions               — question bank
    POST /api/v1/projects/<project_id>/intake   — score and store a submission
    GET  /api/v1/projects/<project_id>/intake   — latest stored result
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from app.middleware.actor_context import authorize, get_actor, require_actor
from app.services import intake_service
from app.services.intake_scorecard import (
    INTAKE_QUESTIONS,
    RISK_PATH_THRESHOLDS,
    parse_intake_responses,
    score_intake,
)
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

intake_bp = Blueprint("intake", __name__, url_prefix="/api/v1")


@intake_bp.route("/intake/questions", methods=["GET"])
def list_questions():
    return jsonify({
        "questions": [q.to_dict() for q in INTAKE_QUESTIONS],
        "thresholds": {path.value: lower for lower, path in RISK_PATH_THRESHOLDS},
    }), 200


@intake_bp.route("/projects/<project_id>/intake", methods=["POST"])
@require_actor
def submit_intake(project_id: str):
    """Score an intake submission.

    Body (JSON):
        responses (list, required): [{question_id, selected_value, score}]

    When INTAKE_RECOMPUTE_SCORES is on, submitted scores are ignored and
    re-derived from the question bank.
    """
    actor = get_actor()
    err = authorize("project:update", actor.organization_id, resource="Project")
    if err:
        return err

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "responses" not in data:
        return api_error(E.VALIDATION_REQUIRED, "responses is required")

    recompute = bool(current_app.config.get("INTAKE_RECOMPUTE_SCORES", False))
    responses = parse_intake_responses(data["responses"], recompute_scores=recompute)
    result = score_intake(responses, project_id=project_id)

    stored = intake_service.save_intake_result(
        actor.organization_id, result, submitted_by=actor.user_id,
    )
    return jsonify(stored), 201


@intake_bp.route("/projects/<project_id>/intake", methods=["GET"])
@require_actor
def get_intake(project_id: str):
    actor = get_actor()
    err = authorize("project:read", actor.organization_id, resource="Project")
    if err:
        return err
    return jsonify(intake_service.get_latest_intake(actor.organization_id, project_id)), 200
