"""
Pilot intake scorecard tests.

Covers:
  - Risk path thresholds (75 / 60 / 45 boundaries)
  - Weighted, normalized scoring over the answered questions
  - Recommendations per path + answer-specific follow-ups
  - Response parsing and server-side score resolution
  - /api/v1/intake and /api/v1/projects/<id>/intake endpoints
"""

import pytest

from app.core.exceptions import ValidationError
from app.services.intake_scorecard import (
    INTAKE_QUESTIONS,
    RECOMMENDED_ACTIONS,
    IntakeResponse,
    RiskPath,
    classify_risk_path,
    generate_demo_intake_result,
    get_question,
    max_option_score,
    parse_intake_responses,
    resolve_option_score,
    score_intake,
)


# ═══════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════


def _pick(option_index):
    """Answer every question with the option at ``option_index``."""
    return [
        IntakeResponse(q.id, q.options[option_index].value, q.options[option_index].score)
        for q in INTAKE_QUESTIONS
    ]


def _elevated_responses():
    """First five questions second option, last five third option (scores 54)."""
    responses = []
    for idx, q in enumerate(INTAKE_QUESTIONS):
        option = q.options[1] if idx < 5 else q.options[2]
        responses.append(IntakeResponse(q.id, option.value, option.score))
    return responses


def _payload(responses):
    return {"responses": [r.to_dict() for r in responses]}


# ═══════════════════════════════════════════════════════════════════════════
# Thresholds
# ═══════════════════════════════════════════════════════════════════════════


class TestClassifyRiskPath:

    @pytest.mark.parametrize("score,expected", [
        (100, RiskPath.FAST_TRACK),
        (75, RiskPath.FAST_TRACK),
        (74, RiskPath.STANDARD),
        (60, RiskPath.STANDARD),
        (59, RiskPath.ELEVATED_REVIEW),
        (45, RiskPath.ELEVATED_REVIEW),
        (44, RiskPath.HIGH_RISK),
        (0, RiskPath.HIGH_RISK),
    ])
    def test_boundaries(self, score, expected):
        assert classify_risk_path(score) is expected


# ═══════════════════════════════════════════════════════════════════════════
# Scoring
# ═══════════════════════════════════════════════════════════════════════════


class TestScoreIntake:

    def test_question_bank_shape(self):
        assert len(INTAKE_QUESTIONS) == 10
        assert all(len(q.options) == 4 for q in INTAKE_QUESTIONS)

    def test_all_best_answers_score_100(self):
        result = score_intake(_pick(0), project_id="p-1")
        assert result.total_score == 100
        assert result.risk_path is RiskPath.FAST_TRACK
        assert result.recommended_actions == RECOMMENDED_ACTIONS[RiskPath.FAST_TRACK]
        assert result.project_id == "p-1"

    def test_all_second_answers_standard(self):
        result = score_intake(_pick(1))
        assert result.total_score == 71
        assert result.risk_path is RiskPath.STANDARD

    def test_all_third_answers_high_risk(self):
        result = score_intake(_pick(2))
        assert result.total_score == 42
        assert result.risk_path is RiskPath.HIGH_RISK

    def test_all_worst_answers(self):
        result = score_intake(_pick(3))
        assert result.total_score == 18
        assert result.risk_path is RiskPath.HIGH_RISK

    def test_mixed_answers_elevated_review(self):
        result = score_intake(_elevated_responses())
        assert result.total_score == 54
        assert result.risk_path is RiskPath.ELEVATED_REVIEW

    def test_score_always_in_range(self):
        for idx in range(4):
            assert 0 <= score_intake(_pick(idx)).total_score <= 100

    def test_partial_submission_scored_against_answered_questions(self):
        result = score_intake([IntakeResponse("intake-1", "public", 10)])
        assert result.total_score == 100
        result = score_intake([IntakeResponse("intake-1", "restricted", 1)])
        assert result.total_score == 10

    def test_unknown_questions_ignored(self):
        responses = _pick(0) + [IntakeResponse("intake-99", "x", 0)]
        assert score_intake(responses).total_score == 100

    def test_empty_submission(self):
        result = score_intake([])
        assert result.total_score == 0
        assert result.risk_path is RiskPath.HIGH_RISK

    def test_responses_kept_on_result(self):
        responses = _pick(1)
        assert list(score_intake(responses).responses) == responses

    def test_demo_result(self):
        result = generate_demo_intake_result("demo")
        assert result.total_score == 83
        assert result.risk_path is RiskPath.FAST_TRACK

    def test_to_dict(self):
        body = score_intake(_pick(1), project_id="p-1").to_dict()
        assert body["risk_path"] == "standard"
        assert body["max_score"] == 100
        assert len(body["responses"]) == 10


class TestRecommendations:

    def test_high_risk_adds_cross_border_follow_up(self):
        result = score_intake(_pick(2))
        assert "Cross-border data transfer impact assessment required" in result.recommended_actions

    def test_elevated_review_actions(self):
        result = score_intake(_elevated_responses())
        actions = result.recommended_actions
        assert actions[:4] == RECOMMENDED_ACTIONS[RiskPath.ELEVATED_REVIEW]
        assert "Risk owner sign-off required before pilot launch" in actions
        assert "Cross-border data transfer impact assessment required" in actions

    def test_standard_path_data_and_policy_follow_ups(self):
        # Restricted data, customer-facing, no policies; everything else best answer.
        responses = _pick(0)
        responses[0] = IntakeResponse("intake-1", "restricted", 1)
        responses[1] = IntakeResponse("intake-2", "customer_facing", 4)
        responses[3] = IntakeResponse("intake-4", "none", 1)
        result = score_intake(responses)
        assert result.total_score == 73
        assert result.risk_path is RiskPath.STANDARD
        assert "Data classification review required before data approval gate" in result.recommended_actions
        assert "Governance policy drafting should begin immediately" in result.recommended_actions

    def test_fast_track_has_no_follow_ups(self):
        result = score_intake(_pick(0))
        assert len(result.recommended_actions) == len(RECOMMENDED_ACTIONS[RiskPath.FAST_TRACK])


# ═══════════════════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════════════════


class TestParseResponses:

    def test_trusts_submitted_score(self):
        parsed = parse_intake_responses([
            {"question_id": "intake-1", "selected_value": "restricted", "score": 10},
        ])
        assert parsed == [IntakeResponse("intake-1", "restricted", 10)]

    def test_recompute_scores(self):
        parsed = parse_intake_responses(
            [{"question_id": "intake-1", "selected_value": "restricted", "score": 10}],
            recompute_scores=True,
        )
        assert parsed[0].score == 1

    def test_not_a_list(self):
        with pytest.raises(ValidationError):
            parse_intake_responses({"question_id": "intake-1"})

    def test_score_out_of_range(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_intake_responses([
                {"question_id": "intake-1", "selected_value": "public", "score": 11},
            ])
        assert "responses[0].score" in exc_info.value.details

    def test_bool_score_rejected(self):
        with pytest.raises(ValidationError):
            parse_intake_responses([
                {"question_id": "intake-1", "selected_value": "public", "score": True},
            ])

    def test_resolve_unknown_option(self):
        with pytest.raises(ValidationError):
            resolve_option_score("intake-1", "secret")
        with pytest.raises(ValidationError):
            resolve_option_score("intake-42", "public")

    def test_question_lookups(self):
        question = get_question("intake-1")
        assert question.weight == 1.5
        assert max_option_score(question) == 10
        assert resolve_option_score("intake-1", "internal") == 7
        assert get_question("intake-42") is None


# ═══════════════════════════════════════════════════════════════════════════
# API
# ═══════════════════════════════════════════════════════════════════════════


class TestIntakeApi:

    def test_questions(self, client):
        res = client.get("/api/v1/intake/questions")
        assert res.status_code == 200
        body = res.get_json()
        assert len(body["questions"]) == 10
        assert body["thresholds"] == {"fast_track": 75, "standard": 60, "elevated_review": 45}

    def test_submit_and_fetch(self, client, consultant):
        res = client.post("/api/v1/projects/p-1/intake", json=_payload(_pick(1)), headers=consultant)
        assert res.status_code == 201
        body = res.get_json()
        assert body["total_score"] == 71
        assert body["risk_path"] == "standard"
        assert body["submitted_by"] == "consultant-1"

        res = client.get("/api/v1/projects/p-1/intake", headers=consultant)
        assert res.status_code == 200
        assert res.get_json()["id"] == body["id"]

    def test_timestamps_carry_utc_offset(self, client, consultant):
        client.post("/api/v1/projects/p-1/intake", json=_payload(_pick(0)), headers=consultant)
        res = client.get("/api/v1/projects/p-1/intake", headers=consultant)
        assert res.get_json()["created_at"].endswith("+00:00")

    def test_latest_not_found(self, client, consultant):
        res = client.get("/api/v1/projects/p-404/intake", headers=consultant)
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_other_organization_cannot_see_result(self, client, consultant, actor_headers):
        client.post("/api/v1/projects/p-1/intake", json=_payload(_pick(0)), headers=consultant)
        other = actor_headers("c-2", "consultant", "org-globex")
        res = client.get("/api/v1/projects/p-1/intake", headers=other)
        assert res.status_code == 404

    def test_submit_requires_project_update(self, client, marketing):
        res = client.post("/api/v1/projects/p-1/intake", json=_payload(_pick(0)), headers=marketing)
        assert res.status_code == 403
        assert res.get_json()["details"] == {"required": "project:update"}

    def test_submit_requires_actor(self, client):
        res = client.post("/api/v1/projects/p-1/intake", json=_payload(_pick(0)))
        assert res.status_code == 401

    def test_missing_responses(self, client, consultant):
        res = client.post("/api/v1/projects/p-1/intake", json={}, headers=consultant)
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_invalid_score(self, client, consultant):
        res = client.post("/api/v1/projects/p-1/intake", json={
            "responses": [{"question_id": "intake-1", "selected_value": "public", "score": 50}],
        }, headers=consultant)
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_recompute_flag(self, app, client, consultant, monkeypatch):
        monkeypatch.setitem(app.config, "INTAKE_RECOMPUTE_SCORES", True)
        res = client.post("/api/v1/projects/p-1/intake", json={
            "responses": [{"question_id": "intake-1", "selected_value": "restricted", "score": 10}],
        }, headers=consultant)
        assert res.status_code == 201
        assert res.get_json()["total_score"] == 10
        assert res.get_json()["risk_path"] == "high_risk"
