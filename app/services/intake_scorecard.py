"""
Pilot Intake Scorecard — 10-question triage into a governance track.

Each question carries a weight and a set of scored options. A response set
reduces to a normalized 0-100 score and one of four risk paths:

    score >= 75        fast_track
    60 <= score < 75   standard
    45 <= score < 60   elevated_review
    score < 45         high_risk

The caller-supplied ``score`` on each response is used as-is.
``resolve_option_score`` derives the score server-side from
``(question_id, selected_value)`` for callers that do not trust the client.

Usage:
    from app.services.intake_scorecard import parse_intake_responses, score_intake

    responses = parse_intake_responses(request_json["responses"])
    result = score_intake(responses, project_id="proj-1")
    result.risk_path      # RiskPath.STANDARD
    result.to_dict()
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType

from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

MAX_SCORE = 100
MAX_OPTION_SCORE = 10


class RiskPath(str, Enum):
    FAST_TRACK = "fast_track"
    STANDARD = "standard"
    ELEVATED_REVIEW = "elevated_review"
    HIGH_RISK = "high_risk"


# Lower bound (inclusive) of each path, checked top-down.
RISK_PATH_THRESHOLDS: tuple[tuple[int, RiskPath], ...] = (
    (75, RiskPath.FAST_TRACK),
    (60, RiskPath.STANDARD),
    (45, RiskPath.ELEVATED_REVIEW),
)


@dataclass(frozen=True)
class IntakeOption:
    label: str
    value: str
    score: int


@dataclass(frozen=True)
class IntakeQuestion:
    id: str
    question: str
    options: tuple[IntakeOption, ...]
    weight: float = 1.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "question": self.question,
            "weight": self.weight,
            "options": [
                {"label": o.label, "value": o.value, "score": o.score}
                for o in self.options
            ],
        }


@dataclass(frozen=True)
class IntakeResponse:
    question_id: str
    selected_value: str
    score: int

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "selected_value": self.selected_value,
            "score": self.score,
        }


@dataclass(frozen=True)
class IntakeResult:
    project_id: str
    total_score: int
    risk_path: RiskPath
    recommended_actions: tuple[str, ...]
    responses: tuple[IntakeResponse, ...] = ()
    max_score: int = MAX_SCORE
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "total_score": self.total_score,
            "max_score": self.max_score,
            "risk_path": self.risk_path.value,
            "recommended_actions": list(self.recommended_actions),
            "responses": [r.to_dict() for r in self.responses],
            "created_at": self.created_at.isoformat(),
        }


def _q(qid: str, text: str, weight: float, *options: tuple[str, str, int]) -> IntakeQuestion:
    return IntakeQuestion(
        id=qid,
        question=text,
        weight=weight,
        options=tuple(IntakeOption(label, value, score) for label, value, score in options),
    )


# ═════════════════════════════════════════════════════════════════════════════
# Question bank
# ═════════════════════════════════════════════════════════════════════════════

INTAKE_QUESTIONS: tuple[IntakeQuestion, ...] = (
    _q("intake-1", "What type of data will the AI system process?", 1.5,
       ("Public/non-sensitive data only", "public", 10),
       ("Internal business data", "internal", 7),
       ("Confidential customer data", "confidential", 3),
       ("Restricted/regulated data (PII, PHI, financial)", "restricted", 1)),
    _q("intake-2", "What is the primary use case for this AI pilot?", 1.0,
       ("Code generation / developer tooling", "code_gen", 9),
       ("Document drafting / content creation", "document", 8),
       ("Data analysis / reporting", "analysis", 7),
       ("Customer-facing automation", "customer_facing", 4)),
    _q("intake-3", "How many users will participate in the pilot?", 0.8,
       ("1-5 users", "small", 10),
       ("6-20 users", "medium", 7),
       ("21-50 users", "large", 5),
       ("50+ users", "enterprise", 3)),
    _q("intake-4", "Does your organization have existing AI governance policies?", 1.2,
       ("Yes, comprehensive and enforced", "comprehensive", 10),
       ("Yes, but in draft or partial", "partial", 6),
       ("No, but we have general IT policies", "it_only", 4),
       ("No governance policies exist", "none", 1)),
    _q("intake-5", "What is the expected duration of the pilot?", 0.8,
       ("2-4 weeks", "short", 9),
       ("1-2 months", "medium", 7),
       ("3-6 months", "long", 5),
       ("6+ months", "extended", 3)),
    _q("intake-6", "Does the pilot involve cross-border data transfers?", 1.3,
       ("No, data stays within one jurisdiction", "none", 10),
       ("Yes, within same regulatory framework (e.g., EU-EU)", "same_framework", 7),
       ("Yes, across different regulatory frameworks", "cross_framework", 3),
       ("Unknown", "unknown", 2)),
    _q("intake-7", "What level of executive sponsorship exists?", 1.0,
       ("C-level sponsor actively engaged", "c_level", 10),
       ("VP-level sponsor assigned", "vp_level", 8),
       ("Director-level sponsor", "director", 5),
       ("No executive sponsor yet", "none", 2)),
    _q("intake-8", "Are there defined success criteria and KPIs?", 1.0,
       ("Yes, quantitative KPIs with baselines", "quantitative", 10),
       ("Yes, qualitative goals defined", "qualitative", 7),
       ("Partially defined", "partial", 4),
       ("No success criteria defined", "none", 1)),
    _q("intake-9", "What is the current security control maturity?", 1.2,
       ("SOC 2 / ISO 27001 certified", "certified", 10),
       ("Security program in place, not certified", "program", 7),
       ("Basic security controls only", "basic", 4),
       ("Minimal security infrastructure", "minimal", 1)),
    _q("intake-10", "Will AI outputs be directly used in production decisions?", 1.2,
       ("No, human review required for all outputs", "human_review", 10),
       ("Some outputs reviewed, some automated", "mixed", 6),
       ("Most outputs automated with spot checks", "mostly_auto", 3),
       ("Fully automated, no human review", "fully_auto", 1)),
)

_QUESTIONS_BY_ID: MappingProxyType[str, IntakeQuestion] = MappingProxyType(
    {q.id: q for q in INTAKE_QUESTIONS}
)


RECOMMENDED_ACTIONS: MappingProxyType[RiskPath, tuple[str, ...]] = MappingProxyType({
    RiskPath.FAST_TRACK: (
        "Eligible for accelerated governance path (2-week target)",
        "Streamlined gate reviews — design review + launch review only",
        "Standard security controls sufficient",
    ),
    RiskPath.STANDARD: (
        "Full governance workflow required (4-6 week target)",
        "All four governance gates must be completed",
        "Enhanced security review with evidence documentation",
    ),
    RiskPath.ELEVATED_REVIEW: (
        "Full governance workflow with additional risk review (6-8 week target)",
        "All four governance gates must be completed",
        "Enhanced security review with evidence documentation",
        "Risk owner sign-off required before pilot launch",
    ),
    RiskPath.HIGH_RISK: (
        "High-risk path: extended governance review (8-12 week target)",
        "All governance gates required with additional evidence",
        "Executive steering committee review mandatory",
        "Legal and compliance teams must be engaged from day one",
        "Consider phased rollout with smaller scope first",
    ),
})


# ═════════════════════════════════════════════════════════════════════════════
# Lookups
# ═════════════════════════════════════════════════════════════════════════════

def get_question(question_id: str) -> IntakeQuestion | None:
    return _QUESTIONS_BY_ID.get(question_id)


def max_option_score(question: IntakeQuestion) -> int:
    """Highest score any option of ``question`` can contribute."""
    return max(o.score for o in question.options)


def resolve_option_score(question_id: str, selected_value: str) -> int:
    """Look up the bank score for a selected option.

    Raises:
        ValidationError: unknown question or option value.
    """
    question = get_question(question_id)
    if question is None:
        raise ValidationError(
            f"Unknown intake question: {question_id}",
            details={"question_id": "unknown"},
        )
    for option in question.options:
        if option.value == selected_value:
            return option.score
    raise ValidationError(
        f"Unknown option '{selected_value}' for {question_id}",
        details={"selected_value": f"must be one of: {', '.join(o.value for o in question.options)}"},
    )


def parse_intake_responses(raw, *, recompute_scores: bool = False) -> list[IntakeResponse]:
    """Validate a JSON response list into IntakeResponse values.

    Args:
        raw: list of {question_id, selected_value, score} dicts.
        recompute_scores: ignore the submitted score and derive it from the bank.

    Raises:
        ValidationError: not a list, missing fields, or score outside 0-10.
    """
    if not isinstance(raw, list):
        raise ValidationError("responses must be a list", details={"responses": "expected a list"})

    parsed: list[IntakeResponse] = []
    errors: dict[str, str] = {}
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            errors[f"responses[{idx}]"] = "expected an object"
            continue
        question_id = item.get("question_id")
        selected_value = item.get("selected_value")
        if not isinstance(question_id, str) or not question_id:
            errors[f"responses[{idx}].question_id"] = "required"
            continue
        if not isinstance(selected_value, str):
            errors[f"responses[{idx}].selected_value"] = "required"
            continue

        if recompute_scores:
            score = resolve_option_score(question_id, selected_value)
        else:
            score = item.get("score")
            if isinstance(score, bool) or not isinstance(score, int):
                errors[f"responses[{idx}].score"] = "must be an integer"
                continue
            if not 0 <= score <= MAX_OPTION_SCORE:
                errors[f"responses[{idx}].score"] = f"must be between 0 and {MAX_OPTION_SCORE}"
                continue

        parsed.append(IntakeResponse(question_id, selected_value, score))

    if errors:
        raise ValidationError("Invalid intake responses", details=errors)
    return parsed


# ═════════════════════════════════════════════════════════════════════════════
# Scoring
# ═════════════════════════════════════════════════════════════════════════════

def classify_risk_path(score: int) -> RiskPath:
    for lower_bound, path in RISK_PATH_THRESHOLDS:
        if score >= lower_bound:
            return path
    return RiskPath.HIGH_RISK


def _response_score(responses, question_id: str) -> int | None:
    for r in responses:
        if r.question_id == question_id:
            return r.score
    return None


def generate_recommendations(path: RiskPath, responses) -> list[str]:
    """Static actions for ``path`` plus answer-specific follow-ups."""
    actions = list(RECOMMENDED_ACTIONS[path])

    if path in (RiskPath.STANDARD, RiskPath.ELEVATED_REVIEW):
        data_score = _response_score(responses, "intake-1")
        if data_score is not None and data_score <= 3:
            actions.append("Data classification review required before data approval gate")
        policy_score = _response_score(responses, "intake-4")
        if policy_score is not None and policy_score <= 4:
            actions.append("Governance policy drafting should begin immediately")

    if path in (RiskPath.ELEVATED_REVIEW, RiskPath.HIGH_RISK):
        cross_border = _response_score(responses, "intake-6")
        if cross_border is not None and cross_border <= 3:
            actions.append("Cross-border data transfer impact assessment required")

    return actions


def score_intake(responses, project_id: str = "") -> IntakeResult:
    """Reduce a response set to a normalized score and risk path.

    Responses for unknown questions are ignored. The maximum is the weighted
    sum of the highest option score of each answered question, so a partial
    submission is scored against what was actually answered.
    """
    responses = tuple(responses)
    weighted_total = 0.0
    weighted_max = 0.0

    for response in responses:
        question = get_question(response.question_id)
        if question is None:
            logger.debug("Skipping unknown intake question %s", response.question_id)
            continue
        weighted_total += response.score * question.weight
        weighted_max += max_option_score(question) * question.weight

    if weighted_max > 0:
        # Half-up rounding: 74.5 lands in fast_track.
        total_score = math.floor(weighted_total / weighted_max * MAX_SCORE + 0.5)
        total_score = max(0, min(MAX_SCORE, total_score))
    else:
        total_score = 0

    path = classify_risk_path(total_score)
    return IntakeResult(
        project_id=project_id,
        total_score=total_score,
        risk_path=path,
        recommended_actions=tuple(generate_recommendations(path, responses)),
        responses=responses,
    )


def generate_demo_intake_result(project_id: str) -> IntakeResult:
    """Score a representative mid-maturity pilot; used for onboarding demos."""
    picks = {
        "intake-1": "internal",
        "intake-2": "code_gen",
        "intake-3": "medium",
        "intake-4": "partial",
        "intake-5": "medium",
        "intake-6": "none",
        "intake-7": "vp_level",
        "intake-8": "quantitative",
        "intake-9": "program",
        "intake-10": "human_review",
    }
    responses = [
        IntakeResponse(qid, value, resolve_option_score(qid, value))
        for qid, value in picks.items()
    ]
    return score_intake(responses, project_id=project_id)
