"""
Vendor evaluation scoring across seven weighted dimensions.

Each dimension score is normalized to a percentage of its max_score and
weighted; the composite is renormalized over the dimensions actually
present, so a partial evaluation still lands on 0-100.

    >= 70  recommended
    >= 50  alternative
    <  50  not_recommended
"""

from __future__ import annotations

from types import MappingProxyType

from app.core.exceptions import ValidationError

VENDOR_DIMENSIONS: tuple[str, ...] = (
    "capabilities",
    "security",
    "compliance",
    "integration",
    "economics",
    "viability",
    "support",
)

VENDOR_DIMENSION_WEIGHTS = MappingProxyType({
    "capabilities": 0.25,
    "security": 0.25,
    "compliance": 0.20,
    "integration": 0.15,
    "economics": 0.10,
    "viability": 0.03,
    "support": 0.02,
})

VENDOR_DIMENSION_LABELS = MappingProxyType({
    "capabilities": "Technical Capabilities",
    "security": "Security Posture",
    "compliance": "Compliance Coverage",
    "integration": "Integration Ease",
    "economics": "Cost & Economics",
    "viability": "Vendor Viability",
    "support": "Support Quality",
})


def calculate_vendor_score(scores: list[dict]) -> float:
    """Weighted 0-100 composite; unknown dimensions are ignored."""
    weighted_sum = 0.0
    total_weight = 0.0
    for entry in scores:
        weight = VENDOR_DIMENSION_WEIGHTS.get(entry.get("dimension"))
        if weight is None:
            continue
        max_score = entry.get("max_score") or 0
        percentage = entry.get("score", 0) / max_score * 100 if max_score > 0 else 0.0
        weighted_sum += percentage * weight
        total_weight += weight

    if total_weight == 0:
        return 0.0
    return round(weighted_sum / total_weight, 2)


def get_vendor_recommendation(score: float) -> str:
    if score >= 70:
        return "recommended"
    if score >= 50:
        return "alternative"
    return "not_recommended"


def validate_vendor_evaluations(vendors) -> None:
    """Raise ValidationError unless ``vendors`` is a list of well-formed evaluations."""
    if not isinstance(vendors, list):
        raise ValidationError("vendors must be a list", details={"vendors": "expected a list"})

    errors: dict[str, str] = {}
    for idx, vendor in enumerate(vendors):
        if not isinstance(vendor, dict):
            errors[f"vendors[{idx}]"] = "expected an object"
            continue
        if not vendor.get("vendor_name"):
            errors[f"vendors[{idx}].vendor_name"] = "required"
        scores = vendor.get("dimension_scores")
        if not isinstance(scores, list):
            errors[f"vendors[{idx}].dimension_scores"] = "expected a list"
            continue
        for jdx, entry in enumerate(scores):
            key = f"vendors[{idx}].dimension_scores[{jdx}]"
            if not isinstance(entry, dict):
                errors[key] = "expected an object"
            elif entry.get("dimension") not in VENDOR_DIMENSION_WEIGHTS:
                errors[key] = f"dimension must be one of: {', '.join(VENDOR_DIMENSIONS)}"
            elif not all(
                isinstance(entry.get(f), (int, float)) and not isinstance(entry.get(f), bool)
                for f in ("score", "max_score")
            ):
                errors[key] = "score and max_score must be numbers"
            elif entry["max_score"] <= 0:
                errors[key] = "max_score must be greater than 0"
            elif not 0 <= entry["score"] <= entry["max_score"]:
                errors[key] = "score must be between 0 and max_score"

    if errors:
        raise ValidationError("Invalid vendor evaluations", details=errors)


def compare_vendors(vendors: list[dict]) -> list[dict]:
    """Score every vendor and return a new list, best first.

    Input dicts are copied, never modified.
    """
    scored = []
    for vendor in vendors:
        overall = calculate_vendor_score(vendor.get("dimension_scores", []))
        scored.append({
            **vendor,
            "overall_score": overall,
            "recommendation": get_vendor_recommendation(overall),
        })
    return sorted(scored, key=lambda v: v["overall_score"], reverse=True)
