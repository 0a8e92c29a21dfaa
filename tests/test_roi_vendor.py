"""
ROI calculator and vendor scoring tests (pure functions + API).
"""

import json

import pytest

from app.core.exceptions import ValidationError
from app.services.roi_calculator import (
    NEVER_PAID_BACK,
    SENSITIVITY_LIFTS,
    RoiInputs,
    calculate_npv,
    calculate_roi,
    calculate_sensitivity,
)
from app.services.vendor_scoring import (
    VENDOR_DIMENSION_WEIGHTS,
    VENDOR_DIMENSIONS,
    calculate_vendor_score,
    compare_vendors,
    get_vendor_recommendation,
    validate_vendor_evaluations,
)

ROI_BODY = {
    "team_size": 10,
    "avg_salary": 120000,
    "current_velocity": 0,
    "projected_velocity_lift": 20,
    "license_cost_per_user": 20,
    "implementation_cost": 10000,
    "training_cost": 5000,
}


def _scores(value, max_score=10, dimensions=VENDOR_DIMENSIONS):
    return [{"dimension": d, "score": value, "max_score": max_score} for d in dimensions]


# ═══════════════════════════════════════════════════════════════════════════
# ROI
# ═══════════════════════════════════════════════════════════════════════════


class TestRoi:

    def test_reference_calculation(self):
        results = calculate_roi(RoiInputs.from_dict(ROI_BODY))
        assert results.monthly_savings == 20000
        assert results.annual_savings == 240000
        assert results.total_annual_cost == 17400
        assert results.net_annual_benefit == 222600
        assert results.payback_months == 1
        assert results.three_year_npv == 538573
        assert results.roi_percentage == pytest.approx(1279.3)

    def test_never_pays_back(self):
        inputs = RoiInputs.from_dict({**ROI_BODY, "license_cost_per_user": 2000})
        assert calculate_roi(inputs).payback_months == NEVER_PAID_BACK

    def test_zero_cost_roi_percentage(self):
        inputs = RoiInputs.from_dict({
            **ROI_BODY, "license_cost_per_user": 0, "implementation_cost": 0, "training_cost": 0,
        })
        results = calculate_roi(inputs)
        assert results.roi_percentage == 0.0
        assert results.payback_months == 0

    def test_npv_discounting(self):
        assert calculate_npv(1100, 0, 1, 0.10) == pytest.approx(1000)
        assert calculate_npv(0, 500, 3, 0.10) == -500

    def test_sensitivity_rows(self):
        rows = calculate_sensitivity(RoiInputs.from_dict(ROI_BODY))
        assert [r.velocity_lift for r in rows] == list(SENSITIVITY_LIFTS)
        assert rows[0].monthly_savings == 10000
        savings = [r.monthly_savings for r in rows]
        assert savings == sorted(savings)

    def test_current_velocity_optional(self):
        body = dict(ROI_BODY)
        del body["current_velocity"]
        assert RoiInputs.from_dict(body).current_velocity == 0

    @pytest.mark.parametrize("field,value", [
        ("team_size", 0),
        ("avg_salary", -1),
        ("training_cost", "free"),
        ("implementation_cost", None),
        ("projected_velocity_lift", True),
        ("avg_salary", float("nan")),
        ("implementation_cost", float("inf")),
    ])
    def test_invalid_inputs(self, field, value):
        with pytest.raises(ValidationError) as exc_info:
            RoiInputs.from_dict({**ROI_BODY, field: value})
        assert field in exc_info.value.details


# ═══════════════════════════════════════════════════════════════════════════
# Vendors
# ═══════════════════════════════════════════════════════════════════════════


class TestVendorScoring:

    def test_weights_sum_to_one(self):
        assert sum(VENDOR_DIMENSION_WEIGHTS.values()) == pytest.approx(1.0)

    def test_uniform_score(self):
        assert calculate_vendor_score(_scores(8)) == 80.0

    def test_partial_evaluation_renormalized(self):
        assert calculate_vendor_score(_scores(5, dimensions=("security",))) == 50.0

    def test_weighting(self):
        scores = [
            {"dimension": "capabilities", "score": 10, "max_score": 10},
            {"dimension": "support", "score": 0, "max_score": 10},
        ]
        # 100 * 0.25 / (0.25 + 0.02)
        assert calculate_vendor_score(scores) == 92.59

    def test_unknown_and_zero_max_dimensions(self):
        assert calculate_vendor_score([{"dimension": "vibes", "score": 10, "max_score": 10}]) == 0.0
        assert calculate_vendor_score(_scores(5, max_score=0)) == 0.0

    @pytest.mark.parametrize("score,expected", [
        (70, "recommended"),
        (69.99, "alternative"),
        (50, "alternative"),
        (49.99, "not_recommended"),
    ])
    def test_recommendation_thresholds(self, score, expected):
        assert get_vendor_recommendation(score) == expected

    def test_compare_sorted_and_non_mutating(self):
        vendors = [
            {"vendor_name": "B", "dimension_scores": _scores(4)},
            {"vendor_name": "A", "dimension_scores": _scores(9)},
            {"vendor_name": "C", "dimension_scores": _scores(6)},
        ]
        ranked = compare_vendors(vendors)
        assert [v["vendor_name"] for v in ranked] == ["A", "C", "B"]
        assert [v["recommendation"] for v in ranked] == ["recommended", "alternative", "not_recommended"]
        assert "overall_score" not in vendors[0]

    def test_validation(self):
        with pytest.raises(ValidationError):
            validate_vendor_evaluations({"vendor_name": "A"})
        with pytest.raises(ValidationError) as exc_info:
            validate_vendor_evaluations([{"vendor_name": "A", "dimension_scores": [{"dimension": "vibes"}]}])
        assert "vendors[0].dimension_scores[0]" in exc_info.value.details

    @pytest.mark.parametrize("score,max_score", [(50, 10), (-5, 10), (5, 0), (5, -10)])
    def test_score_outside_scale_rejected(self, score, max_score):
        vendors = [{"vendor_name": "A", "dimension_scores": [
            {"dimension": "security", "score": score, "max_score": max_score},
        ]}]
        with pytest.raises(ValidationError) as exc_info:
            validate_vendor_evaluations(vendors)
        assert "vendors[0].dimension_scores[0]" in exc_info.value.details

    def test_full_scale_scores_accepted(self):
        validate_vendor_evaluations([{"vendor_name": "A", "dimension_scores": _scores(0) + _scores(10)}])


# ═══════════════════════════════════════════════════════════════════════════
# API
# ═══════════════════════════════════════════════════════════════════════════


class TestRoiVendorApi:

    def test_roi_calculate(self, client):
        res = client.post("/api/v1/roi/calculate", json=ROI_BODY)
        assert res.status_code == 200
        assert res.get_json()["results"]["monthly_savings"] == 20000

    def test_roi_invalid(self, client):
        res = client.post("/api/v1/roi/calculate", json={**ROI_BODY, "team_size": -3})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_roi_non_finite_input(self, client):
        # json.dumps writes NaN literals, which Flask's parser accepts
        body = json.dumps({**ROI_BODY, "avg_salary": float("nan")})
        res = client.post("/api/v1/roi/calculate", data=body, content_type="application/json")
        assert res.status_code == 400
        assert res.get_json()["details"]["avg_salary"] == "must be a finite number"

    def test_roi_sensitivity(self, client):
        res = client.post("/api/v1/roi/sensitivity", json=ROI_BODY)
        assert res.status_code == 200
        assert len(res.get_json()["rows"]) == len(SENSITIVITY_LIFTS)

    def test_vendor_dimensions(self, client):
        res = client.get("/api/v1/vendors/dimensions")
        assert res.status_code == 200
        assert [d["dimension"] for d in res.get_json()["dimensions"]] == list(VENDOR_DIMENSIONS)

    def test_vendor_compare(self, client):
        res = client.post("/api/v1/vendors/compare", json={"vendors": [
            {"vendor_name": "Low", "dimension_scores": _scores(3)},
            {"vendor_name": "High", "dimension_scores": _scores(9)},
        ]})
        assert res.status_code == 200
        assert [v["vendor_name"] for v in res.get_json()["vendors"]] == ["High", "Low"]

    def test_vendor_compare_invalid(self, client):
        res = client.post("/api/v1/vendors/compare", json={"vendors": "all"})
        assert res.status_code == 400

    def test_vendor_compare_score_above_max(self, client):
        res = client.post("/api/v1/vendors/compare", json={"vendors": [
            {"vendor_name": "Inflated", "dimension_scores": _scores(50)},
        ]})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"
