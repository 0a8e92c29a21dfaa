"""
ROI Blueprint.

Endpoints:
    POST /api/v1/roi/calculate     — single ROI calculation
    POST /api/v1/roi/sensitivity   — results across velocity lifts 10-80%
"""

from flask import Blueprint, jsonify, request

from app.services.roi_calculator import RoiInputs, calculate_roi, calculate_sensitivity

roi_bp = Blueprint("roi", __name__, url_prefix="/api/v1/roi")


@roi_bp.route("/calculate", methods=["POST"])
def calculate():
    """Body (JSON): team_size, avg_salary, current_velocity, projected_velocity_lift,
    license_cost_per_user, implementation_cost, training_cost.
    """
    data = request.get_json(silent=True) or {}
    inputs = RoiInputs.from_dict(data)
    return jsonify({
        "inputs": data,
        "results": calculate_roi(inputs).to_dict(),
    }), 200


@roi_bp.route("/sensitivity", methods=["POST"])
def sensitivity():
    inputs = RoiInputs.from_dict(request.get_json(silent=True) or {})
    return jsonify({
        "rows": [row.to_dict() for row in calculate_sensitivity(inputs)],
    }), 200
