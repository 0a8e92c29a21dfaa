"""
Vendor Evaluation Blueprint.

Endpoints:
    GET  /api/v1/vendors/dimensions   — dimensions, weights, labels
    POST /api/v1/vendors/compare      — score and rank vendor evaluations
"""

from flask import Blueprint, jsonify, request

from app.services.vendor_scoring import (
    VENDOR_DIMENSION_LABELS,
    VENDOR_DIMENSION_WEIGHTS,
    VENDOR_DIMENSIONS,
    compare_vendors,
    validate_vendor_evaluations,
)

vendor_bp = Blueprint("vendors", __name__, url_prefix="/api/v1/vendors")


@vendor_bp.route("/dimensions", methods=["GET"])
def list_dimensions():
    return jsonify({
        "dimensions": [
            {
                "dimension": d,
                "label": VENDOR_DIMENSION_LABELS[d],
                "weight": VENDOR_DIMENSION_WEIGHTS[d],
            }
            for d in VENDOR_DIMENSIONS
        ],
    }), 200


@vendor_bp.route("/compare", methods=["POST"])
def compare():
    """Body (JSON): {"vendors": [{vendor_name, dimension_scores: [{dimension, score, max_score}]}]}"""
    data = request.get_json(silent=True) or {}
    vendors = data.get("vendors") if isinstance(data, dict) else None
    validate_vendor_evaluations(vendors)
    return jsonify({"vendors": compare_vendors(vendors)}), 200
