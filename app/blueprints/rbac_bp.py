"""
RBAC Blueprint — read-only views over the static permission table.

Endpoints:
    GET  /api/v1/rbac/roles                              — all roles
    GET  /api/v1/rbac/roles/<role>/permissions           — grant set
    GET  /api/v1/rbac/permissions/<permission>/roles     — reverse lookup
    POST /api/v1/rbac/check                              — tenant + RBAC decision
"""

from flask import Blueprint, jsonify, request

from app.services.rbac import (
    Role,
    can_perform_action,
    get_permissions,
    get_roles_with_permission,
    parse_role,
)
from app.utils.errors import E, api_error

rbac_bp = Blueprint("rbac", __name__, url_prefix="/api/v1/rbac")


@rbac_bp.route("/roles", methods=["GET"])
def list_roles():
    return jsonify({"roles": [r.value for r in Role]}), 200


@rbac_bp.route("/roles/<role>/permissions", methods=["GET"])
def role_permissions(role: str):
    # Unknown roles answer an empty set, not 404.
    return jsonify({
        "role": role,
        "known": parse_role(role) is not None,
        "permissions": sorted(get_permissions(role)),
    }), 200


@rbac_bp.route("/permissions/<permission>/roles", methods=["GET"])
def permission_roles(permission: str):
    return jsonify({
        "permission": permission,
        "roles": sorted(r.value for r in get_roles_with_permission(permission)),
    }), 200


@rbac_bp.route("/check", methods=["POST"])
def check_action():
    """Evaluate can_perform_action.

    Body (JSON):
        role (str, required)
        permission (str, required)
        resource_org_id (str, required)
        actor_org_id (str, required)
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")

    missing = [
        name for name in ("role", "permission", "resource_org_id", "actor_org_id")
        if not isinstance(data.get(name), str) or not data.get(name)
    ]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED,
            "Missing required fields",
            details={name: "required" for name in missing},
        )

    decision = can_perform_action(
        data["role"], data["permission"], data["resource_org_id"], data["actor_org_id"],
    )
    return jsonify(decision.to_dict()), 200
