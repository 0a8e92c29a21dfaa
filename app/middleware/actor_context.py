"""
Actor Context Middleware — who is calling, in which organization.

Authentication happens upstream (hosted auth provider + gateway). The
gateway forwards the verified identity as headers:

    X-User-Id          actor id
    X-User-Role        one of app.services.rbac.Role
    X-Organization-Id  actor's organization (tenant)

This middleware copies them onto ``g`` for every /api/v1 request. It does
not reject anything by itself; routes opt in with ``@require_actor`` and
call ``authorize`` for tenant + RBAC decisions.

Chain order:
    timing.py  →  actor_context.py  →  route handler
"""

import functools
import logging
from dataclasses import dataclass

from flask import g, request

from app.services.rbac import Role, can_perform_action, parse_role
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that never carry an actor
ACTOR_SKIP_PREFIXES = (
    "/api/v1/health",
)


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: Role | None
    raw_role: str
    organization_id: str


def init_actor_context(app):
    """Register actor context middleware as a before_request hook."""

    @app.before_request
    def _actor_context():
        g.actor = None

        if not request.path.startswith("/api/v1/"):
            return None
        for prefix in ACTOR_SKIP_PREFIXES:
            if request.path.startswith(prefix):
                return None

        user_id = (request.headers.get("X-User-Id") or "").strip()
        org_id = (request.headers.get("X-Organization-Id") or "").strip()
        raw_role = (request.headers.get("X-User-Role") or "").strip()
        if not user_id or not org_id:
            return None

        role = parse_role(raw_role)
        if role is None:
            # Unknown roles get no grants; requests continue and fail RBAC.
            logger.warning("Unknown role %r for user %s", raw_role, user_id)

        g.actor = Actor(user_id=user_id, role=role, raw_role=raw_role, organization_id=org_id)
        g.tenant_id = org_id
        return None


def get_actor() -> Actor | None:
    return getattr(g, "actor", None)


def require_actor(f):
    """Decorator: 401 unless the gateway supplied actor headers."""

    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if get_actor() is None:
            return api_error(
                E.UNAUTHENTICATED,
                "X-User-Id and X-Organization-Id headers are required",
            )
        return f(*args, **kwargs)

    return decorated


def authorize(permission: str, resource_org_id: str | None, *, resource: str = "Resource"):
    """Tenant isolation + RBAC for the current actor.

    Returns None when allowed, otherwise an error response tuple.
    Cross-tenant attempts answer 404 so the resource's existence is not
    disclosed to other organizations.
    """
    actor = get_actor()
    if actor is None:
        return api_error(E.UNAUTHENTICATED, "Actor context missing")

    decision = can_perform_action(
        actor.role or actor.raw_role, permission, resource_org_id, actor.organization_id,
    )
    if decision.allowed:
        return None

    if resource_org_id != actor.organization_id:
        return api_error(E.NOT_FOUND, f"{resource} not found")

    logger.warning(
        "User %s denied: %s on %s", actor.user_id, decision.reason, request.path,
    )
    return api_error(E.FORBIDDEN, decision.reason, details={"required": permission})
