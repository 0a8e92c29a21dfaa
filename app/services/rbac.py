"""
Role-Based Access Control — static permission table with tenant isolation.

Every role maps to a fixed set of ``resource:action`` permission strings.
The table is built once at import time and is read-only afterwards.

Rules:
  - ``admin`` implicitly holds every permission.
  - Unknown roles hold nothing; lookups return empty sets rather than raise.
  - Tenant isolation is checked before RBAC and no role can bypass it.

Usage:
    from app.services.rbac import Role, can_perform_action, has_permission

    if has_permission(Role.EXECUTIVE, "gate:approve"):
        ...

    decision = can_perform_action("consultant", "exception:request",
                                  resource_org_id="org-1", actor_org_id="org-1")
    if not decision.allowed:
        return api_error(E.FORBIDDEN, decision.reason)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

logger = logging.getLogger(__name__)


class Role(str, Enum):
    ADMIN = "admin"
    CONSULTANT = "consultant"
    EXECUTIVE = "executive"
    IT = "it"
    LEGAL = "legal"
    ENGINEERING = "engineering"
    MARKETING = "marketing"


# Role that implicitly holds every permission.
SUPERUSER_ROLE = Role.ADMIN

ALL_PERMISSIONS: frozenset[str] = frozenset({
    "project:create", "project:read", "project:update", "project:delete",
    "project:transition_state",
    "gate:submit", "gate:approve", "gate:reject",
    "policy:draft", "policy:approve",
    "risk:create", "risk:update", "risk:accept",
    "exception:request", "exception:approve", "exception:revoke",
    "control:run", "control:remediate",
    "data:classify", "data:approve",
    "report:generate", "report:export",
    "evidence:generate",
    "team:manage", "settings:manage", "audit:view", "integration:configure",
})


# ═════════════════════════════════════════════════════════════════════════════
# Permission matrix
# ═════════════════════════════════════════════════════════════════════════════

ROLE_PERMISSIONS: MappingProxyType[Role, frozenset[str]] = MappingProxyType({
    Role.ADMIN: ALL_PERMISSIONS,
    Role.CONSULTANT: frozenset({
        "project:create", "project:read", "project:update", "project:transition_state",
        "gate:submit",
        "policy:draft",
        "risk:create", "risk:update",
        "exception:request",
        "control:run",
        "data:classify",
        "report:generate", "report:export",
        "evidence:generate",
        "team:manage", "audit:view",
    }),
    Role.EXECUTIVE: frozenset({
        "project:read", "project:transition_state",
        "gate:approve", "gate:reject",
        "policy:approve",
        "risk:accept",
        "exception:approve", "exception:revoke",
        "data:approve",
        "report:generate", "report:export",
        "audit:view",
    }),
    Role.IT: frozenset({
        "project:read",
        "gate:submit", "gate:approve",
        "risk:create", "risk:update",
        "exception:request",
        "control:run", "control:remediate",
        "data:classify", "data:approve",
        "report:generate",
        "audit:view",
    }),
    Role.LEGAL: frozenset({
        "project:read",
        "gate:submit", "gate:approve",
        "policy:draft", "policy:approve",
        "risk:create", "risk:update", "risk:accept",
        "exception:request", "exception:approve",
        "data:classify", "data:approve",
        "report:generate",
        "audit:view",
    }),
    Role.ENGINEERING: frozenset({
        "project:read",
        "gate:submit",
        "risk:create",
        "exception:request",
        "control:run",
        "data:classify",
        "report:generate",
    }),
    Role.MARKETING: frozenset({
        "project:read",
        "report:generate", "report:export",
    }),
})


@dataclass(frozen=True)
class ActionDecision:
    """Outcome of a tenant + RBAC check."""
    allowed: bool
    reason: str | None = None

    def to_dict(self) -> dict:
        return {"allowed": self.allowed, "reason": self.reason}


def parse_role(value) -> Role | None:
    """Convert an externally supplied role string to a Role, or None if unknown."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None


def has_permission(role, permission: str) -> bool:
    """True if the role grants ``permission`` (admin grants everything)."""
    parsed = parse_role(role)
    if parsed is None:
        return False
    if parsed is SUPERUSER_ROLE:
        return True
    return permission in ROLE_PERMISSIONS.get(parsed, frozenset())


def get_permissions(role) -> frozenset[str]:
    """Return the full grant set for a role; empty for unknown roles."""
    parsed = parse_role(role)
    if parsed is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(parsed, frozenset())


def get_roles_with_permission(permission: str) -> frozenset[Role]:
    """Reverse lookup: every role whose grants include ``permission``."""
    return frozenset(role for role in Role if has_permission(role, permission))


def can_perform_action(
    role,
    permission: str,
    resource_org_id: str | None,
    actor_org_id: str | None,
) -> ActionDecision:
    """Tenant isolation first, then RBAC.

    Returns ActionDecision(allowed=False, reason="Cross-tenant access denied")
    whenever the organizations differ, whatever the role.
    """
    if resource_org_id != actor_org_id:
        logger.warning(
            "Cross-tenant access denied: role=%s permission=%s resource_org=%s actor_org=%s",
            role, permission, resource_org_id, actor_org_id,
        )
        return ActionDecision(False, "Cross-tenant access denied")

    if not has_permission(role, permission):
        role_name = role.value if isinstance(role, Role) else role
        return ActionDecision(
            False, f'Role "{role_name}" does not have permission "{permission}"'
        )

    return ActionDecision(True, None)
