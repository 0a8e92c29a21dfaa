"""
Platform-wide exception hierarchy.

The rule modules (rbac, intake_scorecard, exception_lifecycle, roi_calculator,
vendor_scoring) raise only these types. Blueprints register handlers against
them once and get consistent error envelopes and HTTP status codes.

Every error carries a machine-readable ``kind``:

    validation_error  malformed or out-of-range input
    invalid_state     lifecycle transition attempted from the wrong status
    not_found         record missing, or owned by another organization

Usage:
    from app.core.exceptions import InvalidStateError, ValidationError

    raise ValidationError("duration_days must be between 1 and 365",
                          details={"duration_days": "out of range"})
    raise InvalidStateError("RiskException", "exc-1", current="denied", action="approve")
"""


class GovernanceError(Exception):
    """Base class for errors raised by the governance core."""

    kind = "governance_error"


class NotFoundError(GovernanceError):
    """Raised when a requested record does not exist within the caller's organization.

    Cross-tenant reads raise this too, so a 404 never confirms that a record
    exists in another organization.

    Args:
        resource: Human-readable entity name (e.g. "RiskException").
        resource_id: The id that was looked up. Logged, not returned to clients.
        organization_id: Optional scope that was enforced. Debug logging only.
    """

    kind = "not_found"

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        organization_id: str | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.organization_id = organization_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if organization_id is not None:
            msg += f" (organization={organization_id})"
        super().__init__(msg)


class ValidationError(GovernanceError):
    """Raised when input is malformed or violates a business rule.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
                 Keys are field names; values are error descriptions.
    """

    kind = "validation_error"

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class InvalidStateError(GovernanceError):
    """Raised when a lifecycle transition is attempted from the wrong status.

    Args:
        resource: Entity name.
        resource_id: Entity id.
        current: Status the record is in.
        action: Transition that was attempted (approve, deny, revoke).
        allowed_from: Statuses the transition is valid from.
    """

    kind = "invalid_state"

    def __init__(
        self,
        resource: str,
        resource_id: str | None,
        *,
        current: str,
        action: str,
        allowed_from: tuple[str, ...] = (),
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.current_status = current
        self.action = action
        self.allowed_from = allowed_from
        msg = f"Cannot '{action}' {resource} {resource_id} (status={current})"
        if allowed_from:
            msg += f": allowed only from {', '.join(allowed_from)}"
        super().__init__(msg)
