"""
Domain Exceptions for the Claims Lifecycle Engine.

Every error raised across the engine boundary derives from LifecycleError so
callers can catch the family once and map it (see src.utils.errors).
"""

from typing import Optional


class LifecycleError(Exception):
    """Base exception for lifecycle engine errors."""

    pass


class InvalidTransitionError(LifecycleError):
    """Raised when a requested status change is not an edge of the state graph."""

    def __init__(self, current_status: str, requested_status: str, entity_kind: str):
        self.current_status = current_status
        self.requested_status = requested_status
        self.entity_kind = entity_kind
        super().__init__(
            f"Invalid {entity_kind} transition: {current_status} -> {requested_status}"
        )


class TransitionRequirementsError(LifecycleError):
    """Raised when an update or transition breaks the per-status edit rules."""

    def __init__(
        self,
        message: str,
        missing_fields: Optional[list[str]] = None,
        forbidden_fields: Optional[list[str]] = None,
    ):
        super().__init__(message)
        self.missing_fields = missing_fields or []
        self.forbidden_fields = forbidden_fields or []


class ForbiddenError(LifecycleError):
    """Raised when an authenticated actor addresses a record outside its scope."""

    def __init__(
        self,
        message: str = "Access denied",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.resource_type = resource_type
        self.resource_id = resource_id


class NotFoundError(LifecycleError):
    """Raised when the addressed record does not exist."""

    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        suffix = f": {resource_id}" if resource_id else ""
        super().__init__(f"{resource_type} not found{suffix}")


class BusinessRuleError(LifecycleError):
    """Raised when related records are in a state that forbids the operation."""

    pass


class StaleEntityError(LifecycleError):
    """Raised when the stored status moved since the transition was planned."""

    pass


class ValidationError(LifecycleError):
    """Raised for configuration or relationship-data defects.

    Not a user-facing condition: a malformed SLA limit table, an unmapped
    role, or an affiliate actor without a resolved affiliate record.
    """

    pass
