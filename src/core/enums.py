"""
Core Enumerations for the Claims Lifecycle Engine.

Status values are stored upper-case, exactly as persisted by the claims
backend; role values are the lower-case identifiers carried on user records.
"""

from enum import Enum


# =============================================================================
# Claim Enums
# =============================================================================


class ClaimStatus(str, Enum):
    """Claim lifecycle status.

    State Machine Transitions:
    DRAFT -> VALIDATION | CANCELLED
    VALIDATION -> SUBMITTED | DRAFT | CANCELLED
    SUBMITTED -> PENDING_INFO | SETTLED | RETURNED | CANCELLED
    PENDING_INFO -> SUBMITTED | CANCELLED
    RETURNED -> VALIDATION | CANCELLED
    SETTLED, CANCELLED: terminal
    """

    DRAFT = "DRAFT"
    VALIDATION = "VALIDATION"
    SUBMITTED = "SUBMITTED"
    PENDING_INFO = "PENDING_INFO"
    RETURNED = "RETURNED"
    SETTLED = "SETTLED"
    CANCELLED = "CANCELLED"


class CareType(str, Enum):
    """Type of care a claim refers to."""

    AMBULATORY = "AMBULATORY"
    HOSPITALIZATION = "HOSPITALIZATION"
    MATERNITY = "MATERNITY"
    EMERGENCY = "EMERGENCY"
    OTHER = "OTHER"


# =============================================================================
# Policy Enums
# =============================================================================


class PolicyStatus(str, Enum):
    """Policy lifecycle status.

    PENDING -> ACTIVE <-> EXPIRED (payment toggles), any -> CANCELLED.
    """

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class PolicyType(str, Enum):
    """Line of business of a policy."""

    HEALTH = "HEALTH"
    LIFE = "LIFE"
    DENTAL = "DENTAL"
    VISION = "VISION"
    DISABILITY = "DISABILITY"


# =============================================================================
# Affiliate Enums
# =============================================================================


class AffiliateType(str, Enum):
    """Position of an affiliate inside its family group."""

    OWNER = "OWNER"  # Policy holder, may own dependents
    DEPENDENT = "DEPENDENT"  # Covered through exactly one owner


# =============================================================================
# Access Control Enums
# =============================================================================


class Role(str, Enum):
    """User roles. Closed set: every member must be mapped to a RoleScope."""

    # Internal (employees)
    SUPERADMIN = "superadmin"
    CLAIMS_ADMIN = "claims_admin"
    CLAIMS_EMPLOYEE = "claims_employee"
    OPERATIONS_EMPLOYEE = "operations_employee"

    # Client-scoped
    CLIENT_ADMIN = "client_admin"
    CLIENT_AGENT = "client_agent"

    # Self-scoped
    CLIENT_AFFILIATE = "client_affiliate"


class RoleScope(str, Enum):
    """Visibility scope granted by a role."""

    INTERNAL = "internal"  # Unrestricted
    CLIENT = "client"  # Clients with an active relationship
    AFFILIATE = "affiliate"  # Own affiliate record and dependents


class ResourceType(str, Enum):
    """Resources guarded by the access scoping resolver."""

    CLIENT = "client"
    AFFILIATE = "affiliate"
    CLAIM = "claim"
    POLICY = "policy"


class AccessOperation(str, Enum):
    """Operations an actor may attempt on a resource."""

    READ = "read"
    LIST = "list"
    CREATE = "create"
    UPDATE = "update"
    TRANSITION = "transition"
    DELETE = "delete"


class ScopeKind(str, Enum):
    """Shape of a list-query scoping predicate."""

    ALL = "all"
    CLIENTS = "clients"
    AFFILIATES = "affiliates"
    NONE = "none"


# =============================================================================
# Lifecycle & Audit Enums
# =============================================================================


class EntityKind(str, Enum):
    """Entities that own a status state machine."""

    CLAIM = "Claim"
    POLICY = "Policy"


class AuditAction(str, Enum):
    """Audit log action types."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    STATUS_CHANGE = "STATUS_CHANGE"


class SlaIndicator(str, Enum):
    """SLA health of a single stage."""

    ON_TIME = "on_time"
    AT_RISK = "at_risk"
    BREACHED = "breached"
