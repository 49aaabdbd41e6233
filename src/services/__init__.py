"""
Services Layer for the Claims Lifecycle Engine.

Exports the state machines, access scoping, SLA computation and transition
orchestration services.
"""

from src.services.access_scoping import (
    ROLE_SCOPES,
    AccessDecision,
    AccessScopingResolver,
    ScopingPredicate,
    get_access_scoping_resolver,
    role_scope,
)
from src.services.claim_number import ClaimNumberGenerator
from src.services.claim_state_machine import (
    CLAIM_TRANSITIONS,
    ClaimStateMachine,
    get_claim_state_machine,
)
from src.services.lifecycle_service import LifecycleService, diff_changes, validate_transition
from src.services.policy_state_machine import (
    POLICY_TRANSITIONS,
    PolicyStateMachine,
    get_policy_state_machine,
)
from src.services.sla_engine import SlaEngine, compute_sla, indicator_for, validate_limits_table
from src.services.transition_store import (
    InMemoryTransitionStore,
    TransitionOutcome,
    TransitionStore,
)
from src.services.transitions import TransitionResult, UpdateValidation

__all__ = [
    # Access scoping
    "ROLE_SCOPES",
    "AccessDecision",
    "AccessScopingResolver",
    "ScopingPredicate",
    "get_access_scoping_resolver",
    "role_scope",
    # State machines
    "CLAIM_TRANSITIONS",
    "POLICY_TRANSITIONS",
    "ClaimStateMachine",
    "PolicyStateMachine",
    "TransitionResult",
    "UpdateValidation",
    "get_claim_state_machine",
    "get_policy_state_machine",
    "validate_transition",
    # Orchestration
    "LifecycleService",
    "TransitionOutcome",
    "TransitionStore",
    "InMemoryTransitionStore",
    "diff_changes",
    # SLA
    "SlaEngine",
    "compute_sla",
    "indicator_for",
    "validate_limits_table",
    # Claim numbers
    "ClaimNumberGenerator",
]
