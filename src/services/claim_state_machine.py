"""
Claim Status State Machine.

Provides:
- Valid status transitions (explicit edge table)
- Transition validation
- Per-status edit rules (editable, non-nullable and invariant fields)
- Transition requirements and business rules

State Diagram:
    DRAFT -> VALIDATION | CANCELLED
    VALIDATION -> SUBMITTED | DRAFT | CANCELLED
    SUBMITTED -> PENDING_INFO | SETTLED | RETURNED | CANCELLED
    PENDING_INFO -> SUBMITTED | CANCELLED
    RETURNED -> VALIDATION | CANCELLED
    SETTLED, CANCELLED: terminal
"""

from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from src.core.enums import ClaimStatus, EntityKind
from src.core.exceptions import InvalidTransitionError, TransitionRequirementsError, ValidationError
from src.schemas.claim import ClaimSnapshot
from src.services.transitions import (
    TransitionResult,
    UpdateValidation,
    as_date,
    as_decimal,
    is_blank,
    missing_fields,
    status_value,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Field Groups
# =============================================================================


OWNERSHIP_FIELDS = ("client_id", "affiliate_id", "patient_id")

DRAFT_FIELDS = (
    "policy_id",
    "description",
    "care_type",
    "diagnosis_code",
    "diagnosis_description",
    "incident_date",
)

VALIDATION_EXTRA = ("amount_submitted", "submitted_date")

SETTLEMENT_AMOUNTS = (
    "amount_approved",
    "amount_denied",
    "amount_unprocessed",
    "deductible_applied",
    "copay_applied",
)

SETTLEMENT_REQUIRED = SETTLEMENT_AMOUNTS + (
    "settlement_date",
    "settlement_number",
    "settlement_notes",
)

SETTLEMENT_FIELDS = ("diagnosis_code", "diagnosis_description") + SETTLEMENT_REQUIRED

# Stored on the claim, but only writable as part of a transition
REASON_FIELDS = ("pending_reason", "return_reason", "cancellation_reason")

# Consumed by the transition, never stored on the claim
TRANSITION_ONLY_FIELDS = ("reprocess_date", "reprocess_description")

AMOUNT_TOLERANCE = Decimal("0.01")


# =============================================================================
# Transition Table
# =============================================================================


CLAIM_TRANSITIONS: dict[ClaimStatus, frozenset[ClaimStatus]] = {
    ClaimStatus.DRAFT: frozenset({ClaimStatus.VALIDATION, ClaimStatus.CANCELLED}),
    ClaimStatus.VALIDATION: frozenset(
        {ClaimStatus.SUBMITTED, ClaimStatus.DRAFT, ClaimStatus.CANCELLED}
    ),
    ClaimStatus.SUBMITTED: frozenset(
        {
            ClaimStatus.PENDING_INFO,
            ClaimStatus.SETTLED,
            ClaimStatus.RETURNED,
            ClaimStatus.CANCELLED,
        }
    ),
    ClaimStatus.PENDING_INFO: frozenset({ClaimStatus.SUBMITTED, ClaimStatus.CANCELLED}),
    ClaimStatus.RETURNED: frozenset({ClaimStatus.VALIDATION, ClaimStatus.CANCELLED}),
    ClaimStatus.SETTLED: frozenset(),
    ClaimStatus.CANCELLED: frozenset(),
}


# =============================================================================
# Edit Rules
# =============================================================================


EDITABLE_FIELDS: dict[ClaimStatus, tuple[str, ...]] = {
    ClaimStatus.DRAFT: DRAFT_FIELDS,
    ClaimStatus.VALIDATION: DRAFT_FIELDS + VALIDATION_EXTRA,
    ClaimStatus.SUBMITTED: SETTLEMENT_FIELDS,
    ClaimStatus.PENDING_INFO: (),
    ClaimStatus.RETURNED: DRAFT_FIELDS,
    ClaimStatus.SETTLED: (),
    ClaimStatus.CANCELLED: (),
}

NON_NULLABLE_FIELDS: dict[ClaimStatus, tuple[str, ...]] = {
    ClaimStatus.DRAFT: (),
    ClaimStatus.VALIDATION: DRAFT_FIELDS,
    ClaimStatus.SUBMITTED: ("diagnosis_code", "diagnosis_description"),
    ClaimStatus.PENDING_INFO: (),
    ClaimStatus.RETURNED: DRAFT_FIELDS,
    ClaimStatus.SETTLED: (),
    ClaimStatus.CANCELLED: (),
}

# Fields that must be present on the merged record while in each status
STATE_INVARIANTS: dict[ClaimStatus, tuple[str, ...]] = {
    ClaimStatus.DRAFT: OWNERSHIP_FIELDS,
    ClaimStatus.VALIDATION: OWNERSHIP_FIELDS + DRAFT_FIELDS,
    ClaimStatus.SUBMITTED: OWNERSHIP_FIELDS + DRAFT_FIELDS + VALIDATION_EXTRA,
    ClaimStatus.PENDING_INFO: OWNERSHIP_FIELDS
    + DRAFT_FIELDS
    + VALIDATION_EXTRA
    + ("pending_reason",),
    ClaimStatus.RETURNED: OWNERSHIP_FIELDS + DRAFT_FIELDS + ("return_reason",),
    ClaimStatus.SETTLED: OWNERSHIP_FIELDS + DRAFT_FIELDS + VALIDATION_EXTRA + SETTLEMENT_REQUIRED,
    ClaimStatus.CANCELLED: ("cancellation_reason",),
}

# Requirements to ENTER a status
ENTRY_REQUIREMENTS: dict[ClaimStatus, tuple[str, ...]] = {
    ClaimStatus.VALIDATION: OWNERSHIP_FIELDS + DRAFT_FIELDS,
    ClaimStatus.SUBMITTED: VALIDATION_EXTRA,
    ClaimStatus.SETTLED: SETTLEMENT_REQUIRED,
}

# Edge-specific requirements, checked instead of the entry requirements
EDGE_REQUIREMENTS: dict[tuple[ClaimStatus, ClaimStatus], tuple[str, ...]] = {
    (ClaimStatus.SUBMITTED, ClaimStatus.PENDING_INFO): ("pending_reason",),
    (ClaimStatus.PENDING_INFO, ClaimStatus.SUBMITTED): TRANSITION_ONLY_FIELDS,
    (ClaimStatus.SUBMITTED, ClaimStatus.RETURNED): ("return_reason",),
}

CANCELLATION_REQUIREMENTS = ("cancellation_reason",)

# Edges that write a ReprocessRecord
REPROCESS_EDGES = frozenset({(ClaimStatus.PENDING_INFO, ClaimStatus.SUBMITTED)})


def _check_tables() -> None:
    """Every status needs a row in every table."""
    tables = {
        "CLAIM_TRANSITIONS": CLAIM_TRANSITIONS,
        "EDITABLE_FIELDS": EDITABLE_FIELDS,
        "NON_NULLABLE_FIELDS": NON_NULLABLE_FIELDS,
        "STATE_INVARIANTS": STATE_INVARIANTS,
    }
    for name, table in tables.items():
        missing = set(ClaimStatus) - set(table)
        if missing:
            raise ValidationError(
                f"{name} has no row for: {', '.join(sorted(s.value for s in missing))}"
            )


_check_tables()


# =============================================================================
# State Machine
# =============================================================================


class ClaimStateMachine:
    """
    State machine for claim status transitions.

    Role-agnostic: who may drive a transition is decided by the access
    scoping resolver, not here.
    """

    entity_kind = EntityKind.CLAIM

    def __init__(self, transitions: Optional[Mapping[ClaimStatus, frozenset[ClaimStatus]]] = None):
        self._transitions = dict(transitions or CLAIM_TRANSITIONS)

    def get_next_statuses(self, status: ClaimStatus) -> list[ClaimStatus]:
        """Get all possible next statuses from current status, in declaration order."""
        targets = self._transitions.get(ClaimStatus(status), frozenset())
        return [s for s in ClaimStatus if s in targets]

    def can_transition(
        self,
        from_status: Union[ClaimStatus, str],
        to_status: Union[ClaimStatus, str],
    ) -> bool:
        """Check if transition from one status to another is valid."""
        try:
            current, target = ClaimStatus(from_status), ClaimStatus(to_status)
        except ValueError:
            return False
        return target in self._transitions.get(current, frozenset())

    def validate_transition(
        self,
        from_status: Union[ClaimStatus, str],
        to_status: Union[ClaimStatus, str],
    ) -> TransitionResult:
        """
        Validate a single edge.

        Returns:
            TransitionResult for an edge of the graph

        Raises:
            InvalidTransitionError: If the edge is not declared
        """
        if not self.can_transition(from_status, to_status):
            raise InvalidTransitionError(
                status_value(from_status), status_value(to_status), self.entity_kind.value
            )
        logger.debug(f"Claim edge accepted: {status_value(from_status)} -> {status_value(to_status)}")
        return TransitionResult(
            entity_kind=self.entity_kind,
            from_status=status_value(from_status),
            to_status=status_value(to_status),
        )

    def get_transition_requirements(
        self,
        from_status: ClaimStatus,
        to_status: ClaimStatus,
    ) -> tuple[str, ...]:
        """Fields that must be present to take an edge."""
        special = EDGE_REQUIREMENTS.get((from_status, to_status))
        if special is not None:
            return special
        if to_status == ClaimStatus.CANCELLED:
            return CANCELLATION_REQUIREMENTS
        return ENTRY_REQUIREMENTS.get(to_status, ())

    def validate_update(
        self,
        claim: ClaimSnapshot,
        updates: Optional[Mapping[str, Any]] = None,
        target_status: Optional[ClaimStatus] = None,
    ) -> UpdateValidation:
        """
        Check an edit, optionally combined with a status change.

        Args:
            claim: Current persisted claim
            updates: Field values to write, keyed by snake_case field name
            target_status: Requested status, None for a plain edit

        Returns:
            UpdateValidation with the field values to write and side-record flags

        Raises:
            InvalidTransitionError: If target_status is not reachable
            TransitionRequirementsError: If an edit rule or business rule fails
        """
        updates = dict(updates or {})
        status = claim.status

        if target_status is not None:
            self.validate_transition(status, target_status)
            target_status = ClaimStatus(target_status)

        transition_data = {k: updates.pop(k) for k in TRANSITION_ONLY_FIELDS if k in updates}
        reasons = {k: updates.pop(k) for k in REASON_FIELDS if k in updates}
        field_updates = updates

        if target_status is None and (transition_data or reasons):
            raise TransitionRequirementsError(
                "Reason and reprocess fields can only be set with a status change",
                forbidden_fields=sorted(set(transition_data) | set(reasons)),
            )

        # Editable fields
        editable = EDITABLE_FIELDS[status]
        forbidden = [f for f in field_updates if f not in editable]
        if forbidden:
            raise TransitionRequirementsError(
                f"Fields not editable in status {status.value}: {', '.join(forbidden)}",
                forbidden_fields=forbidden,
            )

        # Non-nullable fields
        nulled = [
            f for f in field_updates if f in NON_NULLABLE_FIELDS[status] and is_blank(field_updates[f])
        ]
        if nulled:
            raise TransitionRequirementsError(
                f"Fields cannot be emptied in status {status.value}: {', '.join(nulled)}",
                missing_fields=nulled,
            )

        # State invariants
        merged = {**claim.field_values(), **field_updates}
        violated = missing_fields(merged, dict.fromkeys(STATE_INVARIANTS[status]))
        if violated:
            raise TransitionRequirementsError(
                f"Required fields cannot be empty: {', '.join(violated)}",
                missing_fields=violated,
            )

        check_business_rules(merged)

        result = UpdateValidation(field_updates=dict(field_updates))
        if target_status is None:
            return result

        requirement_source = {**merged, **reasons, **transition_data}
        required = self.get_transition_requirements(status, target_status)
        missing = missing_fields(requirement_source, dict.fromkeys(required))
        if missing:
            raise TransitionRequirementsError(
                f"Missing required fields to move to {target_status.value}: {', '.join(missing)}",
                missing_fields=missing,
            )

        reprocess = (status, target_status) in REPROCESS_EDGES
        result.target_status = target_status.value
        result.field_updates.update(reasons)
        result.transition_data = transition_data
        result.create_reprocess = reprocess
        result.auto_calculate_business_days = reprocess
        return result

    def describe_graph(self) -> str:
        """Mermaid state diagram of the transition table."""
        lines = ["stateDiagram-v2", f"    [*] --> {ClaimStatus.DRAFT.value}"]
        for status in ClaimStatus:
            lines.append(f'    state "{get_status_display_name(status)}" as {status.value}')
        for status in ClaimStatus:
            for target in self.get_next_statuses(status):
                lines.append(f"    {status.value} --> {target.value}")
            if is_terminal_status(status):
                lines.append(f"    {status.value} --> [*]")
        return "\n".join(lines)


# =============================================================================
# Business Rules
# =============================================================================


def check_business_rules(values: Mapping[str, Any]) -> None:
    """
    Date ordering and settlement arithmetic on a merged claim record.

    Raises:
        TransitionRequirementsError: If a rule fails
    """
    incident = as_date(values.get("incident_date"))
    submitted = as_date(values.get("submitted_date"))
    settlement = as_date(values.get("settlement_date"))

    if incident and submitted and incident > submitted:
        raise TransitionRequirementsError("Incident date cannot be after the submitted date")

    if settlement and submitted and settlement <= submitted:
        raise TransitionRequirementsError("Settlement date must be after the submitted date")

    amount_submitted = as_decimal(values.get("amount_submitted"))
    amounts = [as_decimal(values.get(name)) for name in SETTLEMENT_AMOUNTS]
    if amount_submitted is None or any(a is None for a in amounts):
        return

    total = sum(amounts, Decimal("0"))
    if abs(amount_submitted - total) > AMOUNT_TOLERANCE:
        raise TransitionRequirementsError(
            f"Submitted amount ({amount_submitted}) must equal the settlement total ({total:.2f})"
        )


# =============================================================================
# Status Helpers
# =============================================================================


def is_terminal_status(status: ClaimStatus) -> bool:
    """Check if status is terminal (no further transitions)."""
    return not CLAIM_TRANSITIONS[ClaimStatus(status)]


def get_status_display_name(status: ClaimStatus) -> str:
    """Get human-readable status name."""
    display_names = {
        ClaimStatus.DRAFT: "Draft",
        ClaimStatus.VALIDATION: "Validation",
        ClaimStatus.SUBMITTED: "Submitted",
        ClaimStatus.PENDING_INFO: "Pending information",
        ClaimStatus.RETURNED: "Returned",
        ClaimStatus.SETTLED: "Settled",
        ClaimStatus.CANCELLED: "Cancelled",
    }
    return display_names.get(status, status.value)


# =============================================================================
# Singleton Instance
# =============================================================================


_state_machine: Optional[ClaimStateMachine] = None


def get_claim_state_machine() -> ClaimStateMachine:
    """Get singleton state machine instance."""
    global _state_machine
    if _state_machine is None:
        _state_machine = ClaimStateMachine()
    return _state_machine
