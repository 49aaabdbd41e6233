"""
Policy Status State Machine.

State Diagram:
    PENDING -> ACTIVE | CANCELLED
    ACTIVE -> EXPIRED | CANCELLED
    EXPIRED -> ACTIVE | CANCELLED   (reactivated once paid)
    CANCELLED: terminal
"""

from typing import Any, Mapping, Optional, Union

from src.core.enums import EntityKind, PolicyStatus
from src.core.exceptions import InvalidTransitionError, TransitionRequirementsError, ValidationError
from src.schemas.policy import PolicySnapshot
from src.services.transitions import (
    TransitionResult,
    UpdateValidation,
    as_date,
    is_blank,
    missing_fields,
    status_value,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)


# Only editable while PENDING
REQUIRED_FIELDS = ("policy_number", "start_date", "end_date")

# Editable in every non-terminal status
OPTIONAL_FIELDS = (
    "type",
    "amb_copay",
    "hosp_copay",
    "maternity",
    "t_premium",
    "tplus1_premium",
    "tplusf_premium",
    "benefits_cost",
)

ACTIVATION_FIELDS = REQUIRED_FIELDS + OPTIONAL_FIELDS

REASON_FIELDS = ("expiration_reason", "cancellation_reason")


POLICY_TRANSITIONS: dict[PolicyStatus, frozenset[PolicyStatus]] = {
    PolicyStatus.PENDING: frozenset({PolicyStatus.ACTIVE, PolicyStatus.CANCELLED}),
    PolicyStatus.ACTIVE: frozenset({PolicyStatus.EXPIRED, PolicyStatus.CANCELLED}),
    PolicyStatus.EXPIRED: frozenset({PolicyStatus.ACTIVE, PolicyStatus.CANCELLED}),
    PolicyStatus.CANCELLED: frozenset(),
}

EDITABLE_FIELDS: dict[PolicyStatus, tuple[str, ...]] = {
    PolicyStatus.PENDING: ACTIVATION_FIELDS,
    PolicyStatus.ACTIVE: OPTIONAL_FIELDS,
    PolicyStatus.EXPIRED: OPTIONAL_FIELDS,
    PolicyStatus.CANCELLED: (),
}

# Fields that cannot be nulled while in each status
STATE_INVARIANTS: dict[PolicyStatus, tuple[str, ...]] = {
    PolicyStatus.PENDING: (),
    PolicyStatus.ACTIVE: ACTIVATION_FIELDS,
    PolicyStatus.EXPIRED: ACTIVATION_FIELDS,
    PolicyStatus.CANCELLED: (),
}

EDGE_REQUIREMENTS: dict[tuple[PolicyStatus, PolicyStatus], tuple[str, ...]] = {
    (PolicyStatus.PENDING, PolicyStatus.ACTIVE): ACTIVATION_FIELDS,
    (PolicyStatus.ACTIVE, PolicyStatus.EXPIRED): ("expiration_reason",),
}

CANCELLATION_REQUIREMENTS = ("cancellation_reason",)

for _table_name, _table in (
    ("POLICY_TRANSITIONS", POLICY_TRANSITIONS),
    ("EDITABLE_FIELDS", EDITABLE_FIELDS),
    ("STATE_INVARIANTS", STATE_INVARIANTS),
):
    if set(_table) != set(PolicyStatus):
        raise ValidationError(f"{_table_name} must have exactly one row per PolicyStatus")


class PolicyStateMachine:
    """State machine for policy status transitions."""

    entity_kind = EntityKind.POLICY

    def get_next_statuses(self, status: PolicyStatus) -> list[PolicyStatus]:
        targets = POLICY_TRANSITIONS.get(PolicyStatus(status), frozenset())
        return [s for s in PolicyStatus if s in targets]

    def can_transition(
        self,
        from_status: Union[PolicyStatus, str],
        to_status: Union[PolicyStatus, str],
    ) -> bool:
        try:
            current, target = PolicyStatus(from_status), PolicyStatus(to_status)
        except ValueError:
            return False
        return target in POLICY_TRANSITIONS[current]

    def validate_transition(
        self,
        from_status: Union[PolicyStatus, str],
        to_status: Union[PolicyStatus, str],
    ) -> TransitionResult:
        """
        Validate a single edge.

        Raises:
            InvalidTransitionError: If the edge is not declared
        """
        current, target = status_value(from_status), status_value(to_status)
        if not self.can_transition(current, target):
            raise InvalidTransitionError(current, target, self.entity_kind.value)
        return TransitionResult(entity_kind=self.entity_kind, from_status=current, to_status=target)

    def get_transition_requirements(
        self,
        from_status: PolicyStatus,
        to_status: PolicyStatus,
    ) -> tuple[str, ...]:
        if to_status == PolicyStatus.CANCELLED:
            return CANCELLATION_REQUIREMENTS
        return EDGE_REQUIREMENTS.get((from_status, to_status), ())

    def validate_update(
        self,
        policy: PolicySnapshot,
        updates: Optional[Mapping[str, Any]] = None,
        target_status: Optional[PolicyStatus] = None,
    ) -> UpdateValidation:
        """
        Check a policy edit, optionally combined with a status change.

        Raises:
            InvalidTransitionError: If target_status is not reachable
            TransitionRequirementsError: If an edit rule fails
        """
        updates = dict(updates or {})
        status = policy.status

        if target_status is not None:
            self.validate_transition(status, target_status)
            target_status = PolicyStatus(target_status)

        reasons = {k: updates.pop(k) for k in REASON_FIELDS if k in updates}
        if target_status is None and reasons:
            raise TransitionRequirementsError(
                "Reason fields can only be set with a status change",
                forbidden_fields=sorted(reasons),
            )

        if status == PolicyStatus.CANCELLED:
            raise TransitionRequirementsError("A cancelled policy cannot be edited")

        forbidden = [f for f in updates if f not in EDITABLE_FIELDS[status]]
        if forbidden:
            raise TransitionRequirementsError(
                f"Fields not editable in status {status.value}: {', '.join(forbidden)}",
                forbidden_fields=forbidden,
            )

        merged = {**policy.field_values(), **updates}
        start, end = as_date(merged.get("start_date")), as_date(merged.get("end_date"))
        if start and end and end < start:
            raise TransitionRequirementsError("End date must be on or after the start date")

        nulled = [f for f in STATE_INVARIANTS[status] if f in updates and is_blank(updates[f])]
        if nulled:
            raise TransitionRequirementsError(
                f"Fields cannot be emptied in status {status.value}: {', '.join(nulled)}",
                missing_fields=nulled,
            )
        broken = missing_fields(merged, STATE_INVARIANTS[status])
        if broken:
            raise TransitionRequirementsError(
                f"Required fields cannot be empty: {', '.join(broken)}",
                missing_fields=broken,
            )

        result = UpdateValidation(field_updates=updates)
        if target_status is None:
            return result

        required = self.get_transition_requirements(status, target_status)
        missing = missing_fields({**merged, **reasons}, required)
        if missing:
            raise TransitionRequirementsError(
                f"Missing required fields to move to {target_status.value}: {', '.join(missing)}",
                missing_fields=missing,
            )

        result.target_status = target_status.value
        result.field_updates.update(reasons)
        result.create_expiration = (status, target_status) == (
            PolicyStatus.ACTIVE,
            PolicyStatus.EXPIRED,
        )
        logger.debug(f"Policy {policy.id} update accepted for {status.value} -> {target_status.value}")
        return result

    def describe_graph(self) -> str:
        """Mermaid state diagram of the transition table."""
        lines = ["stateDiagram-v2", f"    [*] --> {PolicyStatus.PENDING.value}"]
        for status in PolicyStatus:
            for target in self.get_next_statuses(status):
                lines.append(f"    {status.value} --> {target.value}")
            if is_terminal_status(status):
                lines.append(f"    {status.value} --> [*]")
        return "\n".join(lines)


def is_terminal_status(status: PolicyStatus) -> bool:
    """Check if status is terminal (no further transitions)."""
    return not POLICY_TRANSITIONS[PolicyStatus(status)]


_state_machine: Optional[PolicyStateMachine] = None


def get_policy_state_machine() -> PolicyStateMachine:
    """Get singleton state machine instance."""
    global _state_machine
    if _state_machine is None:
        _state_machine = PolicyStateMachine()
    return _state_machine
