"""
Shared types for the status state machines.

Both the claim and the policy machine answer the same two questions: is an
edge part of the graph, and does an update satisfy the per-status edit rules.
The answers are carried by the dataclasses below.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from src.core.enums import EntityKind


@dataclass(frozen=True)
class TransitionResult:
    """Successful edge lookup. Invalid edges raise instead of returning."""

    entity_kind: EntityKind
    from_status: str
    to_status: str


@dataclass
class UpdateValidation:
    """
    Outcome of checking an update against the edit rules.

    Attributes:
        field_updates: Updates to write on the entity, transition fields included
        target_status: Requested status, None for a plain edit
        create_reprocess: A ReprocessRecord must be written (claims)
        auto_calculate_business_days: Reprocess business days are derived
        create_expiration: A PolicyExpirationRecord must be written (policies)
        transition_data: Transition-only values not stored on the entity
    """

    field_updates: dict[str, Any] = field(default_factory=dict)
    target_status: Optional[str] = None
    create_reprocess: bool = False
    auto_calculate_business_days: bool = False
    create_expiration: bool = False
    transition_data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_transition(self) -> bool:
        return self.target_status is not None


def status_value(status: Any) -> str:
    """Raw string value of a status enum member or string."""
    if isinstance(status, Enum):
        return status.value
    return str(status)


def is_blank(value: Any) -> bool:
    """None and empty strings count as missing."""
    return value is None or (isinstance(value, str) and value.strip() == "")


def missing_fields(source: Mapping[str, Any], required: Iterable[str]) -> list[str]:
    return [name for name in required if is_blank(source.get(name))]


def as_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def as_date(value: Any) -> Optional[date]:
    """Accept date, datetime or ISO string values from update payloads."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
