"""
Pydantic Schemas for Audit Log Entries.

Audit entries are append-only: one is written for every status change and
never edited afterwards. The SLA engine reads them back as transition history.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.enums import AuditAction, EntityKind


class FieldChange(BaseModel):
    """Old and new value of one field touched by a transition."""

    model_config = ConfigDict(frozen=True)

    old: Any = None
    new: Any = None


class AuditLogEntry(BaseModel):
    """Immutable record of one lifecycle event."""

    model_config = ConfigDict(frozen=True)

    entity_kind: EntityKind = Field(..., description="Claim or Policy")
    entity_id: str = Field(..., min_length=1)
    client_id: Optional[str] = Field(None, description="Owning client, for tenant filtering")
    action: AuditAction = Field(default=AuditAction.STATUS_CHANGE)
    previous_status: Optional[str] = Field(None, description="None for the creation entry")
    new_status: str = Field(..., min_length=1)
    actor_id: str = Field(..., min_length=1)
    timestamp: datetime
    sequence: int = Field(default=0, ge=0, description="Insertion order tie-breaker")
    changes: Optional[dict[str, FieldChange]] = None

    @field_validator("previous_status", "new_status", mode="before")
    @classmethod
    def status_as_value(cls, v: Any) -> Any:
        """Accept ClaimStatus/PolicyStatus members and store their raw value."""
        if isinstance(v, Enum):
            return v.value
        return v
