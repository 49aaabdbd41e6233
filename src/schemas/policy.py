"""
Pydantic Schemas for Policies.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.core.enums import PolicyStatus, PolicyType

# Business fields covered by the policy edit rules
POLICY_BUSINESS_FIELDS = (
    "policy_number",
    "start_date",
    "end_date",
    "type",
    "amb_copay",
    "hosp_copay",
    "maternity",
    "t_premium",
    "tplus1_premium",
    "tplusf_premium",
    "benefits_cost",
)


class PolicySnapshot(BaseModel):
    """Persisted policy as seen by the lifecycle engine."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Policy ID")
    client_id: str = Field(..., min_length=1, description="Owning client ID")
    insurer_id: str = Field(..., min_length=1, description="Insurer ID")
    status: PolicyStatus = Field(default=PolicyStatus.PENDING)

    policy_number: Optional[str] = Field(None, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    type: Optional[PolicyType] = None
    amb_copay: Optional[Decimal] = Field(None, ge=0, description="Ambulatory copay")
    hosp_copay: Optional[Decimal] = Field(None, ge=0, description="Hospitalization copay")
    maternity: Optional[Decimal] = Field(None, ge=0, description="Maternity coverage")
    t_premium: Optional[Decimal] = Field(None, ge=0, description="Holder-only premium")
    tplus1_premium: Optional[Decimal] = Field(None, ge=0, description="Holder + 1 premium")
    tplusf_premium: Optional[Decimal] = Field(None, ge=0, description="Holder + family premium")
    benefits_cost: Optional[Decimal] = Field(None, ge=0)

    expiration_reason: Optional[str] = None
    cancellation_reason: Optional[str] = None
    updated_at: Optional[datetime] = None

    def field_values(self) -> dict[str, Any]:
        """Business fields as a plain dict, for rule evaluation."""
        return {name: getattr(self, name) for name in POLICY_BUSINESS_FIELDS}


class PolicyExpirationRecord(BaseModel):
    """Written alongside an ACTIVE -> EXPIRED transition."""

    model_config = ConfigDict(frozen=True)

    policy_id: str
    expired_at: datetime
    reason: str
    created_by_id: str
