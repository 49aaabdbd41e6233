"""
Pydantic Schemas for Claims.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.core.enums import CareType, ClaimStatus

# Business fields covered by the claim edit rules
CLAIM_BUSINESS_FIELDS = (
    "policy_id",
    "description",
    "care_type",
    "diagnosis_code",
    "diagnosis_description",
    "incident_date",
    "amount_submitted",
    "submitted_date",
    "amount_approved",
    "amount_denied",
    "amount_unprocessed",
    "deductible_applied",
    "copay_applied",
    "settlement_date",
    "settlement_number",
    "settlement_notes",
    "pending_reason",
    "return_reason",
    "cancellation_reason",
)


class ClaimSnapshot(BaseModel):
    """Persisted claim as seen by the lifecycle engine."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Claim ID")
    client_id: str = Field(..., min_length=1, description="Owning client ID")
    affiliate_id: str = Field(..., min_length=1, description="Insured affiliate ID")
    patient_id: str = Field(..., min_length=1, description="Patient (affiliate or dependent)")
    status: ClaimStatus = Field(default=ClaimStatus.DRAFT)
    claim_number: Optional[str] = Field(None, description="Encoded sequential claim number")
    claim_sequence: Optional[int] = Field(None, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    policy_id: Optional[str] = None
    description: Optional[str] = Field(None, max_length=2000)
    care_type: Optional[CareType] = None
    diagnosis_code: Optional[str] = Field(None, max_length=20)
    diagnosis_description: Optional[str] = Field(None, max_length=500)
    incident_date: Optional[date] = None

    amount_submitted: Optional[Decimal] = Field(None, ge=0)
    submitted_date: Optional[date] = None

    amount_approved: Optional[Decimal] = Field(None, ge=0)
    amount_denied: Optional[Decimal] = Field(None, ge=0)
    amount_unprocessed: Optional[Decimal] = Field(None, ge=0)
    deductible_applied: Optional[Decimal] = Field(None, ge=0)
    copay_applied: Optional[Decimal] = Field(None, ge=0)
    settlement_date: Optional[date] = None
    settlement_number: Optional[str] = Field(None, max_length=100)
    settlement_notes: Optional[str] = None

    pending_reason: Optional[str] = None
    return_reason: Optional[str] = None
    cancellation_reason: Optional[str] = None

    def field_values(self) -> dict[str, Any]:
        """Ownership and business fields as a plain dict, for rule evaluation."""
        values: dict[str, Any] = {
            "client_id": self.client_id,
            "affiliate_id": self.affiliate_id,
            "patient_id": self.patient_id,
        }
        values.update({name: getattr(self, name) for name in CLAIM_BUSINESS_FIELDS})
        return values


class ReprocessRecord(BaseModel):
    """Written alongside a PENDING_INFO -> SUBMITTED transition."""

    model_config = ConfigDict(frozen=True)

    claim_id: str
    reprocess_date: date
    reprocess_description: str
    business_days: Optional[int] = Field(
        None, ge=0, description="Business days since the previous cycle start"
    )
    created_by_id: str
