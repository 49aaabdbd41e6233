"""
Pydantic Schemas for Affiliates.

An affiliate is a covered person. OWNER affiliates hold the coverage and
may have DEPENDENT affiliates attached; a dependent has exactly one owner in
the same client and never has dependents of its own.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.core.enums import AffiliateType


class AffiliateSnapshot(BaseModel):
    """Persisted affiliate as seen by the lifecycle engine."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Affiliate ID")
    client_id: str = Field(..., min_length=1, description="Owning client ID")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    affiliate_type: AffiliateType = Field(
        default=AffiliateType.OWNER, description="OWNER or DEPENDENT"
    )
    primary_affiliate_id: Optional[str] = Field(
        None, description="Owner of this dependent (None for owners)"
    )
    is_active: bool = Field(default=True)
    user_id: Optional[str] = Field(None, description="Linked user account, if any")

    @model_validator(mode="after")
    def check_owner_link(self) -> "AffiliateSnapshot":
        """Dependents point at an owner, owners point nowhere."""
        if self.affiliate_type == AffiliateType.DEPENDENT:
            if not self.primary_affiliate_id:
                raise ValueError("DEPENDENT affiliate requires primary_affiliate_id")
            if self.primary_affiliate_id == self.id:
                raise ValueError("Affiliate cannot be its own owner")
        elif self.primary_affiliate_id is not None:
            raise ValueError("OWNER affiliate cannot have primary_affiliate_id")
        return self

    @property
    def is_owner(self) -> bool:
        return self.affiliate_type == AffiliateType.OWNER

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
