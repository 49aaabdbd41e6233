"""
Pydantic Schemas for SLA reporting.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.core.enums import ClaimStatus, SlaIndicator


class StageRecord(BaseModel):
    """One contiguous stay of a claim in a single status."""

    model_config = ConfigDict(frozen=True)

    status: ClaimStatus
    entered_at: datetime
    exited_at: Optional[datetime] = Field(None, description="None while the stage is open")
    business_days_elapsed: int = Field(..., ge=0)
    calendar_days_elapsed: int = Field(default=0, ge=0)
    limit: Optional[int] = Field(None, ge=0, description="Business-day limit, None if unlimited")
    indicator: SlaIndicator = Field(default=SlaIndicator.ON_TIME)

    @property
    def is_open(self) -> bool:
        return self.exited_at is None


class ClaimSlaReport(BaseModel):
    """SLA stages of a claim plus totals since creation."""

    model_config = ConfigDict(frozen=True)

    claim_id: str
    claim_number: Optional[str] = None
    current_status: ClaimStatus
    current_indicator: Optional[SlaIndicator] = Field(
        None, description="Indicator of the open stage, None for unlimited statuses"
    )
    stages: list[StageRecord] = Field(default_factory=list)
    total_business_days: int = Field(default=0, ge=0)
    total_calendar_days: int = Field(default=0, ge=0)

    @property
    def breached_stages(self) -> list[StageRecord]:
        return [s for s in self.stages if s.indicator == SlaIndicator.BREACHED]
