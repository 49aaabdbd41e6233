"""
SLA Engine.

Derives per-stage SLA records for a claim from its audit history. A stage is
one contiguous stay in a status; revisiting a status opens a new stage that
is measured against the full limit again.

Indicator thresholds (business days):
    elapsed > limit                         -> BREACHED
    floor(ratio * limit) <= elapsed <= limit -> AT_RISK   (ratio 0.75 by default)
    otherwise, or no limit for the status   -> ON_TIME
"""

import math
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from src.core.config import get_claims_settings
from src.core.enums import AuditAction, ClaimStatus, EntityKind, SlaIndicator
from src.core.exceptions import ValidationError
from src.schemas.audit import AuditLogEntry
from src.schemas.claim import ClaimSnapshot
from src.schemas.sla import ClaimSlaReport, StageRecord
from src.utils.dates import business_days_between, calendar_days_between
from src.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_AT_RISK_RATIO = 0.75

SlaLimits = Mapping[ClaimStatus, int]


def validate_limits_table(limits: Mapping[Any, Any]) -> dict[ClaimStatus, int]:
    """
    Normalize a limits table to {ClaimStatus: business days}.

    Raises:
        ValidationError: On an unknown status or a non-integer or negative limit
    """
    table: dict[ClaimStatus, int] = {}
    for key, value in limits.items():
        try:
            status = ClaimStatus(key)
        except ValueError:
            raise ValidationError(f"SLA limits table has unknown status: {key!r}") from None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"SLA limit for {status.value} must be an integer, got {value!r}")
        if value < 0:
            raise ValidationError(f"SLA limit for {status.value} must be >= 0, got {value}")
        table[status] = value
    return table


def indicator_for(
    elapsed: int,
    limit: Optional[int],
    at_risk_ratio: float = DEFAULT_AT_RISK_RATIO,
) -> SlaIndicator:
    """Classify elapsed business days against a limit."""
    if limit is None:
        return SlaIndicator.ON_TIME
    if elapsed > limit:
        return SlaIndicator.BREACHED
    if elapsed >= math.floor(at_risk_ratio * limit):
        return SlaIndicator.AT_RISK
    return SlaIndicator.ON_TIME


def sort_history(history: Iterable[AuditLogEntry]) -> list[AuditLogEntry]:
    """Ascending (timestamp, sequence); equal keys keep insertion order."""
    return sorted(history, key=lambda e: (e.timestamp, e.sequence))


def _status_changes(history: Iterable[AuditLogEntry]) -> list[AuditLogEntry]:
    return [
        e
        for e in sort_history(history)
        if e.entity_kind == EntityKind.CLAIM
        and e.action in (AuditAction.CREATE, AuditAction.STATUS_CHANGE)
        and e.previous_status != e.new_status
    ]


def _stage(
    status: ClaimStatus,
    entered_at: datetime,
    exited_at: Optional[datetime],
    until: datetime,
    limits: SlaLimits,
    at_risk_ratio: float,
) -> StageRecord:
    elapsed = business_days_between(entered_at, until)
    limit = limits.get(status)
    return StageRecord(
        status=status,
        entered_at=entered_at,
        exited_at=exited_at,
        business_days_elapsed=elapsed,
        calendar_days_elapsed=calendar_days_between(entered_at, until),
        limit=limit,
        indicator=indicator_for(elapsed, limit, at_risk_ratio),
    )


def compute_sla(
    claim_status: ClaimStatus,
    history: Iterable[AuditLogEntry],
    limits: Mapping[Any, Any],
    now: datetime,
    *,
    opened_at: Optional[datetime] = None,
    initial_status: ClaimStatus = ClaimStatus.DRAFT,
    at_risk_ratio: float = DEFAULT_AT_RISK_RATIO,
) -> list[StageRecord]:
    """
    Build one StageRecord per status occupancy interval.

    Args:
        claim_status: Current status of the claim
        history: Audit entries of the claim, in any order
        limits: Business-day limit per status; statuses not listed are unlimited
        now: Evaluation time for the open stage
        opened_at: Claim creation time, used when history has no creation entry
        initial_status: Status the claim was created in
        at_risk_ratio: Fraction of the limit from which a stage is AT_RISK

    Returns:
        Stages in chronological order. The open stage is included only while
        the claim sits in a status that has a limit.

    Raises:
        ValidationError: If the limits table is malformed
    """
    table = validate_limits_table(limits)
    changes = _status_changes(history)

    stages: list[StageRecord] = []
    current: Optional[ClaimStatus] = None
    entered_at: Optional[datetime] = None

    if opened_at is not None and not (changes and changes[0].previous_status is None):
        current, entered_at = ClaimStatus(initial_status), opened_at

    for entry in changes:
        if current is not None and entered_at is not None:
            stages.append(
                _stage(current, entered_at, entry.timestamp, entry.timestamp, table, at_risk_ratio)
            )
        current, entered_at = ClaimStatus(entry.new_status), entry.timestamp

    if current is None or entered_at is None:
        return stages

    # The open stage follows the claim, not the last audited status
    status = ClaimStatus(claim_status)
    if current != status:
        logger.warning(f"Audit history ends in {current.value} but claim is {status.value}")
    if status in table:
        stages.append(_stage(status, entered_at, None, now, table, at_risk_ratio))
    return stages


class SlaEngine:
    """SLA reporting with limits taken from ClaimsSettings unless given."""

    def __init__(
        self,
        limits: Optional[Mapping[Any, Any]] = None,
        at_risk_ratio: Optional[float] = None,
    ):
        settings = get_claims_settings()
        self.limits = validate_limits_table(settings.SLA_LIMITS if limits is None else limits)
        self.at_risk_ratio = settings.SLA_AT_RISK_RATIO if at_risk_ratio is None else at_risk_ratio
        if not 0 < self.at_risk_ratio <= 1:
            raise ValidationError(f"At-risk ratio must be in (0, 1], got {self.at_risk_ratio}")

    def compute(
        self,
        claim_status: ClaimStatus,
        history: Iterable[AuditLogEntry],
        now: datetime,
        *,
        opened_at: Optional[datetime] = None,
    ) -> list[StageRecord]:
        return compute_sla(
            claim_status,
            history,
            self.limits,
            now,
            opened_at=opened_at,
            at_risk_ratio=self.at_risk_ratio,
        )

    def report(
        self,
        claim: ClaimSnapshot,
        history: Iterable[AuditLogEntry],
        now: datetime,
    ) -> ClaimSlaReport:
        """Stages plus totals since the claim was created."""
        history = list(history)
        stages = self.compute(claim.status, history, now, opened_at=claim.created_at)

        current_indicator = None
        if stages and stages[-1].is_open:
            current_indicator = stages[-1].indicator
            if current_indicator == SlaIndicator.BREACHED:
                logger.warning(
                    f"Claim {claim.claim_number or claim.id} breached SLA in {claim.status.value}: "
                    f"{stages[-1].business_days_elapsed}/{stages[-1].limit} business days"
                )

        started = claim.created_at or (stages[0].entered_at if stages else None)
        return ClaimSlaReport(
            claim_id=claim.id,
            claim_number=claim.claim_number,
            current_status=claim.status,
            current_indicator=current_indicator,
            stages=stages,
            total_business_days=business_days_between(started, now) if started else 0,
            total_calendar_days=calendar_days_between(started, now) if started else 0,
        )
