"""
Unit tests for SLA computation.
"""

import random
from datetime import datetime, timezone

import pytest

from src.core.enums import AuditAction, ClaimStatus, EntityKind, SlaIndicator
from src.core.exceptions import ValidationError
from src.schemas.audit import AuditLogEntry
from src.services.sla_engine import (
    SlaEngine,
    compute_sla,
    indicator_for,
    sort_history,
    validate_limits_table,
)
from tests.factories import make_claim

S = ClaimStatus
LIMITS = {S.DRAFT: 1, S.VALIDATION: 1, S.SUBMITTED: 8, S.PENDING_INFO: 3}


def at(day: int, hour: int = 9) -> datetime:
    return datetime(2024, 3, day, hour, 0, tzinfo=timezone.utc)


def entry(previous, new, timestamp, sequence=0) -> AuditLogEntry:
    return AuditLogEntry(
        entity_kind=EntityKind.CLAIM,
        entity_id="claim-1",
        action=AuditAction.CREATE if previous is None else AuditAction.STATUS_CHANGE,
        previous_status=previous,
        new_status=new,
        actor_id="user-1",
        timestamp=timestamp,
        sequence=sequence,
    )


# Mon 4 create, Tue 5 validate + submit, Thu 14 pending, Fri 15 resubmitted
REPROCESSED_HISTORY = [
    entry(None, S.DRAFT, at(4), 1),
    entry(S.DRAFT, S.VALIDATION, at(5), 2),
    entry(S.VALIDATION, S.SUBMITTED, at(5, 12), 3),
    entry(S.SUBMITTED, S.PENDING_INFO, at(14), 4),
    entry(S.PENDING_INFO, S.SUBMITTED, at(15), 5),
]


@pytest.mark.unit
class TestIndicator:
    """Tests for indicator thresholds."""

    @pytest.mark.parametrize(
        "elapsed,limit,expected",
        [
            (6, 8, SlaIndicator.AT_RISK),
            (5, 8, SlaIndicator.ON_TIME),
            (9, 8, SlaIndicator.BREACHED),
            (8, 8, SlaIndicator.AT_RISK),
            (0, 1, SlaIndicator.AT_RISK),
            (2, 1, SlaIndicator.BREACHED),
            (1, 3, SlaIndicator.ON_TIME),
            (2, 3, SlaIndicator.AT_RISK),
            (40, None, SlaIndicator.ON_TIME),
        ],
    )
    def test_thresholds(self, elapsed, limit, expected):
        """Test BREACHED / AT_RISK / ON_TIME boundaries."""
        assert indicator_for(elapsed, limit) == expected

    def test_custom_ratio(self):
        """Test the at-risk ratio is configurable."""
        assert indicator_for(6, 8, at_risk_ratio=0.9) == SlaIndicator.ON_TIME


@pytest.mark.unit
class TestComputeSla:
    """Tests for compute_sla."""

    def test_revisited_status_yields_independent_stages(self):
        """Test SUBMITTED twice gives two stages, each against the full limit."""
        stages = compute_sla(S.SUBMITTED, REPROCESSED_HISTORY, LIMITS, at(25))

        assert [s.status for s in stages] == [
            S.DRAFT,
            S.VALIDATION,
            S.SUBMITTED,
            S.PENDING_INFO,
            S.SUBMITTED,
        ]
        first, second = stages[2], stages[4]
        assert first.business_days_elapsed == 7
        assert second.business_days_elapsed == 6
        assert first.limit == second.limit == 8
        assert first.indicator == SlaIndicator.AT_RISK
        assert second.indicator == SlaIndicator.AT_RISK
        assert second.is_open and not first.is_open

    def test_history_order_does_not_matter(self):
        """Test entries are sorted by timestamp before processing."""
        shuffled = list(REPROCESSED_HISTORY)
        random.Random(7).shuffle(shuffled)
        assert compute_sla(S.SUBMITTED, shuffled, LIMITS, at(25)) == compute_sla(
            S.SUBMITTED, REPROCESSED_HISTORY, LIMITS, at(25)
        )

    def test_equal_timestamps_use_sequence(self):
        """Test ties on timestamp are broken by sequence."""
        a = entry(S.DRAFT, S.VALIDATION, at(5), 2)
        b = entry(S.VALIDATION, S.SUBMITTED, at(5), 3)
        assert sort_history([b, a]) == [a, b]

    def test_breached_open_stage(self):
        """Test an open stage past its limit is BREACHED."""
        history = [entry(None, S.DRAFT, at(1)), entry(S.DRAFT, S.VALIDATION, at(4)),
                   entry(S.VALIDATION, S.SUBMITTED, at(4, 10))]
        stages = compute_sla(S.SUBMITTED, history, LIMITS, at(15))
        assert stages[-1].business_days_elapsed == 9
        assert stages[-1].indicator == SlaIndicator.BREACHED

    def test_terminal_status_has_no_open_stage(self):
        """Test unlimited statuses do not produce an open stage."""
        history = [
            entry(None, S.DRAFT, at(4)),
            entry(S.DRAFT, S.CANCELLED, at(5)),
        ]
        stages = compute_sla(S.CANCELLED, history, LIMITS, at(29))
        assert [s.status for s in stages] == [S.DRAFT]
        assert stages[0].exited_at == at(5)

    def test_unlimited_closed_stage_is_on_time(self):
        """Test closed stages in unlimited statuses are ON_TIME."""
        history = [
            entry(None, S.DRAFT, at(4)),
            entry(S.DRAFT, S.VALIDATION, at(4)),
            entry(S.VALIDATION, S.SUBMITTED, at(4)),
            entry(S.SUBMITTED, S.RETURNED, at(5)),
            entry(S.RETURNED, S.VALIDATION, at(29)),
        ]
        stages = compute_sla(S.VALIDATION, history, LIMITS, at(29))
        returned = [s for s in stages if s.status == S.RETURNED][0]
        assert returned.limit is None
        assert returned.indicator == SlaIndicator.ON_TIME

    def test_opened_at_without_creation_entry(self):
        """Test the initial DRAFT stage comes from the claim creation time."""
        history = [entry(S.DRAFT, S.VALIDATION, at(6))]
        stages = compute_sla(S.VALIDATION, history, LIMITS, at(6, 15), opened_at=at(4))
        assert stages[0].status == S.DRAFT
        assert stages[0].business_days_elapsed == 2
        assert stages[0].indicator == SlaIndicator.BREACHED

    def test_open_stage_uses_claim_status(self):
        """Test the open stage is measured in the claim's status when history lags."""
        stages = compute_sla(S.SUBMITTED, [], LIMITS, at(6), opened_at=at(4))
        assert [s.status for s in stages] == [S.SUBMITTED]
        assert stages[0].limit == 8
        assert stages[0].indicator == SlaIndicator.ON_TIME

    def test_lagging_history_for_terminal_claim(self):
        """Test a cancelled claim gets no open stage even if history ends in DRAFT."""
        stages = compute_sla(S.CANCELLED, [entry(None, S.DRAFT, at(4))], LIMITS, at(20))
        assert stages == []

    def test_mixed_naive_and_aware_times(self):
        """Test a naive now is taken as UTC against aware history."""
        naive_now = datetime(2024, 3, 5, 10, 0)
        stages = compute_sla(S.DRAFT, [entry(None, S.DRAFT, at(4))], LIMITS, naive_now)
        assert stages[0].business_days_elapsed == 1
        assert stages[0].calendar_days_elapsed == 2

    def test_empty_history(self):
        """Test no history and no creation time yields no stages."""
        assert compute_sla(S.DRAFT, [], LIMITS, at(4)) == []

    def test_update_entries_are_ignored(self):
        """Test plain edits do not split stages."""
        edit = AuditLogEntry(
            entity_kind=EntityKind.CLAIM,
            entity_id="claim-1",
            action=AuditAction.UPDATE,
            previous_status=S.DRAFT,
            new_status=S.DRAFT,
            actor_id="user-1",
            timestamp=at(4, 11),
        )
        stages = compute_sla(S.DRAFT, [entry(None, S.DRAFT, at(4)), edit], LIMITS, at(4, 12))
        assert len(stages) == 1


@pytest.mark.unit
class TestLimitsTable:
    """Tests for limits validation."""

    def test_string_keys_are_normalized(self):
        """Test raw status strings are accepted."""
        assert validate_limits_table({"SUBMITTED": 8}) == {S.SUBMITTED: 8}

    @pytest.mark.parametrize(
        "limits",
        [{"ARCHIVED": 1}, {"SUBMITTED": -1}, {"SUBMITTED": 1.5}, {"SUBMITTED": True}, {"SUBMITTED": "8"}],
    )
    def test_malformed_tables(self, limits):
        """Test malformed tables raise ValidationError."""
        with pytest.raises(ValidationError):
            validate_limits_table(limits)

    def test_compute_rejects_malformed_limits(self):
        """Test compute_sla validates its limits."""
        with pytest.raises(ValidationError):
            compute_sla(S.DRAFT, [], {"NOPE": 1}, at(4))


@pytest.mark.unit
class TestSlaEngineReport:
    """Tests for SlaEngine.report."""

    def test_default_limits_from_settings(self):
        """Test the engine loads the configured limits."""
        engine = SlaEngine()
        assert engine.limits[S.SUBMITTED] == 8
        assert engine.at_risk_ratio == 0.75

    def test_invalid_ratio(self):
        """Test ratios outside (0, 1] are rejected."""
        with pytest.raises(ValidationError):
            SlaEngine(limits=LIMITS, at_risk_ratio=1.5)

    def test_report_totals(self):
        """Test report stages, current indicator and totals since creation."""
        claim = make_claim(status=S.SUBMITTED, claim_number="RECL_TEST", created_at=at(4))
        report = SlaEngine(limits=LIMITS).report(claim, REPROCESSED_HISTORY, at(25))

        assert report.claim_number == "RECL_TEST"
        assert len(report.stages) == 5
        assert report.current_indicator == SlaIndicator.AT_RISK
        assert report.total_business_days == 15
        assert report.total_calendar_days == 21
        assert report.breached_stages == []

    def test_report_for_terminal_claim(self):
        """Test terminal claims have no current indicator."""
        claim = make_claim(status=S.CANCELLED, created_at=at(4))
        history = [entry(None, S.DRAFT, at(4)), entry(S.DRAFT, S.CANCELLED, at(5))]
        report = SlaEngine(limits=LIMITS).report(claim, history, at(6))
        assert report.current_indicator is None
