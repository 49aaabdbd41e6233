"""
Unit tests for core enumerations.
"""

import pytest

from src.core.enums import (
    AccessOperation,
    AffiliateType,
    AuditAction,
    ClaimStatus,
    EntityKind,
    PolicyStatus,
    Role,
    RoleScope,
    SlaIndicator,
)


@pytest.mark.unit
class TestClaimStatus:
    """Tests for ClaimStatus enum."""

    def test_claim_status_values(self):
        """Test the persisted status strings."""
        assert [s.value for s in ClaimStatus] == [
            "DRAFT",
            "VALIDATION",
            "SUBMITTED",
            "PENDING_INFO",
            "RETURNED",
            "SETTLED",
            "CANCELLED",
        ]

    def test_claim_status_is_string(self):
        """Test ClaimStatus compares equal to its raw value."""
        assert ClaimStatus.DRAFT == "DRAFT"
        assert ClaimStatus("PENDING_INFO") is ClaimStatus.PENDING_INFO

    def test_unknown_status(self):
        """Test unknown strings are rejected."""
        with pytest.raises(ValueError):
            ClaimStatus("ARCHIVED")


@pytest.mark.unit
class TestPolicyStatus:
    """Tests for PolicyStatus enum."""

    def test_policy_status_values(self):
        """Test policy status values."""
        assert {s.value for s in PolicyStatus} == {"PENDING", "ACTIVE", "EXPIRED", "CANCELLED"}


@pytest.mark.unit
class TestAccessEnums:
    """Tests for role and access enumerations."""

    def test_role_values(self):
        """Test role identifiers are lower-case."""
        assert Role.SUPERADMIN.value == "superadmin"
        assert Role.CLIENT_AFFILIATE.value == "client_affiliate"
        assert len(Role) == 7

    def test_role_scopes(self):
        """Test the three visibility scopes."""
        assert {s.value for s in RoleScope} == {"internal", "client", "affiliate"}

    def test_transition_is_an_operation(self):
        """Test TRANSITION is distinct from UPDATE."""
        assert AccessOperation.TRANSITION != AccessOperation.UPDATE

    def test_affiliate_types(self):
        """Test owner/dependent values."""
        assert {t.value for t in AffiliateType} == {"OWNER", "DEPENDENT"}


@pytest.mark.unit
class TestAuditEnums:
    """Tests for audit and SLA enumerations."""

    def test_entity_kind_values(self):
        """Test entity kind names used in error messages."""
        assert EntityKind.CLAIM.value == "Claim"
        assert EntityKind.POLICY.value == "Policy"

    def test_audit_actions(self):
        """Test STATUS_CHANGE is an audit action."""
        assert AuditAction("STATUS_CHANGE") is AuditAction.STATUS_CHANGE

    def test_sla_indicators(self):
        """Test SLA indicator values."""
        assert [i.value for i in SlaIndicator] == ["on_time", "at_risk", "breached"]
