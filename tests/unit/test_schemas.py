"""
Unit Tests for Pydantic Schemas
Tests validation logic for lifecycle schemas
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from src.core.enums import AffiliateType, AuditAction, ClaimStatus, EntityKind, Role
from src.core.exceptions import ValidationError as LifecycleValidationError
from src.schemas.actor import Actor, AffiliateAnchor, ClientRelationship
from src.schemas.affiliate import AffiliateSnapshot
from src.schemas.audit import AuditLogEntry
from tests.factories import CLIENT_B, make_affiliate, make_claim


@pytest.mark.unit
class TestAffiliateSchema:
    """Test AffiliateSnapshot owner links"""

    def test_owner(self, owner):
        """Test an owner has no primary affiliate"""
        assert owner.is_owner
        assert owner.full_name == "Maria Gomez"

    def test_dependent_requires_owner(self):
        """Test that a dependent without owner is rejected"""
        with pytest.raises(ValidationError):
            AffiliateSnapshot(
                id="aff-x",
                client_id="client-a",
                first_name="A",
                last_name="B",
                affiliate_type=AffiliateType.DEPENDENT,
            )

    def test_owner_cannot_point_to_owner(self):
        """Test that an OWNER with primary_affiliate_id is rejected"""
        with pytest.raises(ValidationError):
            AffiliateSnapshot(
                id="aff-x",
                client_id="client-a",
                first_name="A",
                last_name="B",
                primary_affiliate_id="aff-owner",
            )

    def test_self_reference(self):
        """Test that a dependent cannot own itself"""
        with pytest.raises(ValidationError):
            make_affiliate("aff-x", owner_id="aff-x")


@pytest.mark.unit
class TestAffiliateAnchor:
    """Test AffiliateAnchor construction"""

    def test_owner_sees_dependents(self, owner_anchor):
        """Test owner patient ids include dependents"""
        assert owner_anchor.patient_ids == frozenset({"aff-owner", "aff-child"})

    def test_dependent_sees_itself(self, dependent):
        """Test dependent patient ids are only itself"""
        anchor = AffiliateAnchor.from_records(dependent)
        assert anchor.patient_ids == frozenset({"aff-child"})

    def test_foreign_dependent(self, owner, sibling_owner):
        """Test dependents of another owner are rejected"""
        other_child = make_affiliate("aff-other", owner_id=sibling_owner.id)
        with pytest.raises(LifecycleValidationError):
            AffiliateAnchor.from_records(owner, [other_child])

    def test_cross_client_dependent(self, owner):
        """Test dependents in another client are rejected"""
        child = make_affiliate("aff-far", client_id=CLIENT_B, owner_id=owner.id)
        with pytest.raises(LifecycleValidationError):
            AffiliateAnchor.from_records(owner, [child])


@pytest.mark.unit
class TestActorSchema:
    """Test Actor relationships"""

    def test_inactive_relationships_are_ignored(self):
        """Test only active relationships grant access"""
        actor = Actor(
            id="u-1",
            role=Role.CLIENT_AGENT,
            client_relationships=(
                ClientRelationship(client_id="client-a"),
                ClientRelationship(client_id="client-b", is_active=False),
            ),
        )
        assert actor.accessible_client_ids == frozenset({"client-a"})
        assert not actor.has_client_access("client-b")

    def test_unknown_role(self):
        """Test roles outside the enum are rejected"""
        with pytest.raises(ValidationError):
            Actor(id="u-1", role="auditor")


@pytest.mark.unit
class TestLifecycleRecords:
    """Test claim and audit records"""

    def test_claim_is_frozen(self):
        """Test snapshots cannot be mutated in place"""
        claim = make_claim()
        with pytest.raises(ValidationError):
            claim.status = ClaimStatus.SETTLED

    def test_negative_amount(self):
        """Test amounts cannot be negative"""
        with pytest.raises(ValidationError):
            make_claim(amount_submitted=-1)

    def test_audit_entry_stores_raw_status(self):
        """Test enum statuses are stored as their values"""
        entry = AuditLogEntry(
            entity_kind=EntityKind.CLAIM,
            entity_id="claim-1",
            previous_status=ClaimStatus.DRAFT,
            new_status=ClaimStatus.VALIDATION,
            actor_id="u-1",
            timestamp=datetime(2024, 3, 4, tzinfo=timezone.utc),
        )
        assert entry.previous_status == "DRAFT"
        assert entry.new_status == "VALIDATION"
        assert entry.action == AuditAction.STATUS_CHANGE
