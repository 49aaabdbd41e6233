"""
Lifecycle Service.

Orchestrates claim and policy status changes:

    actor + entity + request
        -> AccessScopingResolver authorizes
        -> state machine validates the edge and the edit rules
        -> outcome (entity, audit entry, side records) is planned in memory
        -> TransitionStore commits it atomically

Nothing is written when any step fails.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union
from uuid import uuid4

from src.core.enums import (
    AccessOperation,
    AuditAction,
    ClaimStatus,
    EntityKind,
    PolicyStatus,
    ResourceType,
)
from src.core.exceptions import ForbiddenError, ValidationError
from src.schemas.actor import Actor
from src.schemas.affiliate import AffiliateSnapshot
from src.schemas.audit import AuditLogEntry, FieldChange
from src.schemas.claim import ClaimSnapshot, ReprocessRecord
from src.schemas.client import ClientSnapshot
from src.schemas.policy import PolicyExpirationRecord, PolicySnapshot
from src.services.access_scoping import AccessScopingResolver, get_access_scoping_resolver
from src.services.claim_number import ClaimNumberGenerator
from src.services.claim_state_machine import ClaimStateMachine, get_claim_state_machine
from src.services.policy_state_machine import PolicyStateMachine, get_policy_state_machine
from src.services.transition_store import Entity, TransitionOutcome, TransitionStore
from src.services.transitions import TransitionResult, UpdateValidation, as_date
from src.utils.dates import business_days_between
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Bookkeeping fields left out of audit diffs
_DIFF_IGNORED = frozenset({"updated_at"})


def validate_transition(
    current_status: Union[ClaimStatus, PolicyStatus, str],
    target_status: Union[ClaimStatus, PolicyStatus, str],
    entity_kind: EntityKind,
) -> TransitionResult:
    """
    Validate an edge of the claim or policy graph.

    Raises:
        InvalidTransitionError: If the edge is not declared
    """
    if EntityKind(entity_kind) == EntityKind.CLAIM:
        return get_claim_state_machine().validate_transition(current_status, target_status)
    return get_policy_state_machine().validate_transition(current_status, target_status)


def diff_changes(before: Optional[Entity], after: Entity) -> dict[str, FieldChange]:
    """Fields whose value differs between two snapshots, as JSON-safe values."""
    old = before.model_dump(mode="json") if before is not None else {}
    new = after.model_dump(mode="json")
    return {
        name: FieldChange(old=old.get(name), new=value)
        for name, value in new.items()
        if name not in _DIFF_IGNORED and old.get(name) != value
    }


def _entity_kind(entity: Entity) -> EntityKind:
    if isinstance(entity, ClaimSnapshot):
        return EntityKind.CLAIM
    if isinstance(entity, PolicySnapshot):
        return EntityKind.POLICY
    raise ValidationError(f"Unsupported lifecycle entity: {type(entity).__name__}")


class LifecycleService:
    """
    Entry point for lifecycle mutations.

    Args:
        store: Backing TransitionStore
        resolver: Access scoping resolver (singleton by default)
        claim_numbers: Generator for new claim numbers (built from settings when needed)
    """

    def __init__(
        self,
        store: TransitionStore,
        resolver: Optional[AccessScopingResolver] = None,
        claim_numbers: Optional[ClaimNumberGenerator] = None,
        claim_machine: Optional[ClaimStateMachine] = None,
        policy_machine: Optional[PolicyStateMachine] = None,
    ):
        self.store = store
        self.resolver = resolver or get_access_scoping_resolver()
        self._claim_numbers = claim_numbers
        self.claim_machine = claim_machine or get_claim_state_machine()
        self.policy_machine = policy_machine or get_policy_state_machine()

    @property
    def claim_numbers(self) -> ClaimNumberGenerator:
        if self._claim_numbers is None:
            self._claim_numbers = ClaimNumberGenerator.from_settings()
        return self._claim_numbers

    # -------------------------------------------------------------------------
    # Planning
    # -------------------------------------------------------------------------

    def _authorize(self, actor: Actor, entity: Entity, operation: AccessOperation) -> None:
        kind = _entity_kind(entity)
        resource_type = ResourceType.CLAIM if kind == EntityKind.CLAIM else ResourceType.POLICY
        self.resolver.require_access(actor, resource_type, entity, operation)

        if kind == EntityKind.CLAIM and not self.resolver.can_edit_claim(actor, entity.status):
            logger.warning(
                f"Access denied: actor={actor.id} role={actor.role.value} "
                f"cannot edit claim {entity.id} in {entity.status.value}"
            )
            raise ForbiddenError(
                f"Role {actor.role.value} cannot edit claims in status {entity.status.value}",
                resource_type=resource_type.value,
                resource_id=entity.id,
            )

    def _validate(
        self,
        entity: Entity,
        updates: Optional[Mapping[str, Any]],
        target: Optional[Union[ClaimStatus, PolicyStatus]],
    ) -> UpdateValidation:
        if isinstance(entity, ClaimSnapshot):
            return self.claim_machine.validate_update(entity, updates, target)
        return self.policy_machine.validate_update(entity, updates, target)

    def plan_transition(
        self,
        entity: Entity,
        target: Optional[Union[ClaimStatus, PolicyStatus]],
        actor: Actor,
        *,
        updates: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> TransitionOutcome:
        """
        Authorize and validate a change without writing anything.

        A None target plans a plain field edit (UPDATE audit entry).

        Raises:
            ForbiddenError: If the actor may not change the entity
            InvalidTransitionError: If target is not reachable
            TransitionRequirementsError: If an edit rule fails
        """
        now = now or datetime.now(timezone.utc)
        kind = _entity_kind(entity)
        operation = AccessOperation.UPDATE if target is None else AccessOperation.TRANSITION

        self._authorize(actor, entity, operation)
        validation = self._validate(entity, updates, target)

        changes: dict[str, Any] = dict(validation.field_updates)
        changes["updated_at"] = now
        if validation.target_status is not None:
            changes["status"] = validation.target_status
        updated = type(entity).model_validate({**entity.model_dump(), **changes})

        entry = AuditLogEntry(
            entity_kind=kind,
            entity_id=entity.id,
            client_id=entity.client_id,
            action=AuditAction.STATUS_CHANGE if validation.is_transition else AuditAction.UPDATE,
            previous_status=entity.status,
            new_status=updated.status,
            actor_id=actor.id,
            timestamp=now,
            changes=diff_changes(entity, updated) or None,
        )

        reprocess = None
        if validation.create_reprocess:
            reprocess = self._plan_reprocess(entity, validation, actor)  # type: ignore[arg-type]

        expiration = None
        if validation.create_expiration:
            expiration = PolicyExpirationRecord(
                policy_id=entity.id,
                expired_at=now,
                reason=validation.field_updates["expiration_reason"],
                created_by_id=actor.id,
            )

        return TransitionOutcome(
            entity_kind=kind,
            previous=entity,
            updated=updated,
            audit_entry=entry,
            reprocess_record=reprocess,
            expiration_record=expiration,
        )

    def _plan_reprocess(
        self,
        claim: ClaimSnapshot,
        validation: UpdateValidation,
        actor: Actor,
    ) -> ReprocessRecord:
        """Reprocess record with business days counted from the previous cycle start."""
        reprocess_date = as_date(validation.transition_data["reprocess_date"])

        business_days = None
        if validation.auto_calculate_business_days:
            previous = self.store.last_reprocess(claim.id)
            cycle_start = previous.reprocess_date if previous else claim.submitted_date
            if cycle_start is not None:
                business_days = business_days_between(cycle_start, reprocess_date)

        return ReprocessRecord(
            claim_id=claim.id,
            reprocess_date=reprocess_date,
            reprocess_description=validation.transition_data["reprocess_description"],
            business_days=business_days,
            created_by_id=actor.id,
        )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def transition(
        self,
        entity: Entity,
        target: Union[ClaimStatus, PolicyStatus],
        actor: Actor,
        *,
        updates: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> Entity:
        """
        Move an entity to target status and append exactly one audit entry.

        Returns:
            The updated entity as committed
        """
        outcome = self.plan_transition(entity, target, actor, updates=updates, now=now)
        committed = self.store.commit_transition(outcome)
        logger.info(
            f"{committed.entity_kind.value} {committed.entity_id} transitioned: "
            f"{committed.audit_entry.previous_status} -> {committed.audit_entry.new_status} "
            f"by {actor.id}"
        )
        if committed.reprocess_record is not None:
            logger.info(
                f"Created reprocess record for claim {committed.entity_id} "
                f"({committed.reprocess_record.business_days} business days)"
            )
        return committed.updated

    def update(
        self,
        entity: Entity,
        actor: Actor,
        updates: Mapping[str, Any],
        *,
        now: Optional[datetime] = None,
    ) -> Entity:
        """Edit fields without changing status."""
        outcome = self.plan_transition(entity, None, actor, updates=updates, now=now)
        committed = self.store.commit_transition(outcome)
        logger.info(
            f"{committed.entity_kind.value} {committed.entity_id} updated: "
            f"{sorted((committed.audit_entry.changes or {}).keys())}"
        )
        return committed.updated

    def create_claim(
        self,
        actor: Actor,
        client: ClientSnapshot,
        affiliate: AffiliateSnapshot,
        patient: AffiliateSnapshot,
        *,
        sequence: int,
        claim_id: Optional[str] = None,
        description: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ClaimSnapshot:
        """
        Create a DRAFT claim with its creation audit entry.

        Raises:
            BusinessRuleError: If client, affiliate or patient links are invalid
            ForbiddenError: If the actor may not file this claim
        """
        now = now or datetime.now(timezone.utc)
        self.resolver.authorize_claim_creation(actor, client, affiliate, patient)

        claim = ClaimSnapshot(
            id=claim_id or str(uuid4()),
            client_id=client.id,
            affiliate_id=affiliate.id,
            patient_id=patient.id,
            status=ClaimStatus.DRAFT,
            claim_number=self.claim_numbers.encode(sequence),
            claim_sequence=sequence,
            created_at=now,
            updated_at=now,
            description=description,
        )
        entry = AuditLogEntry(
            entity_kind=EntityKind.CLAIM,
            entity_id=claim.id,
            client_id=claim.client_id,
            action=AuditAction.CREATE,
            previous_status=None,
            new_status=claim.status,
            actor_id=actor.id,
            timestamp=now,
        )
        committed = self.store.commit_transition(
            TransitionOutcome(
                entity_kind=EntityKind.CLAIM,
                previous=None,
                updated=claim,
                audit_entry=entry,
            )
        )
        logger.info(f"Claim created: {claim.claim_number} ({claim.id}) by {actor.id}")
        return committed.updated  # type: ignore[return-value]
