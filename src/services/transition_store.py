"""
Transition Store.

A status change, its audit entry and any side record it produces are one
atomic unit. The lifecycle service plans the whole unit in memory and hands
it to a TransitionStore, which owns the transaction. A database-backed store
wraps commit_transition in a single transaction; InMemoryTransitionStore is
the reference implementation used by tests and tooling.
"""

import threading
from dataclasses import dataclass, field, replace
from typing import Optional, Protocol, Union

from src.core.enums import EntityKind
from src.core.exceptions import StaleEntityError
from src.schemas.audit import AuditLogEntry
from src.schemas.claim import ClaimSnapshot, ReprocessRecord
from src.schemas.policy import PolicyExpirationRecord, PolicySnapshot
from src.utils.logging import get_logger

logger = get_logger(__name__)

Entity = Union[ClaimSnapshot, PolicySnapshot]


@dataclass(frozen=True)
class TransitionOutcome:
    """Everything one transition writes."""

    entity_kind: EntityKind
    previous: Optional[Entity]
    updated: Entity
    audit_entry: AuditLogEntry
    reprocess_record: Optional[ReprocessRecord] = None
    expiration_record: Optional[PolicyExpirationRecord] = None

    @property
    def entity_id(self) -> str:
        return self.updated.id


class TransitionStore(Protocol):
    """Persistence boundary for lifecycle changes."""

    def commit_transition(self, outcome: TransitionOutcome) -> TransitionOutcome:
        """
        Persist entity, audit entry and side records all-or-nothing.

        Returns the outcome as stored (audit sequence assigned).

        Raises:
            StaleEntityError: If the stored status differs from the planned
                previous status, or a created entity already exists
        """
        ...

    def last_reprocess(self, claim_id: str) -> Optional[ReprocessRecord]:
        """Most recent reprocess record of a claim, by reprocess date."""
        ...


@dataclass
class _State:
    entities: dict[tuple[EntityKind, str], Entity] = field(default_factory=dict)
    audit_log: list[AuditLogEntry] = field(default_factory=list)
    reprocess_records: list[ReprocessRecord] = field(default_factory=list)
    expiration_records: list[PolicyExpirationRecord] = field(default_factory=list)
    sequence: int = 0


class InMemoryTransitionStore:
    """
    Dict-backed TransitionStore.

    Commits stage a full copy of the state and swap it in at the end, so a
    failure at any point leaves nothing visible.
    """

    def __init__(self):
        self._state = _State()
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, entity_kind: EntityKind, entity_id: str) -> Optional[Entity]:
        return self._state.entities.get((EntityKind(entity_kind), entity_id))

    def get_claim(self, claim_id: str) -> Optional[ClaimSnapshot]:
        return self.get(EntityKind.CLAIM, claim_id)  # type: ignore[return-value]

    def get_policy(self, policy_id: str) -> Optional[PolicySnapshot]:
        return self.get(EntityKind.POLICY, policy_id)  # type: ignore[return-value]

    def history(self, entity_kind: EntityKind, entity_id: str) -> list[AuditLogEntry]:
        """Audit entries of one entity in commit order."""
        kind = EntityKind(entity_kind)
        return [e for e in self._state.audit_log if e.entity_kind == kind and e.entity_id == entity_id]

    @property
    def audit_log(self) -> list[AuditLogEntry]:
        return list(self._state.audit_log)

    def reprocess_records(self, claim_id: str) -> list[ReprocessRecord]:
        return [r for r in self._state.reprocess_records if r.claim_id == claim_id]

    def expiration_records(self, policy_id: str) -> list[PolicyExpirationRecord]:
        return [r for r in self._state.expiration_records if r.policy_id == policy_id]

    def last_reprocess(self, claim_id: str) -> Optional[ReprocessRecord]:
        records = self.reprocess_records(claim_id)
        if not records:
            return None
        return max(records, key=lambda r: r.reprocess_date)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def seed(self, entity: Entity) -> None:
        """Load an existing entity without writing audit history."""
        kind = EntityKind.CLAIM if isinstance(entity, ClaimSnapshot) else EntityKind.POLICY
        self._state.entities[(kind, entity.id)] = entity

    def commit_transition(self, outcome: TransitionOutcome) -> TransitionOutcome:
        with self._lock:
            self._check_current(outcome)
            staged, committed = self._stage(outcome)
            self._state = staged
        logger.debug(
            f"Committed {outcome.entity_kind.value} {outcome.entity_id} "
            f"audit sequence {committed.audit_entry.sequence}"
        )
        return committed

    def _check_current(self, outcome: TransitionOutcome) -> None:
        key = (outcome.entity_kind, outcome.entity_id)
        stored = self._state.entities.get(key)
        expected = outcome.audit_entry.previous_status

        if outcome.previous is None:
            if stored is not None:
                raise StaleEntityError(f"{outcome.entity_kind.value} {outcome.entity_id} already exists")
            return

        if stored is None:
            raise StaleEntityError(f"{outcome.entity_kind.value} {outcome.entity_id} is not stored")
        if stored.status.value != expected:
            raise StaleEntityError(
                f"{outcome.entity_kind.value} {outcome.entity_id} is {stored.status.value}, "
                f"expected {expected}"
            )

    def _stage(self, outcome: TransitionOutcome) -> tuple[_State, TransitionOutcome]:
        current = self._state
        sequence = current.sequence + 1
        entry = outcome.audit_entry.model_copy(update={"sequence": sequence})
        committed = replace(outcome, audit_entry=entry)

        staged = _State(
            entities=dict(current.entities),
            audit_log=[*current.audit_log, entry],
            reprocess_records=list(current.reprocess_records),
            expiration_records=list(current.expiration_records),
            sequence=sequence,
        )
        staged.entities[(outcome.entity_kind, outcome.entity_id)] = outcome.updated
        if outcome.reprocess_record is not None:
            staged.reprocess_records.append(outcome.reprocess_record)
        if outcome.expiration_record is not None:
            staged.expiration_records.append(outcome.expiration_record)
        return staged, committed
