"""
Access Scoping Resolver.

Decides which clients, affiliates, claims and policies an actor may see or
mutate. This is the single place where roles are interpreted.

Scopes:
    INTERNAL  - every record; DELETE reserved for superadmin
    CLIENT    - records of clients with an active relationship
    AFFILIATE - own client, own affiliate record and dependents, claims whose
                patient is self or a dependent; no policies

Direct-id access that falls outside the scope raises ForbiddenError. List
queries never raise: they are filtered through a ScopingPredicate.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence, TypeVar

from sqlalchemy import and_, false, true
from sqlalchemy.sql.elements import ColumnElement

from src.core.enums import AccessOperation, ClaimStatus, ResourceType, Role, RoleScope, ScopeKind
from src.core.exceptions import BusinessRuleError, ForbiddenError, NotFoundError, ValidationError
from src.schemas.actor import Actor, AffiliateAnchor
from src.schemas.affiliate import AffiliateSnapshot
from src.schemas.client import CLIENT_INTERNAL_ONLY_FIELDS, CLIENT_MUTABLE_FIELDS, ClientSnapshot
from src.services.claim_state_machine import is_terminal_status
from src.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# Role Table
# =============================================================================


ROLE_SCOPES: dict[Role, RoleScope] = {
    Role.SUPERADMIN: RoleScope.INTERNAL,
    Role.CLAIMS_ADMIN: RoleScope.INTERNAL,
    Role.CLAIMS_EMPLOYEE: RoleScope.INTERNAL,
    Role.OPERATIONS_EMPLOYEE: RoleScope.INTERNAL,
    Role.CLIENT_ADMIN: RoleScope.CLIENT,
    Role.CLIENT_AGENT: RoleScope.CLIENT,
    Role.CLIENT_AFFILIATE: RoleScope.AFFILIATE,
}

_unmapped = set(Role) - set(ROLE_SCOPES)
if _unmapped:
    raise ValidationError(f"Roles without a scope: {sorted(r.value for r in _unmapped)}")

# May edit claims that reached a terminal status
CLAIM_ADMIN_ROLES = frozenset({Role.SUPERADMIN, Role.CLAIMS_ADMIN})

READ_OPERATIONS = frozenset({AccessOperation.READ, AccessOperation.LIST})


def role_scope(role: Role) -> RoleScope:
    """
    Resolve the scope of a role.

    Raises:
        ValidationError: If the role has no entry in ROLE_SCOPES
    """
    try:
        return ROLE_SCOPES[Role(role)]
    except (KeyError, ValueError):
        raise ValidationError(f"Role has no access scope: {role}") from None


def is_internal_role(role: Role) -> bool:
    return role_scope(role) == RoleScope.INTERNAL


# =============================================================================
# Resource Accessors
# =============================================================================


def resource_client_id(resource_type: ResourceType, resource: Any) -> str:
    """Owning client of a resource; a client owns itself."""
    if resource_type == ResourceType.CLIENT:
        return resource.id
    return resource.client_id


def resource_affiliate_key(resource_type: ResourceType, resource: Any) -> Optional[str]:
    """Affiliate the resource is scoped by for self-scoped actors."""
    if resource_type == ResourceType.AFFILIATE:
        return resource.id
    if resource_type == ResourceType.CLAIM:
        return resource.patient_id
    return None


def _resource_id(resource: Any) -> Optional[str]:
    return getattr(resource, "id", None)


# =============================================================================
# Decisions & Predicates
# =============================================================================


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an access check."""

    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = AccessDecision(True, "allowed")


@dataclass(frozen=True)
class ScopingPredicate:
    """
    Filter for list queries.

    ALL matches everything, NONE nothing. CLIENTS matches records whose
    owning client is in client_ids. AFFILIATES matches records whose
    affiliate key (affiliate id, claim patient id) is in affiliate_ids,
    restricted to client_ids when that set is not empty.
    """

    kind: ScopeKind
    resource_type: ResourceType
    client_ids: frozenset[str] = field(default_factory=frozenset)
    affiliate_ids: frozenset[str] = field(default_factory=frozenset)

    def matches(self, resource: Any) -> bool:
        if self.kind == ScopeKind.ALL:
            return True
        if self.kind == ScopeKind.NONE:
            return False

        client_id = resource_client_id(self.resource_type, resource)
        if self.kind == ScopeKind.CLIENTS:
            return client_id in self.client_ids

        if self.client_ids and client_id not in self.client_ids:
            return False
        return resource_affiliate_key(self.resource_type, resource) in self.affiliate_ids

    def filter(self, resources: Iterable[T]) -> list[T]:
        """Keep the resources this predicate matches, preserving order."""
        return [r for r in resources if self.matches(r)]

    def narrow_to_client(self, client_id: str) -> "ScopingPredicate":
        """
        Apply an explicit client filter requested by the caller.

        Raises:
            ForbiddenError: If the client is outside the predicate's scope
        """
        if self.kind == ScopeKind.ALL:
            return ScopingPredicate(
                ScopeKind.CLIENTS, self.resource_type, client_ids=frozenset({client_id})
            )
        if self.kind == ScopeKind.NONE or client_id not in self.client_ids:
            raise ForbiddenError(
                "No access to this client",
                resource_type=ResourceType.CLIENT.value,
                resource_id=client_id,
            )
        return ScopingPredicate(
            self.kind,
            self.resource_type,
            client_ids=frozenset({client_id}),
            affiliate_ids=self.affiliate_ids,
        )

    def to_clause(
        self,
        client_column: ColumnElement,
        affiliate_column: Optional[ColumnElement] = None,
    ) -> ColumnElement:
        """
        Render as a SQLAlchemy boolean expression for a WHERE clause.

        Args:
            client_column: Column holding the owning client id (clients.id for clients)
            affiliate_column: Column holding the affiliate key, needed for AFFILIATES
        """
        if self.kind == ScopeKind.ALL:
            return true()
        if self.kind == ScopeKind.NONE:
            return false()
        if self.kind == ScopeKind.CLIENTS:
            return client_column.in_(sorted(self.client_ids))

        if affiliate_column is None:
            raise ValidationError("AFFILIATES predicate needs an affiliate column")
        affiliate_clause = affiliate_column.in_(sorted(self.affiliate_ids))
        if not self.client_ids:
            return affiliate_clause
        return and_(client_column.in_(sorted(self.client_ids)), affiliate_clause)


# =============================================================================
# Resolver
# =============================================================================


class AccessScopingResolver:
    """
    Authorization for every engine operation.

    Stateless: all scoping data travels on the Actor.
    """

    # -------------------------------------------------------------------------
    # Core checks
    # -------------------------------------------------------------------------

    def can_access(
        self,
        actor: Actor,
        resource_type: ResourceType,
        resource: Any,
        operation: AccessOperation,
    ) -> AccessDecision:
        """
        Decide whether actor may perform operation on resource.

        Raises:
            ValidationError: For an unmapped role or an affiliate actor with
                no resolved affiliate anchor
        """
        scope = role_scope(actor.role)
        resource_type = ResourceType(resource_type)
        operation = AccessOperation(operation)

        if scope == RoleScope.INTERNAL:
            if operation == AccessOperation.DELETE and actor.role != Role.SUPERADMIN:
                return AccessDecision(False, "Only superadmin may delete records")
            return ALLOW

        if scope == RoleScope.CLIENT:
            return self._client_scope_decision(actor, resource_type, resource, operation)

        return self._affiliate_scope_decision(actor, resource_type, resource, operation)

    def _client_scope_decision(
        self,
        actor: Actor,
        resource_type: ResourceType,
        resource: Any,
        operation: AccessOperation,
    ) -> AccessDecision:
        client_id = resource_client_id(resource_type, resource)
        if not actor.has_client_access(client_id):
            return AccessDecision(False, f"No active relationship with client {client_id}")

        if operation in READ_OPERATIONS:
            return ALLOW
        if operation == AccessOperation.CREATE and resource_type == ResourceType.CLAIM:
            return ALLOW
        if (
            operation == AccessOperation.UPDATE
            and resource_type == ResourceType.CLIENT
            and actor.role == Role.CLIENT_ADMIN
        ):
            return ALLOW
        return AccessDecision(
            False, f"Role {actor.role.value} cannot {operation.value} {resource_type.value}"
        )

    def _affiliate_scope_decision(
        self,
        actor: Actor,
        resource_type: ResourceType,
        resource: Any,
        operation: AccessOperation,
    ) -> AccessDecision:
        anchor = self._require_anchor(actor)

        if resource_type == ResourceType.POLICY:
            return AccessDecision(False, "Affiliates have no policy access")

        creating_claim = (
            operation == AccessOperation.CREATE and resource_type == ResourceType.CLAIM
        )
        if operation not in READ_OPERATIONS and not creating_claim:
            return AccessDecision(
                False, f"Affiliates cannot {operation.value} {resource_type.value}"
            )

        if resource_client_id(resource_type, resource) != anchor.client_id:
            return AccessDecision(False, "Record belongs to another client")

        if resource_type == ResourceType.CLIENT:
            return ALLOW

        if resource_affiliate_key(resource_type, resource) not in anchor.patient_ids:
            return AccessDecision(False, "Record is outside the affiliate's family group")

        if creating_claim and resource.affiliate_id != anchor.affiliate_id:
            return AccessDecision(False, "Affiliates may only file claims as themselves")
        return ALLOW

    def _require_anchor(self, actor: Actor) -> AffiliateAnchor:
        if actor.affiliate is None:
            raise ValidationError(f"Affiliate actor {actor.id} has no linked affiliate record")
        return actor.affiliate

    def require_access(
        self,
        actor: Actor,
        resource_type: ResourceType,
        resource: Any,
        operation: AccessOperation,
    ) -> None:
        """
        Enforce access for a direct-id operation.

        Raises:
            ForbiddenError: If the decision is a deny
        """
        decision = self.can_access(actor, resource_type, resource, operation)
        if decision.allowed:
            return
        resource_id = _resource_id(resource)
        logger.warning(
            f"Access denied: actor={actor.id} role={actor.role.value} "
            f"{operation.value} {resource_type.value}:{resource_id} - {decision.reason}"
        )
        raise ForbiddenError(
            decision.reason,
            resource_type=ResourceType(resource_type).value,
            resource_id=resource_id,
        )

    def require_found(
        self,
        resource: Optional[T],
        resource_type: ResourceType,
        resource_id: Optional[str] = None,
    ) -> T:
        """
        Raises:
            NotFoundError: If the caller's lookup found nothing
        """
        if resource is None:
            raise NotFoundError(ResourceType(resource_type).value, resource_id)
        return resource

    def scoping_predicate_for(self, actor: Actor, resource_type: ResourceType) -> ScopingPredicate:
        """Build the list-query filter for an actor and resource type."""
        resource_type = ResourceType(resource_type)
        scope = role_scope(actor.role)

        if scope == RoleScope.INTERNAL:
            return ScopingPredicate(ScopeKind.ALL, resource_type)

        if scope == RoleScope.CLIENT:
            client_ids = actor.accessible_client_ids
            if not client_ids:
                return ScopingPredicate(ScopeKind.NONE, resource_type)
            return ScopingPredicate(ScopeKind.CLIENTS, resource_type, client_ids=client_ids)

        anchor = self._require_anchor(actor)
        own_client = frozenset({anchor.client_id})
        if resource_type == ResourceType.POLICY:
            return ScopingPredicate(ScopeKind.NONE, resource_type)
        if resource_type == ResourceType.CLIENT:
            return ScopingPredicate(ScopeKind.CLIENTS, resource_type, client_ids=own_client)
        return ScopingPredicate(
            ScopeKind.AFFILIATES,
            resource_type,
            client_ids=own_client,
            affiliate_ids=anchor.patient_ids,
        )

    # -------------------------------------------------------------------------
    # Affiliate helpers
    # -------------------------------------------------------------------------

    def available_owners(
        self,
        actor: Actor,
        client: ClientSnapshot,
        affiliates: Iterable[AffiliateSnapshot],
    ) -> list[AffiliateSnapshot]:
        """
        Owners a new dependent can be attached to.

        Internal roles only. Returns the active OWNER affiliates of an active
        client, ordered by last then first name.

        Raises:
            ForbiddenError: For non-internal actors
            BusinessRuleError: If the client is inactive
        """
        if not is_internal_role(actor.role):
            logger.warning(f"Access denied: actor={actor.id} listed available owners")
            raise ForbiddenError(
                "Only internal roles can list available owners",
                resource_type=ResourceType.AFFILIATE.value,
            )
        if not client.is_active:
            raise BusinessRuleError(f"Client {client.id} is not active")

        owners = [
            a for a in affiliates if a.client_id == client.id and a.is_owner and a.is_active
        ]
        return sorted(owners, key=lambda a: (a.last_name, a.first_name))

    def validate_dependent_owner(
        self,
        owner: Optional[AffiliateSnapshot],
        client_id: str,
        owner_id: Optional[str] = None,
    ) -> AffiliateSnapshot:
        """
        Check the owner a dependent is being attached to.

        Raises:
            NotFoundError: If the owner does not exist
            BusinessRuleError: If the owner is a dependent, inactive, or in another client
        """
        owner = self.require_found(owner, ResourceType.AFFILIATE, owner_id)
        if not owner.is_owner:
            raise BusinessRuleError("A dependent cannot own other dependents")
        if owner.client_id != client_id:
            raise BusinessRuleError("Owner must belong to the same client")
        if not owner.is_active:
            raise BusinessRuleError("Owner affiliate is not active")
        return owner

    def available_patients(
        self,
        actor: Actor,
        affiliate: AffiliateSnapshot,
        candidates: Iterable[AffiliateSnapshot],
    ) -> list[AffiliateSnapshot]:
        """
        Patients a claim for this affiliate can be filed for.

        Returns the affiliate itself followed by its active dependents,
        ordered by last then first name.

        Raises:
            ForbiddenError: If the actor cannot read the affiliate
            BusinessRuleError: If the affiliate is inactive
        """
        self.require_access(actor, ResourceType.AFFILIATE, affiliate, AccessOperation.READ)
        if not affiliate.is_active:
            raise BusinessRuleError(f"Affiliate {affiliate.id} is not active")

        dependents = sorted(
            (c for c in candidates if c.primary_affiliate_id == affiliate.id and c.is_active),
            key=lambda a: (a.last_name, a.first_name),
        )
        logger.debug(f"Affiliate {affiliate.id} has {len(dependents)} eligible dependents")
        return [affiliate, *dependents]

    # -------------------------------------------------------------------------
    # Mutation guards
    # -------------------------------------------------------------------------

    def authorize_claim_creation(
        self,
        actor: Actor,
        client: ClientSnapshot,
        affiliate: AffiliateSnapshot,
        patient: AffiliateSnapshot,
    ) -> None:
        """
        Check a new claim for (client, affiliate, patient).

        Raises:
            BusinessRuleError: If a record is inactive or the family links are wrong
            ForbiddenError: If the actor may not file this claim
        """
        if not client.is_active:
            raise BusinessRuleError(f"Client {client.id} is not active")
        if affiliate.client_id != client.id:
            raise BusinessRuleError("Affiliate does not belong to this client")
        if not affiliate.is_active:
            raise BusinessRuleError(f"Affiliate {affiliate.id} is not active")
        if patient.client_id != client.id:
            raise BusinessRuleError("Patient does not belong to this client")
        if not patient.is_active:
            raise BusinessRuleError(f"Patient {patient.id} is not active")
        if patient.id != affiliate.id and patient.primary_affiliate_id != affiliate.id:
            raise BusinessRuleError("Patient must be the affiliate or one of its dependents")

        proposed = _ProposedClaim(client.id, affiliate.id, patient.id)
        self.require_access(actor, ResourceType.CLAIM, proposed, AccessOperation.CREATE)

    def authorize_client_update(
        self,
        actor: Actor,
        client: ClientSnapshot,
        fields: Sequence[str],
    ) -> None:
        """
        Check an edit of client fields.

        Raises:
            ForbiddenError: If the actor may not update the client or one of the fields
            BusinessRuleError: If an unknown field is requested
        """
        unknown = sorted(set(fields) - CLIENT_MUTABLE_FIELDS)
        if unknown:
            raise BusinessRuleError(f"Unknown client fields: {', '.join(unknown)}")

        self.require_access(actor, ResourceType.CLIENT, client, AccessOperation.UPDATE)

        internal_only = sorted(set(fields) & CLIENT_INTERNAL_ONLY_FIELDS)
        if internal_only and not is_internal_role(actor.role):
            logger.warning(
                f"Access denied: actor={actor.id} tried to change {internal_only} on client {client.id}"
            )
            raise ForbiddenError(
                f"Only internal roles can change: {', '.join(internal_only)}",
                resource_type=ResourceType.CLIENT.value,
                resource_id=client.id,
            )

    def can_edit_claim(self, actor: Actor, status: ClaimStatus) -> bool:
        """
        Internal roles edit open claims; only admins touch terminal ones.

        This is the role gate only. SETTLED and CANCELLED have no editable
        fields and no edges, so an admin who passes it is still refused by
        the state machine with TransitionRequirementsError rather than
        ForbiddenError.
        """
        if is_terminal_status(status):
            return actor.role in CLAIM_ADMIN_ROLES
        return is_internal_role(actor.role)


@dataclass(frozen=True)
class _ProposedClaim:
    client_id: str
    affiliate_id: str
    patient_id: str
    id: Optional[str] = None


_resolver: Optional[AccessScopingResolver] = None


def get_access_scoping_resolver() -> AccessScopingResolver:
    """Get singleton resolver instance."""
    global _resolver
    if _resolver is None:
        _resolver = AccessScopingResolver()
    return _resolver
