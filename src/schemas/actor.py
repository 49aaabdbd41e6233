"""
Pydantic Schemas for Actors.

An actor is the authenticated user behind an engine call: a role, the client
relationships it holds, and, for affiliate users, the resolved affiliate
anchor that scopes everything the user can see.
"""

from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.core.enums import AffiliateType, Role
from src.core.exceptions import ValidationError
from src.schemas.affiliate import AffiliateSnapshot


class ClientRelationship(BaseModel):
    """Grants scoped access to one client."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., min_length=1)
    is_active: bool = Field(default=True)


class AffiliateAnchor(BaseModel):
    """
    Affiliate identity of a self-scoped actor, resolved once per request.

    patient_ids is the set of affiliates whose claims the actor may see:
    itself plus its dependents for an owner, itself only for a dependent.
    """

    model_config = ConfigDict(frozen=True)

    affiliate_id: str = Field(..., min_length=1)
    client_id: str = Field(..., min_length=1)
    affiliate_type: AffiliateType = Field(default=AffiliateType.OWNER)
    dependent_ids: frozenset[str] = Field(default_factory=frozenset)

    @property
    def patient_ids(self) -> frozenset[str]:
        if self.affiliate_type == AffiliateType.DEPENDENT:
            return frozenset({self.affiliate_id})
        return frozenset({self.affiliate_id}) | self.dependent_ids

    @classmethod
    def from_records(
        cls,
        affiliate: AffiliateSnapshot,
        dependents: Iterable[AffiliateSnapshot] = (),
    ) -> "AffiliateAnchor":
        """
        Build the anchor from the actor's own record and its dependents.

        Raises:
            ValidationError: If a dependent is not attached to this affiliate
                or lives in another client.
        """
        dependent_ids: set[str] = set()
        for dependent in dependents:
            if dependent.primary_affiliate_id != affiliate.id:
                raise ValidationError(
                    f"Affiliate {dependent.id} is not a dependent of {affiliate.id}"
                )
            if dependent.client_id != affiliate.client_id:
                raise ValidationError(
                    f"Dependent {dependent.id} belongs to client {dependent.client_id}, "
                    f"owner belongs to {affiliate.client_id}"
                )
            dependent_ids.add(dependent.id)

        if dependent_ids and not affiliate.is_owner:
            raise ValidationError(f"DEPENDENT affiliate {affiliate.id} cannot own dependents")

        return cls(
            affiliate_id=affiliate.id,
            client_id=affiliate.client_id,
            affiliate_type=affiliate.affiliate_type,
            dependent_ids=frozenset(dependent_ids),
        )


class Actor(BaseModel):
    """Authenticated user performing an operation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="User ID")
    role: Role = Field(..., description="Single role of the user")
    client_relationships: tuple[ClientRelationship, ...] = Field(
        default=(), description="Client access grants"
    )
    affiliate: Optional[AffiliateAnchor] = Field(
        None, description="Self affiliate for client_affiliate users"
    )

    @property
    def accessible_client_ids(self) -> frozenset[str]:
        """Client IDs reachable through active relationships."""
        return frozenset(r.client_id for r in self.client_relationships if r.is_active)

    def has_client_access(self, client_id: str) -> bool:
        return client_id in self.accessible_client_ids
