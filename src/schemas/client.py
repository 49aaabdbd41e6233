"""
Pydantic Schemas for Clients.

A client is the tenant entity: it owns affiliates, policies and claims.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Fields a client update may touch; is_active is reserved for internal roles
CLIENT_MUTABLE_FIELDS = frozenset({"name", "tax_id", "email", "phone", "address", "is_active"})
CLIENT_INTERNAL_ONLY_FIELDS = frozenset({"is_active"})


class ClientSnapshot(BaseModel):
    """Persisted client as seen by the lifecycle engine."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Client ID")
    name: str = Field(..., min_length=1, max_length=255, description="Client name")
    is_active: bool = Field(default=True, description="Client is active")
    tax_id: Optional[str] = Field(None, max_length=50, description="Tax identifier")
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
