"""
Pydantic Schemas for the Claims Lifecycle Engine.

This module exports the immutable entity snapshots the engine operates on.
"""

from src.schemas.actor import Actor, AffiliateAnchor, ClientRelationship
from src.schemas.affiliate import AffiliateSnapshot
from src.schemas.audit import AuditLogEntry, FieldChange
from src.schemas.claim import ClaimSnapshot, ReprocessRecord
from src.schemas.client import ClientSnapshot
from src.schemas.policy import PolicyExpirationRecord, PolicySnapshot
from src.schemas.sla import ClaimSlaReport, StageRecord

__all__ = [
    # Actors
    "Actor",
    "AffiliateAnchor",
    "ClientRelationship",
    # Entities
    "ClientSnapshot",
    "AffiliateSnapshot",
    "ClaimSnapshot",
    "PolicySnapshot",
    # Side records
    "ReprocessRecord",
    "PolicyExpirationRecord",
    # Audit & SLA
    "AuditLogEntry",
    "FieldChange",
    "StageRecord",
    "ClaimSlaReport",
]
