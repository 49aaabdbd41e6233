"""
Pytest Configuration and Fixtures.
Shared test fixtures for all test modules.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path for `src.` imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.core.enums import PolicyStatus, Role  # noqa: E402
from src.schemas.actor import Actor, AffiliateAnchor  # noqa: E402
from src.schemas.affiliate import AffiliateSnapshot  # noqa: E402
from src.schemas.claim import ClaimSnapshot  # noqa: E402
from src.schemas.client import ClientSnapshot  # noqa: E402
from src.schemas.policy import PolicySnapshot  # noqa: E402
from src.services.claim_number import ClaimNumberGenerator  # noqa: E402
from tests.factories import CLIENT_A, make_actor, make_affiliate, make_claim  # noqa: E402


@pytest.fixture
def client_a() -> ClientSnapshot:
    return ClientSnapshot(id=CLIENT_A, name="Acme Corp")


@pytest.fixture
def owner() -> AffiliateSnapshot:
    return make_affiliate("aff-owner", first_name="Maria", last_name="Gomez")


@pytest.fixture
def dependent() -> AffiliateSnapshot:
    return make_affiliate("aff-child", owner_id="aff-owner", first_name="Lucia", last_name="Gomez")


@pytest.fixture
def sibling_owner() -> AffiliateSnapshot:
    return make_affiliate("aff-sibling", first_name="Jorge", last_name="Perez")


@pytest.fixture
def owner_anchor(owner, dependent) -> AffiliateAnchor:
    return AffiliateAnchor.from_records(owner, [dependent])


@pytest.fixture
def superadmin() -> Actor:
    return make_actor(Role.SUPERADMIN, actor_id="admin-1")


@pytest.fixture
def claims_employee() -> Actor:
    return make_actor(Role.CLAIMS_EMPLOYEE, actor_id="employee-1")


@pytest.fixture
def client_admin_a() -> Actor:
    return make_actor(Role.CLIENT_ADMIN, actor_id="client-admin-1", clients=[CLIENT_A])


@pytest.fixture
def affiliate_actor(owner_anchor) -> Actor:
    return make_actor(Role.CLIENT_AFFILIATE, actor_id="affiliate-user-1", affiliate=owner_anchor)


@pytest.fixture
def draft_claim() -> ClaimSnapshot:
    return make_claim(created_at=datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def pending_policy() -> PolicySnapshot:
    return PolicySnapshot(
        id="policy-1", client_id=CLIENT_A, insurer_id="insurer-1", status=PolicyStatus.PENDING
    )


@pytest.fixture
def claim_numbers() -> ClaimNumberGenerator:
    return ClaimNumberGenerator(salt="test-salt")


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
