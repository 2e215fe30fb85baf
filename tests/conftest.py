"""Shared fixtures: an in-memory marketplace with one producer, one store and two beats."""

import asyncio
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Dict, List

import pytest
import pytest_asyncio

from database.exceptions import TransactionConflictError
from licenses import BeatLicenseManager
from notifications import WorkflowTrigger
from repository import MemoryRepository
from workers import BestEffortRunner

PRODUCER_ID = "user_producer"
BUYER_ID = "user_buyer"
OTHER_BUYER_ID = "user_other_buyer"
BUYER_EMAIL = "buyer@example.com"

def make_tiers() -> List[Dict[str, Any]]:
    return [
        {
            "type": "basic",
            "enabled": True,
            "name": "Basic Lease",
            "price": "10.00",
            "distribution_limit": 2000,
            "streaming_limit": 100000,
            "commercial_use": False,
            "music_video_use": False,
            "radio_broadcasting": False,
            "stems_included": False,
            "credit_required": True
        },
        {
            "type": "premium",
            "enabled": True,
            "name": "Premium Lease",
            "price": "35.00",
            "distribution_limit": 10000,
            "streaming_limit": 500000,
            "commercial_use": True,
            "music_video_use": True,
            "radio_broadcasting": False,
            "stems_included": True,
            "credit_required": True
        },
        {
            "type": "exclusive",
            "enabled": True,
            "name": "Exclusive Rights",
            "price": "500.00",
            "distribution_limit": None,
            "streaming_limit": None,
            "commercial_use": True,
            "music_video_use": True,
            "radio_broadcasting": True,
            "stems_included": True,
            "credit_required": False
        },
        {
            "type": "unlimited",
            "enabled": False,
            "name": "Unlimited Lease",
            "price": "150.00",
            "distribution_limit": None,
            "streaming_limit": None,
            "commercial_use": True,
            "music_video_use": True,
            "radio_broadcasting": True,
            "stems_included": True,
            "credit_required": True
        }
    ]

async def seed_marketplace(repo: MemoryRepository) -> Dict[str, Any]:
    """Insert the producer, buyers, store and beats used across tests."""
    async with repo.transaction() as session:
        await session.insert_user({"id": PRODUCER_ID, "email": "producer@example.com", "name": "DJ Test"})
        await session.insert_user({"id": BUYER_ID, "email": BUYER_EMAIL, "name": "Test Buyer"})
        await session.insert_user({"id": OTHER_BUYER_ID, "email": "other@example.com", "name": "Other Buyer"})
        store_id = await session.insert_store({
            "user_id": PRODUCER_ID,
            "name": "Test Beats",
            "slug": "test-beats"
        })
        beat_id = await session.insert_product({
            "user_id": PRODUCER_ID,
            "title": "Night Drive",
            "image_url": "https://cdn.example.com/night-drive.jpg",
            "mp3_url": "https://cdn.example.com/night-drive.mp3",
            "wav_url": "https://cdn.example.com/night-drive.wav",
            "stems_url": "https://cdn.example.com/night-drive-stems.zip",
            "beat_lease_config": {"bpm": 90, "key": "A minor", "genre": "Trap", "tiers": make_tiers()},
            "is_published": True,
            "exclusive_sold_at": None
        })
        orphan_beat_id = await session.insert_product({
            "user_id": "user_without_store",
            "title": "Lost Tape",
            "beat_lease_config": {"tiers": make_tiers()},
            "is_published": True,
            "exclusive_sold_at": None
        })
    return {"store_id": store_id, "beat_id": beat_id, "orphan_beat_id": orphan_beat_id}

class ConflictingRepository(MemoryRepository):
    """Aborts the next `conflicts` transactions the way a serialization failure would."""

    def __init__(self):
        super().__init__()
        self.conflicts = 0

    @asynccontextmanager
    async def transaction(self):
        if self.conflicts:
            self.conflicts -= 1
            raise TransactionConflictError("could not serialize access")
        async with super().transaction() as session:
            yield session

class RecordingWorkflowTrigger(WorkflowTrigger):
    """Keeps every event it is asked to deliver."""

    def __init__(self):
        self.events = []

    async def trigger_product_purchase_workflows(self, event):
        self.events.append(event)

class FailingWorkflowTrigger(WorkflowTrigger):
    """Always fails, like an unreachable workflow service."""

    async def trigger_product_purchase_workflows(self, event):
        raise RuntimeError("workflow service unreachable")

@pytest_asyncio.fixture
async def repo():
    """Create and return an empty in-memory repository."""
    return MemoryRepository()

@pytest_asyncio.fixture
async def marketplace(repo) -> Dict[str, Any]:
    """Seed the repository and return the ids of the seeded records."""
    return await seed_marketplace(repo)

@pytest.fixture
def trigger():
    return RecordingWorkflowTrigger()

@pytest_asyncio.fixture
async def manager(repo, marketplace, trigger):
    """Create a BeatLicenseManager over the seeded repository."""
    manager = BeatLicenseManager(
        repository=repo,
        runner=BestEffortRunner(),
        workflow_trigger=trigger
    )
    yield manager
    await manager.runner.drain()

@pytest.fixture
def purchase(manager, marketplace):
    """Return a helper that buys a tier of the seeded beat."""
    async def buy(tier_type="basic", user_id=BUYER_ID, amount=None, beat_id=None, **kwargs):
        tiers = {t["type"]: t for t in make_tiers()}
        tier = tiers.get(tier_type, {"name": tier_type, "price": "1.00"})
        return await manager.create_beat_license_purchase(
            beat_id=beat_id or marketplace["beat_id"],
            tier_type=tier_type,
            tier_name=tier["name"],
            user_id=user_id,
            store_id=str(marketplace["store_id"]),
            amount=amount if amount is not None else Decimal(tier["price"]),
            buyer_email=kwargs.pop("buyer_email", BUYER_EMAIL),
            **kwargs
        )
    return buy

@pytest.fixture
def seeded_repo():
    """A seeded repository for synchronous API tests."""
    repo = MemoryRepository()
    ids = asyncio.run(seed_marketplace(repo))
    return repo, ids
