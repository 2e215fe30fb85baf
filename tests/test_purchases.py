"""Tests for recording beat license purchases."""

import uuid
from decimal import Decimal

import pytest

from licenses import (
    BeatLicenseManager,
    BeatNotFoundError,
    TierNotFoundError,
    StoreNotFoundError,
    BeatAlreadySoldError,
    DuplicateLicenseError,
    ConflictError,
    get_user_beat_licenses,
    is_beat_available
)
from workers import BestEffortRunner

from conftest import BUYER_ID, OTHER_BUYER_ID, BUYER_EMAIL, ConflictingRepository, seed_marketplace

THIRD_BUYER_ID = "user_third_buyer"

@pytest.mark.asyncio
async def test_basic_purchase_creates_purchase_and_license(manager, purchase, repo, marketplace):
    """Test a basic purchase writes a linked purchase and license."""
    result = await purchase("basic", transaction_id="pi_123")

    assert isinstance(result["purchase_id"], uuid.UUID)
    assert isinstance(result["beat_license_id"], uuid.UUID)

    async with repo.session() as session:
        record = await session.get_purchase(result["purchase_id"])
        license = await session.get_license(result["beat_license_id"])

    # Purchase fields
    assert record["status"] == "completed"
    assert record["access_granted"] is True
    assert record["download_count"] == 0
    assert record["last_accessed_at"] is not None
    assert record["product_type"] == "beatLease"
    assert record["amount"] == Decimal("10.00")
    assert record["currency"] == "USD"
    assert record["payment_method"] == "stripe"
    assert record["transaction_id"] == "pi_123"
    assert record["admin_user_id"] == "user_producer"
    assert record["beat_license_id"] == result["beat_license_id"]

    # License fields
    assert license["purchase_id"] == result["purchase_id"]
    assert license["beat_id"] == marketplace["beat_id"]
    assert license["store_id"] == marketplace["store_id"]
    assert license["user_id"] == BUYER_ID
    assert license["tier_type"] == "basic"
    assert license["tier_name"] == "Basic Lease"
    assert license["price"] == Decimal("10.00")
    assert license["distribution_limit"] == 2000
    assert license["stems_included"] is False
    assert license["delivered_files"] == ["mp3", "wav"]
    assert license["buyer_email"] == BUYER_EMAIL
    assert license["beat_title"] == "Night Drive"
    assert license["producer_name"] == "DJ Test"
    assert license.get("contract_generated_at") is None

@pytest.mark.asyncio
async def test_currency_and_payment_method_overrides(purchase, repo):
    result = await purchase("premium", currency="eur", payment_method="paypal")

    async with repo.session() as session:
        record = await session.get_purchase(result["purchase_id"])

    assert record["currency"] == "EUR"
    assert record["payment_method"] == "paypal"

@pytest.mark.asyncio
async def test_exclusive_sale_closes_beat(purchase, repo, marketplace):
    """Scenario: basic, then exclusive by another buyer, then nobody can buy."""
    await purchase("basic", user_id=BUYER_ID)
    exclusive = await purchase("exclusive", user_id=OTHER_BUYER_ID)

    async with repo.session() as session:
        beat = await session.get_product(marketplace["beat_id"])
        license = await session.get_license(exclusive["beat_license_id"])

    assert beat["exclusive_sold_at"] is not None
    assert beat["exclusive_sold_to"] == OTHER_BUYER_ID
    assert beat["exclusive_purchase_id"] == exclusive["purchase_id"]
    assert beat["is_published"] is False
    assert license["delivered_files"] == ["mp3", "wav", "stems", "trackouts"]

    with pytest.raises(BeatAlreadySoldError) as exc:
        await purchase("basic", user_id=THIRD_BUYER_ID)
    assert "already been sold exclusively" in str(exc.value)

    availability = await is_beat_available(marketplace["beat_id"], repository=repo)
    assert availability["available"] is False

@pytest.mark.asyncio
@pytest.mark.parametrize("tier_type", ["basic", "premium", "exclusive"])
async def test_sold_beat_rejects_every_tier(purchase, tier_type):
    await purchase("exclusive", user_id=OTHER_BUYER_ID)

    with pytest.raises(BeatAlreadySoldError):
        await purchase(tier_type, user_id=BUYER_ID)

@pytest.mark.asyncio
async def test_repeat_tier_purchase_rejected(purchase, repo):
    """Scenario: buying the same tier twice fails and leaves one license."""
    first = await purchase("basic")

    with pytest.raises(DuplicateLicenseError) as exc:
        await purchase("basic")
    assert "basic" in str(exc.value)

    assert repo.count("beat_licenses") == 1
    assert repo.count("purchases") == 1

    async with repo.session() as session:
        assert await session.get_license(first["beat_license_id"]) is not None

@pytest.mark.asyncio
async def test_different_tier_allowed(purchase, repo):
    await purchase("basic")
    await purchase("premium")

    assert repo.count("beat_licenses") == 2

@pytest.mark.asyncio
async def test_exclusive_rejected_when_buyer_holds_any_license(purchase, repo, marketplace):
    await purchase("premium")

    with pytest.raises(DuplicateLicenseError) as exc:
        await purchase("exclusive")
    assert str(exc.value) == "You already own a license for this beat"

    async with repo.session() as session:
        beat = await session.get_product(marketplace["beat_id"])
    assert beat["exclusive_sold_at"] is None
    assert beat["is_published"] is True

@pytest.mark.asyncio
async def test_failed_purchase_writes_nothing(purchase, repo):
    """Rejected purchases leave no purchase or license behind."""
    await purchase("exclusive", user_id=OTHER_BUYER_ID)
    purchases_before = repo.count("purchases")
    licenses_before = repo.count("beat_licenses")

    for tier_type in ("basic", "premium", "exclusive"):
        with pytest.raises(ConflictError):
            await purchase(tier_type, user_id=BUYER_ID)

    assert repo.count("purchases") == purchases_before
    assert repo.count("beat_licenses") == licenses_before

@pytest.mark.asyncio
async def test_license_terms_survive_catalog_edits(purchase, repo, marketplace):
    """Scenario: the seller reprices a tier after a sale."""
    result = await purchase("basic")

    async with repo.transaction() as session:
        beat = await session.get_product(marketplace["beat_id"])
        config = beat["beat_lease_config"]
        config["tiers"][0]["price"] = "20.00"
        config["tiers"][0]["distribution_limit"] = 50
        config["tiers"][0]["commercial_use"] = True
        await session.update_product(marketplace["beat_id"], {"beat_lease_config": config})

    licenses = await get_user_beat_licenses(BUYER_ID, repository=repo)

    assert len(licenses) == 1
    assert licenses[0]["id"] == result["beat_license_id"]
    assert licenses[0]["price"] == Decimal("10.00")
    assert licenses[0]["distribution_limit"] == 2000
    assert licenses[0]["commercial_use"] is False

@pytest.mark.asyncio
async def test_unknown_beat(purchase):
    with pytest.raises(BeatNotFoundError):
        await purchase("basic", beat_id=uuid.uuid4())

@pytest.mark.asyncio
async def test_disabled_tier_rejected(purchase, repo):
    with pytest.raises(TierNotFoundError):
        await purchase("unlimited")
    assert repo.count("purchases") == 0

@pytest.mark.asyncio
async def test_unknown_tier_type_rejected(purchase):
    with pytest.raises(TierNotFoundError):
        await purchase("platinum")

@pytest.mark.asyncio
async def test_missing_store_rejected(purchase, repo, marketplace):
    with pytest.raises(StoreNotFoundError):
        await purchase("basic", beat_id=marketplace["orphan_beat_id"])
    assert repo.count("purchases") == 0

@pytest.mark.asyncio
async def test_missing_producer_name(manager, purchase, repo, marketplace):
    async with repo.transaction() as session:
        beat = await session.get_product(marketplace["beat_id"])
        await session.update_product(beat["id"], {"user_id": "user_nameless"})
        await session.insert_store({"user_id": "user_nameless", "name": "Anon", "slug": "anon"})

    result = await purchase("basic")

    async with repo.session() as session:
        license = await session.get_license(result["beat_license_id"])
    assert license["producer_name"] == "Unknown Producer"

@pytest.mark.asyncio
async def test_purchase_retried_after_serialization_conflict(trigger):
    repo = ConflictingRepository()
    ids = await seed_marketplace(repo)
    repo.conflicts = 1
    manager = BeatLicenseManager(repository=repo, runner=BestEffortRunner(), workflow_trigger=trigger)

    result = await manager.create_beat_license_purchase(
        beat_id=ids["beat_id"],
        tier_type="basic",
        tier_name="Basic Lease",
        user_id=BUYER_ID,
        store_id=str(ids["store_id"]),
        amount=Decimal("10.00"),
        buyer_email=BUYER_EMAIL
    )
    await manager.runner.drain()

    assert repo.conflicts == 0
    assert repo.count("purchases") == 1
    assert repo.count("beat_licenses") == 1
    assert result["beat_license_id"] is not None
