"""Tests for buyer license actions: contract generation and downloads."""

import uuid

import pytest

from licenses import (
    UnauthorizedError,
    LicenseNotFoundError,
    BeatNotFoundError,
    FileNotIncludedError,
    DownloadUnavailableError
)

from conftest import BUYER_ID, OTHER_BUYER_ID

@pytest.mark.asyncio
async def test_mark_contract_generated(manager, purchase, repo):
    result = await purchase("basic")

    generated_at = await manager.mark_contract_generated(result["beat_license_id"], BUYER_ID)

    async with repo.session() as session:
        license = await session.get_license(result["beat_license_id"])
    assert license["contract_generated_at"] == generated_at

@pytest.mark.asyncio
async def test_contract_requires_license_holder(manager, purchase, repo):
    result = await purchase("basic")

    with pytest.raises(UnauthorizedError) as exc:
        await manager.mark_contract_generated(result["beat_license_id"], OTHER_BUYER_ID)
    assert "don't own this license" in str(exc.value)

    with pytest.raises(UnauthorizedError):
        await manager.mark_contract_generated(result["beat_license_id"], None)

    async with repo.session() as session:
        license = await session.get_license(result["beat_license_id"])
    assert license.get("contract_generated_at") is None

@pytest.mark.asyncio
async def test_contract_unknown_license(manager):
    with pytest.raises(LicenseNotFoundError):
        await manager.mark_contract_generated(uuid.uuid4(), BUYER_ID)

@pytest.mark.asyncio
async def test_download_counts_on_purchase(manager, purchase, repo):
    result = await purchase("basic")

    first = await manager.record_license_download(result["beat_license_id"], BUYER_ID, "mp3")
    second = await manager.record_license_download(result["beat_license_id"], BUYER_ID, "wav")

    assert first == {
        "url": "https://cdn.example.com/night-drive.mp3",
        "file_type": "mp3",
        "download_count": 1
    }
    assert second["url"] == "https://cdn.example.com/night-drive.wav"
    assert second["download_count"] == 2

    async with repo.session() as session:
        record = await session.get_purchase(result["purchase_id"])
    assert record["download_count"] == 2

@pytest.mark.asyncio
async def test_download_outside_tier(manager, purchase, repo):
    result = await purchase("basic")

    with pytest.raises(FileNotIncludedError) as exc:
        await manager.record_license_download(result["beat_license_id"], BUYER_ID, "stems")
    assert "Basic Lease" in str(exc.value)

    async with repo.session() as session:
        record = await session.get_purchase(result["purchase_id"])
    assert record["download_count"] == 0

@pytest.mark.asyncio
async def test_download_missing_file(manager, purchase):
    """Trackouts are included in exclusive licenses but the beat has none stored."""
    result = await purchase("exclusive")

    stems = await manager.record_license_download(result["beat_license_id"], BUYER_ID, "stems")
    assert stems["url"] == "https://cdn.example.com/night-drive-stems.zip"

    with pytest.raises(DownloadUnavailableError):
        await manager.record_license_download(result["beat_license_id"], BUYER_ID, "trackouts")

@pytest.mark.asyncio
async def test_download_requires_license_holder(manager, purchase):
    result = await purchase("basic")

    with pytest.raises(UnauthorizedError):
        await manager.record_license_download(result["beat_license_id"], OTHER_BUYER_ID, "mp3")

@pytest.mark.asyncio
async def test_download_after_beat_deleted(manager, purchase, repo, marketplace):
    result = await purchase("basic")

    async with repo.transaction() as session:
        await session.delete_product(marketplace["beat_id"])

    with pytest.raises(BeatNotFoundError):
        await manager.record_license_download(result["beat_license_id"], BUYER_ID, "mp3")
