"""Tests for the lease tier catalog helpers."""

import pytest

from licenses import (
    TierType,
    TierNotFoundError,
    get_delivered_files_for_tier,
    enabled_tiers,
    find_tier,
    snapshot_tier_terms
)
from licenses.tiers import describe_tier, parse_tier_type

from conftest import make_tiers

def test_delivered_files_per_tier():
    """Each tier delivers its fixed set of file categories."""
    assert get_delivered_files_for_tier("basic") == ["mp3", "wav"]
    assert get_delivered_files_for_tier("premium") == ["mp3", "wav", "stems"]
    assert get_delivered_files_for_tier("exclusive") == ["mp3", "wav", "stems", "trackouts"]
    assert get_delivered_files_for_tier("unlimited") == ["mp3", "wav", "stems", "trackouts"]
    assert get_delivered_files_for_tier(TierType.PREMIUM) == ["mp3", "wav", "stems"]

def test_delivered_files_unknown_tier_falls_back_to_basic():
    assert get_delivered_files_for_tier("platinum") == ["mp3", "wav"]
    assert get_delivered_files_for_tier(None) == ["mp3", "wav"]

def test_delivered_files_returns_fresh_list():
    """Callers can't alter the catalog through the returned list."""
    files = get_delivered_files_for_tier("basic")
    files.append("stems")
    assert get_delivered_files_for_tier("basic") == ["mp3", "wav"]

def test_find_tier_skips_disabled():
    beat = {"beat_lease_config": {"tiers": make_tiers()}}

    assert find_tier(beat, "premium")["name"] == "Premium Lease"
    with pytest.raises(TierNotFoundError) as exc:
        find_tier(beat, "unlimited")
    assert "unlimited" in str(exc.value)

def test_find_tier_without_config():
    with pytest.raises(TierNotFoundError):
        find_tier({"beat_lease_config": None}, "basic")

def test_enabled_tiers_keep_catalog_order():
    beat = {"beat_lease_config": {"tiers": make_tiers()}}
    assert [t["type"] for t in enabled_tiers(beat)] == ["basic", "premium", "exclusive"]

def test_snapshot_is_independent_of_catalog():
    tier = make_tiers()[0]
    terms = snapshot_tier_terms(tier)

    tier["distribution_limit"] = 1
    tier["commercial_use"] = True

    assert terms["distribution_limit"] == 2000
    assert terms["commercial_use"] is False
    assert set(terms) == {
        "distribution_limit", "streaming_limit", "commercial_use", "music_video_use",
        "radio_broadcasting", "stems_included", "credit_required"
    }

def test_describe_tier_lists_included_files():
    described = describe_tier(make_tiers()[1])
    assert described["type"] == "premium"
    assert described["included_files"] == ["mp3", "wav", "stems"]
    assert described["stems_included"] is True

def test_parse_tier_type():
    assert parse_tier_type("exclusive") == "exclusive"
    assert parse_tier_type(None) is None
    with pytest.raises(TierNotFoundError):
        parse_tier_type("gold")
