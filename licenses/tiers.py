"""Lease tier catalog helpers.

A beat's tier catalog lives in ``product['beat_lease_config']['tiers']`` and
can be edited by the seller at any time. Licenses never reference it; they
carry a copy of the tier's terms taken at purchase time.
"""

import copy
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import TierNotFoundError


class TierType(str, Enum):
    BASIC = 'basic'
    PREMIUM = 'premium'
    EXCLUSIVE = 'exclusive'
    UNLIMITED = 'unlimited'


TIER_TYPES = tuple(t.value for t in TierType)

# Usage-rights fields copied verbatim from the tier into each license
RIGHTS_FIELDS = (
    'distribution_limit',
    'streaming_limit',
    'commercial_use',
    'music_video_use',
    'radio_broadcasting',
    'stems_included',
    'credit_required'
)

DELIVERED_FILES = {
    TierType.BASIC.value: ('mp3', 'wav'),
    TierType.PREMIUM.value: ('mp3', 'wav', 'stems'),
    TierType.EXCLUSIVE.value: ('mp3', 'wav', 'stems', 'trackouts'),
    TierType.UNLIMITED.value: ('mp3', 'wav', 'stems', 'trackouts'),
}


def get_delivered_files_for_tier(tier_type: Any) -> List[str]:
    """File categories a buyer receives for a tier.

    Unknown tier types get the basic set.
    """
    if isinstance(tier_type, TierType):
        tier_type = tier_type.value
    return list(DELIVERED_FILES.get(tier_type, DELIVERED_FILES[TierType.BASIC.value]))


def catalog_tiers(product: Dict[str, Any]) -> List[Dict[str, Any]]:
    config = product.get('beat_lease_config') or {}
    return config.get('tiers') or []


def enabled_tiers(product: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Enabled tiers of a product, in catalog order."""
    return [tier for tier in catalog_tiers(product) if tier.get('enabled')]


def find_tier(product: Dict[str, Any], tier_type: str) -> Dict[str, Any]:
    """Resolve the enabled tier of the requested type.

    A disabled tier is treated exactly like a missing one.

    Raises:
        TierNotFoundError: If no enabled tier of that type exists
    """
    for tier in catalog_tiers(product):
        if tier.get('type') == tier_type and tier.get('enabled'):
            return tier
    raise TierNotFoundError(tier_type)


def snapshot_tier_terms(tier: Dict[str, Any]) -> Dict[str, Any]:
    """Copy a tier's usage-rights terms for storage on a license."""
    return {field: copy.deepcopy(tier.get(field)) for field in RIGHTS_FIELDS}


def describe_tier(tier: Dict[str, Any]) -> Dict[str, Any]:
    """Public view of a tier with the files it includes."""
    return {
        'type': tier.get('type'),
        'name': tier.get('name'),
        'price': tier.get('price'),
        **snapshot_tier_terms(tier),
        'included_files': get_delivered_files_for_tier(tier.get('type')),
    }


def parse_tier_type(value: Optional[str]) -> Optional[str]:
    """Validate a tier type name, passing None through."""
    if value is None:
        return None
    try:
        return TierType(value).value
    except ValueError:
        raise TierNotFoundError(value)
