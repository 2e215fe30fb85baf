from typing import Any, Dict, Optional
from uuid import UUID

from repository import get_repository
from .tiers import describe_tier, enabled_tiers

SOLD_EXCLUSIVELY_REASON = "This beat has been sold exclusively"

async def get_beat_license_tiers(beat_id: UUID, repository=None) -> Optional[Dict[str, Any]]:
    """Get the tiers a beat can currently be licensed under.

    Args:
        beat_id: The beat UUID

    Returns:
        None if the beat doesn't exist. Otherwise a dict with 'available' and
        'tiers' (enabled tiers with their terms and included files); an
        exclusively sold beat has no tiers and carries a 'reason'.
    """
    if repository is None:
        repository = await get_repository()

    async with repository.session() as session:
        beat = await session.get_product(beat_id)

    if not beat:
        return None

    if beat.get('exclusive_sold_at'):
        return {
            'available': False,
            'reason': SOLD_EXCLUSIVELY_REASON,
            'tiers': []
        }

    return {
        'available': True,
        'tiers': [describe_tier(tier) for tier in enabled_tiers(beat)]
    }
