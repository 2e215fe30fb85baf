from typing import Any, Dict, Optional
from uuid import UUID

from repository import get_repository
from .tiers import parse_tier_type

async def check_user_beat_license(
    user_id: str,
    beat_id: UUID,
    tier_type: Optional[str] = None,
    repository=None
) -> Dict[str, Any]:
    """Check which licenses a buyer holds for a beat.

    Args:
        user_id: The buyer's user id
        beat_id: The beat UUID
        tier_type: Optional tier type to restrict the check to

    Returns:
        Dict with 'has_license' and 'licenses' (id, tier_type, tier_name, created_at),
        newest first
    """
    tier_type = parse_tier_type(tier_type)
    if repository is None:
        repository = await get_repository()

    async with repository.session() as session:
        licenses = await session.find_licenses(user_id, beat_id, tier_type)

    return {
        'has_license': len(licenses) > 0,
        'licenses': [{
            'id': l['id'],
            'tier_type': l['tier_type'],
            'tier_name': l['tier_name'],
            'created_at': l['created_at']
        } for l in licenses]
    }
