from typing import Any, Dict
from uuid import UUID

from repository import get_repository

async def is_beat_available(beat_id: UUID, repository=None) -> Dict[str, Any]:
    """Check whether a beat can still be licensed.

    A beat is available until it is sold exclusively. A missing beat is
    reported as unavailable.

    Returns:
        Dict with 'available' and, for existing beats, 'exclusive_sold_at'
    """
    if repository is None:
        repository = await get_repository()

    async with repository.session() as session:
        beat = await session.get_product(beat_id)

    if not beat:
        return {'available': False}

    return {
        'available': not beat.get('exclusive_sold_at'),
        'exclusive_sold_at': beat.get('exclusive_sold_at')
    }
