from typing import Any, Dict, Optional
from uuid import UUID

from repository import get_repository

async def get_beat_license_by_purchase(purchase_id: UUID, repository=None) -> Optional[Dict[str, Any]]:
    """Get the beat license issued for a purchase.

    Args:
        purchase_id: The purchase UUID

    Returns:
        The license record, or None if the purchase has no beat license
    """
    if repository is None:
        repository = await get_repository()

    async with repository.session() as session:
        return await session.get_license_by_purchase(purchase_id)
