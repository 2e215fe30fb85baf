"""Beat sales listing for sellers."""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from auth import require_store_owner
from config import settings_conf
from repository import get_repository

logger = logging.getLogger(__name__)

async def get_creator_beat_sales(
    store_id: UUID,
    caller_id: Optional[str],
    limit: Optional[int] = None,
    repository=None
) -> List[Dict[str, Any]]:
    """Get the most recent beat licenses sold by a store.

    Args:
        store_id: The seller's store UUID
        caller_id: Authenticated user id; must own the store
        limit: Maximum number of sales, defaults to the creator_sales_limit setting

    Returns:
        List of sales, newest first, each with the beat's current image

    Raises:
        UnauthorizedError: If the caller does not own the store
    """
    limit = limit or settings_conf['creator_sales_limit']
    if repository is None:
        repository = await get_repository()

    async with repository.session() as session:
        await require_store_owner(store_id, caller_id, session)
        licenses = await session.list_store_licenses(store_id, limit)

        sales = []
        for license in licenses:
            beat = await session.get_product(license['beat_id'])
            sales.append({
                'id': license['id'],
                'beat_id': license['beat_id'],
                'beat_title': license['beat_title'],
                'beat_image_url': beat.get('image_url') if beat else None,
                'tier_type': license['tier_type'],
                'tier_name': license['tier_name'],
                'price': license['price'],
                'buyer_name': license.get('buyer_name'),
                'buyer_email': license['buyer_email'],
                'created_at': license['created_at']
            })

    logger.debug(f"Loaded {len(sales)} beat sales for store {store_id}")
    return sales
