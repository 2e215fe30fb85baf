from typing import Any, Dict, List, Optional

from repository import get_repository

def _beat_summary(beat: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not beat:
        return None
    config = beat.get('beat_lease_config') or {}
    return {
        'id': beat['id'],
        'title': beat.get('title'),
        'image_url': beat.get('image_url'),
        'audio_url': beat.get('download_url') or beat.get('demo_audio_url'),
        'bpm': config.get('bpm') or beat.get('bpm'),
        'key': config.get('key') or beat.get('musical_key'),
        'genre': config.get('genre')
    }

def _store_summary(store: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not store:
        return None
    return {
        'id': store['id'],
        'name': store.get('name'),
        'slug': store.get('slug')
    }

async def get_user_beat_licenses(user_id: str, repository=None) -> List[Dict[str, Any]]:
    """Get all beat licenses a buyer holds, newest first.

    Each license carries 'beat' and 'store' summaries; either is None when the
    beat or store has since been deleted. License terms always come from the
    license itself, never from the beat's current catalog.

    Args:
        user_id: The buyer's user id

    Returns:
        List of license records with 'beat' and 'store' added
    """
    if repository is None:
        repository = await get_repository()

    async with repository.session() as session:
        licenses = await session.list_user_licenses(user_id)

        result = []
        for license in licenses:
            beat = await session.get_product(license['beat_id'])
            store = await session.get_store(license['store_id'])
            result.append({
                **license,
                'beat': _beat_summary(beat),
                'store': _store_summary(store)
            })

        return result
