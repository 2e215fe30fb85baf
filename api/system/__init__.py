"""System health endpoint."""

from fastapi import APIRouter
from typing import Dict, Any
import logging

from repository import get_repository, PostgresRepository
from workers import runner

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/system",
    tags=["System"]
)

@router.get("/health")
async def get_system_health() -> Dict[str, Any]:
    """Get service health.

    Returns:
        Dict with overall status, storage backend and its status, and the
        number of follow-up jobs still running
    """
    repository = await get_repository()
    storage_status = "connected"

    if isinstance(repository, PostgresRepository):
        try:
            async with repository.pool.acquire() as conn:
                await conn.fetchval('SELECT 1')
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            storage_status = "unavailable"

    return {
        'status': "healthy" if storage_status == "connected" else "degraded",
        'storage_backend': 'postgres' if isinstance(repository, PostgresRepository) else 'memory',
        'storage_status': storage_status,
        'pending_jobs': runner.pending
    }

__all__ = ['router']
