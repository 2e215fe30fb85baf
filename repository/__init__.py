"""Storage layer for beat licensing.

This module provides:
- The ``LicenseRepository`` / ``Session`` interface the licensing core is written against
- A PostgreSQL implementation over the shared asyncpg pool
- An in-memory implementation for single-process deployments and tests
- A process-wide repository, initialized from settings
"""

import logging
from typing import Optional

from .base import LicenseRepository, Record, Session
from .memory import MemoryRepository
from .postgres import PostgresRepository

logger = logging.getLogger(__name__)

_repository: Optional[LicenseRepository] = None

async def init_repository(backend: Optional[str] = None) -> LicenseRepository:
    """Create the process-wide repository.

    Args:
        backend: 'postgres' or 'memory'. Defaults to the storage_backend setting.

    Returns:
        The initialized repository
    """
    global _repository

    from config import settings_conf

    backend = backend or settings_conf['storage_backend']
    if backend == 'memory':
        _repository = MemoryRepository()
    elif backend == 'postgres':
        from database import init_db, get_pool
        await init_db()
        _repository = PostgresRepository(await get_pool())
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    logger.info(f"Initialized {backend} repository")
    return _repository

def set_repository(repository: Optional[LicenseRepository]) -> None:
    """Install an already-built repository as the process-wide one."""
    global _repository
    _repository = repository

def has_repository() -> bool:
    return _repository is not None

async def get_repository() -> LicenseRepository:
    """Get the process-wide repository, initializing it on first use."""
    if not _repository:
        await init_repository()
    return _repository

async def close_repository() -> None:
    """Close the process-wide repository and its database pool."""
    global _repository

    if isinstance(_repository, PostgresRepository):
        from database import close as db_close
        await db_close()
    _repository = None

__all__ = [
    'LicenseRepository',
    'Session',
    'Record',
    'MemoryRepository',
    'PostgresRepository',
    'init_repository',
    'set_repository',
    'has_repository',
    'get_repository',
    'close_repository'
]
