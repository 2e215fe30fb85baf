"""Database module for managing connections to PostgreSQL.

This module handles:
- Database connection pool initialization
- Schema management
- Connection lifecycle
"""

import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any
import backoff
import asyncpg
from urllib.parse import urlparse, parse_qs

from .lib.schema_manager import SchemaManager

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).parent / 'schema'

_pool: Optional[asyncpg.Pool] = None
_schema_manager: Optional[SchemaManager] = None

def _get_connection_kwargs(db_url: str) -> Dict[str, Any]:
    """Get connection kwargs from database URL.

    Args:
        db_url: Database connection URL

    Returns:
        Dict of connection parameters
    """
    parsed = urlparse(db_url)
    params = parse_qs(parsed.query)

    kwargs = {
        'server_settings': {
            'statement_timeout': '30000',  # 30 seconds
        }
    }

    if params.get('sslmode', ['disable'])[0] == 'disable':
        kwargs['ssl'] = False

    return kwargs

async def _init_connection(conn: asyncpg.Connection) -> None:
    """Decode JSONB columns (tier catalogs, delivered files) into Python objects."""
    await conn.set_type_codec(
        'jsonb',
        encoder=lambda value: json.dumps(value, default=str),  # Decimal prices as strings
        decoder=json.loads,
        schema='pg_catalog'
    )

@backoff.on_exception(
    backoff.expo,
    (asyncpg.exceptions.PostgresConnectionError, asyncpg.exceptions.CannotConnectNowError, OSError),
    max_tries=5
)
async def init_db(db_url: Optional[str] = None, force_recreate: bool = False) -> None:
    """Initialize the database connection pool and schema.

    Args:
        db_url: Optional database URL. If not provided, will use settings.
        force_recreate: If True, drop and recreate all tables

    Raises:
        ValueError: If database URL is not provided
        Exception: If initialization fails after retries
    """
    global _pool, _schema_manager

    try:
        # Import here to avoid circular imports
        from config import settings_conf

        url = db_url or settings_conf.get('db_url')
        if not url:
            raise ValueError("Database URL not provided")

        conn_kwargs = _get_connection_kwargs(url)
        # asyncpg does not understand sslmode in the DSN query
        dsn = url.split('?')[0]

        _pool = await asyncpg.create_pool(
            dsn,
            min_size=2,
            max_size=20,
            max_inactive_connection_lifetime=300.0,
            command_timeout=60.0,
            init=_init_connection,
            **conn_kwargs
        )

        _schema_manager = SchemaManager(_pool, SCHEMA_DIR)
        await _schema_manager.initialize(force_recreate=force_recreate)
        logger.info(f"Database ready at schema version {_schema_manager.current_version}")

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

async def get_pool() -> asyncpg.Pool:
    """Get the database connection pool.

    Returns:
        The connection pool

    Raises:
        RuntimeError: If pool hasn't been initialized
    """
    if not _pool:
        await init_db()
    if not _pool:
        raise RuntimeError("Failed to initialize database pool")
    return _pool

async def close() -> None:
    """Close the database connection pool."""
    global _pool, _schema_manager

    if _pool:
        await _pool.close()
        _pool = None
        _schema_manager = None

# Export public interface
__all__ = ['init_db', 'get_pool', 'close']
