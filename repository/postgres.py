"""PostgreSQL repository backed by an asyncpg pool.

Transactions run at SERIALIZABLE isolation. Purchases lock the product row with
SELECT ... FOR UPDATE, and the unique indexes on beat_licenses reject any
second exclusive license or repeated (buyer, beat, tier) license even if two
writers slip past the application checks.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from asyncpg.exceptions import (
    DeadlockDetectedError,
    SerializationError,
    UniqueViolationError
)
from asyncpg.pool import Pool

from database.exceptions import DuplicateRecordError, TransactionConflictError
from .base import LicenseRepository, Record, Session

logger = logging.getLogger(__name__)


class PostgresSession(Session):
    """Session bound to one pooled connection."""

    def __init__(self, conn):
        self.conn = conn

    async def _fetch_one(self, query: str, *args) -> Optional[Record]:
        row = await self.conn.fetchrow(query, *args)
        return dict(row) if row else None

    async def _fetch_all(self, query: str, *args) -> List[Record]:
        rows = await self.conn.fetch(query, *args)
        return [dict(row) for row in rows]

    async def _insert(self, table: str, record: Dict[str, Any]) -> Any:
        columns = list(record.keys())
        placeholders = ', '.join(f'${i}' for i in range(1, len(columns) + 1))
        try:
            return await self.conn.fetchval(
                f'''
                INSERT INTO {table} ({', '.join(columns)})
                VALUES ({placeholders})
                RETURNING id
                ''',
                *record.values()
            )
        except UniqueViolationError as e:
            logger.warning(f"Unique violation inserting into {table}: {e.constraint_name}")
            raise DuplicateRecordError(table, e.constraint_name or 'unique')

    async def _update(self, table: str, record_id: Any, changes: Dict[str, Any]) -> None:
        if not changes:
            return
        assignments = ', '.join(
            f'{column} = ${i}' for i, column in enumerate(changes.keys(), start=2)
        )
        await self.conn.execute(
            f'UPDATE {table} SET {assignments} WHERE id = $1',
            record_id,
            *changes.values()
        )

    async def get_product(self, beat_id, for_update=False):
        lock = ' FOR UPDATE' if for_update else ''
        return await self._fetch_one(f'SELECT * FROM products WHERE id = $1{lock}', beat_id)

    async def insert_product(self, product):
        return await self._insert('products', product)

    async def update_product(self, beat_id, changes):
        await self._update('products', beat_id, dict(changes, updated_at=datetime.now(timezone.utc)))

    async def delete_product(self, beat_id):
        await self.conn.execute('DELETE FROM products WHERE id = $1', beat_id)

    async def get_store(self, store_id):
        return await self._fetch_one('SELECT * FROM stores WHERE id = $1', store_id)

    async def get_store_by_owner(self, user_id):
        return await self._fetch_one(
            'SELECT * FROM stores WHERE user_id = $1 ORDER BY created_at LIMIT 1',
            user_id
        )

    async def insert_store(self, store):
        return await self._insert('stores', store)

    async def get_user(self, user_id):
        return await self._fetch_one('SELECT * FROM users WHERE id = $1', user_id)

    async def insert_user(self, user):
        return await self._insert('users', user)

    async def get_purchase(self, purchase_id):
        return await self._fetch_one('SELECT * FROM purchases WHERE id = $1', purchase_id)

    async def insert_purchase(self, purchase):
        return await self._insert('purchases', purchase)

    async def update_purchase(self, purchase_id, changes):
        await self._update('purchases', purchase_id, changes)

    async def get_license(self, license_id):
        return await self._fetch_one('SELECT * FROM beat_licenses WHERE id = $1', license_id)

    async def get_license_by_purchase(self, purchase_id):
        return await self._fetch_one(
            'SELECT * FROM beat_licenses WHERE purchase_id = $1',
            purchase_id
        )

    async def insert_license(self, license):
        return await self._insert('beat_licenses', license)

    async def update_license(self, license_id, changes):
        await self._update('beat_licenses', license_id, changes)

    async def find_licenses(self, user_id, beat_id, tier_type=None):
        query = 'SELECT * FROM beat_licenses WHERE user_id = $1 AND beat_id = $2'
        params = [user_id, beat_id]
        if tier_type is not None:
            query += ' AND tier_type = $3'
            params.append(tier_type)
        return await self._fetch_all(query + ' ORDER BY created_at DESC', *params)

    async def list_user_licenses(self, user_id):
        return await self._fetch_all(
            '''
            SELECT * FROM beat_licenses
            WHERE user_id = $1
            ORDER BY created_at DESC
            ''',
            user_id
        )

    async def list_store_licenses(self, store_id, limit):
        return await self._fetch_all(
            '''
            SELECT * FROM beat_licenses
            WHERE store_id = $1
            ORDER BY created_at DESC
            LIMIT $2
            ''',
            store_id,
            limit
        )

    async def get_customer(self, email, store_id):
        return await self._fetch_one(
            'SELECT * FROM customers WHERE email = $1 AND store_id = $2',
            email,
            store_id
        )

    async def insert_customer(self, customer):
        return await self._insert('customers', customer)

    async def update_customer(self, customer_id, changes):
        await self._update('customers', customer_id, changes)


class PostgresRepository(LicenseRepository):
    """Repository over an asyncpg connection pool."""

    def __init__(self, pool: Pool):
        self.pool = pool

    @asynccontextmanager
    async def session(self):
        async with self.pool.acquire() as conn:
            yield PostgresSession(conn)

    @asynccontextmanager
    async def transaction(self):
        async with self.pool.acquire() as conn:
            try:
                async with conn.transaction(isolation='serializable'):
                    yield PostgresSession(conn)
            except (SerializationError, DeadlockDetectedError) as e:
                logger.warning(f"Transaction aborted for serializability: {e}")
                raise TransactionConflictError(str(e)) from e
