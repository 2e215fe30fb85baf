"""In-memory repository.

Transactions take a single ``asyncio.Lock`` and work on a deep copy of every
table; the copy replaces the live tables only when the block exits cleanly.
Reads always return copies, so callers can never mutate stored records.
Uniqueness rules mirror the PostgreSQL indexes in database/schema.
"""

import asyncio
import copy
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from database.exceptions import DuplicateRecordError
from .base import LicenseRepository, Record, Session

logger = logging.getLogger(__name__)

TABLES = ('users', 'stores', 'products', 'purchases', 'beat_licenses', 'customers')


def _key(value: Any) -> Any:
    """Normalize ids so string and UUID forms address the same record."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return value


def _newest_first(rows: List[Record]) -> List[Record]:
    ordered = sorted(
        enumerate(rows),
        key=lambda pair: (pair[1]['created_at'], pair[0]),
        reverse=True
    )
    return [row for _, row in ordered]


class MemorySession(Session):
    """Session over one set of tables."""

    def __init__(self, tables: Dict[str, Dict[Any, Record]]):
        self._tables = tables

    def _get(self, table: str, record_id: Any) -> Optional[Record]:
        record = self._tables[table].get(_key(record_id))
        return copy.deepcopy(record) if record is not None else None

    def _insert(self, table: str, record: Record) -> Any:
        record = copy.deepcopy(record)
        record_id = _key(record.get('id') or uuid.uuid4())
        if record_id in self._tables[table]:
            raise DuplicateRecordError(table, f'{table}_pkey')
        record['id'] = record_id
        self._tables[table][record_id] = record
        return record_id

    def _update(self, table: str, record_id: Any, changes: Record) -> None:
        record = self._tables[table].get(_key(record_id))
        if record is None:
            raise KeyError(f"{table} record {record_id} not found")
        record.update(copy.deepcopy(changes))

    def _select(self, table: str, **criteria) -> List[Record]:
        return [
            copy.deepcopy(row)
            for row in self._tables[table].values()
            if all(row.get(column) == value for column, value in criteria.items())
        ]

    async def get_product(self, beat_id, for_update=False):
        # The transaction lock already serializes writers
        return self._get('products', beat_id)

    async def insert_product(self, product):
        return self._insert('products', product)

    async def update_product(self, beat_id, changes):
        self._update('products', beat_id, changes)

    async def delete_product(self, beat_id):
        self._tables['products'].pop(_key(beat_id), None)

    async def get_store(self, store_id):
        return self._get('stores', store_id)

    async def get_store_by_owner(self, user_id):
        stores = self._select('stores', user_id=user_id)
        return stores[0] if stores else None

    async def insert_store(self, store):
        return self._insert('stores', store)

    async def get_user(self, user_id):
        return self._get('users', user_id)

    async def insert_user(self, user):
        return self._insert('users', user)

    async def get_purchase(self, purchase_id):
        return self._get('purchases', purchase_id)

    async def insert_purchase(self, purchase):
        return self._insert('purchases', purchase)

    async def update_purchase(self, purchase_id, changes):
        self._update('purchases', purchase_id, changes)

    async def get_license(self, license_id):
        return self._get('beat_licenses', license_id)

    async def get_license_by_purchase(self, purchase_id):
        licenses = self._select('beat_licenses', purchase_id=_key(purchase_id))
        return licenses[0] if licenses else None

    async def insert_license(self, license):
        beat_id = _key(license['beat_id'])
        purchase_id = _key(license['purchase_id'])
        for existing in self._tables['beat_licenses'].values():
            if existing['purchase_id'] == purchase_id:
                raise DuplicateRecordError('beat_licenses', 'idx_beat_licenses_purchase')
            if existing['beat_id'] != beat_id:
                continue
            if (existing['user_id'] == license['user_id']
                    and existing['tier_type'] == license['tier_type']):
                raise DuplicateRecordError('beat_licenses', 'idx_beat_licenses_user_beat_tier')
            if existing['tier_type'] == 'exclusive' and license['tier_type'] == 'exclusive':
                raise DuplicateRecordError('beat_licenses', 'idx_beat_licenses_one_exclusive')
        return self._insert('beat_licenses', dict(
            license,
            beat_id=beat_id,
            purchase_id=purchase_id
        ))

    async def update_license(self, license_id, changes):
        self._update('beat_licenses', license_id, changes)

    async def find_licenses(self, user_id, beat_id, tier_type=None):
        criteria = {'user_id': user_id, 'beat_id': _key(beat_id)}
        if tier_type is not None:
            criteria['tier_type'] = tier_type
        return _newest_first(self._select('beat_licenses', **criteria))

    async def list_user_licenses(self, user_id):
        return _newest_first(self._select('beat_licenses', user_id=user_id))

    async def list_store_licenses(self, store_id, limit):
        return _newest_first(self._select('beat_licenses', store_id=_key(store_id)))[:limit]

    async def get_customer(self, email, store_id):
        customers = self._select('customers', email=email, store_id=store_id)
        return customers[0] if customers else None

    async def insert_customer(self, customer):
        if self._select('customers', email=customer['email'], store_id=customer['store_id']):
            raise DuplicateRecordError('customers', 'idx_customers_email_store')
        return self._insert('customers', customer)

    async def update_customer(self, customer_id, changes):
        self._update('customers', customer_id, changes)


class MemoryRepository(LicenseRepository):
    """Repository keeping every table in process memory."""

    session_class = MemorySession

    def __init__(self):
        self._tables: Dict[str, Dict[Any, Record]] = {name: {} for name in TABLES}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def session(self):
        yield self.session_class(self._tables)

    @asynccontextmanager
    async def transaction(self):
        async with self._lock:
            working = copy.deepcopy(self._tables)
            yield self.session_class(working)
            # Only reached when the block did not raise
            self._tables = working

    def count(self, table: str) -> int:
        """Number of committed rows in a table."""
        return len(self._tables[table])
