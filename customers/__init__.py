"""Store customer records.

Every sale upserts the buyer into the seller's customer list, keyed by
(email, store). This is bookkeeping for the seller's CRM views and runs after
the sale has committed, in its own transaction.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

import backoff

from config import settings_conf
from database.exceptions import DuplicateRecordError, TransactionConflictError
from repository import get_repository

logger = logging.getLogger(__name__)

class CustomerManager:
    """Manager class for store customer records."""

    def __init__(self, repository=None):
        """Initialize the customer manager.

        Args:
            repository: Optional repository. If not provided, will get the process-wide one.
        """
        self.repository = repository

    async def ensure_repository(self):
        """Ensure we have a repository."""
        if not self.repository:
            self.repository = await get_repository()

    @backoff.on_exception(
        backoff.expo,
        (TransactionConflictError, DuplicateRecordError),
        max_tries=lambda: settings_conf['purchase_max_retries'],
        max_time=30
    )
    async def upsert_purchase_customer(
        self,
        user_id: str,
        buyer_email: str,
        store_id: str,
        seller_id: str,
        amount: Decimal,
        buyer_name: Optional[str] = None,
        source: Optional[str] = None
    ) -> UUID:
        """Create or refresh the customer record for a buyer.

        The buyer's account email wins over the checkout email when both exist.
        Concurrent sales to the same buyer can race on the insert or abort on a
        serialization conflict; the whole upsert is then retried, so every
        amount is counted once.

        Args:
            user_id: Buyer's user id
            buyer_email: Email captured at checkout
            store_id: Store the purchase was made in
            seller_id: Store owner's user id
            amount: Amount paid
            buyer_name: Name captured at checkout
            source: Where the customer came from, for new records

        Returns:
            The customer id
        """
        await self.ensure_repository()
        now = datetime.now(timezone.utc)
        store_id = str(store_id)

        async with self.repository.transaction() as session:
            user = await session.get_user(user_id) or {}
            email = user.get('email') or buyer_email

            existing = await session.get_customer(email, store_id)
            if existing:
                changes: Dict[str, Any] = {
                    'last_activity': now,
                    'status': 'active',
                    'type': 'paying' if amount > 0 else existing['type'],
                    'total_spent': (existing.get('total_spent') or Decimal('0')) + amount
                }
                await session.update_customer(existing['id'], changes)
                logger.info(f"Updated customer {existing['id']} for store {store_id}")
                return existing['id']

            customer_id = await session.insert_customer({
                'name': buyer_name or user.get('name') or email or 'Unknown',
                'email': email,
                'store_id': store_id,
                'admin_user_id': seller_id,
                'type': 'paying' if amount > 0 else 'lead',
                'status': 'active',
                'total_spent': amount,
                'last_activity': now,
                'source': source,
                'created_at': now
            })
            logger.info(f"Created customer {customer_id} for store {store_id}")
            return customer_id

__all__ = ['CustomerManager']
