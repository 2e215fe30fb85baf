"""Beat licensing module.

This module provides functionality for:
- Turning confirmed payments into purchase and beat license records
- Withdrawing beats from sale after an exclusive sale
- Buyer-side license actions (contract generation, downloads)
- Querying licenses, availability and tiers

Ownership rules:
- A beat can be licensed any number of times until it is sold exclusively;
  after that every purchase attempt is rejected.
- A buyer can hold each non-exclusive tier of a beat once.
- An exclusive purchase is rejected if the buyer already holds any license for the beat.
- A license's terms are copied from the tier at purchase time and never change.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

import backoff

from auth import UnauthorizedError, require_auth
from config import settings_conf
from customers import CustomerManager
from database.exceptions import DuplicateRecordError, TransactionConflictError
from notifications import PurchaseWorkflowEvent, get_workflow_trigger
from repository import get_repository
from workers import runner as default_runner

from .errors import (
    LicenseError,
    NotFoundError,
    BeatNotFoundError,
    TierNotFoundError,
    StoreNotFoundError,
    LicenseNotFoundError,
    DownloadUnavailableError,
    ConflictError,
    BeatAlreadySoldError,
    DuplicateLicenseError,
    FileNotIncludedError
)
from .tiers import (
    TierType,
    TIER_TYPES,
    RIGHTS_FIELDS,
    get_delivered_files_for_tier,
    enabled_tiers,
    find_tier,
    snapshot_tier_terms,
    parse_tier_type
)
from .downloads import get_download_url
from .get_beat_license_by_purchase import get_beat_license_by_purchase
from .get_user_beat_licenses import get_user_beat_licenses
from .get_creator_beat_sales import get_creator_beat_sales
from .is_beat_available import is_beat_available
from .get_beat_license_tiers import get_beat_license_tiers
from .check_user_beat_license import check_user_beat_license

logger = logging.getLogger(__name__)

PRODUCT_TYPE = 'beatLease'
UNKNOWN_PRODUCER = 'Unknown Producer'

# Index that allows a single exclusive license per beat
ONE_EXCLUSIVE_CONSTRAINT = 'idx_beat_licenses_one_exclusive'

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class BeatLicenseManager:
    """Manager class for beat license purchases and license state."""

    def __init__(self, repository=None, runner=None, workflow_trigger=None, customers=None):
        """Initialize the beat license manager.

        Args:
            repository: Optional repository. If not provided, will get the process-wide one.
            runner: Runner for best-effort follow-up work
            workflow_trigger: Trigger for the seller's purchase workflows
            customers: Customer manager used for the CRM upsert
        """
        self.repository = repository
        self.runner = runner or default_runner
        self.workflow_trigger = workflow_trigger or get_workflow_trigger()
        self.customers = customers

    async def ensure_repository(self):
        """Ensure we have a repository."""
        if not self.repository:
            self.repository = await get_repository()
        if not self.customers:
            self.customers = CustomerManager(self.repository)

    async def create_beat_license_purchase(
        self,
        beat_id: UUID,
        tier_type: str,
        tier_name: str,
        user_id: str,
        store_id: str,
        amount: Decimal,
        buyer_email: str,
        currency: Optional[str] = None,
        payment_method: Optional[str] = None,
        transaction_id: Optional[str] = None,
        buyer_name: Optional[str] = None
    ) -> Dict[str, UUID]:
        """Record a confirmed beat license payment.

        Only trusted callers (the payment pipeline) may invoke this. Validation,
        the purchase and license writes, and, for exclusive tiers, withdrawing
        the beat from sale happen in one transaction. The CRM upsert and the
        purchase workflow trigger run afterwards and cannot fail the purchase.

        Args:
            beat_id: The beat being licensed
            tier_type: basic, premium, exclusive or unlimited
            tier_name: Display name of the tier, used if the catalog entry has none
            user_id: Buyer's user id
            store_id: Store the checkout happened in
            amount: Amount paid
            buyer_email: Buyer's email from checkout
            currency: Defaults to the default_currency setting
            payment_method: Defaults to the default_payment_method setting
            transaction_id: Payment provider's transaction id
            buyer_name: Buyer's name from checkout

        Returns:
            Dict with 'purchase_id' and 'beat_license_id'

        Raises:
            BeatNotFoundError: If the beat doesn't exist
            BeatAlreadySoldError: If the beat was sold exclusively
            TierNotFoundError: If the tier is missing or disabled
            DuplicateLicenseError: If the buyer already holds a conflicting license
            StoreNotFoundError: If the beat owner's store doesn't exist
        """
        await self.ensure_repository()
        tier_type = parse_tier_type(tier_type)
        amount = Decimal(str(amount))

        try:
            purchase_id, license_id, beat, tier_name = await self._commit_purchase(
                beat_id=beat_id,
                tier_type=tier_type,
                tier_name=tier_name,
                user_id=user_id,
                store_id=store_id,
                amount=amount,
                buyer_email=buyer_email,
                currency=currency,
                payment_method=payment_method,
                transaction_id=transaction_id,
                buyer_name=buyer_name
            )
        except (NotFoundError, ConflictError) as e:
            logger.warning(
                f"Rejected {tier_type} license purchase of beat {beat_id} by {user_id}: {e}"
            )
            raise

        logger.info(
            f"Beat license purchase created: purchase {purchase_id}, license {license_id}, "
            f"beat {beat_id}, tier {tier_type}, buyer {user_id}"
        )

        self._schedule_follow_ups(
            beat=beat,
            purchase_id=purchase_id,
            user_id=user_id,
            store_id=store_id,
            amount=amount,
            tier_name=tier_name,
            buyer_email=buyer_email,
            buyer_name=buyer_name
        )

        return {'purchase_id': purchase_id, 'beat_license_id': license_id}

    @backoff.on_exception(
        backoff.expo,
        TransactionConflictError,
        max_tries=lambda: settings_conf['purchase_max_retries'],
        max_time=30
    )
    async def _commit_purchase(
        self,
        beat_id,
        tier_type,
        tier_name,
        user_id,
        store_id,
        amount,
        buyer_email,
        currency,
        payment_method,
        transaction_id,
        buyer_name
    ) -> Tuple[UUID, UUID, Dict[str, Any], str]:
        """Validate and write one purchase atomically."""
        async with self.repository.transaction() as session:
            beat = await session.get_product(beat_id, for_update=True)
            if not beat:
                raise BeatNotFoundError(beat_id)

            if beat.get('exclusive_sold_at'):
                raise BeatAlreadySoldError(beat_id)

            tier = find_tier(beat, tier_type)

            # Exclusive collides with any license the buyer holds, other tiers only with themselves
            if tier_type == TierType.EXCLUSIVE.value:
                if await session.find_licenses(user_id, beat['id']):
                    raise DuplicateLicenseError()
            elif await session.find_licenses(user_id, beat['id'], tier_type):
                raise DuplicateLicenseError(tier_type)

            store = await session.get_store_by_owner(beat['user_id'])
            if not store:
                raise StoreNotFoundError(f"Store for beat owner {beat['user_id']} not found")

            producer = await session.get_user(beat['user_id']) or {}
            producer_name = producer.get('name') or producer.get('first_name') or UNKNOWN_PRODUCER

            now = _utcnow()
            purchase_id = await session.insert_purchase({
                'user_id': user_id,
                'product_id': beat['id'],
                'store_id': str(store_id),
                'admin_user_id': beat['user_id'],
                'amount': amount,
                'currency': (currency or settings_conf['default_currency']).upper(),
                'status': 'completed',
                'payment_method': payment_method or settings_conf['default_payment_method'],
                'transaction_id': transaction_id,
                'product_type': PRODUCT_TYPE,
                'access_granted': True,
                'download_count': 0,
                'last_accessed_at': now,
                'created_at': now
            })

            tier_name = tier.get('name') or tier_name
            price = Decimal(str(tier['price'])) if tier.get('price') is not None else amount

            try:
                license_id = await session.insert_license({
                    'purchase_id': purchase_id,
                    'beat_id': beat['id'],
                    'user_id': user_id,
                    'store_id': store['id'],
                    'tier_type': tier_type,
                    'tier_name': tier_name,
                    'price': price,
                    **snapshot_tier_terms(tier),
                    'delivered_files': get_delivered_files_for_tier(tier_type),
                    'buyer_email': buyer_email,
                    'buyer_name': buyer_name,
                    'beat_title': beat['title'],
                    'producer_name': producer_name,
                    'created_at': now
                })
            except DuplicateRecordError as e:
                if e.constraint == ONE_EXCLUSIVE_CONSTRAINT:
                    raise BeatAlreadySoldError(beat_id)
                raise DuplicateLicenseError(None if tier_type == TierType.EXCLUSIVE.value else tier_type)

            await session.update_purchase(purchase_id, {'beat_license_id': license_id})

            if tier_type == TierType.EXCLUSIVE.value:
                await self._close_exclusive_sale(session, beat['id'], user_id, purchase_id, now)

        return purchase_id, license_id, beat, tier_name

    async def _close_exclusive_sale(self, session, beat_id, user_id, purchase_id, sold_at) -> None:
        await session.update_product(beat_id, {
            'exclusive_sold_at': sold_at,
            'exclusive_sold_to': user_id,
            'exclusive_purchase_id': purchase_id,
            'is_published': False
        })
        logger.info(f"Beat {beat_id} sold exclusively to {user_id} (purchase {purchase_id})")

    def _schedule_follow_ups(
        self,
        beat,
        purchase_id,
        user_id,
        store_id,
        amount,
        tier_name,
        buyer_email,
        buyer_name
    ) -> None:
        """Hand the CRM upsert and workflow trigger to the best-effort runner."""
        self.runner.spawn(
            f"customer upsert for purchase {purchase_id}",
            lambda: self.customers.upsert_purchase_customer(
                user_id=user_id,
                buyer_email=buyer_email,
                store_id=store_id,
                seller_id=beat['user_id'],
                amount=amount,
                buyer_name=buyer_name,
                source=f"Beat License: {beat['title']}"
            )
        )

        event = PurchaseWorkflowEvent(
            store_id=str(store_id),
            customer_email=buyer_email,
            customer_name=buyer_name or buyer_email,
            product_id=str(beat['id']),
            product_name=f"{beat['title']} - {tier_name} License",
            product_type=PRODUCT_TYPE,
            order_id=str(purchase_id),
            amount=amount
        )
        self.runner.spawn(
            f"purchase workflow trigger for purchase {purchase_id}",
            lambda: self.workflow_trigger.trigger_product_purchase_workflows(event)
        )

    async def mark_beat_as_exclusively_sold(self, beat_id: UUID, user_id: str, purchase_id: UUID) -> None:
        """Withdraw a beat from sale after an exclusive purchase.

        Exclusive purchases already do this inside their own transaction; this
        entry point exists for trusted callers recording an exclusive sale made
        elsewhere. The sale fields are written once: repeating the call for the
        same purchase does nothing.

        Raises:
            BeatNotFoundError: If the beat doesn't exist
            BeatAlreadySoldError: If the beat was sold exclusively under another purchase
        """
        await self.ensure_repository()

        async with self.repository.transaction() as session:
            beat = await session.get_product(beat_id, for_update=True)
            if not beat:
                raise BeatNotFoundError(beat_id)

            if beat.get('exclusive_sold_at'):
                if str(beat.get('exclusive_purchase_id')) == str(purchase_id):
                    logger.info(f"Beat {beat_id} already closed by purchase {purchase_id}")
                    return
                raise BeatAlreadySoldError(beat_id)

            await self._close_exclusive_sale(session, beat['id'], user_id, purchase_id, _utcnow())

    async def mark_contract_generated(self, beat_license_id: UUID, caller_id: Optional[str]) -> datetime:
        """Stamp the time the buyer generated their license contract.

        Args:
            beat_license_id: The license UUID
            caller_id: Authenticated user id; must be the license holder

        Returns:
            The contract_generated_at timestamp written

        Raises:
            UnauthorizedError: If the caller is not authenticated or not the license holder
            LicenseNotFoundError: If the license doesn't exist
        """
        caller_id = require_auth(caller_id)
        await self.ensure_repository()

        async with self.repository.transaction() as session:
            license = await session.get_license(beat_license_id)
            if not license:
                raise LicenseNotFoundError("License not found")

            if license['user_id'] != caller_id:
                raise UnauthorizedError("Unauthorized: you don't own this license")

            generated_at = _utcnow()
            await session.update_license(beat_license_id, {'contract_generated_at': generated_at})

        logger.info(f"Contract generated for beat license {beat_license_id}")
        return generated_at

    async def record_license_download(
        self,
        beat_license_id: UUID,
        caller_id: Optional[str],
        file_type: str
    ) -> Dict[str, Any]:
        """Authorize a licensed file download and count it on the purchase.

        Args:
            beat_license_id: The license UUID
            caller_id: Authenticated user id; must be the license holder
            file_type: mp3, wav, stems or trackouts

        Returns:
            Dict with 'url', 'file_type' and the purchase's new 'download_count'

        Raises:
            UnauthorizedError: If the caller is not the license holder
            LicenseNotFoundError: If the license doesn't exist
            FileNotIncludedError: If the tier doesn't deliver this file type
            BeatNotFoundError: If the beat has been deleted
            DownloadUnavailableError: If the beat has no stored file of this type
        """
        caller_id = require_auth(caller_id)
        await self.ensure_repository()

        async with self.repository.transaction() as session:
            license = await session.get_license(beat_license_id)
            if not license:
                raise LicenseNotFoundError("License not found")

            if license['user_id'] != caller_id:
                raise UnauthorizedError("Unauthorized: you don't own this license")

            if file_type not in license['delivered_files']:
                raise FileNotIncludedError(file_type, license['tier_name'])

            beat = await session.get_product(license['beat_id'])
            if not beat:
                raise BeatNotFoundError(license['beat_id'])

            url = get_download_url(beat, file_type)
            if not url:
                raise DownloadUnavailableError(f"No {file_type} file stored for this beat")

            purchase = await session.get_purchase(license['purchase_id'])
            download_count = (purchase.get('download_count') or 0) + 1
            await session.update_purchase(purchase['id'], {
                'download_count': download_count,
                'last_accessed_at': _utcnow()
            })

        logger.info(f"Download of {file_type} for beat license {beat_license_id} ({download_count})")
        return {'url': url, 'file_type': file_type, 'download_count': download_count}

__all__ = [
    'BeatLicenseManager',
    'LicenseError',
    'NotFoundError',
    'BeatNotFoundError',
    'TierNotFoundError',
    'StoreNotFoundError',
    'LicenseNotFoundError',
    'DownloadUnavailableError',
    'ConflictError',
    'BeatAlreadySoldError',
    'DuplicateLicenseError',
    'FileNotIncludedError',
    'UnauthorizedError',
    'TierType',
    'TIER_TYPES',
    'RIGHTS_FIELDS',
    'get_delivered_files_for_tier',
    'enabled_tiers',
    'find_tier',
    'snapshot_tier_terms',
    'get_download_url',
    'get_beat_license_by_purchase',
    'get_user_beat_licenses',
    'get_creator_beat_sales',
    'is_beat_available',
    'get_beat_license_tiers',
    'check_user_beat_license'
]
