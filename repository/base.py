"""Storage interface for the licensing service.

A ``LicenseRepository`` hands out ``Session`` objects. Sessions from
``transaction()`` are atomic and serializable: every write inside the block
commits together or not at all, and two transactions that lock the same
product cannot interleave. Sessions from ``session()`` are for reads.

Records are plain dicts with snake_case keys.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, Dict, List, Optional
from uuid import UUID

Record = Dict[str, Any]


class Session(ABC):
    """Record-level operations available inside a session or transaction."""

    # Products

    @abstractmethod
    async def get_product(self, beat_id: UUID, for_update: bool = False) -> Optional[Record]:
        """Load a product; ``for_update`` locks it until the transaction ends."""

    @abstractmethod
    async def insert_product(self, product: Record) -> UUID:
        pass

    @abstractmethod
    async def update_product(self, beat_id: UUID, changes: Record) -> None:
        pass

    @abstractmethod
    async def delete_product(self, beat_id: UUID) -> None:
        pass

    # Stores and users

    @abstractmethod
    async def get_store(self, store_id: UUID) -> Optional[Record]:
        pass

    @abstractmethod
    async def get_store_by_owner(self, user_id: str) -> Optional[Record]:
        pass

    @abstractmethod
    async def insert_store(self, store: Record) -> UUID:
        pass

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[Record]:
        pass

    @abstractmethod
    async def insert_user(self, user: Record) -> str:
        pass

    # Purchase ledger

    @abstractmethod
    async def get_purchase(self, purchase_id: UUID) -> Optional[Record]:
        pass

    @abstractmethod
    async def insert_purchase(self, purchase: Record) -> UUID:
        pass

    @abstractmethod
    async def update_purchase(self, purchase_id: UUID, changes: Record) -> None:
        pass

    # Beat licenses

    @abstractmethod
    async def get_license(self, license_id: UUID) -> Optional[Record]:
        pass

    @abstractmethod
    async def get_license_by_purchase(self, purchase_id: UUID) -> Optional[Record]:
        pass

    @abstractmethod
    async def insert_license(self, license: Record) -> UUID:
        """Insert a license.

        Raises:
            DuplicateRecordError: If the buyer already holds this tier for the beat,
                or the beat already has an exclusive license
        """

    @abstractmethod
    async def update_license(self, license_id: UUID, changes: Record) -> None:
        pass

    @abstractmethod
    async def find_licenses(
        self,
        user_id: str,
        beat_id: UUID,
        tier_type: Optional[str] = None
    ) -> List[Record]:
        """Licenses a buyer holds for a beat, optionally of one tier type, newest first."""

    @abstractmethod
    async def list_user_licenses(self, user_id: str) -> List[Record]:
        """All licenses of a buyer, newest first."""

    @abstractmethod
    async def list_store_licenses(self, store_id: UUID, limit: int) -> List[Record]:
        """Most recent licenses issued by a store, newest first."""

    # Customers

    @abstractmethod
    async def get_customer(self, email: str, store_id: str) -> Optional[Record]:
        pass

    @abstractmethod
    async def insert_customer(self, customer: Record) -> UUID:
        pass

    @abstractmethod
    async def update_customer(self, customer_id: UUID, changes: Record) -> None:
        pass


class LicenseRepository(ABC):
    """Factory for sessions over one backing store."""

    @abstractmethod
    def session(self) -> AsyncContextManager[Session]:
        """Open a non-transactional session for reads."""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[Session]:
        """Open an atomic, serializable transaction.

        Raises:
            TransactionConflictError: If the backing store aborted the transaction
                to preserve serializability; the caller may retry
        """

    async def close(self) -> None:
        pass
