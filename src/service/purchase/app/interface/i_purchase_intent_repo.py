from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.service.purchase.domain.entity.purchase_intent_entity import PurchaseIntent


class IPurchaseIntentRepo(ABC):
    """
    Purchase intent persistence.

    Terminal transitions are conditional on `status = 'pending'` so that
    concurrent or repeated notifications observe them exactly once.
    """

    @abstractmethod
    async def create(self, *, intent: PurchaseIntent) -> PurchaseIntent:
        pass

    @abstractmethod
    async def get_by_id(self, *, purchase_id: UUID) -> Optional[PurchaseIntent]:
        pass

    @abstractmethod
    async def find_by_external_handle(self, *, handle: str) -> Optional[PurchaseIntent]:
        """Match the processor's order handle, falling back to the transaction handle"""
        pass

    @abstractmethod
    async def attach_external_order(self, *, purchase_id: UUID, external_order_id: str) -> None:
        pass

    @abstractmethod
    async def confirm(
        self, *, purchase_id: UUID, transaction_id: Optional[str], confirmed_at: datetime
    ) -> bool:
        """pending → confirmed. Returns False if the intent was no longer pending."""
        pass

    @abstractmethod
    async def mark_failed(self, *, purchase_id: UUID, reason: str) -> bool:
        """pending → failed. Returns False if the intent was no longer pending."""
        pass

    @abstractmethod
    async def list_expired_pending(self, *, now: datetime, limit: int) -> list[UUID]:
        pass
