"""
Inventory Ledger Interface (Port)

The only writer of an event's `available` counter.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from src.service.purchase.domain.value_object.reservation_token import ReservationToken


class IInventoryLedger(ABC):
    @abstractmethod
    async def reserve(self, *, event_id: int, quantity: int) -> ReservationToken:
        """
        Hold `quantity` units with one atomic conditional decrement.

        Raises:
            EventNotFoundError, EventInPastError, InsufficientCapacityError
        """
        pass

    @abstractmethod
    async def release(self, *, reservation_id: UUID) -> bool:
        """
        Compensating rollback of an active reservation.

        Returns:
            True when capacity was restored, False when the reservation was
            already released or consumed (idempotent no-op)
        """
        pass

    @abstractmethod
    async def consume(self, *, reservation_id: UUID) -> bool:
        """Mark an active reservation as turned into tickets"""
        pass
