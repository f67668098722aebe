from abc import ABC, abstractmethod
from typing import Sequence
from uuid import UUID

from src.service.shared_kernel.domain.entity.ticket_entity import Ticket


class ITicketIssuanceRepo(ABC):
    """Sole inserter of tickets; a batch is written once per confirmed purchase"""

    @abstractmethod
    async def insert_batch(self, *, tickets: Sequence[Ticket]) -> None:
        pass

    @abstractmethod
    async def list_by_payment(self, *, payment_id: UUID) -> list[Ticket]:
        """Tickets of one purchase ordered by sequence number"""
        pass
