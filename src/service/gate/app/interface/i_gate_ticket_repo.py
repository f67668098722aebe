from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.service.gate.domain.value_object.gate_ticket_view import GateTicketView


class IGateTicketRepo(ABC):
    @abstractmethod
    async def get_for_validation(self, *, ticket_id: UUID) -> Optional[GateTicketView]:
        pass

    @abstractmethod
    async def mark_used(self, *, ticket_id: UUID, used_at: datetime) -> bool:
        """valid → used; False when the ticket was no longer valid"""
        pass

    @abstractmethod
    async def revoke(
        self, *, ticket_id: UUID, admin_id: int, reason: str, revoked_at: datetime
    ) -> bool:
        """Conditional valid → revoked plus a revocation log row, in one transaction"""
        pass
