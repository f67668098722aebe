from abc import ABC, abstractmethod
from datetime import datetime
from typing import Sequence
from uuid import UUID

from src.service.shared_kernel.domain.value_object.registry_status import (
    RegistrationFailureCategory,
    TicketRegistration,
)


class IRegistrationStatusRepo(ABC):
    """Owns the ticket `registration_*` columns; never touches ticket `status`"""

    @abstractmethod
    async def mark_minted(self, *, ticket_ids: Sequence[UUID], tx_ref: str) -> int:
        pass

    @abstractmethod
    async def mark_failed(
        self,
        *,
        ticket_ids: Sequence[UUID],
        reason: str,
        category: RegistrationFailureCategory,
    ) -> int:
        """Record the failure and bump `registration_attempts`"""
        pass

    @abstractmethod
    async def list_retryable(
        self,
        *,
        now: datetime,
        max_attempts: int,
        pending_grace_seconds: int,
        limit: int,
    ) -> dict[UUID, list[TicketRegistration]]:
        """
        Tickets due for another registration attempt, grouped by payment id:
        - `failed` with attempts below the cap
        - `pending` issued longer ago than the grace period (dispatch never ran)
        """
        pass
