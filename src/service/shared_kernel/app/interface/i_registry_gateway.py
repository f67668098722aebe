"""
Registry Gateway Interface (Port)

Narrow call contract of the external revocation registry. Used by the
registration client (register/revoke) and by the gate (query).
"""

from abc import ABC, abstractmethod
from typing import Sequence

from src.service.shared_kernel.domain.value_object.registry_status import (
    RegistrationOutcome,
    RegistryTokenStatus,
    TicketRegistration,
)


class IRegistryGateway(ABC):
    @abstractmethod
    async def register(self, *, tickets: Sequence[TicketRegistration]) -> RegistrationOutcome:
        """
        Register tokens as valid and wait for confirmation.

        One call for a single ticket, one batched call otherwise. Never raises:
        timeouts and failures come back as a failed RegistrationOutcome.
        """
        pass

    @abstractmethod
    async def query(self, *, token_id: str) -> RegistryTokenStatus:
        """
        Look up a token's state within the per-call deadline.

        Never raises: an unreachable registry returns `reachable=False`.
        """
        pass

    @abstractmethod
    async def revoke(self, *, token_id: str, reason: str) -> RegistrationOutcome:
        """Mark a token revoked on the registry"""
        pass
