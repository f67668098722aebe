from abc import ABC, abstractmethod
from typing import Sequence

from src.service.shared_kernel.domain.value_object.registry_status import TicketRegistration


class IRegistrationDispatcher(ABC):
    @abstractmethod
    def dispatch(self, *, tickets: Sequence[TicketRegistration]) -> None:
        """Schedule registry mirroring without waiting for it (fire-and-forget)"""
        pass
