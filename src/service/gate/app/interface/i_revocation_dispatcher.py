from abc import ABC, abstractmethod
from uuid import UUID


class IRevocationDispatcher(ABC):
    @abstractmethod
    def dispatch(self, *, ticket_id: UUID, token_id: str, reason: str) -> bool:
        """Schedule registry revocation without waiting for it; False when nothing was scheduled"""
        pass
