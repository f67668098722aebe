from abc import ABC, abstractmethod
from typing import Optional

from src.service.purchase.domain.entity.user_profile_entity import UserProfile


class IUserProfileQueryRepo(ABC):
    @abstractmethod
    async def get_by_id(self, *, user_id: int) -> Optional[UserProfile]:
        pass
