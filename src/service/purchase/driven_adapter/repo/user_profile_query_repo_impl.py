from typing import Optional

from sqlalchemy import select

from src.platform.database.repo_session import SessionFactory, SessionScopedRepo
from src.platform.logging.loguru_io import Logger
from src.service.purchase.app.interface.i_user_profile_query_repo import IUserProfileQueryRepo
from src.service.purchase.domain.entity.user_profile_entity import (
    UserProfile,
    VerificationStatus,
)
from src.service.shared_kernel.driven_adapter.model import UserModel


class UserProfileQueryRepoImpl(SessionScopedRepo, IUserProfileQueryRepo):
    def __init__(self, session_factory: Optional[SessionFactory] = None) -> None:
        super().__init__(session_factory)

    @Logger.io
    async def get_by_id(self, *, user_id: int) -> Optional[UserProfile]:
        async with self._get_session() as session:
            model = (
                await session.execute(select(UserModel).where(UserModel.id == user_id))
            ).scalar_one_or_none()
            if not model:
                return None
            try:
                status = VerificationStatus(model.verification_status)
            except ValueError:
                status = VerificationStatus.PENDING
            return UserProfile(id=model.id, full_name=model.full_name, verification_status=status)
