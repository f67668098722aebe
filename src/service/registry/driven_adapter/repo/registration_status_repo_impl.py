from datetime import datetime, timedelta
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, or_, select, update

from src.platform.database.repo_session import SessionFactory, SessionScopedRepo
from src.platform.logging.loguru_io import Logger
from src.service.registry.app.interface.i_registration_status_repo import (
    IRegistrationStatusRepo,
)
from src.service.shared_kernel.domain.enum.ticket_status import RegistrationStatus, TicketStatus
from src.service.shared_kernel.domain.value_object.registry_status import (
    RegistrationFailureCategory,
    TicketRegistration,
)
from src.service.shared_kernel.driven_adapter.model import TicketModel


class RegistrationStatusRepoImpl(SessionScopedRepo, IRegistrationStatusRepo):
    def __init__(self, session_factory: Optional[SessionFactory] = None) -> None:
        super().__init__(session_factory)

    @Logger.io
    async def mark_minted(self, *, ticket_ids: Sequence[UUID], tx_ref: str) -> int:
        if not ticket_ids:
            return 0
        async with self._write_session() as session:
            result = await session.execute(
                update(TicketModel)
                .where(
                    TicketModel.id.in_(ticket_ids),
                    TicketModel.registration_status != RegistrationStatus.MINTED.value,
                )
                .values(
                    registration_status=RegistrationStatus.MINTED.value,
                    registration_tx_ref=tx_ref,
                    registration_error=None,
                    registration_error_category=None,
                )
                .returning(TicketModel.id)
                .execution_options(synchronize_session=False)
            )
            return len(result.scalars().all())

    @Logger.io
    async def mark_failed(
        self,
        *,
        ticket_ids: Sequence[UUID],
        reason: str,
        category: RegistrationFailureCategory,
    ) -> int:
        if not ticket_ids:
            return 0
        async with self._write_session() as session:
            result = await session.execute(
                update(TicketModel)
                .where(
                    TicketModel.id.in_(ticket_ids),
                    TicketModel.registration_status != RegistrationStatus.MINTED.value,
                )
                .values(
                    registration_status=RegistrationStatus.FAILED.value,
                    registration_error=reason[:1000],
                    registration_error_category=category.value,
                    registration_attempts=TicketModel.registration_attempts + 1,
                )
                .returning(TicketModel.id)
                .execution_options(synchronize_session=False)
            )
            return len(result.scalars().all())

    @Logger.io
    async def list_retryable(
        self,
        *,
        now: datetime,
        max_attempts: int,
        pending_grace_seconds: int,
        limit: int,
    ) -> dict[UUID, list[TicketRegistration]]:
        pending_cutoff = now - timedelta(seconds=pending_grace_seconds)
        async with self._get_session() as session:
            rows = (
                await session.execute(
                    select(
                        TicketModel.id,
                        TicketModel.payment_id,
                        TicketModel.registry_token_id,
                        TicketModel.bound_name,
                    )
                    .where(
                        TicketModel.status != TicketStatus.REVOKED.value,
                        or_(
                            and_(
                                TicketModel.registration_status
                                == RegistrationStatus.FAILED.value,
                                TicketModel.registration_attempts < max_attempts,
                            ),
                            and_(
                                TicketModel.registration_status
                                == RegistrationStatus.PENDING.value,
                                TicketModel.issued_at <= pending_cutoff,
                            ),
                        )
                    )
                    .order_by(TicketModel.payment_id, TicketModel.sequence_number)
                    .limit(limit)
                )
            ).all()

        grouped: dict[UUID, list[TicketRegistration]] = {}
        for row in rows:
            grouped.setdefault(row.payment_id, []).append(
                TicketRegistration(
                    ticket_id=row.id, token_id=row.registry_token_id, bound_name=row.bound_name
                )
            )
        return grouped
