from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update

from src.platform.database.repo_session import SessionFactory, SessionScopedRepo
from src.platform.logging.loguru_io import Logger
from src.service.gate.app.interface.i_gate_ticket_repo import IGateTicketRepo
from src.service.gate.domain.value_object.gate_ticket_view import GateTicketView
from src.service.shared_kernel.domain.enum.ticket_status import TicketStatus
from src.service.shared_kernel.driven_adapter.model import (
    EventModel,
    RevocationLogModel,
    TicketModel,
    UserModel,
)
from src.service.shared_kernel.driven_adapter.ticket_mapper import ticket_model_to_entity


class GateTicketRepoImpl(SessionScopedRepo, IGateTicketRepo):
    def __init__(self, session_factory: Optional[SessionFactory] = None) -> None:
        super().__init__(session_factory)

    @Logger.io
    async def get_for_validation(self, *, ticket_id: UUID) -> Optional[GateTicketView]:
        async with self._get_session() as session:
            row = (
                await session.execute(
                    select(
                        TicketModel,
                        EventModel.name,
                        EventModel.event_date,
                        EventModel.end_date,
                        UserModel.full_name,
                    )
                    .join(EventModel, EventModel.id == TicketModel.event_id)
                    .outerjoin(UserModel, UserModel.id == TicketModel.user_id)
                    .where(TicketModel.id == ticket_id)
                    .execution_options(populate_existing=True)
                )
            ).one_or_none()
            if row is None:
                return None

            ticket_model, event_name, event_date, end_date, holder_name = row
            return GateTicketView(
                ticket=ticket_model_to_entity(ticket_model),
                event_name=event_name,
                event_date=event_date,
                event_end_date=end_date,
                holder_name=holder_name,
            )

    @Logger.io
    async def mark_used(self, *, ticket_id: UUID, used_at: datetime) -> bool:
        async with self._write_session() as session:
            result = await session.execute(
                update(TicketModel)
                .where(TicketModel.id == ticket_id, TicketModel.status == TicketStatus.VALID.value)
                .values(status=TicketStatus.USED.value, used_at=used_at)
                .returning(TicketModel.id)
                .execution_options(synchronize_session=False)
            )
            return result.scalar_one_or_none() is not None

    @Logger.io
    async def revoke(
        self, *, ticket_id: UUID, admin_id: int, reason: str, revoked_at: datetime
    ) -> bool:
        async with self._write_session() as session:
            result = await session.execute(
                update(TicketModel)
                .where(
                    TicketModel.id == ticket_id,
                    TicketModel.status == TicketStatus.VALID.value,
                )
                .values(status=TicketStatus.REVOKED.value, revoked_at=revoked_at)
                .returning(TicketModel.id)
                .execution_options(synchronize_session=False)
            )
            if result.scalar_one_or_none() is None:
                return False

            session.add(
                RevocationLogModel(
                    ticket_id=ticket_id, admin_id=admin_id, reason=reason, created_at=revoked_at
                )
            )
            await session.flush()
            return True
