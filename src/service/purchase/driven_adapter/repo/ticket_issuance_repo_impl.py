from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select

from src.platform.database.repo_session import SessionFactory, SessionScopedRepo
from src.platform.logging.loguru_io import Logger
from src.service.purchase.app.interface.i_ticket_issuance_repo import ITicketIssuanceRepo
from src.service.shared_kernel.domain.entity.ticket_entity import Ticket
from src.service.shared_kernel.driven_adapter.model import TicketModel
from src.service.shared_kernel.driven_adapter.ticket_mapper import (
    ticket_entity_to_model,
    ticket_model_to_entity,
)


class TicketIssuanceRepoImpl(SessionScopedRepo, ITicketIssuanceRepo):
    def __init__(self, session_factory: Optional[SessionFactory] = None) -> None:
        super().__init__(session_factory)

    @Logger.io(truncate_content=True)
    async def insert_batch(self, *, tickets: Sequence[Ticket]) -> None:
        async with self._write_session() as session:
            session.add_all([ticket_entity_to_model(ticket) for ticket in tickets])
            # Surfaces uq_ticket_payment_sequence violations inside the caller's transaction
            await session.flush()

    @Logger.io(truncate_content=True)
    async def list_by_payment(self, *, payment_id: UUID) -> list[Ticket]:
        async with self._get_session() as session:
            result = await session.execute(
                select(TicketModel)
                .where(TicketModel.payment_id == payment_id)
                .order_by(TicketModel.sequence_number)
            )
            return [ticket_model_to_entity(model) for model in result.scalars().all()]
