from datetime import datetime, timezone
from typing import Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.gate.app.dto.validation_dto import RevocationResult
from src.service.gate.app.interface.i_gate_ticket_repo import IGateTicketRepo
from src.service.gate.app.interface.i_revocation_dispatcher import IRevocationDispatcher
from src.service.gate.domain.gate_errors import (
    TicketAlreadyRevokedError,
    TicketAlreadyUsedError,
    TicketNotFoundError,
)
from src.service.shared_kernel.domain.enum.ticket_status import TicketStatus


class RevokeTicketUseCase:
    """
    Admin revocation: only a valid ticket can be revoked. The database transition
    is authoritative and committed first; the registry is told afterwards in the
    background on a best-effort basis.
    """

    def __init__(
        self,
        *,
        gate_ticket_repo: IGateTicketRepo,
        revocation_dispatcher: IRevocationDispatcher,
    ) -> None:
        self.gate_ticket_repo = gate_ticket_repo
        self.revocation_dispatcher = revocation_dispatcher

    @classmethod
    @inject
    def depends(
        cls,
        gate_ticket_repo: IGateTicketRepo = Depends(Provide[Container.gate_ticket_repo]),
        revocation_dispatcher: IRevocationDispatcher = Depends(
            Provide[Container.revocation_dispatcher]
        ),
    ) -> Self:
        return cls(gate_ticket_repo=gate_ticket_repo, revocation_dispatcher=revocation_dispatcher)

    @Logger.io
    async def execute(self, *, ticket_id: UUID, admin_id: int, reason: str) -> RevocationResult:
        view = await self.gate_ticket_repo.get_for_validation(ticket_id=ticket_id)
        if view is None:
            raise TicketNotFoundError()
        self._ensure_revocable(view.ticket.status)

        revoked_at = datetime.now(timezone.utc)
        if not await self.gate_ticket_repo.revoke(
            ticket_id=ticket_id, admin_id=admin_id, reason=reason, revoked_at=revoked_at
        ):
            # Lost the conditional update to a concurrent scan or revocation
            current = await self.gate_ticket_repo.get_for_validation(ticket_id=ticket_id)
            self._ensure_revocable(current.ticket.status if current else TicketStatus.REVOKED)
            raise TicketAlreadyRevokedError()
        Logger.base.info(f'🚫 [Gate] Ticket {ticket_id} revoked by admin {admin_id}: {reason}')

        scheduled = False
        if view.ticket.registry_token_id:
            scheduled = self.revocation_dispatcher.dispatch(
                ticket_id=ticket_id, token_id=view.ticket.registry_token_id, reason=reason
            )

        return RevocationResult(
            ticket_id=ticket_id,
            revoked_at=revoked_at,
            registry_revocation_scheduled=scheduled,
        )

    @staticmethod
    def _ensure_revocable(status: TicketStatus) -> None:
        if status == TicketStatus.REVOKED:
            raise TicketAlreadyRevokedError()
        if status == TicketStatus.USED:
            raise TicketAlreadyUsedError()
