from typing import Sequence

from src.platform.logging.loguru_io import Logger
from src.service.registry.app.interface.i_registration_status_repo import (
    IRegistrationStatusRepo,
)
from src.service.shared_kernel.app.interface.i_registry_gateway import IRegistryGateway
from src.service.shared_kernel.domain.value_object.registry_status import (
    RegistrationFailureCategory,
    RegistrationOutcome,
    TicketRegistration,
)


class RegisterTicketsUseCase:
    """
    Mirror one batch of tickets onto the revocation registry

    Success → `minted` with the transaction reference
    Failure → `failed` with reason and category, attempts bumped for the retry worker

    The ticket's own `status` is never touched: a registry failure does not
    invalidate an issued ticket.
    """

    def __init__(
        self,
        *,
        registry_gateway: IRegistryGateway,
        registration_status_repo: IRegistrationStatusRepo,
    ) -> None:
        self.registry_gateway = registry_gateway
        self.registration_status_repo = registration_status_repo

    @Logger.io
    async def execute(self, *, tickets: Sequence[TicketRegistration]) -> RegistrationOutcome:
        ticket_ids = [ticket.ticket_id for ticket in tickets]
        outcome = await self.registry_gateway.register(tickets=tickets)

        if outcome.success and outcome.tx_ref:
            await self.registration_status_repo.mark_minted(
                ticket_ids=ticket_ids, tx_ref=outcome.tx_ref
            )
        else:
            await self.registration_status_repo.mark_failed(
                ticket_ids=ticket_ids,
                reason=outcome.reason or 'Registration failed',
                category=outcome.category or RegistrationFailureCategory.REJECTED,
            )
        return outcome
