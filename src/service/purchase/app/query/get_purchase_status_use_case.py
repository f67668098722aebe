from typing import Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import ForbiddenError
from src.platform.logging.loguru_io import Logger
from src.service.purchase.app.dto.purchase_dto import PurchaseStatusView
from src.service.purchase.app.interface.i_purchase_intent_repo import IPurchaseIntentRepo
from src.service.purchase.app.interface.i_ticket_issuance_repo import ITicketIssuanceRepo
from src.service.purchase.domain.entity.purchase_intent_entity import PurchaseIntentStatus
from src.service.purchase.domain.purchase_errors import PurchaseNotFoundError


class GetPurchaseStatusUseCase:
    def __init__(
        self,
        *,
        purchase_intent_repo: IPurchaseIntentRepo,
        ticket_issuance_repo: ITicketIssuanceRepo,
    ) -> None:
        self.purchase_intent_repo = purchase_intent_repo
        self.ticket_issuance_repo = ticket_issuance_repo

    @classmethod
    @inject
    def depends(
        cls,
        purchase_intent_repo: IPurchaseIntentRepo = Depends(
            Provide[Container.purchase_intent_repo]
        ),
        ticket_issuance_repo: ITicketIssuanceRepo = Depends(
            Provide[Container.ticket_issuance_repo]
        ),
    ) -> Self:
        return cls(
            purchase_intent_repo=purchase_intent_repo,
            ticket_issuance_repo=ticket_issuance_repo,
        )

    @Logger.io
    async def execute(self, *, purchase_id: UUID, user_id: int) -> PurchaseStatusView:
        intent = await self.purchase_intent_repo.get_by_id(purchase_id=purchase_id)
        if intent is None:
            raise PurchaseNotFoundError()
        if intent.user_id != user_id:
            raise ForbiddenError('Not the owner of this purchase')

        tickets = []
        if intent.status == PurchaseIntentStatus.CONFIRMED:
            tickets = await self.ticket_issuance_repo.list_by_payment(payment_id=intent.id)
        return PurchaseStatusView(intent=intent, tickets=tickets)
