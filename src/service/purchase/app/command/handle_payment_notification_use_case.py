from datetime import datetime, timezone
from typing import Self
from uuid import UUID

import attrs
from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork, UnitOfWorkFactory
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.ticketing_metrics import metrics
from src.service.purchase.app.command.expire_purchase_use_case import release_pending_intent
from src.service.purchase.app.dto.purchase_dto import (
    IssuanceResult,
    NotificationOutcome,
    NotificationResult,
)
from src.service.purchase.app.interface.i_purchase_audit_repo import IPurchaseAuditRepo
from src.service.purchase.app.interface.i_registration_dispatcher import IRegistrationDispatcher
from src.service.purchase.domain.entity.purchase_intent_entity import (
    PurchaseIntent,
    PurchaseIntentStatus,
)
from src.service.purchase.domain.purchase_errors import (
    AlreadyProcessedError,
    AmountMismatchError,
    IntentNotFoundError,
)
from src.service.purchase.domain.ticket_issuer import issue_ticket_batch
from src.service.purchase.domain.value_object.payment_notification import (
    HandleCandidate,
    HandleSource,
    NotificationKind,
    PaymentNotification,
)
from src.service.shared_kernel.domain.entity.ticket_entity import Ticket
from src.service.shared_kernel.domain.value_object.registry_status import TicketRegistration


class HandlePaymentNotificationUseCase:
    """
    Webhook idempotency guard + ticket issuance

    Flow (capture completed):
    1. Resolve the intent from the notification's handle candidates, in order
    2. Already confirmed → replay the existing tickets (no new rows)
       Already failed → refuse
    3. Captured amount must match the intent amount within the epsilon
    4. ONE transaction: pending → confirmed (conditional), consume reservation, insert tickets
       - conditional update lost to a concurrent delivery → replay
    5. After commit: purchase audit, registry mirroring (fire-and-forget)

    Flow (capture failed): pending → failed and release the reservation;
    failed or confirmed intents are acknowledged without changes

    Dependencies:
    - uow_factory: Transaction boundary for confirm + issuance
    - purchase_audit_repo: Purchase-pattern telemetry (best effort)
    - registration_dispatcher: Schedules registry mirroring off the request path
    """

    def __init__(
        self,
        *,
        uow_factory: UnitOfWorkFactory,
        purchase_audit_repo: IPurchaseAuditRepo,
        registration_dispatcher: IRegistrationDispatcher,
    ) -> None:
        self.uow_factory = uow_factory
        self.purchase_audit_repo = purchase_audit_repo
        self.registration_dispatcher = registration_dispatcher
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: UnitOfWorkFactory = Depends(Provide[Container.unit_of_work.provider]),
        purchase_audit_repo: IPurchaseAuditRepo = Depends(Provide[Container.purchase_audit_repo]),
        registration_dispatcher: IRegistrationDispatcher = Depends(
            Provide[Container.registration_dispatcher]
        ),
    ) -> Self:
        return cls(
            uow_factory=uow_factory,
            purchase_audit_repo=purchase_audit_repo,
            registration_dispatcher=registration_dispatcher,
        )

    @Logger.io
    async def execute(self, *, notification: PaymentNotification) -> NotificationResult:
        with self.tracer.start_as_current_span(
            'use_case.handle_payment_notification',
            attributes={'notification.event_type': notification.event_type},
        ):
            if notification.kind == NotificationKind.IGNORED:
                metrics.record_webhook(outcome=NotificationOutcome.IGNORED)
                return NotificationResult(outcome=NotificationOutcome.IGNORED)

            if notification.kind == NotificationKind.CAPTURE_FAILED:
                result = await self._handle_capture_failed(notification=notification)
            else:
                issuance = await self.on_payment_completed(notification=notification)
                result = NotificationResult(
                    outcome=(
                        NotificationOutcome.REPLAYED
                        if issuance.replayed
                        else NotificationOutcome.PROCESSED
                    ),
                    purchase_id=issuance.purchase_id,
                    ticket_ids=[ticket.id for ticket in issuance.tickets],
                )

            metrics.record_webhook(outcome=result.outcome)
            return result

    @Logger.io
    async def on_payment_completed(self, *, notification: PaymentNotification) -> IssuanceResult:
        now = datetime.now(timezone.utc)

        async with self.uow_factory() as uow:
            intent = await self._resolve_intent(uow=uow, candidates=notification.candidates)

            if intent.status == PurchaseIntentStatus.CONFIRMED:
                return await self._replay(uow=uow, purchase_id=intent.id)
            if intent.status == PurchaseIntentStatus.FAILED:
                raise AlreadyProcessedError(intent.status)

            captured = notification.captured_amount
            if captured is None or not intent.amount_matches(
                captured, epsilon=settings.AMOUNT_EPSILON
            ):
                Logger.base.warning(
                    f'💸 [Webhook] Amount mismatch for {intent.id}: '
                    f'expected {intent.formatted_amount}, captured {captured}'
                )
                raise AmountMismatchError(
                    expected=intent.formatted_amount,
                    captured=str(captured) if captured is not None else 'nothing',
                )

            confirmed = await uow.purchase_intent_repo.confirm(
                purchase_id=intent.id,
                transaction_id=notification.transaction_id,
                confirmed_at=now,
            )
            if not confirmed:
                # A concurrent delivery confirmed it first, hand back its tickets
                await uow.rollback()
                return await self._replay_fresh(purchase_id=intent.id)

            intent = attrs.evolve(
                intent,
                status=PurchaseIntentStatus.CONFIRMED,
                external_transaction_id=notification.transaction_id,
                confirmed_at=now,
            )
            tickets = issue_ticket_batch(intent=intent, issued_at=now)
            await uow.inventory_ledger.consume(reservation_id=intent.reservation_id)
            await uow.ticket_issuance_repo.insert_batch(tickets=tickets)
            await uow.commit()

        Logger.base.info(f'🎫 [Webhook] Issued {len(tickets)} tickets for purchase {intent.id}')
        metrics.record_issuance(quantity=len(tickets))
        await self._record_audit(intent=intent)
        self._dispatch_registration(tickets=tickets)
        return IssuanceResult(purchase_id=intent.id, tickets=tickets)

    async def _handle_capture_failed(
        self, *, notification: PaymentNotification
    ) -> NotificationResult:
        async with self.uow_factory() as uow:
            intent = await self._resolve_intent(uow=uow, candidates=notification.candidates)

        if intent.status == PurchaseIntentStatus.CONFIRMED:
            Logger.base.warning(
                f'⚠️ [Webhook] {notification.event_type} for confirmed purchase {intent.id}, ignored'
            )
            return NotificationResult(outcome=NotificationOutcome.IGNORED, purchase_id=intent.id)
        if intent.status == PurchaseIntentStatus.PENDING:
            await release_pending_intent(
                uow_factory=self.uow_factory,
                purchase_id=intent.id,
                reservation_id=intent.reservation_id,
                reason=f'payment {notification.event_type}',
                release_reason='payment_failed',
            )
        return NotificationResult(outcome=NotificationOutcome.FAILED, purchase_id=intent.id)

    @staticmethod
    async def _resolve_intent(
        *, uow: AbstractUnitOfWork, candidates: tuple[HandleCandidate, ...]
    ) -> PurchaseIntent:
        for candidate in candidates:
            intent = None
            if candidate.source == HandleSource.CORRELATION:
                try:
                    purchase_id = UUID(candidate.value)
                except ValueError:
                    purchase_id = None
                if purchase_id is not None:
                    intent = await uow.purchase_intent_repo.get_by_id(purchase_id=purchase_id)
            if intent is None:
                intent = await uow.purchase_intent_repo.find_by_external_handle(
                    handle=candidate.value
                )
            if intent is not None:
                return intent

        metrics.record_webhook(outcome='intent_not_found')
        raise IntentNotFoundError()

    @staticmethod
    async def _replay(*, uow: AbstractUnitOfWork, purchase_id: UUID) -> IssuanceResult:
        tickets = await uow.ticket_issuance_repo.list_by_payment(payment_id=purchase_id)
        Logger.base.info(f'🔁 [Webhook] Replay for {purchase_id}, {len(tickets)} existing tickets')
        return IssuanceResult(purchase_id=purchase_id, tickets=tickets, replayed=True)

    async def _replay_fresh(self, *, purchase_id: UUID) -> IssuanceResult:
        async with self.uow_factory() as uow:
            return await self._replay(uow=uow, purchase_id=purchase_id)

    async def _record_audit(self, *, intent: PurchaseIntent) -> None:
        try:
            await self.purchase_audit_repo.record(intent=intent)
        except Exception as e:
            Logger.base.warning(f'⚠️ [Webhook] Purchase audit not recorded for {intent.id}: {e}')

    def _dispatch_registration(self, *, tickets: list[Ticket]) -> None:
        try:
            self.registration_dispatcher.dispatch(
                tickets=[
                    TicketRegistration(
                        ticket_id=ticket.id,
                        token_id=ticket.registry_token_id,
                        bound_name=ticket.bound_name,
                    )
                    for ticket in tickets
                ]
            )
        except Exception as e:
            # Tickets stay `pending` and the retry worker picks them up
            Logger.base.warning(f'⚠️ [Webhook] Registry mirroring not scheduled: {e}')
