"""
Integration tests for the purchase pipeline on a real database

Test Focus:
1. The inventory ledger never oversells and restores a hold at most once
2. Webhook redelivery (sequential and concurrent) issues exactly one ticket batch
3. Amount mismatch, processor failure, expiry and capture denial leave
   capacity and intent state consistent
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, Mock
from uuid import UUID

import pytest
from sqlalchemy import func, select

from src.platform.exception.exceptions import ForbiddenError
from src.service.purchase.app.command.expire_purchase_use_case import ExpirePurchaseUseCase
from src.service.purchase.app.command.handle_payment_notification_use_case import (
    HandlePaymentNotificationUseCase,
)
from src.service.purchase.app.command.open_purchase_use_case import OpenPurchaseUseCase
from src.service.purchase.app.dto.purchase_dto import NotificationOutcome
from src.service.purchase.app.query.get_purchase_status_use_case import (
    GetPurchaseStatusUseCase,
)
from src.service.purchase.domain.entity.purchase_intent_entity import PurchaseIntentStatus
from src.service.purchase.domain.purchase_errors import (
    AlreadyProcessedError,
    AmountMismatchError,
    EventInPastError,
    EventNotFoundError,
    InsufficientCapacityError,
    PaymentProcessorUnavailableError,
)
from src.service.purchase.domain.value_object.checkout_session import CheckoutSession
from src.service.purchase.domain.value_object.payment_notification import PaymentNotification
from src.service.purchase.domain.value_object.reservation_token import ReservationToken
from src.service.purchase.driven_adapter.repo.inventory_ledger_impl import InventoryLedgerImpl
from src.service.purchase.driven_adapter.repo.purchase_audit_repo_impl import (
    PurchaseAuditRepoImpl,
)
from src.service.purchase.driven_adapter.repo.purchase_intent_repo_impl import (
    PurchaseIntentRepoImpl,
)
from src.service.purchase.driven_adapter.repo.ticket_issuance_repo_impl import (
    TicketIssuanceRepoImpl,
)
from src.service.purchase.driven_adapter.repo.user_profile_query_repo_impl import (
    UserProfileQueryRepoImpl,
)
from src.service.shared_kernel.driven_adapter.model import (
    EventModel,
    InventoryReservationModel,
    PurchaseAuditModel,
    PurchaseIntentModel,
    TicketModel,
)


async def _available(database, event_id: int) -> int:
    async with database.session() as session:
        return (
            await session.execute(select(EventModel.available).where(EventModel.id == event_id))
        ).scalar_one()


async def _ticket_count(database, purchase_id: UUID) -> int:
    async with database.session() as session:
        return (
            await session.execute(
                select(func.count()).select_from(TicketModel).where(
                    TicketModel.payment_id == purchase_id
                )
            )
        ).scalar_one()


async def _intent_row(database, purchase_id: UUID) -> PurchaseIntentModel:
    async with database.session() as session:
        return (
            await session.execute(
                select(PurchaseIntentModel).where(PurchaseIntentModel.id == purchase_id)
            )
        ).scalar_one()


async def _reservation_status(database, reservation_id: UUID) -> str:
    async with database.session() as session:
        return (
            await session.execute(
                select(InventoryReservationModel.status).where(
                    InventoryReservationModel.id == reservation_id
                )
            )
        ).scalar_one()


def _capture(
    *, order_id: str, amount: str, event_type: str = 'PAYMENT.CAPTURE.COMPLETED'
) -> PaymentNotification:
    return PaymentNotification.decode(
        {
            'event_type': event_type,
            'resource': {
                'id': f'CAPTURE-{order_id}',
                'amount': {'value': amount, 'currency_code': 'USD'},
                'supplementary_data': {'related_ids': {'order_id': order_id}},
            },
        }
    )


@pytest.mark.integration
class TestInventoryLedger:
    @pytest.fixture
    def ledger(self, database) -> InventoryLedgerImpl:
        return InventoryLedgerImpl(session_factory=database.session)

    async def test_last_ticket_goes_to_exactly_one_buyer(
        self, ledger, database, seed_event
    ) -> None:
        event_id = await seed_event(total=1)

        results = await asyncio.gather(
            ledger.reserve(event_id=event_id, quantity=1),
            ledger.reserve(event_id=event_id, quantity=1),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ReservationToken) for r in results) == 1
        assert sum(isinstance(r, InsufficientCapacityError) for r in results) == 1
        assert await _available(database, event_id) == 0

    async def test_many_concurrent_buyers_never_oversell(
        self, ledger, database, seed_event
    ) -> None:
        event_id = await seed_event(total=5)

        results = await asyncio.gather(
            *(ledger.reserve(event_id=event_id, quantity=2) for _ in range(4)),
            return_exceptions=True,
        )

        tokens = [r for r in results if isinstance(r, ReservationToken)]
        assert len(tokens) == 2
        assert await _available(database, event_id) == 1

    async def test_insufficient_capacity_reports_what_is_left(
        self, ledger, seed_event
    ) -> None:
        event_id = await seed_event(total=10, available=3)

        with pytest.raises(InsufficientCapacityError) as exc_info:
            await ledger.reserve(event_id=event_id, quantity=4)

        assert exc_info.value.available == 3
        assert exc_info.value.requested == 4

    async def test_release_restores_capacity_once(self, ledger, database, seed_event) -> None:
        event_id = await seed_event(total=5)
        token = await ledger.reserve(event_id=event_id, quantity=2)
        assert await _available(database, event_id) == 3

        assert await ledger.release(reservation_id=token.reservation_id) is True
        assert await ledger.release(reservation_id=token.reservation_id) is False

        assert await _available(database, event_id) == 5
        assert await _reservation_status(database, token.reservation_id) == 'released'

    async def test_consumed_reservation_is_never_released(
        self, ledger, database, seed_event
    ) -> None:
        event_id = await seed_event(total=5)
        token = await ledger.reserve(event_id=event_id, quantity=1)

        assert await ledger.consume(reservation_id=token.reservation_id) is True
        assert await ledger.release(reservation_id=token.reservation_id) is False

        assert await _available(database, event_id) == 4

    async def test_reservation_carries_price_and_deadline(self, ledger, seed_event) -> None:
        event_id = await seed_event(total=5, price=Decimal('42.50'))

        token = await ledger.reserve(event_id=event_id, quantity=2)

        assert token.unit_price == Decimal('42.50')
        assert token.expires_at > datetime.now(timezone.utc) + timedelta(minutes=14)

    async def test_past_event_cannot_be_reserved(self, ledger, database, seed_event) -> None:
        event_id = await seed_event(total=5, starts_in=timedelta(days=-1))

        with pytest.raises(EventInPastError):
            await ledger.reserve(event_id=event_id, quantity=1)

        assert await _available(database, event_id) == 5

    async def test_unknown_event_is_not_found(self, ledger) -> None:
        with pytest.raises(EventNotFoundError):
            await ledger.reserve(event_id=999, quantity=1)


@pytest.mark.integration
class TestPurchasePipeline:
    @pytest.fixture
    def payment_processor(self) -> AsyncMock:
        processor = AsyncMock()
        processor.open_checkout.return_value = CheckoutSession(
            order_id='ORDER-1', approval_url='https://paypal.test/checkout?token=ORDER-1'
        )
        return processor

    @pytest.fixture
    def registration_dispatcher(self) -> Mock:
        return Mock()

    @pytest.fixture
    def open_purchase(self, uow_factory, database, payment_processor) -> OpenPurchaseUseCase:
        return OpenPurchaseUseCase(
            uow_factory=uow_factory,
            user_profile_query_repo=UserProfileQueryRepoImpl(session_factory=database.session),
            payment_processor=payment_processor,
        )

    @pytest.fixture
    def handle_notification(
        self, uow_factory, database, registration_dispatcher
    ) -> HandlePaymentNotificationUseCase:
        return HandlePaymentNotificationUseCase(
            uow_factory=uow_factory,
            purchase_audit_repo=PurchaseAuditRepoImpl(session_factory=database.session),
            registration_dispatcher=registration_dispatcher,
        )

    @pytest.fixture
    async def buyer_id(self, seed_user) -> int:
        return await seed_user()

    @pytest.fixture
    async def event_id(self, seed_event) -> int:
        return await seed_event(total=5, price=Decimal('50.00'))

    async def _open(self, open_purchase, *, buyer_id: int, event_id: int):
        return await open_purchase.execute(
            user_id=buyer_id,
            event_id=event_id,
            quantity=2,
            bound_names=['Alice Chen', 'Bob Lin'],
        )

    # ==================== Exactly-once issuance ====================

    async def test_sequential_redelivery_issues_one_batch(
        self, open_purchase, handle_notification, database, buyer_id, event_id
    ) -> None:
        opened = await self._open(open_purchase, buyer_id=buyer_id, event_id=event_id)

        first = await handle_notification.execute(
            notification=_capture(order_id='ORDER-1', amount='100.00')
        )
        second = await handle_notification.execute(
            notification=_capture(order_id='ORDER-1', amount='100.00')
        )

        assert first.outcome == NotificationOutcome.PROCESSED
        assert second.outcome == NotificationOutcome.REPLAYED
        assert second.ticket_ids == first.ticket_ids
        assert await _ticket_count(database, opened.purchase_id) == 2

        intent = await _intent_row(database, opened.purchase_id)
        assert intent.status == PurchaseIntentStatus.CONFIRMED.value
        assert intent.external_transaction_id == 'CAPTURE-ORDER-1'
        assert await _reservation_status(database, intent.reservation_id) == 'consumed'
        assert await _available(database, event_id) == 3

    async def test_concurrent_redelivery_issues_one_batch(
        self,
        open_purchase,
        handle_notification,
        registration_dispatcher,
        database,
        buyer_id,
        event_id,
    ) -> None:
        opened = await self._open(open_purchase, buyer_id=buyer_id, event_id=event_id)

        results = await asyncio.gather(
            *(
                handle_notification.execute(
                    notification=_capture(order_id='ORDER-1', amount='100.00')
                )
                for _ in range(5)
            )
        )

        outcomes = [r.outcome for r in results]
        assert outcomes.count(NotificationOutcome.PROCESSED) == 1
        assert outcomes.count(NotificationOutcome.REPLAYED) == 4
        assert len({tuple(r.ticket_ids) for r in results}) == 1
        assert await _ticket_count(database, opened.purchase_id) == 2
        assert await _available(database, event_id) == 3
        registration_dispatcher.dispatch.assert_called_once()

        async with database.session() as session:
            audits = (
                await session.execute(select(func.count()).select_from(PurchaseAuditModel))
            ).scalar_one()
        assert audits == 1

    async def test_issued_tickets_are_visible_to_owner_only(
        self, open_purchase, handle_notification, database, buyer_id, event_id
    ) -> None:
        opened = await self._open(open_purchase, buyer_id=buyer_id, event_id=event_id)
        await handle_notification.execute(
            notification=_capture(order_id='ORDER-1', amount='100.00')
        )
        status_query = GetPurchaseStatusUseCase(
            purchase_intent_repo=PurchaseIntentRepoImpl(session_factory=database.session),
            ticket_issuance_repo=TicketIssuanceRepoImpl(session_factory=database.session),
        )

        view = await status_query.execute(purchase_id=opened.purchase_id, user_id=buyer_id)

        assert view.intent.status == PurchaseIntentStatus.CONFIRMED
        assert [t.sequence_number for t in view.tickets] == [1, 2]
        assert [t.bound_name for t in view.tickets] == ['Alice Chen', 'Bob Lin']
        assert view.registration_counts == {'pending': 2, 'minted': 0, 'failed': 0}
        with pytest.raises(ForbiddenError):
            await status_query.execute(purchase_id=opened.purchase_id, user_id=buyer_id + 1)

    # ==================== Fail closed ====================

    async def test_amount_mismatch_issues_nothing(
        self, open_purchase, handle_notification, database, buyer_id, event_id
    ) -> None:
        opened = await self._open(open_purchase, buyer_id=buyer_id, event_id=event_id)

        with pytest.raises(AmountMismatchError):
            await handle_notification.execute(
                notification=_capture(order_id='ORDER-1', amount='1.00')
            )

        intent = await _intent_row(database, opened.purchase_id)
        assert intent.status == PurchaseIntentStatus.PENDING.value
        assert await _ticket_count(database, opened.purchase_id) == 0
        assert await _available(database, event_id) == 3

    # ==================== Compensation and release ====================

    async def test_processor_failure_restores_capacity(
        self, open_purchase, payment_processor, database, buyer_id, event_id
    ) -> None:
        payment_processor.open_checkout.side_effect = PaymentProcessorUnavailableError('down')

        with pytest.raises(PaymentProcessorUnavailableError):
            await self._open(open_purchase, buyer_id=buyer_id, event_id=event_id)

        async with database.session() as session:
            statuses = (await session.execute(select(PurchaseIntentModel.status))).scalars().all()
        assert statuses == [PurchaseIntentStatus.FAILED.value]
        assert await _available(database, event_id) == 5

    async def test_webhook_after_expiry_is_refused(
        self, open_purchase, handle_notification, uow_factory, database, buyer_id, event_id
    ) -> None:
        opened = await self._open(open_purchase, buyer_id=buyer_id, event_id=event_id)
        expire = ExpirePurchaseUseCase(uow_factory=uow_factory)

        assert await expire.expire(
            purchase_id=opened.purchase_id, now=opened.expires_at + timedelta(seconds=1)
        )
        assert await _available(database, event_id) == 5

        with pytest.raises(AlreadyProcessedError):
            await handle_notification.execute(
                notification=_capture(order_id='ORDER-1', amount='100.00')
            )
        assert await _ticket_count(database, opened.purchase_id) == 0

    async def test_expiry_after_confirmation_keeps_capacity_consumed(
        self, open_purchase, handle_notification, uow_factory, database, buyer_id, event_id
    ) -> None:
        opened = await self._open(open_purchase, buyer_id=buyer_id, event_id=event_id)
        await handle_notification.execute(
            notification=_capture(order_id='ORDER-1', amount='100.00')
        )

        expired = await ExpirePurchaseUseCase(uow_factory=uow_factory).expire(
            purchase_id=opened.purchase_id, now=opened.expires_at + timedelta(hours=1)
        )

        assert expired is False
        assert await _available(database, event_id) == 3

    async def test_capture_denied_releases_reservation(
        self, open_purchase, handle_notification, database, buyer_id, event_id
    ) -> None:
        opened = await self._open(open_purchase, buyer_id=buyer_id, event_id=event_id)

        result = await handle_notification.execute(
            notification=_capture(
                order_id='ORDER-1', amount='100.00', event_type='PAYMENT.CAPTURE.DENIED'
            )
        )

        assert result.outcome == NotificationOutcome.FAILED
        intent = await _intent_row(database, opened.purchase_id)
        assert intent.status == PurchaseIntentStatus.FAILED.value
        assert await _available(database, event_id) == 5
