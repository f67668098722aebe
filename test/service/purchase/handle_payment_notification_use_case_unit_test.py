"""
Unit tests for HandlePaymentNotificationUseCase

Test Focus:
1. Exactly-once issuance: replay on confirmed, refuse on failed, replay when a
   concurrent delivery wins the conditional confirm
2. Fail closed on unknown intents and amount mismatches
3. Post-commit side effects (audit, registry mirroring) never fail the webhook
4. Capture failures release the reservation
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import attrs
import pytest
from uuid_utils.compat import uuid7

from src.service.purchase.app.command.handle_payment_notification_use_case import (
    HandlePaymentNotificationUseCase,
)
from src.service.purchase.app.dto.purchase_dto import NotificationOutcome
from src.service.purchase.domain.entity.purchase_intent_entity import (
    PurchaseIntent,
    PurchaseIntentStatus,
)
from src.service.purchase.domain.purchase_errors import (
    AlreadyProcessedError,
    AmountMismatchError,
    IntentNotFoundError,
)
from src.service.purchase.domain.value_object.payment_notification import PaymentNotification
from src.service.shared_kernel.domain.value_object.registry_status import TicketRegistration


def _intent(
    *, status: PurchaseIntentStatus = PurchaseIntentStatus.PENDING, quantity: int = 2
) -> PurchaseIntent:
    return PurchaseIntent(
        id=uuid7(),
        user_id=7,
        event_id=3,
        reservation_id=uuid7(),
        quantity=quantity,
        amount=Decimal('50.00') * quantity,
        currency='USD',
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=15),
        status=status,
        external_order_id='ORDER-1',
        metadata={'bound_names': ['Alice Chen', 'Bob Lin'][:quantity]},
    )


def _completed(*, amount: str | None = '100.00', order_id: str = 'ORDER-1') -> PaymentNotification:
    resource: dict = {
        'id': 'CAPTURE-1',
        'supplementary_data': {'related_ids': {'order_id': order_id}},
    }
    if amount is not None:
        resource['amount'] = {'value': amount, 'currency_code': 'USD'}
    return PaymentNotification.decode(
        {'event_type': 'PAYMENT.CAPTURE.COMPLETED', 'resource': resource}
    )


def _denied() -> PaymentNotification:
    return PaymentNotification.decode(
        {
            'event_type': 'PAYMENT.CAPTURE.DENIED',
            'resource': {
                'id': 'CAPTURE-1',
                'supplementary_data': {'related_ids': {'order_id': 'ORDER-1'}},
            },
        }
    )


class TestHandlePaymentNotificationUseCase:
    @pytest.fixture
    def purchase_audit_repo(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def registration_dispatcher(self) -> Mock:
        return Mock()

    @pytest.fixture
    def use_case(
        self, stub_uow_factory, purchase_audit_repo, registration_dispatcher
    ) -> HandlePaymentNotificationUseCase:
        return HandlePaymentNotificationUseCase(
            uow_factory=stub_uow_factory,
            purchase_audit_repo=purchase_audit_repo,
            registration_dispatcher=registration_dispatcher,
        )

    # ==================== Issuance ====================

    @pytest.mark.unit
    async def test_first_delivery_confirms_and_issues_batch(
        self, use_case, stub_uow, purchase_audit_repo, registration_dispatcher
    ) -> None:
        intent = _intent()
        stub_uow.purchase_intent_repo.find_by_external_handle.return_value = intent
        stub_uow.purchase_intent_repo.confirm.return_value = True

        result = await use_case.execute(notification=_completed())

        assert result.outcome == NotificationOutcome.PROCESSED
        assert result.purchase_id == intent.id
        stub_uow.purchase_intent_repo.confirm.assert_awaited_once()
        assert stub_uow.purchase_intent_repo.confirm.await_args.kwargs['transaction_id'] == (
            'CAPTURE-1'
        )
        stub_uow.inventory_ledger.consume.assert_awaited_once_with(
            reservation_id=intent.reservation_id
        )
        tickets = stub_uow.ticket_issuance_repo.insert_batch.await_args.kwargs['tickets']
        assert [t.bound_name for t in tickets] == ['Alice Chen', 'Bob Lin']
        assert result.ticket_ids == [t.id for t in tickets]
        stub_uow.commit.assert_awaited_once()

        audited = purchase_audit_repo.record.await_args.kwargs['intent']
        assert audited.status == PurchaseIntentStatus.CONFIRMED
        registration_dispatcher.dispatch.assert_called_once_with(
            tickets=[
                TicketRegistration(
                    ticket_id=t.id, token_id=t.registry_token_id, bound_name=t.bound_name
                )
                for t in tickets
            ]
        )

    @pytest.mark.unit
    async def test_confirmed_intent_replays_existing_tickets(
        self, use_case, stub_uow, registration_dispatcher
    ) -> None:
        intent = _intent(status=PurchaseIntentStatus.CONFIRMED)
        existing = [Mock(id=uuid7()), Mock(id=uuid7())]
        stub_uow.purchase_intent_repo.find_by_external_handle.return_value = intent
        stub_uow.ticket_issuance_repo.list_by_payment.return_value = existing

        result = await use_case.execute(notification=_completed())

        assert result.outcome == NotificationOutcome.REPLAYED
        assert result.ticket_ids == [t.id for t in existing]
        stub_uow.purchase_intent_repo.confirm.assert_not_called()
        stub_uow.ticket_issuance_repo.insert_batch.assert_not_called()
        registration_dispatcher.dispatch.assert_not_called()

    @pytest.mark.unit
    async def test_lost_confirm_race_replays_winner_tickets(self, use_case, stub_uow) -> None:
        intent = _intent()
        existing = [Mock(id=uuid7()), Mock(id=uuid7())]
        stub_uow.purchase_intent_repo.find_by_external_handle.return_value = intent
        stub_uow.purchase_intent_repo.confirm.return_value = False
        stub_uow.ticket_issuance_repo.list_by_payment.return_value = existing

        result = await use_case.execute(notification=_completed())

        assert result.outcome == NotificationOutcome.REPLAYED
        assert result.ticket_ids == [t.id for t in existing]
        stub_uow.inventory_ledger.consume.assert_not_called()
        stub_uow.ticket_issuance_repo.insert_batch.assert_not_called()
        stub_uow.commit.assert_not_called()

    @pytest.mark.unit
    async def test_failed_intent_is_refused(self, use_case, stub_uow) -> None:
        stub_uow.purchase_intent_repo.find_by_external_handle.return_value = _intent(
            status=PurchaseIntentStatus.FAILED
        )

        with pytest.raises(AlreadyProcessedError):
            await use_case.execute(notification=_completed())

        stub_uow.purchase_intent_repo.confirm.assert_not_called()

    # ==================== Fail closed ====================

    @pytest.mark.unit
    @pytest.mark.parametrize('amount', ['1.00', '100.02', None])
    async def test_amount_mismatch_leaves_intent_pending(
        self, use_case, stub_uow, amount
    ) -> None:
        stub_uow.purchase_intent_repo.find_by_external_handle.return_value = _intent()

        with pytest.raises(AmountMismatchError):
            await use_case.execute(notification=_completed(amount=amount))

        stub_uow.purchase_intent_repo.confirm.assert_not_called()
        stub_uow.ticket_issuance_repo.insert_batch.assert_not_called()

    @pytest.mark.unit
    async def test_amount_within_epsilon_is_accepted(self, use_case, stub_uow) -> None:
        stub_uow.purchase_intent_repo.find_by_external_handle.return_value = _intent()
        stub_uow.purchase_intent_repo.confirm.return_value = True

        result = await use_case.execute(notification=_completed(amount='99.99'))

        assert result.outcome == NotificationOutcome.PROCESSED

    @pytest.mark.unit
    async def test_unknown_handle_is_not_found(self, use_case, stub_uow) -> None:
        stub_uow.purchase_intent_repo.find_by_external_handle.return_value = None

        with pytest.raises(IntentNotFoundError):
            await use_case.execute(notification=_completed(order_id='ORDER-UNKNOWN'))

    @pytest.mark.unit
    async def test_payload_without_handles_is_not_found(self, use_case, stub_uow) -> None:
        notification = PaymentNotification.decode(
            {'event_type': 'PAYMENT.CAPTURE.COMPLETED', 'resource': {'amount': {'value': '1'}}}
        )

        with pytest.raises(IntentNotFoundError):
            await use_case.execute(notification=notification)

        stub_uow.purchase_intent_repo.find_by_external_handle.assert_not_called()

    @pytest.mark.unit
    async def test_correlation_id_resolves_by_purchase_id(self, use_case, stub_uow) -> None:
        intent = _intent()
        stub_uow.purchase_intent_repo.get_by_id.return_value = intent
        stub_uow.purchase_intent_repo.confirm.return_value = True
        notification = PaymentNotification.decode(
            {
                'event_type': 'PAYMENT.CAPTURE.COMPLETED',
                'resource': {
                    'amount': {'value': '100.00'},
                    'purchase_units': [{'reference_id': str(intent.id)}],
                },
            }
        )

        result = await use_case.execute(notification=notification)

        assert result.purchase_id == intent.id
        stub_uow.purchase_intent_repo.get_by_id.assert_awaited_once_with(purchase_id=intent.id)

    # ==================== Post-commit side effects ====================

    @pytest.mark.unit
    async def test_audit_and_dispatch_failures_do_not_fail_webhook(
        self, use_case, stub_uow, purchase_audit_repo, registration_dispatcher
    ) -> None:
        stub_uow.purchase_intent_repo.find_by_external_handle.return_value = _intent()
        stub_uow.purchase_intent_repo.confirm.return_value = True
        purchase_audit_repo.record.side_effect = RuntimeError('audit table locked')
        registration_dispatcher.dispatch.side_effect = RuntimeError('no task group')

        result = await use_case.execute(notification=_completed())

        assert result.outcome == NotificationOutcome.PROCESSED
        stub_uow.commit.assert_awaited_once()

    # ==================== Other event types ====================

    @pytest.mark.unit
    async def test_unrelated_event_is_ignored(self, use_case, stub_uow) -> None:
        result = await use_case.execute(
            notification=PaymentNotification.decode({'event_type': 'CHECKOUT.ORDER.APPROVED'})
        )

        assert result.outcome == NotificationOutcome.IGNORED
        stub_uow.purchase_intent_repo.find_by_external_handle.assert_not_called()

    @pytest.mark.unit
    async def test_capture_denied_fails_pending_intent_and_releases(
        self, use_case, stub_uow
    ) -> None:
        intent = _intent()
        stub_uow.purchase_intent_repo.find_by_external_handle.return_value = intent
        stub_uow.purchase_intent_repo.mark_failed.return_value = True

        result = await use_case.execute(notification=_denied())

        assert result.outcome == NotificationOutcome.FAILED
        assert result.purchase_id == intent.id
        stub_uow.purchase_intent_repo.mark_failed.assert_awaited_once_with(
            purchase_id=intent.id, reason='payment PAYMENT.CAPTURE.DENIED'
        )
        stub_uow.inventory_ledger.release.assert_awaited_once_with(
            reservation_id=intent.reservation_id
        )

    @pytest.mark.unit
    async def test_capture_denied_after_confirmation_is_acknowledged(
        self, use_case, stub_uow
    ) -> None:
        intent = _intent(status=PurchaseIntentStatus.CONFIRMED)
        stub_uow.purchase_intent_repo.find_by_external_handle.return_value = intent

        result = await use_case.execute(notification=_denied())

        assert result.outcome == NotificationOutcome.IGNORED
        assert result.purchase_id == intent.id
        stub_uow.purchase_intent_repo.mark_failed.assert_not_called()
        stub_uow.inventory_ledger.release.assert_not_called()

    @pytest.mark.unit
    async def test_capture_denied_on_failed_intent_is_a_no_op(self, use_case, stub_uow) -> None:
        intent = attrs.evolve(_intent(), status=PurchaseIntentStatus.FAILED)
        stub_uow.purchase_intent_repo.find_by_external_handle.return_value = intent

        result = await use_case.execute(notification=_denied())

        assert result.outcome == NotificationOutcome.FAILED
        stub_uow.purchase_intent_repo.mark_failed.assert_not_called()
