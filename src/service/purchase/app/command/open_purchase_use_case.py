from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace
from uuid_utils.compat import uuid7

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.database.unit_of_work import UnitOfWorkFactory
from src.platform.logging.loguru_io import Logger
from src.service.purchase.app.command.expire_purchase_use_case import release_pending_intent
from src.service.purchase.app.dto.purchase_dto import OpenPurchaseResult
from src.service.purchase.app.interface.i_payment_processor import IPaymentProcessor
from src.service.purchase.app.interface.i_user_profile_query_repo import IUserProfileQueryRepo
from src.service.purchase.domain.entity.purchase_intent_entity import PurchaseIntent
from src.service.purchase.domain.purchase_errors import (
    IdentityNotVerifiedError,
    QuantityOutOfRangeError,
)
from src.service.purchase.domain.value_object.bound_names import BoundNames
from src.service.purchase.domain.value_object.checkout_session import CheckoutSession


class OpenPurchaseUseCase:
    """
    Open a purchase: hold inventory, persist a pending intent, start checkout

    Flow:
    1. Validate quantity and bound names (no side effect on failure)
    2. Require an approved identity verification
    3. Reserve + create intent in ONE transaction
    4. Open a checkout session with the payment processor
       - on failure: mark the intent failed and release the reservation, then re-raise

    Dependencies:
    - uow_factory: Transaction boundary for reservation + intent
    - user_profile_query_repo: Identity verification status
    - payment_processor: External checkout
    """

    def __init__(
        self,
        *,
        uow_factory: UnitOfWorkFactory,
        user_profile_query_repo: IUserProfileQueryRepo,
        payment_processor: IPaymentProcessor,
    ) -> None:
        self.uow_factory = uow_factory
        self.user_profile_query_repo = user_profile_query_repo
        self.payment_processor = payment_processor
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: UnitOfWorkFactory = Depends(Provide[Container.unit_of_work.provider]),
        user_profile_query_repo: IUserProfileQueryRepo = Depends(
            Provide[Container.user_profile_query_repo]
        ),
        payment_processor: IPaymentProcessor = Depends(Provide[Container.payment_processor]),
    ) -> Self:
        return cls(
            uow_factory=uow_factory,
            user_profile_query_repo=user_profile_query_repo,
            payment_processor=payment_processor,
        )

    @Logger.io
    async def execute(
        self,
        *,
        user_id: int,
        event_id: int,
        quantity: int,
        bound_names: list[str],
    ) -> OpenPurchaseResult:
        with self.tracer.start_as_current_span(
            'use_case.open_purchase',
            attributes={'event.id': event_id, 'purchase.quantity': quantity},
        ) as span:
            if not 1 <= quantity <= settings.MAX_PER_PURCHASE:
                raise QuantityOutOfRangeError(settings.MAX_PER_PURCHASE)
            names = BoundNames.create(
                names=bound_names,
                quantity=quantity,
                max_length=settings.MAX_BOUND_NAME_LENGTH,
            )

            profile = await self.user_profile_query_repo.get_by_id(user_id=user_id)
            if profile is None or not profile.is_verified:
                raise IdentityNotVerifiedError()

            async with self.uow_factory() as uow:
                reservation = await uow.inventory_ledger.reserve(
                    event_id=event_id, quantity=quantity
                )
                intent = PurchaseIntent.create(
                    id=uuid7(),
                    user_id=user_id,
                    reservation=reservation,
                    bound_names=names,
                    currency=settings.CURRENCY,
                )
                await uow.purchase_intent_repo.create(intent=intent)
                await uow.commit()
            span.set_attribute('purchase.id', str(intent.id))

            try:
                checkout = await self._open_checkout(intent=intent)
            except Exception as e:
                await self._compensate(intent=intent, reason=f'checkout failed: {e}')
                raise

            return OpenPurchaseResult(
                purchase_id=intent.id,
                checkout_url=checkout.approval_url,
                mobile_deep_links=checkout.mobile_deep_links,
                expires_at=intent.expires_at,
                amount=intent.amount,
                currency=intent.currency,
            )

    async def _open_checkout(self, *, intent: PurchaseIntent) -> CheckoutSession:
        checkout = await self.payment_processor.open_checkout(
            purchase_id=intent.id,
            amount=intent.formatted_amount,
            currency=intent.currency,
            description=f'{intent.quantity} ticket(s) for event {intent.event_id}',
            return_url=f'{settings.APP_SCHEME}://payment-success?payment_id={intent.id}',
            cancel_url=f'{settings.APP_SCHEME}://payment-cancel?payment_id={intent.id}',
        )
        async with self.uow_factory() as uow:
            await uow.purchase_intent_repo.attach_external_order(
                purchase_id=intent.id, external_order_id=checkout.order_id
            )
            await uow.commit()
        return checkout

    async def _compensate(self, *, intent: PurchaseIntent, reason: str) -> None:
        try:
            await release_pending_intent(
                uow_factory=self.uow_factory,
                purchase_id=intent.id,
                reservation_id=intent.reservation_id,
                reason=reason,
                release_reason='processor_failure',
            )
        except Exception:
            # The expiry sweep reclaims the hold once the intent's deadline passes
            Logger.base.exception(
                f'❌ [Purchase] Compensation failed for {intent.id}, left for expiry sweep'
            )

