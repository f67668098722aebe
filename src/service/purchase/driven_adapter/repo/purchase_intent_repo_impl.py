from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import or_, select, update

from src.platform.database.repo_session import SessionFactory, SessionScopedRepo
from src.platform.logging.loguru_io import Logger
from src.service.purchase.app.interface.i_purchase_intent_repo import IPurchaseIntentRepo
from src.service.purchase.domain.entity.purchase_intent_entity import (
    PurchaseIntent,
    PurchaseIntentStatus,
)
from src.service.shared_kernel.driven_adapter.model import PurchaseIntentModel


class PurchaseIntentRepoImpl(SessionScopedRepo, IPurchaseIntentRepo):
    def __init__(self, session_factory: Optional[SessionFactory] = None) -> None:
        super().__init__(session_factory)

    @staticmethod
    def _model_to_entity(model: PurchaseIntentModel) -> PurchaseIntent:
        return PurchaseIntent(
            id=model.id,
            user_id=model.user_id,
            event_id=model.event_id,
            reservation_id=model.reservation_id,
            quantity=model.quantity,
            amount=model.amount,
            currency=model.currency,
            expires_at=model.expires_at,
            status=PurchaseIntentStatus(model.status),
            external_order_id=model.external_order_id,
            external_transaction_id=model.external_transaction_id,
            metadata=dict(model.intent_metadata or {}),
            failure_reason=model.failure_reason,
            created_at=model.created_at,
            confirmed_at=model.confirmed_at,
        )

    @Logger.io
    async def create(self, *, intent: PurchaseIntent) -> PurchaseIntent:
        async with self._write_session() as session:
            model = PurchaseIntentModel(
                id=intent.id,
                user_id=intent.user_id,
                event_id=intent.event_id,
                reservation_id=intent.reservation_id,
                quantity=intent.quantity,
                amount=intent.amount,
                currency=intent.currency,
                status=intent.status.value,
                external_order_id=intent.external_order_id,
                intent_metadata=intent.metadata,
                expires_at=intent.expires_at,
                created_at=intent.created_at,
            )
            session.add(model)
            await session.flush()
            return self._model_to_entity(model)

    @Logger.io
    async def get_by_id(self, *, purchase_id: UUID) -> Optional[PurchaseIntent]:
        async with self._get_session() as session:
            model = (
                await session.execute(
                    select(PurchaseIntentModel)
                    .where(PurchaseIntentModel.id == purchase_id)
                    .execution_options(populate_existing=True)
                )
            ).scalar_one_or_none()
            return self._model_to_entity(model) if model else None

    @Logger.io
    async def find_by_external_handle(self, *, handle: str) -> Optional[PurchaseIntent]:
        async with self._get_session() as session:
            models = (
                await session.execute(
                    select(PurchaseIntentModel)
                    .where(
                        or_(
                            PurchaseIntentModel.external_order_id == handle,
                            PurchaseIntentModel.external_transaction_id == handle,
                        )
                    )
                    .execution_options(populate_existing=True)
                )
            ).scalars().all()
            if not models:
                return None
            # Order handle match wins over a transaction handle match
            models = sorted(models, key=lambda m: m.external_order_id != handle)
            return self._model_to_entity(models[0])

    @Logger.io
    async def attach_external_order(self, *, purchase_id: UUID, external_order_id: str) -> None:
        async with self._write_session() as session:
            await session.execute(
                update(PurchaseIntentModel)
                .where(PurchaseIntentModel.id == purchase_id)
                .values(external_order_id=external_order_id)
                .execution_options(synchronize_session=False)
            )

    @Logger.io
    async def confirm(
        self, *, purchase_id: UUID, transaction_id: Optional[str], confirmed_at: datetime
    ) -> bool:
        async with self._write_session() as session:
            result = await session.execute(
                update(PurchaseIntentModel)
                .where(
                    PurchaseIntentModel.id == purchase_id,
                    PurchaseIntentModel.status == PurchaseIntentStatus.PENDING.value,
                )
                .values(
                    status=PurchaseIntentStatus.CONFIRMED.value,
                    external_transaction_id=transaction_id,
                    confirmed_at=confirmed_at,
                )
                .returning(PurchaseIntentModel.id)
                .execution_options(synchronize_session=False)
            )
            return result.scalar_one_or_none() is not None

    @Logger.io
    async def mark_failed(self, *, purchase_id: UUID, reason: str) -> bool:
        async with self._write_session() as session:
            result = await session.execute(
                update(PurchaseIntentModel)
                .where(
                    PurchaseIntentModel.id == purchase_id,
                    PurchaseIntentModel.status == PurchaseIntentStatus.PENDING.value,
                )
                .values(status=PurchaseIntentStatus.FAILED.value, failure_reason=reason)
                .returning(PurchaseIntentModel.id)
                .execution_options(synchronize_session=False)
            )
            return result.scalar_one_or_none() is not None

    @Logger.io
    async def list_expired_pending(self, *, now: datetime, limit: int) -> list[UUID]:
        async with self._get_session() as session:
            result = await session.execute(
                select(PurchaseIntentModel.id)
                .where(
                    PurchaseIntentModel.status == PurchaseIntentStatus.PENDING.value,
                    PurchaseIntentModel.expires_at <= now,
                )
                .order_by(PurchaseIntentModel.expires_at)
                .limit(limit)
            )
            return list(result.scalars().all())
