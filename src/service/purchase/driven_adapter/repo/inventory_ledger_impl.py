"""
Inventory Ledger (SQLAlchemy)

Capacity is only ever changed by single conditional UPDATE statements:

    reserve:  available = available - q  WHERE available >= q AND event_date > now
    release:  available = available + q  WHERE available + q <= total

guarded by the reservation row's own `active → released|consumed` transition,
so a reservation restores capacity at most once.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from uuid_utils.compat import uuid7

from src.platform.config.core_setting import settings
from src.platform.database.repo_session import SessionFactory, SessionScopedRepo
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.ticketing_metrics import metrics
from src.service.purchase.app.interface.i_inventory_ledger import IInventoryLedger
from src.service.purchase.domain.purchase_errors import (
    EventInPastError,
    EventNotFoundError,
    InsufficientCapacityError,
    QuantityOutOfRangeError,
)
from src.service.purchase.domain.value_object.reservation_token import ReservationToken
from src.service.shared_kernel.driven_adapter.model import EventModel, InventoryReservationModel


class ReservationStatus:
    ACTIVE = 'active'
    RELEASED = 'released'
    CONSUMED = 'consumed'


class InventoryLedgerImpl(SessionScopedRepo, IInventoryLedger):
    def __init__(self, session_factory: Optional[SessionFactory] = None) -> None:
        super().__init__(session_factory)

    @Logger.io
    async def reserve(self, *, event_id: int, quantity: int) -> ReservationToken:
        if not 1 <= quantity <= settings.MAX_PER_PURCHASE:
            raise QuantityOutOfRangeError(settings.MAX_PER_PURCHASE)

        now = datetime.now(timezone.utc)
        async with self._write_session() as session:
            event_date = (
                await session.execute(
                    select(EventModel.event_date).where(EventModel.id == event_id)
                )
            ).scalar_one_or_none()
            if event_date is None:
                metrics.record_reservation(result='event_not_found')
                raise EventNotFoundError()
            if event_date <= now:
                metrics.record_reservation(result='event_in_past')
                raise EventInPastError()

            result = await session.execute(
                update(EventModel)
                .where(
                    EventModel.id == event_id,
                    EventModel.available >= quantity,
                    EventModel.event_date > now,
                )
                .values(available=EventModel.available - quantity)
                .returning(EventModel.price)
                .execution_options(synchronize_session=False)
            )
            unit_price = result.scalar_one_or_none()
            if unit_price is None:
                await self._raise_reservation_failure(
                    session=session, event_id=event_id, quantity=quantity, now=now
                )

            token = ReservationToken(
                reservation_id=uuid7(),
                event_id=event_id,
                quantity=quantity,
                unit_price=unit_price,
                expires_at=now + timedelta(minutes=settings.RESERVATION_TTL_MINUTES),
            )
            session.add(
                InventoryReservationModel(
                    id=token.reservation_id,
                    event_id=event_id,
                    quantity=quantity,
                    unit_price=unit_price,
                    status=ReservationStatus.ACTIVE,
                    expires_at=token.expires_at,
                    created_at=now,
                )
            )
            await session.flush()

        metrics.record_reservation(result='reserved')
        return token

    @staticmethod
    async def _raise_reservation_failure(
        *, session: AsyncSession, event_id: int, quantity: int, now: datetime
    ) -> None:
        # The conditional decrement matched nothing, re-read to tell the caller why
        row = (
            await session.execute(
                select(EventModel.available, EventModel.event_date).where(
                    EventModel.id == event_id
                )
            )
        ).one_or_none()
        if row is None:
            metrics.record_reservation(result='event_not_found')
            raise EventNotFoundError()
        if row.event_date <= now:
            metrics.record_reservation(result='event_in_past')
            raise EventInPastError()
        metrics.record_reservation(result='insufficient_capacity')
        raise InsufficientCapacityError(requested=quantity, available=row.available)

    @Logger.io
    async def release(self, *, reservation_id: UUID) -> bool:
        async with self._write_session() as session:
            result = await session.execute(
                update(InventoryReservationModel)
                .where(
                    InventoryReservationModel.id == reservation_id,
                    InventoryReservationModel.status == ReservationStatus.ACTIVE,
                )
                .values(status=ReservationStatus.RELEASED, released_at=datetime.now(timezone.utc))
                .returning(InventoryReservationModel.event_id, InventoryReservationModel.quantity)
                .execution_options(synchronize_session=False)
            )
            row = result.one_or_none()
            if row is None:
                return False

            restored = await session.execute(
                update(EventModel)
                .where(
                    EventModel.id == row.event_id,
                    EventModel.available + row.quantity <= EventModel.total,
                )
                .values(available=EventModel.available + row.quantity)
                .returning(EventModel.id)
                .execution_options(synchronize_session=False)
            )
            if restored.scalar_one_or_none() is None:
                Logger.base.error(
                    f'⚠️ [Inventory] Release of {reservation_id} would exceed event '
                    f'{row.event_id} capacity, counter left unchanged'
                )
                return False
            return True

    @Logger.io
    async def consume(self, *, reservation_id: UUID) -> bool:
        async with self._write_session() as session:
            result = await session.execute(
                update(InventoryReservationModel)
                .where(
                    InventoryReservationModel.id == reservation_id,
                    InventoryReservationModel.status == ReservationStatus.ACTIVE,
                )
                .values(status=ReservationStatus.CONSUMED)
                .returning(InventoryReservationModel.id)
                .execution_options(synchronize_session=False)
            )
            return result.scalar_one_or_none() is not None
