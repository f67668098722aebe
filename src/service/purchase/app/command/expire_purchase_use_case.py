"""
Expiry of pending purchases

A pending intent past its reservation deadline is moved to failed and its
inventory hold is released in the same transaction. Both steps are conditional,
so a webhook racing the sweep either confirms first (sweep skips) or finds the
intent failed (webhook refuses).
"""

from datetime import datetime, timezone
from uuid import UUID

from src.platform.database.unit_of_work import UnitOfWorkFactory
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.ticketing_metrics import metrics
from src.service.purchase.domain.purchase_errors import PurchaseNotFoundError


async def release_pending_intent(
    *,
    uow_factory: UnitOfWorkFactory,
    purchase_id: UUID,
    reservation_id: UUID,
    reason: str,
    release_reason: str,
) -> bool:
    """pending → failed plus a capacity release, committed together; False if not pending"""
    async with uow_factory() as uow:
        if not await uow.purchase_intent_repo.mark_failed(purchase_id=purchase_id, reason=reason):
            return False
        await uow.inventory_ledger.release(reservation_id=reservation_id)
        await uow.commit()

    metrics.record_release(reason=release_reason)
    Logger.base.info(f'🔓 [Purchase] {purchase_id} failed ({reason}), inventory released')
    return True


class ExpirePurchaseUseCase:
    def __init__(self, *, uow_factory: UnitOfWorkFactory) -> None:
        self.uow_factory = uow_factory

    @Logger.io
    async def expire(self, *, purchase_id: UUID, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        async with self.uow_factory() as uow:
            intent = await uow.purchase_intent_repo.get_by_id(purchase_id=purchase_id)
        if intent is None:
            raise PurchaseNotFoundError()
        if not intent.is_expired(now=now):
            return False

        return await release_pending_intent(
            uow_factory=self.uow_factory,
            purchase_id=intent.id,
            reservation_id=intent.reservation_id,
            reason='reservation expired',
            release_reason='expired',
        )

    @Logger.io
    async def expire_stale(self, *, limit: int = 100) -> int:
        now = datetime.now(timezone.utc)
        async with self.uow_factory() as uow:
            purchase_ids = await uow.purchase_intent_repo.list_expired_pending(now=now, limit=limit)

        expired = 0
        for purchase_id in purchase_ids:
            try:
                if await self.expire(purchase_id=purchase_id, now=now):
                    expired += 1
            except Exception:
                # One broken row must not stall the rest of the sweep
                Logger.base.exception(f'❌ [Expiry] Failed to expire purchase {purchase_id}')

        if purchase_ids:
            Logger.base.info(f'⏰ [Expiry] Expired {expired}/{len(purchase_ids)} stale purchases')
        return expired
