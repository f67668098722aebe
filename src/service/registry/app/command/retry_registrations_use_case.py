from datetime import datetime, timezone

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.service.registry.app.command.register_tickets_use_case import RegisterTicketsUseCase
from src.service.registry.app.interface.i_registration_status_repo import (
    IRegistrationStatusRepo,
)


class RetryRegistrationsUseCase:
    def __init__(
        self,
        *,
        registration_status_repo: IRegistrationStatusRepo,
        register_tickets_use_case: RegisterTicketsUseCase,
    ) -> None:
        self.registration_status_repo = registration_status_repo
        self.register_tickets_use_case = register_tickets_use_case

    @Logger.io
    async def execute(self, *, limit: int | None = None) -> int:
        """Re-register due tickets one purchase at a time; returns batches now minted"""
        batches = await self.registration_status_repo.list_retryable(
            now=datetime.now(timezone.utc),
            max_attempts=settings.REGISTRY_MAX_ATTEMPTS,
            pending_grace_seconds=settings.REGISTRY_PENDING_GRACE_SECONDS,
            limit=limit or settings.REGISTRY_RETRY_BATCH_SIZE,
        )

        minted = 0
        for payment_id, tickets in batches.items():
            try:
                outcome = await self.register_tickets_use_case.execute(tickets=tickets)
            except Exception:
                Logger.base.exception(f'❌ [Registry] Retry crashed for purchase {payment_id}')
                continue
            if outcome.success:
                minted += 1

        if batches:
            Logger.base.info(f'🔁 [Registry] Retry pass: {minted}/{len(batches)} purchases minted')
        return minted
