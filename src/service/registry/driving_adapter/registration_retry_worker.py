import anyio

from src.platform.logging.loguru_io import Logger
from src.service.registry.app.command.retry_registrations_use_case import (
    RetryRegistrationsUseCase,
)


class RegistrationRetryWorker:
    """Periodic retry pass, started in the app lifespan task group"""

    def __init__(self, *, use_case: RetryRegistrationsUseCase, interval_seconds: float) -> None:
        self.use_case = use_case
        self.interval_seconds = interval_seconds

    async def run(self) -> None:
        Logger.base.info(
            f'🔁 [Registry] Retry worker started (every {self.interval_seconds:g}s)'
        )
        while True:
            await anyio.sleep(self.interval_seconds)
            try:
                await self.use_case.execute()
            except Exception:
                Logger.base.exception('❌ [Registry] Retry pass failed')
