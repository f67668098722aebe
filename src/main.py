"""
Production FastAPI Application

Purchase pipeline, payment webhook, gate validation and the background
registry mirroring (fire-and-forget tasks + retry worker) in one process.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.platform.app_factory import create_app
from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.database.orm_db_setting import dispose_engine, get_engine
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig
from src.service.registry.driving_adapter.registration_retry_worker import (
    RegistrationRetryWorker,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage unified application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Ticket Gate] Starting up...')

    tracing = TracingConfig(service_name='ticket-gate')
    tracing.setup()
    Logger.base.info('📊 [Ticket Gate] OpenTelemetry tracing configured')

    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Ticket Gate] Dependency injection wired')

    engine = get_engine()
    tracing.instrument_sqlalchemy(engine=engine)
    Logger.base.info('🗄️  [Ticket Gate] Database engine ready + instrumented')

    # One task group for registry mirroring and the retry worker
    async with anyio.create_task_group() as tg:
        container.task_group.override(tg)

        retry_worker = RegistrationRetryWorker(
            use_case=container.retry_registrations_use_case(),
            interval_seconds=settings.REGISTRY_RETRY_INTERVAL_SECONDS,
        )
        tg.start_soon(retry_worker.run)
        Logger.base.info('✅ [Ticket Gate] Ready to serve requests')

        yield

        Logger.base.info('🛑 [Ticket Gate] Shutting down...')
        tg.cancel_scope.cancel()

    container.task_group.reset_override()

    await dispose_engine()
    Logger.base.info('🗄️  [Ticket Gate] Database engine disposed')

    tracing.shutdown()
    Logger.base.info('📊 [Ticket Gate] Tracing shutdown complete')

    container.unwire()
    Logger.base.info('👋 [Ticket Gate] Shutdown complete')


app = create_app(lifespan=lifespan)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')
