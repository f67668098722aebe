"""
Test Configuration and Fixtures

This module provides:
- Early environment setup (log directory, signing keys) before settings load
- A file-backed SQLite database per test, schema created from the ORM metadata
- Seed helpers for users and events

Architecture:
- Unit tests: stub every port with AsyncMock, no database
- Integration tests: real repositories and Unit of Work against SQLite
- BDD scenarios (pytest-bdd-ng .feature files): the HTTP app through TestClient
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings are read once at import time by src.platform.config.core_setting
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    """Set test environment variables before any module imports."""
    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    os.environ.setdefault('SECRET_KEY', 'test_secret_key_for_jwt_signing_only_0123')
    os.environ.setdefault('REGISTRY_SIGNING_KEY', 'test_signing_key')
    os.environ.setdefault('REGISTRY_CONTRACT_ADDRESS', '0xTestRegistry')


# Call immediately to set env vars before any imports
_early_setup_test_environment()

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402
from functools import partial  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine  # noqa: E402
from uuid_utils.compat import uuid7  # noqa: E402

from src.platform.database.orm_db_setting import AsyncEngineManager, Base, Database  # noqa: E402
from src.platform.database.unit_of_work import (  # noqa: E402
    SqlAlchemyUnitOfWork,
    UnitOfWorkFactory,
)
from src.service.purchase.domain.entity.purchase_intent_entity import (  # noqa: E402
    PurchaseIntent,
    PurchaseIntentStatus,
)
from src.service.purchase.domain.ticket_issuer import issue_ticket_batch  # noqa: E402
from src.service.purchase.driven_adapter.repo.purchase_intent_repo_impl import (  # noqa: E402
    PurchaseIntentRepoImpl,
)
from src.service.purchase.driven_adapter.repo.ticket_issuance_repo_impl import (  # noqa: E402
    TicketIssuanceRepoImpl,
)
from src.service.shared_kernel.domain.entity.ticket_entity import Ticket  # noqa: E402
from src.service.shared_kernel.driven_adapter.model import EventModel, UserModel  # noqa: E402


SeedEvent = Callable[..., Awaitable[int]]
SeedUser = Callable[..., Awaitable[int]]
SeedTickets = Callable[..., Awaitable[list[Ticket]]]


# =============================================================================
# Database Fixtures
# =============================================================================
class SqliteEngineManager(AsyncEngineManager):
    """
    Every transaction starts with BEGIN IMMEDIATE so concurrent writers queue on
    the database lock, which is what the conditional updates rely on.
    """

    def _create_engine(self) -> AsyncEngine:
        engine = super()._create_engine()

        @event.listens_for(engine.sync_engine, 'connect')
        def _disable_pysqlite_transactions(dbapi_connection, connection_record) -> None:
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, 'begin')
        def _begin_immediate(conn) -> None:
            conn.exec_driver_sql('BEGIN IMMEDIATE')

        return engine


async def create_schema(engine_manager: AsyncEngineManager) -> None:
    async with engine_manager.get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def sqlite_engine_manager(tmp_path: Path) -> SqliteEngineManager:
    return SqliteEngineManager(url=f'sqlite+aiosqlite:///{tmp_path / "test.db"}')


@pytest.fixture
async def database(sqlite_engine_manager: SqliteEngineManager) -> AsyncGenerator[Database, None]:
    """SQLite database with the full schema, one file per test"""
    await create_schema(sqlite_engine_manager)

    yield Database(engine_manager=sqlite_engine_manager)

    await sqlite_engine_manager.dispose()


@pytest.fixture
def schema_creator() -> Callable[[AsyncEngineManager], Awaitable[None]]:
    return create_schema


@pytest.fixture
def uow_factory(database: Database) -> UnitOfWorkFactory:
    return partial(SqlAlchemyUnitOfWork, session_factory=database.session)


# =============================================================================
# Seed Fixtures
# =============================================================================
@pytest.fixture
def seed_event(database: Database) -> SeedEvent:
    async def _seed(
        *,
        total: int = 10,
        available: Optional[int] = None,
        price: Decimal = Decimal('50.00'),
        starts_in: timedelta = timedelta(days=30),
        duration: Optional[timedelta] = timedelta(hours=4),
        name: str = 'Summer Arena Night',
    ) -> int:
        event_date = datetime.now(timezone.utc) + starts_in
        async with database.session() as session:
            model = EventModel(
                name=name,
                venue='Main Arena',
                event_date=event_date,
                end_date=event_date + duration if duration else None,
                total=total,
                available=total if available is None else available,
                price=price,
            )
            session.add(model)
            await session.commit()
            return model.id

    return _seed


@pytest.fixture
def seed_user(database: Database) -> SeedUser:
    async def _seed(
        *,
        email: str = 'b@t.com',
        full_name: str = 'Alice Chen',
        verification_status: str = 'approved',
        is_admin: bool = False,
    ) -> int:
        async with database.session() as session:
            model = UserModel(
                email=email,
                full_name=full_name,
                verification_status=verification_status,
                is_admin=is_admin,
            )
            session.add(model)
            await session.commit()
            return model.id

    return _seed


@pytest.fixture
def seed_tickets(database: Database) -> SeedTickets:
    """Confirmed purchase with its issued ticket batch, one ticket per bound name"""

    async def _seed(
        *,
        event_id: int,
        user_id: int,
        names: list[str],
        issued_at: Optional[datetime] = None,
    ) -> list[Ticket]:
        now = datetime.now(timezone.utc)
        intent = PurchaseIntent(
            id=uuid7(),
            user_id=user_id,
            event_id=event_id,
            reservation_id=uuid7(),
            quantity=len(names),
            amount=Decimal('50.00') * len(names),
            currency='USD',
            expires_at=now + timedelta(minutes=15),
            status=PurchaseIntentStatus.CONFIRMED,
            metadata={'bound_names': names},
            created_at=now,
            confirmed_at=now,
        )
        tickets = issue_ticket_batch(intent=intent, issued_at=issued_at or now)
        await PurchaseIntentRepoImpl(session_factory=database.session).create(intent=intent)
        await TicketIssuanceRepoImpl(session_factory=database.session).insert_batch(
            tickets=tickets
        )
        return tickets

    return _seed
