"""Purchase service fixtures: a stub Unit of Work whose repositories are AsyncMocks"""

from typing import Any
from unittest.mock import AsyncMock

import pytest


class StubUnitOfWork:
    """Hands out the same mocked repositories on every `async with`"""

    def __init__(self) -> None:
        self.inventory_ledger = AsyncMock()
        self.purchase_intent_repo = AsyncMock()
        self.ticket_issuance_repo = AsyncMock()
        self.commit = AsyncMock()
        self.rollback = AsyncMock()

    async def __aenter__(self) -> 'StubUnitOfWork':
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.rollback()


@pytest.fixture
def stub_uow() -> StubUnitOfWork:
    return StubUnitOfWork()


@pytest.fixture
def stub_uow_factory(stub_uow: StubUnitOfWork):
    return lambda: stub_uow
