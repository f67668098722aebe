"""
Unit of Work Pattern - one session and one transaction shared by several repositories

Architecture:
- UoW owns the session lifecycle
- UoW owns commit/rollback (nothing is committed unless commit() is called)
- Repositories receive the shared session from the UoW
- Use cases coordinate multi-repository writes through the UoW
"""

from __future__ import annotations

import abc
from contextlib import AsyncExitStack
from typing import TYPE_CHECKING, Callable

from src.platform.database.repo_session import SessionFactory


if TYPE_CHECKING:
    from src.service.purchase.app.interface.i_inventory_ledger import IInventoryLedger
    from src.service.purchase.app.interface.i_purchase_intent_repo import IPurchaseIntentRepo
    from src.service.purchase.app.interface.i_ticket_issuance_repo import ITicketIssuanceRepo


class AbstractUnitOfWork(abc.ABC):
    """
    Usage:
        async with uow_factory() as uow:
            token = await uow.inventory_ledger.reserve(event_id=..., quantity=...)
            await uow.purchase_intent_repo.create(intent=...)
            await uow.commit()
    """

    inventory_ledger: IInventoryLedger
    purchase_intent_repo: IPurchaseIntentRepo
    ticket_issuance_repo: ITicketIssuanceRepo

    async def __aenter__(self) -> AbstractUnitOfWork:
        return self

    async def __aexit__(self, *args) -> None:
        await self.rollback()

    async def commit(self) -> None:
        await self._commit()

    @abc.abstractmethod
    async def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(self, session_factory: SessionFactory) -> None:
        self.session_factory = session_factory
        self._exit_stack: AsyncExitStack | None = None

    async def __aenter__(self) -> AbstractUnitOfWork:
        from src.service.purchase.driven_adapter.repo.inventory_ledger_impl import (
            InventoryLedgerImpl,
        )
        from src.service.purchase.driven_adapter.repo.purchase_intent_repo_impl import (
            PurchaseIntentRepoImpl,
        )
        from src.service.purchase.driven_adapter.repo.ticket_issuance_repo_impl import (
            TicketIssuanceRepoImpl,
        )

        self._exit_stack = AsyncExitStack()
        self.session = await self._exit_stack.enter_async_context(self.session_factory())

        self.inventory_ledger = InventoryLedgerImpl()
        self.inventory_ledger.session = self.session
        self.purchase_intent_repo = PurchaseIntentRepoImpl()
        self.purchase_intent_repo.session = self.session
        self.ticket_issuance_repo = TicketIssuanceRepoImpl()
        self.ticket_issuance_repo.session = self.session

        return await super().__aenter__()

    async def __aexit__(self, *args) -> None:
        try:
            await super().__aexit__(*args)
        finally:
            if self._exit_stack is not None:
                await self._exit_stack.aclose()
                self._exit_stack = None

    async def _commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()


UnitOfWorkFactory = Callable[[], AbstractUnitOfWork]
