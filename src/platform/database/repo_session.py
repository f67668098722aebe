"""
Session handling shared by SQLAlchemy repositories.

A repository works in two modes:
- Unit of Work mode: `session` is injected by SqlAlchemyUnitOfWork, the UoW commits
- Standalone mode: each call opens a session from `session_factory`, writes commit on exit
"""

from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession


SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


class SessionScopedRepo:
    def __init__(self, session_factory: Optional[SessionFactory] = None) -> None:
        self.session_factory = session_factory
        self.session: Optional[AsyncSession] = None

    @asynccontextmanager
    async def _get_session(self) -> AsyncIterator[AsyncSession]:
        if self.session is not None:
            yield self.session
        elif self.session_factory is not None:
            async with self.session_factory() as session:
                yield session
        else:
            raise RuntimeError('No session or session_factory available')

    @asynccontextmanager
    async def _write_session(self) -> AsyncIterator[AsyncSession]:
        if self.session is not None:
            yield self.session
        elif self.session_factory is not None:
            async with self.session_factory() as session:
                yield session
                await session.commit()
        else:
            raise RuntimeError('No session or session_factory available')
