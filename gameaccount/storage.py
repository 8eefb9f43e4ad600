"""
Storage gateway - the only way account code talks to the database.

Two capabilities are exposed:

  - execute(statement): run one read statement in its own session and
    return all result rows.
  - transaction(): an async context manager yielding an AsyncSession inside
    a single database transaction. It commits when the block exits normally
    and rolls back on any exception, so a balance update and its ledger row
    either both land or neither does.

Any SQLAlchemyError (connectivity, constraint violation, malformed result)
is wrapped in DatabaseError so it surfaces to callers as ErrorKind.DB.
AccountErrors raised inside a transaction block roll it back and propagate
unchanged. No retries happen here; timeout policy belongs to the engine.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Protocol

from sqlalchemy import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import Executable

from gameaccount.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class StorageGateway(Protocol):
    """Abstract relational backend used by Account, the coin ledger and the roster."""

    async def execute(self, statement: Executable) -> list[Row]:
        """Run a read statement and return its rows."""
        ...

    def transaction(self) -> AsyncContextManager[AsyncSession]:
        """Open one atomic unit of work."""
        ...


class SqlStorageGateway:
    """StorageGateway over an SQLAlchemy async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def execute(self, statement: Executable) -> list[Row]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                return list(result.all())
        except SQLAlchemyError as exc:
            logger.error("Read statement failed: %s", exc)
            raise DatabaseError(f"Read failed: {exc}") from exc

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    yield session
            except SQLAlchemyError as exc:
                logger.error("Transaction rolled back: %s", exc)
                raise DatabaseError(f"Write failed: {exc}") from exc
