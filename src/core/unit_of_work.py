"""Unit of work over MongoDB sessions.

Order creation runs one algorithm against either backend:

- TransactionalUnitOfWork: every write goes through a driver session with an
  open multi-document transaction. Nothing is visible to other requests until
  commit, and abort discards all of it.
- SequentialUnitOfWork: degraded mode for deployments without transaction
  support (standalone servers). Writes apply immediately and are not rolled
  back when a later step fails.

Usage:
    async with unit_of_work(client) as uow:
        await collection.insert_one(doc, session=uow.session)
        await uow.commit()
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from src.core.database import supports_transactions

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Base unit of work.

    Attributes:
        session: Driver session to pass to every write, or None.
        is_transactional: Whether writes are isolated until commit.
    """

    is_transactional = False

    def __init__(self, session: Any = None) -> None:
        self.session = session
        self.committed = False

    async def commit(self) -> None:
        """Make the unit's writes durable and visible."""
        self.committed = True

    async def abort(self) -> None:
        """Discard the unit's writes where the backend allows it."""

    async def release(self) -> None:
        """Release the underlying session."""


class TransactionalUnitOfWork(UnitOfWork):
    """Unit of work backed by a storage-native transaction."""

    is_transactional = True

    def __init__(self, session: Any, owned_session: Any = None) -> None:
        super().__init__(session)
        self._owned_session = owned_session or session

    async def commit(self) -> None:
        await self.session.commit_transaction()
        self.committed = True
        logger.debug("Transaction committed")

    async def abort(self) -> None:
        if self.session.in_transaction:
            await self.session.abort_transaction()
            logger.warning("Transaction aborted")

    async def release(self) -> None:
        await self._owned_session.end_session()


class SequentialUnitOfWork(UnitOfWork):
    """Unit of work without transaction support.

    Writes are executed directly (session is None), so abort cannot undo
    what earlier steps already applied.
    """

    def __init__(self, owned_session: Any = None) -> None:
        super().__init__(None)
        self._owned_session = owned_session

    async def abort(self) -> None:
        if not self.committed:
            logger.warning("Aborting without a transaction: writes already applied are kept")

    async def release(self) -> None:
        if self._owned_session is not None:
            await self._owned_session.end_session()


async def begin_unit_of_work(client: AsyncIOMotorClient) -> UnitOfWork:
    """Open a transactional unit of work, degrading to sequential mode.

    Falls back to SequentialUnitOfWork when the session cannot be started,
    when the topology has no transaction support, or when starting the
    transaction fails.

    Args:
        client: Motor client to open the session on.

    Returns:
        UnitOfWork: The opened unit of work.
    """
    try:
        session = await client.start_session()
    except PyMongoError as e:
        logger.warning("Could not start a database session, continuing without a transaction: %s", e)
        return SequentialUnitOfWork()

    try:
        if await supports_transactions(client):
            session.start_transaction()
            return TransactionalUnitOfWork(session)
        logger.warning("Database topology does not support transactions, running in degraded mode")
    except PyMongoError as e:
        logger.warning("Could not start a transaction, continuing without one: %s", e)

    return SequentialUnitOfWork(owned_session=session)


@asynccontextmanager
async def unit_of_work(client: AsyncIOMotorClient) -> AsyncIterator[UnitOfWork]:
    """Run a block inside a unit of work.

    Aborts when the block raises or exits without committing. The session is
    released on every exit path.

    Args:
        client: Motor client to open the session on.

    Yields:
        UnitOfWork: Transactional or sequential unit of work.
    """
    uow = await begin_unit_of_work(client)
    try:
        yield uow
        if not uow.committed:
            await _abort_quietly(uow)
    except BaseException:
        await _abort_quietly(uow)
        raise
    finally:
        await uow.release()


async def _abort_quietly(uow: UnitOfWork) -> None:
    """Abort without masking the error that triggered the abort."""
    try:
        await uow.abort()
    except PyMongoError as e:
        logger.error("Failed to abort transaction: %s", e)
