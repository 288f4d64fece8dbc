import logging
from contextlib import asynccontextmanager
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campusbite.domain.exceptions import ServiceUnavailableError
from campusbite.infrastructure.repositories import (
    SQLAlchemyMenuRepository,
    SQLAlchemyCartRepository,
    SQLAlchemyOrderRepository,
    SQLAlchemyPushTokenRepository,
    SQLAlchemyOutboxRepository
)

logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def __call__(self):
        async with self._session_factory() as session:
            try:
                uow_impl = _UnitOfWorkImpl(session)
                yield uow_impl
                # Nothing is kept unless commit() was called
                await session.rollback()
            except (OperationalError, InterfaceError) as e:
                await session.rollback()
                logger.error(f"Database unavailable: {e}")
                raise ServiceUnavailableError("Order storage is unavailable, retry later") from e
            except Exception:
                await session.rollback()
                raise


class _UnitOfWorkImpl:
    def __init__(self, session: AsyncSession):
        self._session = session
        self.menu = SQLAlchemyMenuRepository(session)
        self.carts = SQLAlchemyCartRepository(session)
        self.orders = SQLAlchemyOrderRepository(session)
        self.push_tokens = SQLAlchemyPushTokenRepository(session)
        self.outbox = SQLAlchemyOutboxRepository(session)

    async def commit(self):
        await self._session.commit()

    async def rollback(self):
        await self._session.rollback()
