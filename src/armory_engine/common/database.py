"""Async database manager and transaction coordinator for Armory-Engine."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from armory_engine.common.config import ArmorySettings, get_settings
from armory_engine.common.exceptions import (
    ArmoryError,
    ConflictError,
    StorageUnavailableError,
)
from armory_engine.common.models import Base
from armory_engine.common.results import Err, Result

# Import all model modules so Base.metadata is complete for create_all().
import armory_engine.bases.models  # noqa: F401
import armory_engine.personnel.models  # noqa: F401
import armory_engine.assets.models  # noqa: F401
import armory_engine.transfers.models  # noqa: F401
import armory_engine.purchases.models  # noqa: F401
import armory_engine.audit.models  # noqa: F401

logger = logging.getLogger(__name__)

T = TypeVar("T")

Step = Callable[[AsyncSession], Awaitable[Result[T]]]


class DatabaseManager:
    """Manages a single async database engine.

    This is the storage handle passed into every service and workflow.
    """

    def __init__(self, settings: ArmorySettings | None = None):
        self._settings = settings or get_settings()
        self.engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def init(self) -> None:
        url = self._settings.db_url
        self.engine = create_async_engine(url, echo=self._settings.db_echo)
        self._session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not initialized; call init() first")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def run_in_transaction(self, step: Step, *, label: str = "") -> Result:
        """Run ``step`` inside one transaction and commit only on ``Ok``.

        ``Err`` results roll back. Store errors become ``Err`` values:
        integrity violations map to ConflictError, anything else the driver
        raises (lock timeouts, failed commits) to StorageUnavailableError.
        Other exceptions roll back and propagate.
        """
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not initialized; call init() first")
        async with self._session_factory() as session:
            try:
                result = await step(session)
                if result.ok:
                    await session.commit()
            except ArmoryError as exc:
                result = Err(exc)
            except IntegrityError as exc:
                logger.warning(
                    "Integrity violation in %s: %s", label, exc.orig,
                    extra={"transaction": label},
                )
                result = Err(ConflictError("A record with this value already exists"))
            except SQLAlchemyError as exc:
                logger.error(
                    "Storage failure in %s: %s", label, exc, extra={"transaction": label},
                )
                result = Err(StorageUnavailableError(
                    f"Transaction could not be committed: {exc.__class__.__name__}"
                ))
            except BaseException:
                await session.rollback()
                logger.exception("Transaction %s aborted", label, extra={"transaction": label})
                raise

            if not result.ok:
                await session.rollback()
                logger.warning(
                    "Transaction %s rolled back: %s %s",
                    label, result.code, result.error.message,
                    extra={"transaction": label, "code": result.code},
                )
            return result

    async def create_all(self) -> None:
        if self.engine is None:
            raise RuntimeError("DatabaseManager not initialized; call init() first")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None
