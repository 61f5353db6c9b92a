"""
Hbook Backend — Database Session Management
============================================

What:  Async SQLAlchemy engine, session factory, FastAPI dependencies and the
       transaction runner used by multi-statement writes.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created once at process start; sessions are created per-request.

Connection Pooling Strategy:
    pool_size=20:     Persistent connections for normal load
    max_overflow=10:  Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:    Validates connections before use (catches stale connections)
    pool_recycle=3600: Recycles connections every hour

Reads vs. writes:
    Reads run on the request session (get_db_session). A page and its
    projection columns are a single statement, so no explicit transaction
    is needed around them.

    Writes that touch several tables (like + notification) go through
    TransactionRunner, which owns its own session, wraps the work in one
    transaction, and retries the whole unit on transient OperationalError.
"""

import logging
from typing import AsyncGenerator, Awaitable, Callable, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from hbook.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ── Engine Configuration ──────────────────────────────────────────────────
# Process-wide handle: built once here, disposed in the app lifespan,
# never rebuilt per request.
engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=settings.db_pool_pre_ping,
    pool_recycle=3600,
    echo=settings.log_level == "DEBUG",
)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: ORM objects stay readable after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class to register with the shared
    metadata that Alembic reads for migrations.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler (the handler performs queries)
        3. On success: commits the transaction
        4. On error: rolls back the transaction
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/posts/for-you")
        async def for_you(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Transaction Runner ────────────────────────────────────────────────────
class TransactionRunner:
    """
    Runs a unit of work inside one all-or-nothing transaction.

    Contract:
        - `work` receives a fresh session with a transaction already begun
        - Returning normally commits; raising rolls back everything `work` did
        - OperationalError (deadlock, serialization failure, dropped
          connection) retries the whole unit up to `attempts` times with
          no wait between attempts
        - Every other exception propagates after rollback, unretried

    Why a class:
        Tests build one around their own session factory and hand it to the
        app through dependency_overrides.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        attempts: int = 3,
    ):
        self._session_factory = session_factory
        self.attempts = attempts

    async def run(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """
        Execute `work` in a transaction, retrying transient failures.

        Args:
            work: Coroutine function performing the writes on the given session.

        Returns:
            Whatever `work` returns.

        Raises:
            OperationalError: All attempts exhausted (original error re-raised).
            Any exception raised by `work`.
        """
        result = None
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.attempts),
            retry=retry_if_exception_type(OperationalError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                async with self._session_factory() as session:
                    async with session.begin():
                        result = await work(session)
        return result


transaction_runner = TransactionRunner(
    async_session_factory,
    attempts=settings.db_retry_attempts,
)


def get_transaction_runner() -> TransactionRunner:
    """FastAPI dependency returning the process-wide transaction runner."""
    return transaction_runner


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
