"""
SealNote Backend — Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory, FastAPI session dependency,
       and the two scopes every data-access call runs inside:
       `transaction()` (commit or roll back as one unit) and
       `storage_errors()` (translate SQLAlchemy failures into our taxonomy).
Why:   The note/embed invariants (all-or-nothing create, no orphan embeds)
       depend on every write set being committed or rolled back together,
       on every exit path.
How:   Session-per-request from the factory; services borrow that session
       and wrap each write set in `transaction()`.
Who:   Used by route handlers via Depends(get_db_session), by the services,
       by the health route and by the purge entry point.

Connection Pooling Strategy:
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

    SQLite URLs (tests, local hacking) use NullPool: no connection outlives
    the event loop that opened it.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from app.config import settings
from app.exceptions import (
    ConstraintViolationError,
    StorageError,
    TransientStorageError,
)

logger = logging.getLogger(__name__)


# ── Engine Configuration ──────────────────────────────────────────────────
def _engine_options() -> Dict[str, Any]:
    """Pool options for server databases; SQLite opens a connection per checkout."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if settings.is_sqlite:
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


engine: AsyncEngine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: stored rows stay readable after commit, so the
# services can build their return values without another round-trip.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for migrations
    and the test suite uses for create_all().
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits whatever the handler left open
        4. On error: rolls back
        5. Always: closes the session (returns connection to pool)

    Services commit their own write sets through `transaction()`, so the
    final commit here is normally a no-op.
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


# ── Unit-of-Work Scopes ───────────────────────────────────────────────────
@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Run a write set as one unit: commit on clean exit, roll back on any error.

    The session autobegins on its first statement, so the scope covers
    everything issued through it since the last commit. If the body or the
    final flush/commit raises (a constraint violation is typically reported
    at commit time) the transaction is rolled back before the exception
    leaves this scope, and the store is left exactly as it was.
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise


@asynccontextmanager
async def storage_errors(operation: str) -> AsyncGenerator[None, None]:
    """
    Translate SQLAlchemy and connection failures into SealNote exceptions.

    Mapping:
        IntegrityError                          → ConstraintViolationError
        OperationalError, InterfaceError,
        pool TimeoutError, invalidated
        connections, ConnectionError/TimeoutError → TransientStorageError
        any other SQLAlchemyError               → StorageError

    Only the operation name and the driver's error class go into the
    exception context; SQL text and parameters (which would include
    ciphertext) stay out of logs and responses.
    """
    try:
        yield
    except IntegrityError as e:
        logger.warning(
            "Constraint violation during %s: %s",
            operation,
            type(e.orig).__name__ if e.orig is not None else "IntegrityError",
        )
        raise ConstraintViolationError(
            context={"operation": operation, "original_error": type(e).__name__},
        ) from e
    except (OperationalError, InterfaceError, PoolTimeoutError) as e:
        logger.error("Storage unavailable during %s: %s", operation, type(e).__name__)
        raise TransientStorageError(
            context={"operation": operation, "original_error": type(e).__name__},
        ) from e
    except DBAPIError as e:
        if e.connection_invalidated:
            logger.error("Connection invalidated during %s", operation)
            raise TransientStorageError(
                context={"operation": operation, "original_error": type(e).__name__},
            ) from e
        logger.error("Driver error during %s: %s", operation, type(e).__name__)
        raise StorageError(
            context={"operation": operation, "original_error": type(e).__name__},
        ) from e
    except SQLAlchemyError as e:
        logger.error("Storage error during %s: %s", operation, type(e).__name__, exc_info=True)
        raise StorageError(
            context={"operation": operation, "original_error": type(e).__name__},
        ) from e
    except (ConnectionError, TimeoutError) as e:
        logger.error("Connection failure during %s: %s", operation, type(e).__name__)
        raise TransientStorageError(
            context={"operation": operation, "original_error": type(e).__name__},
        ) from e


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def check_connection() -> bool:
    """Lightweight SELECT 1 probe used by the health route."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("Database probe failed: %s", type(e).__name__)
        return False


async def dispose_engine() -> None:
    """Close all pooled connections. Called from the lifespan shutdown."""
    await engine.dispose()
