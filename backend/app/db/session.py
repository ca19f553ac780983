import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from app.core.config import Settings


class Base(DeclarativeBase):
    pass


def _is_sqlite(dsn: str) -> bool:
    return "sqlite" in dsn.lower()


def _is_postgres(dsn: str) -> bool:
    return "postgresql" in dsn.lower()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_for(settings: Settings) -> AsyncEngine:
    dsn = settings.database_dsn
    if _is_postgres(dsn):
        return create_async_engine(
            dsn,
            echo=False,
            pool_pre_ping=True,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )

    if not _is_sqlite(dsn):
        return create_async_engine(dsn, echo=False, pool_pre_ping=True)

    # One connection per session: SQLite serializes writers with its own file lock
    engine = create_async_engine(
        dsn,
        echo=False,
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    # SQLite leaves FK enforcement off per connection; cascades depend on it
    event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


class Database:
    """Engine, session factory and lazy schema creation for one app instance."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = async_sessionmaker(
            bind=engine,
            expire_on_commit=False,
            autoflush=False,
        )
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

    async def ensure_schema_ready(self) -> None:
        """Create DB tables once for environments where startup hooks are skipped."""
        if self._schema_ready:
            return

        async with self._schema_lock:
            if self._schema_ready:
                return

            from app.models import models as _models  # noqa: F401

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            self._schema_ready = True

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        await self.ensure_schema_ready()
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def dispose(self) -> None:
        await self.engine.dispose()
