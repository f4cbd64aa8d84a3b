"""
Database handle: one async engine plus its session factory.

A single `Database` is built in the application lifespan and handed to every
service, so tests can run against isolated instances.

SQLite (used by the test suite and local development) gets two connection
hooks: foreign keys are switched on, and every transaction is opened with
BEGIN IMMEDIATE so that writers serialize at the start of the unit of work
instead of failing on lock upgrade halfway through it.
"""

from typing import Optional

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from travelbook.core.config import Settings, get_settings
from travelbook.db.base import Base


class Database:
    def __init__(self, url: str, **engine_kwargs):
        self.url = url
        self.engine = create_async_engine(url, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            _install_sqlite_hooks(self.engine)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


def _install_sqlite_hooks(engine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Take over BEGIN from the driver; COMMIT/ROLLBACK are still emitted.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_database(settings: Optional[Settings] = None) -> Database:
    """Create the process-wide database handle from settings."""
    settings = settings or get_settings()
    if settings.DATABASE_URL.startswith("sqlite"):
        return Database(settings.DATABASE_URL, echo=settings.DEBUG)
    return Database(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the handle created in the lifespan."""
    return request.app.state.database

