import logging
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

Base = declarative_base()


def get_engine(database_url: str, echo: bool = False):
    engine = create_async_engine(database_url, echo=echo, future=True)

    if engine.dialect.name == "sqlite":
        # No row locks in SQLite: take the write lock when the transaction
        # starts so read-then-write sequences serialize across connections.
        @event.listens_for(engine.sync_engine, "connect")
        def _disable_driver_begin(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def get_session(engine):
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False
    )


class Database:
    """Owns the engine and session factory for one process.

    Created at startup and disposed at shutdown by the application lifespan.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.url = database_url
        self.engine = get_engine(database_url, echo=echo)
        self.SessionLocal = get_session(self.engine)

    async def create_all(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("database ping failed: %s", e)
            return False

    async def dispose(self):
        await self.engine.dispose()


async def get_db(request: Request):
    async with request.app.state.db.SessionLocal() as session:
        yield session


@asynccontextmanager
async def transaction(db: AsyncSession):
    """Commit on success, roll back everything on any error."""
    try:
        yield db
        await db.commit()
    except BaseException:
        await db.rollback()
        raise
