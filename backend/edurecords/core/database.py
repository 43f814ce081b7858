from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
from sqlalchemy import MetaData, event
from contextlib import nullcontext
from typing import AsyncContextManager, AsyncGenerator, Optional
import asyncio

from edurecords.core.config import settings


class Base(DeclarativeBase):
    metadata = MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(constraint_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
            "pk": "pk_%(table_name)s"
        }
    )


def _enable_sqlite_savepoints(async_engine: AsyncEngine) -> None:
    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; take over transaction control
    @event.listens_for(async_engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_engine(url: str, echo: bool = False, memory: bool = False) -> AsyncEngine:
    """Create the async engine; in-memory databases share one connection."""
    if memory:
        async_engine = create_async_engine(
            "sqlite+aiosqlite://",
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False}
        )
    else:
        async_engine = create_async_engine(url, echo=echo, future=True)

    if async_engine.dialect.name == "sqlite":
        _enable_sqlite_savepoints(async_engine)
    return async_engine


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


def create_session_lock(memory: bool) -> Optional[asyncio.Lock]:
    """Lock shared by background jobs; only needed when every session shares one connection."""
    return asyncio.Lock() if memory else None


def session_guard(lock: Optional[asyncio.Lock]) -> AsyncContextManager:
    return lock if lock is not None else nullcontext()


# Create async engine
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    memory=settings.DATABASE_MEMORY
)

# Create async session factory
AsyncSessionLocal = create_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(bind: AsyncEngine = engine):
    # Register every mapped table before creating them
    import edurecords.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
