"""
Async database setup with SQLAlchemy and aiosqlite.
"""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import text

from narrator.config import DATABASE_URL, ensure_directories
from narrator.models import Base


# Create async engine
engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True,
)


# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def enable_wal_mode():
    """Enable WAL mode for SQLite concurrent read/write access."""
    if engine.dialect.name != 'sqlite':
        return
    async with engine.begin() as conn:
        await conn.execute(text('PRAGMA journal_mode=WAL'))
        await conn.execute(text('PRAGMA synchronous=NORMAL'))


async def init_db():
    """Initialize database - create tables if they don't exist."""
    ensure_directories()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Enable WAL mode after tables are created
    await enable_wal_mode()


async def close_db():
    """Close database connections."""
    await engine.dispose()

