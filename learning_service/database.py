import os

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base


def _normalize_url(url: str) -> str:
    # Ensure we use the async driver for Postgres
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


# Default to SQLite, but allow override via env var
DATABASE_URL = _normalize_url(os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./learnai.db"))
SQL_ECHO = os.getenv("SQL_ECHO", "false").strip().lower() in {"1", "true", "on", "yes"}


def make_engine(url: str = DATABASE_URL) -> AsyncEngine:
    return create_async_engine(_normalize_url(url), echo=SQL_ECHO, future=True)


def make_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = make_engine()
AsyncSessionLocal = make_sessionmaker(engine)

Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(bind: AsyncEngine = engine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
