"""Database connection and session management using SQLAlchemy async ORM"""
from typing import AsyncGenerator, Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from redis import asyncio as aioredis

from skillswap import config

DATABASE_URL = config.DATABASE_URL

# Convert sync postgresql:// to async postgresql+asyncpg://
if DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)

REDIS_URL = config.REDIS_URL


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool settings per backend; SQLite connections are opened per use."""
    if url.startswith("sqlite"):
        return {"poolclass": NullPool}
    # pool_size=20 + max_overflow=30 => 50 connections max under load
    return {
        "pool_size": 20,
        "max_overflow": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }


engine = create_async_engine(
    DATABASE_URL,
    echo=False,  # Set to True for SQL query logging during development
    **_engine_options(DATABASE_URL),
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for declarative models
Base = declarative_base()

# Redis client (initialized on app startup when the redis relay is enabled)
redis_client: Optional[aioredis.Redis] = None


async def init_models() -> None:
    """Create all tables registered on Base.metadata (idempotent)."""
    import skillswap.models  # noqa: F401  registers mappers

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_models() -> None:
    """Drop all tables registered on Base.metadata."""
    import skillswap.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def init_redis() -> aioredis.Redis:
    """Initialize Redis connection with async client"""
    global redis_client
    redis_client = aioredis.from_url(
        REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )
    return redis_client


async def close_redis():
    """Close Redis connection"""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI endpoints to get database session.

    Usage in FastAPI:
        @router.get("/friends")
        async def list_friends(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_redis() -> Optional[aioredis.Redis]:
    """Dependency returning the shared Redis client (None until init_redis)."""
    return redis_client
