"""
Database Session Management

Builds the async engine and session factory for the SQL mastery store.
"""

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from birdlearn.common.logger import app_logger
from birdlearn.config import DatabaseConfig, get_config
from birdlearn.database import models  # noqa: F401  (registers tables)
from birdlearn.database.base import Base

logger = app_logger.getChild("database.session")


def get_engine_kwargs(config: DatabaseConfig) -> Dict[str, Any]:
    """
    Engine keyword arguments for the configured database.

    Different databases support different connection options.
    """
    kwargs: Dict[str, Any] = {"echo": config.echo}

    if config.url.startswith("postgresql"):
        kwargs.update({
            "pool_size": config.pool_size,
            "pool_pre_ping": True,
            "pool_recycle": 300,
        })
    elif config.is_sqlite and ":memory:" in config.url:
        # Every connection must see the same in-memory database.
        kwargs.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })

    return kwargs


def create_engine_from_config(config: Optional[DatabaseConfig] = None) -> AsyncEngine:
    config = config or get_config().database
    logger.info(f"Creating database engine for {config.url.split('://', 1)[0]}")
    return create_async_engine(config.url, **get_engine_kwargs(config))


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def drop_models(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
