"""
liveboard/database.py
Async engine and session factory for the live engine
"""
import os
import logging
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from dotenv import load_dotenv

from liveboard.orm.base import Base
import liveboard.orm  # ensures all models are registered

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./liveboard.db")

if DATABASE_URL.startswith("sqlite"):
    engine = create_async_engine(DATABASE_URL, connect_args={"timeout": 30.0})  # busy timeout, seconds
else:
    engine = create_async_engine(
        DATABASE_URL,
        pool_pre_ping=True,
        pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
    )

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db():
    """Request-scoped session dependency"""
    async with AsyncSessionLocal() as session:
        yield session


async def init_db():
    """Create missing tables; existing tables are left untouched."""
    logger.info(f"Initializing {engine.url.get_backend_name()} database...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialization complete")


async def close_db():
    await engine.dispose()
    logger.info("Database connection closed")
