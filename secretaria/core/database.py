# secretaria/core/database.py
"""Async engine and request-scoped sessions for the enrollment database."""
import logging
import time
from typing import AsyncGenerator, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_timeout=60,
    pool_recycle=1800,
    pool_pre_ping=True,
    echo=settings.environment == "development",
    connect_args={
        "command_timeout": 300,
        "server_settings": {
            "application_name": "secretaria_api",
            "statement_timeout": "300s",
            "idle_in_transaction_session_timeout": "60s",
            # Student row locks taken by enrollment transitions must not wait forever
            "lock_timeout": "30s",
        },
    },
)

# Services commit per operation and keep using the instances afterwards
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, rolled back if the handler raises"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            logger.warning("Rolling back request session after an error")
            await session.rollback()
            raise


async def check_database() -> Dict:
    started = time.perf_counter()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "database": "PostgreSQL", "error": e.__class__.__name__}
    return {
        "status": "healthy",
        "database": "PostgreSQL",
        "latency_ms": round((time.perf_counter() - started) * 1000, 2),
    }


async def close_db_connections():
    await engine.dispose()
    logger.info("Database pool disposed")
