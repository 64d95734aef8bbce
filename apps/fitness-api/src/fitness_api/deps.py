"""
FastAPI dependencies.

Each one builds on the cached fitcore clients so nothing connects at import
time; tests replace them through app.dependency_overrides.
"""

import logging

from sqlalchemy import text

from fitcore.db import get_engine, get_sessionmaker
from fitcore.redis import get_redis_client
from fitcore.settings import get_settings

from fitness_events.outbox import BackendStore, RedisOutboxStore, SqlOutboxStore

logger = logging.getLogger(__name__)


async def check_database() -> bool:
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return False


async def check_redis() -> bool:
    try:
        return bool(await get_redis_client().ping())
    except Exception as e:
        logger.warning(f"Redis health check failed: {e}")
        return False


def get_outbox_stores() -> list[BackendStore]:
    settings = get_settings()
    return [
        SqlOutboxStore(get_sessionmaker(), name="relational"),
        RedisOutboxStore(get_redis_client(), prefix=settings.REDIS_KEY_PREFIX, name="documents"),
    ]
