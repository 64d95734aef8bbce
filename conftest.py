"""
Shared pytest fixtures.

Relational backend: in-memory SQLite through aiosqlite (one shared
connection). Document backend: fakeredis, one isolated server per test.
"""

import os

# Keep a developer's .env out of the tests
os.environ.setdefault("LOG_FORMAT", "text")

import fakeredis
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from fitcore.db import make_sessionmaker
from fitness_events.inbox import RedisInboxStore, SqlInboxStore
from fitness_events.outbox import RedisOutboxStore, SqlOutboxStore
from fitness_events.persistence import EventsBase
import fitness_modules  # noqa: F401  (module tables share EventsBase metadata)

REDIS_PREFIX = "test"


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(EventsBase.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest_asyncio.fixture
async def redis_client(redis_server):
    client = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def sql_outbox(session_factory):
    return SqlOutboxStore(session_factory)


@pytest.fixture
def redis_outbox(redis_client):
    return RedisOutboxStore(redis_client, prefix=REDIS_PREFIX)


@pytest.fixture
def sql_inbox(session_factory):
    return SqlInboxStore(session_factory)


@pytest.fixture
def redis_inbox(redis_client):
    return RedisInboxStore(redis_client, prefix=REDIS_PREFIX)
