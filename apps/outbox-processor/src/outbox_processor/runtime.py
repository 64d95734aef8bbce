"""
Runtime composition for the outbox processor.

Everything the worker, the CLI and the API need is built here, once, from
Settings: engine and session factory, Redis client, the outbox and inbox
stores of both backends, the frozen event type registry, the dispatcher
and the processor. Nothing is looked up through module-level globals.
"""

import contextlib
import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from fitcore.db import make_sessionmaker
from fitcore.settings import Settings, get_settings

from fitness_events.alerts import AlertSink, LoggingAlertSink, RedisStreamAlertSink
from fitness_events.dispatcher import Dispatcher
from fitness_events.inbox import RedisInboxStore, SqlInboxStore
from fitness_events.outbox import BackendStore, RedisOutboxStore, SqlOutboxStore
from fitness_events.persistence import EventsBase
from fitness_events.processor import OutboxProcessor, OutboxProcessorSettings
from fitness_events.registry import EventTypeRegistry, ModuleInstaller, ModuleResources, RegistryBuilder
from fitness_modules import default_installers

logger = logging.getLogger(__name__)

RELATIONAL = "relational"
DOCUMENTS = "documents"


@dataclass
class Runtime:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    redis: redis.Redis
    outbox_stores: dict[str, BackendStore]
    sql_inbox: SqlInboxStore
    redis_inbox: RedisInboxStore
    registry: EventTypeRegistry
    dispatcher: Dispatcher
    processor: OutboxProcessor
    alert_sinks: list[AlertSink] = field(default_factory=list)

    def outbox(self, backend: str) -> BackendStore:
        try:
            return self.outbox_stores[backend]
        except KeyError:
            raise KeyError(f"Unknown backend '{backend}' (known: {', '.join(self.outbox_stores)})") from None

    async def create_tables(self) -> None:
        """Create engine and module tables (development/tests; production uses alembic)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(EventsBase.metadata.create_all)

    async def close(self) -> None:
        await self.redis.aclose()
        await self.engine.dispose()


def build_runtime(
    settings: Settings | None = None,
    installers: Sequence[ModuleInstaller] | None = None,
    engine: AsyncEngine | None = None,
    redis_client: redis.Redis | None = None,
) -> Runtime:
    """
    Wire the outbox processor.

    Args:
        settings: Defaults to get_settings()
        installers: Module installers; defaults to the fitness modules
        engine: Pre-built engine (tests pass an sqlite engine)
        redis_client: Pre-built client (tests pass a fakeredis client)
    """
    settings = settings or get_settings()
    engine = engine or create_async_engine(settings.DATABASE_URL, pool_pre_ping=True, echo=settings.DATABASE_ECHO)
    session_factory = make_sessionmaker(engine)
    redis_client = redis_client or redis.from_url(settings.REDIS_URL, decode_responses=True)
    prefix = settings.REDIS_KEY_PREFIX
    max_error = settings.OUTBOX_LAST_ERROR_MAX_LENGTH

    outbox_stores: dict[str, BackendStore] = {
        RELATIONAL: SqlOutboxStore(session_factory, name=RELATIONAL, last_error_max_length=max_error),
        DOCUMENTS: RedisOutboxStore(redis_client, prefix=prefix, name=DOCUMENTS, last_error_max_length=max_error),
    }
    sql_inbox = SqlInboxStore(session_factory, name=RELATIONAL)
    redis_inbox = RedisInboxStore(redis_client, prefix=prefix, name=DOCUMENTS)

    resources = ModuleResources(
        session_factory=session_factory,
        redis=redis_client,
        redis_prefix=prefix,
        sql_inbox=sql_inbox,
        redis_inbox=redis_inbox,
        processing_ttl=settings.INBOX_PROCESSING_TTL_SECONDS,
    )
    installers = default_installers() if installers is None else installers
    registry = RegistryBuilder().install(installers, resources).build()
    dispatcher = Dispatcher(registry)

    alert_sinks: list[AlertSink] = [LoggingAlertSink()]
    if settings.OUTBOX_ALERT_STREAM:
        alert_sinks.append(
            RedisStreamAlertSink(redis_client, settings.OUTBOX_ALERT_STREAM, max_len=settings.OUTBOX_ALERT_STREAM_MAX_LEN)
        )

    processor = OutboxProcessor(
        stores=list(outbox_stores.values()),
        dispatcher=dispatcher,
        settings=OutboxProcessorSettings.from_settings(settings),
        alert_sinks=alert_sinks,
    )

    logger.debug(
        f"Runtime built with modules {[installer.name for installer in installers]}",
        extra={"backends": list(outbox_stores)},
    )
    return Runtime(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        redis=redis_client,
        outbox_stores=outbox_stores,
        sql_inbox=sql_inbox,
        redis_inbox=redis_inbox,
        registry=registry,
        dispatcher=dispatcher,
        processor=processor,
        alert_sinks=alert_sinks,
    )


@contextlib.asynccontextmanager
async def open_runtime(settings: Settings | None = None) -> AsyncIterator[Runtime]:
    """Build a runtime and release its connections on exit."""
    runtime = build_runtime(settings)
    try:
        yield runtime
    finally:
        await runtime.close()
