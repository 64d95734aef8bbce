import functools

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from fitcore.settings import get_settings


@functools.lru_cache()
def get_engine() -> AsyncEngine:
    """
    Get SQLAlchemy async engine (cached).

    This function lazily initializes the engine to avoid import-time side effects.
    The engine is created using DATABASE_URL from settings.
    """
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, pool_pre_ping=True, echo=settings.DATABASE_ECHO)


@functools.lru_cache()
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """
    Get SQLAlchemy async sessionmaker (cached).

    Sessions keep loaded attributes after commit so records can be logged
    once their transaction is closed.
    """
    return make_sessionmaker(get_engine())


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, autoflush=False, expire_on_commit=False)
