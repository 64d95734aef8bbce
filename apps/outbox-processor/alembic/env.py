"""Alembic environment for the fitness relational backend.

Attaches EventsBase metadata (engine tables plus the module tables that
share it) so `alembic revision --autogenerate` works. Migrations run on a
synchronous psycopg2 connection derived from DATABASE_URL.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from fitcore.settings import get_settings
from fitness_events.persistence import EventsBase
import fitness_modules.users.models  # noqa: F401
import fitness_modules.workouts.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = EventsBase.metadata


def database_url() -> str:
    """DATABASE_URL with the async driver swapped for psycopg2."""
    return get_settings().DATABASE_URL.replace("+asyncpg", "+psycopg2")


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = database_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
