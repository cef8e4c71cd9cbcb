"""Alembic environment configuration.

References SQLAlchemy metadata from dsptracker.models.database:Base and supports
both offline and online migrations. Async URLs are rewritten to their sync
drivers, which Alembic requires (asyncpg -> psycopg2, aiosqlite -> pysqlite).
"""
from __future__ import annotations

from logging.config import fileConfig
import os

from alembic import context
from sqlalchemy import pool, create_engine

from dsptracker.core.config import get_database_url
from dsptracker.models.database import Base

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
# This line sets up loggers basically.
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def get_url() -> str:
    # An explicit sqlalchemy.url (e.g. set by tests) wins over the environment
    url = config.get_main_option("sqlalchemy.url") or os.environ.get("DATABASE_URL") or get_database_url()
    # Use sync driver for Alembic engine when using async URLs
    if url.startswith("postgresql+asyncpg"):
        url = url.replace("postgresql+asyncpg", "postgresql", 1)
    elif url.startswith("sqlite+aiosqlite"):
        url = url.replace("sqlite+aiosqlite", "sqlite", 1)
    return url


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = get_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
