"""
Alembic environment for the fintrack schema.

Migrations are normally run programmatically from ``fintrack.database.init_db``,
which passes ``sqlalchemy.url`` on an in-memory Config.  Running the ``alembic``
CLI directly falls back to ``FINTRACK_DATABASE_URL``.
"""

import logging
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from fintrack import models  # noqa: F401  registers tables on Base.metadata
from fintrack.database import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

db_url = config.get_main_option("sqlalchemy.url") or os.getenv("FINTRACK_DATABASE_URL")
if not db_url:
    raise RuntimeError(
        "No database URL. Set FINTRACK_DATABASE_URL or 'sqlalchemy.url' in the Alembic config."
    )

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = create_engine(db_url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        # SQLite cannot ALTER constraints in place; batch mode rebuilds tables
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
