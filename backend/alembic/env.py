"""
Alembic Migration Environment
===============================

What:  Runs Alembic against the application's async database.
How:   Takes DATABASE_URL from app.config (alembic.ini leaves it blank) and
       runs migrations on an async engine through connection.run_sync().
Who:   `alembic upgrade head` from the backend/ directory.

SQLite URLs (local experiments) are migrated in batch mode, since SQLite
cannot ALTER most constraints in place.
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context

from app.config import settings
from app.database import Base

# Registers the tables on Base.metadata for --autogenerate
from app.models.user import User  # noqa: F401
from app.models.note import Note  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

DATABASE_URL = settings.database_url
MIGRATION_OPTIONS = {
    "target_metadata": Base.metadata,
    "compare_type": True,
    "render_as_batch": DATABASE_URL.startswith("sqlite"),
}


def run_migrations_offline() -> None:
    """Print the SQL instead of executing it (alembic upgrade head --sql)."""
    context.configure(
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **MIGRATION_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **MIGRATION_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(DATABASE_URL, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
