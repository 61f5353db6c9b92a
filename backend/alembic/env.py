"""
Alembic Migration Environment
==============================

What:  Runs Hbook migrations through the async engine.
How:   The database URL comes from hbook.config.settings, never from the ini
       file; migrations run on a sync connection obtained via run_sync().
Who:   `alembic upgrade head` at deploy time, `alembic revision` in development.

Schema under migration (hbook.models):
    users, sessions, follows          identity and the follow graph
    posts, media, likes, bookmarks,   feed content and the child tables the
    comments                          viewer projector counts and flags
    notifications                     LIKE / FOLLOW / COMMENT inbox

    Every paginated table carries a (created_at, id) index for the cursor
    pager; autogenerate compares column types so a changed timestamp or id
    type shows up in the diff.
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from hbook.config import settings
from hbook.database import Base

# Registers every table on Base.metadata for --autogenerate
import hbook.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

config.set_main_option("sqlalchemy.url", settings.database_url)


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting (alembic upgrade --sql)."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Connect with a pool-less async engine and apply pending migrations."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
