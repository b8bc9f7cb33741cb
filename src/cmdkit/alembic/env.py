"""Alembic environment for cmdkit's bundled migrations."""

from __future__ import annotations

from alembic import context
from sqlalchemy import create_engine, pool

from cmdkit.core.models import Base
from cmdkit.modules.task import models as _task_models  # noqa: F401

config = context.config
target_metadata = Base.metadata


def _sync_url(url: str) -> str:
    """Swap the async driver for its sync counterpart; migrations run in a worker thread."""
    return url.replace("+aiosqlite", "")


def run_migrations_offline() -> None:
    context.configure(
        url=_sync_url(config.get_main_option("sqlalchemy.url") or ""),
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(_sync_url(config.get_main_option("sqlalchemy.url") or ""), poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
