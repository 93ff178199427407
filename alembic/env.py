"""Alembic environment: raw SQL migrations for the shared wikiauth database."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from wikiauth.config import Settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _sync_url() -> str:
    """DATABASE_URL as the bot and callback server see it, in a form the sync driver accepts."""
    url = Settings.from_env().DATABASE_URL
    if not url:
        raise RuntimeError("DATABASE_URL environment variable is required")
    for prefix in ("postgres://", "postgresql+asyncpg://"):
        if url.startswith(prefix):
            return "postgresql://" + url[len(prefix) :]
    return url


def run_migrations_offline() -> None:
    context.configure(url=_sync_url(), target_metadata=None, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(_sync_url(), poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=None)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
