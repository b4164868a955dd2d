"""Alembic environment: runs migrations synchronously against the same database the app uses."""

from logging.config import fileConfig
import os
import sys

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool, text

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
load_dotenv()

import fincontrols.models  # noqa: F401,E402
from fincontrols.config import settings  # noqa: E402
from fincontrols.database import Base  # noqa: E402

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _sync_url() -> str:
    """DATABASE_SYNC_URL if set, else the app's asyncpg URL on the psycopg2 driver."""
    if settings.DATABASE_SYNC_URL:
        return settings.DATABASE_SYNC_URL
    if os.getenv("DATABASE_URL"):
        return settings.DATABASE_URL.replace("+asyncpg", "+psycopg2")
    return config.get_main_option("sqlalchemy.url")


database_url = _sync_url()
config.set_main_option("sqlalchemy.url", database_url)

# Money columns are Numeric(18, 2); let autogenerate notice precision changes
COMPARE_OPTIONS = {"compare_type": True, "compare_server_default": True}


def run_migrations_offline():
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        **COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        connection.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))
        connection.commit()
        context.configure(
            connection=connection, target_metadata=target_metadata, **COMPARE_OPTIONS
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
