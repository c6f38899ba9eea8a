from logging.config import fileConfig
from pathlib import Path
import os
import sys

from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context

# Add project root to path (stable regardless of cwd).
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config import normalize_database_url
from models import Base

config = context.config

# Prefer DATABASE_URL from the environment (avoid importing db, which connects)
DATABASE_URL = normalize_database_url(os.environ.get("DATABASE_URL", ""))

if DATABASE_URL:
    config.set_main_option("sqlalchemy.url", DATABASE_URL)
else:
    ini_url = normalize_database_url(config.get_main_option("sqlalchemy.url") or "")
    if not ini_url:
        raise RuntimeError("DATABASE_URL is not set and sqlalchemy.url is empty; cannot run migrations.")
    config.set_main_option("sqlalchemy.url", ini_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
