"""Alembic environment configuration for Armory-Engine."""

import sys
from pathlib import Path
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

# Ensure src/ is on sys.path for non-installed checkouts
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from armory_engine.common.config import get_settings
from armory_engine.common.models import Base

# Register every table with Base.metadata
import armory_engine.bases.models  # noqa: F401
import armory_engine.personnel.models  # noqa: F401
import armory_engine.assets.models  # noqa: F401
import armory_engine.transfers.models  # noqa: F401
import armory_engine.purchases.models  # noqa: F401
import armory_engine.audit.models  # noqa: F401

config = context.config

# Precedence: alembic -x sqlalchemy.url=..., then ini, then ARMORY_DB_URL
cmd_url = context.get_x_argument(as_dictionary=True).get("sqlalchemy.url")
if cmd_url:
    config.set_main_option("sqlalchemy.url", cmd_url)
elif not config.get_main_option("sqlalchemy.url"):
    # Migrations run synchronously; drop the async driver suffix.
    sync_url = get_settings().db_url.replace("+aiosqlite", "").replace("+asyncpg", "")
    config.set_main_option("sqlalchemy.url", sync_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=url.startswith("sqlite"),
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
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
