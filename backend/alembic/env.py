"""
Alembic environment for the slotbook schema.

Migrations run through a synchronous driver (psycopg2 / pysqlite). The URL
comes from DATABASE_URL_SYNC, or is derived from DATABASE_URL by dropping the
async driver when DATABASE_URL_SYNC is left empty.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import make_url

from slotbook.core.config import get_settings
from slotbook.db.base import Base
import slotbook.models  # noqa: F401 - registers every table on Base.metadata

_SYNC_DRIVERS = {"postgresql+asyncpg": "postgresql", "sqlite+aiosqlite": "sqlite"}


def migration_url() -> str:
    settings = get_settings()
    if settings.DATABASE_URL_SYNC:
        return settings.DATABASE_URL_SYNC
    url = make_url(settings.DATABASE_URL)
    return url.set(drivername=_SYNC_DRIVERS.get(url.drivername, url.drivername)).render_as_string(
        hide_password=False
    )


config = context.config
config.set_main_option("sqlalchemy.url", migration_url())

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emit SQL to stdout (alembic upgrade --sql)."""
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        # SQLite cannot ALTER constraints in place
        _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
