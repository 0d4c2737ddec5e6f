"""
Alembic Environment Configuration

Runs migrations against the database configured in readshelf.config,
not the URL in alembic.ini.

MIGRATION WORKFLOW:
===================
1. Change the SQLAlchemy models in readshelf/models/
2. Run: alembic revision --autogenerate -m "description"
3. Review the generated migration in alembic/versions/
4. Run: alembic upgrade head

book_stats is derived data: after a migration that changes how it is
computed, run scripts/backfill_book_stats.py (or restart the API, which
backfills at startup).
"""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

from readshelf.config import get_settings
from readshelf.database import Base
import readshelf.models  # noqa: F401 - registers every table on Base.metadata

settings = get_settings()

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """
    Emit migration SQL without connecting.

    Usage:
        alembic upgrade head --sql > migration.sql
    """
    url = config.get_main_option("sqlalchemy.url")
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
    """Apply migrations over a live connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
