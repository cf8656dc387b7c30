"""
Migration runner for the filmvault schema.

The target database comes from filmvault.core.config, so migrations and the
API always agree on DATABASE_URL (environment or .env).

  cd backend
  alembic upgrade head       # create/upgrade the schema
  alembic upgrade head --sql # print the DDL instead of running it
  alembic downgrade base     # drop everything
"""
import os
import sys
from logging.config import fileConfig

from sqlalchemy import create_engine, pool
from alembic import context

# Running from backend/ without an editable install still finds the package
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from filmvault.core.config import settings
from filmvault.db.models import Base

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def migrate_offline(url: str) -> None:
    context.configure(
        url=url,
        target_metadata=Base.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def migrate_online(url: str) -> None:
    # One short-lived connection; the API's pool settings do not apply here
    engine = create_engine(url, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, target_metadata=Base.metadata)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    migrate_offline(settings.DATABASE_URL)
else:
    migrate_online(settings.DATABASE_URL)
