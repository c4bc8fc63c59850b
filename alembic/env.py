"""
Alembic environment.

Reads DATABASE_URL through lead_engine.config and imports every model so
autogenerate sees the full schema.
"""
import importlib
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

from lead_engine.config import DATABASE_URL
from lead_engine.database import Base

for _name in ('lead', 'contact', 'client', 'thread', 'meeting', 'suggestion'):
    importlib.import_module(f'lead_engine.models.{_name}')

config = context.config

# Heroku-style URLs use the deprecated postgres:// scheme
config.set_main_option('sqlalchemy.url', DATABASE_URL.replace('postgres://', 'postgresql://', 1))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting to the database."""
    context.configure(
        url=config.get_main_option('sqlalchemy.url'),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={'paramstyle': 'named'},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix='sqlalchemy.',
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
