"""Alembic environment for FOLIO.

Policy defaults:
  - compare_type=True (catch column type drift)
  - compare_server_default=True (catch server default drift)
  - render_as_batch=True on SQLite (safe ALTER TABLE emulation)
  - a store-level lock is held for the migration transaction where the
    backend supports one (PostgreSQL, SQL Server)
  - connection precedence: ``config.attributes["connection"]`` (shared by the
    startup migrator) > `-x url=...` > config sqlalchemy.url > FOLIO settings
"""

from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import create_engine, pool

from folio.adapters.db.dialects import DialectName
from folio.adapters.db.engine import to_url
from folio.adapters.db.locks import (
    MIGRATION_LOCK_KEY,
    MIGRATION_LOCK_RESOURCE,
    acquire_xact_lock,
)
from folio.adapters.db.schema import metadata

# pylint: disable=no-member

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = metadata


def get_url() -> str:
    """Resolve the DB URL: `-x url` > config > layered FOLIO settings."""
    xargs = context.get_x_argument(as_dictionary=True)
    url = xargs.get("url") or config.get_main_option("sqlalchemy.url")
    if url and "%(" not in url:  # treat placeholder as unset # pylint: disable=R2004
        return url

    # pylint: disable=import-outside-toplevel
    from folio.bootstrap.composition import effective_connection_string
    from folio.config import get_environment_name, resolve
    from folio.environment import EnvironmentContext

    environment = EnvironmentContext.from_content_root(Path.cwd(), get_environment_name())
    settings = resolve(Path.cwd(), environment.environment_name)
    return effective_connection_string(settings, environment)


def acquire_migration_lock(connection) -> None:
    """Serialize concurrent migrators for the rest of the transaction."""
    acquire_xact_lock(connection, MIGRATION_LOCK_KEY, MIGRATION_LOCK_RESOURCE)


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (emit SQL without a connection)."""
    context.configure(
        url=to_url(get_url()),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        render_as_batch=connection.dialect.name == DialectName.SQLITE.value,
    )

    with context.begin_transaction():
        acquire_migration_lock(connection)
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations on the shared connection, or on a fresh one."""
    connection = config.attributes.get("connection")
    if connection is not None:
        do_run_migrations(connection)
        return

    connectable = create_engine(to_url(get_url()), poolclass=pool.NullPool)
    with connectable.connect() as connection:
        do_run_migrations(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
