"""Apply outstanding schema migrations at startup.

Migrations run through Alembic on the connection of the startup store session,
so the migrator and the seeder share one scoped handle. Startup blocks until
the upgrade completes; there is no timeout.

Concurrent instances: the Alembic environment takes a store-level lock
(PostgreSQL advisory lock, SQL Server application lock) inside the migration
transaction, so two processes never apply overlapping changes. SQLite
serializes writers itself.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from alembic import command
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from folio import config
from folio.errors import MigrationError

if TYPE_CHECKING:
    from folio.interfaces.store_session import AbstractStoreSession

logger = logging.getLogger(__name__)

HEAD = "head"


def current_revision(session: AbstractStoreSession) -> str | None:
    """Return the store's current schema revision (``None`` if uninitialized)."""
    return MigrationContext.configure(session.connection).get_current_revision()


def head_revision() -> str | None:
    """Return the newest revision shipped with the package."""
    script = ScriptDirectory.from_config(config.build_alembic_config())
    return script.get_current_head()


def migrate(session: AbstractStoreSession) -> str | None:
    """Upgrade the store to the head revision and commit.

    A store that is already at head is left untouched.

    Args:
        session: The startup store session.

    Returns:
        The revision the store is at afterwards.

    Raises:
        MigrationError: If the store is unreachable or any migration step fails.
    """
    try:
        connection = session.connection
        if not connection.in_transaction():
            connection.begin()
        before = MigrationContext.configure(connection).get_current_revision()
        cfg = config.build_alembic_config()
        cfg.attributes["connection"] = connection
        command.upgrade(cfg, HEAD)
        session.commit()
        after = current_revision(session)
    except Exception as e:  # pylint: disable=broad-except
        raise MigrationError(f"Database migration failed: {e}") from e

    if before == after:
        logger.info("Database schema is up to date (%s)", after)
    else:
        logger.info("Database schema migrated from %s to %s", before or "<empty>", after)
    return after
