"""Transaction-scoped store locks.

PostgreSQL takes an advisory lock, SQL Server an application lock; both are
released when the surrounding transaction ends. Other backends get no lock.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import text

from folio.adapters.db.dialects import DialectName, UnsupportedDialect

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

MIGRATION_LOCK_KEY = 7_415_682_031  # pragma: no mutate
MIGRATION_LOCK_RESOURCE = "folio_migrations"  # pragma: no mutate
SEED_LOCK_KEY = 7_415_682_032  # pragma: no mutate
SEED_LOCK_RESOURCE = "folio_seed"  # pragma: no mutate


def acquire_xact_lock(connection: Connection, key: int, resource: str) -> bool:
    """Block until the named lock is held for the rest of the transaction.

    Args:
        connection: Connection inside the transaction to serialize.
        key: Advisory lock key (PostgreSQL).
        resource: Application lock name (SQL Server).

    Returns:
        True if a lock was taken, False if the backend has none.
    """
    try:
        dialect = DialectName.from_sqlalchemy(connection)
    except UnsupportedDialect:
        return False
    if dialect is DialectName.POSTGRES:
        connection.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})
        return True
    if dialect is DialectName.MSSQL:
        connection.execute(
            text(
                "EXEC sp_getapplock @Resource = :resource, "
                "@LockMode = 'Exclusive', @LockOwner = 'Transaction'"
            ),
            {"resource": resource},
        )
        return True
    return False
