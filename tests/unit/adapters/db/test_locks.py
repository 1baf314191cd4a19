"""Unit tests for :mod:`folio.adapters.db.locks`."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from folio.adapters.db.locks import (
    MIGRATION_LOCK_KEY,
    MIGRATION_LOCK_RESOURCE,
    SEED_LOCK_KEY,
    SEED_LOCK_RESOURCE,
    acquire_xact_lock,
)

# pylint: disable=magic-value-comparison
# pylint: disable=too-few-public-methods


class RecordingConnection:
    """Connection double that records executed statements."""

    def __init__(self, dialect_name: str):
        self.dialect = SimpleNamespace(name=dialect_name)
        self.executed: list[tuple[str, dict]] = []

    def execute(self, statement, parameters=None):
        self.executed.append((str(statement), parameters or {}))


def test_postgres_takes_advisory_lock():
    connection = RecordingConnection("postgresql")

    assert acquire_xact_lock(connection, SEED_LOCK_KEY, SEED_LOCK_RESOURCE)

    [(statement, parameters)] = connection.executed
    assert "pg_advisory_xact_lock" in statement
    assert parameters == {"key": SEED_LOCK_KEY}


def test_mssql_takes_application_lock():
    connection = RecordingConnection("mssql")

    assert acquire_xact_lock(connection, MIGRATION_LOCK_KEY, MIGRATION_LOCK_RESOURCE)

    [(statement, parameters)] = connection.executed
    assert "sp_getapplock" in statement
    assert "'Transaction'" in statement
    assert parameters == {"resource": MIGRATION_LOCK_RESOURCE}


@pytest.mark.parametrize("dialect_name", ["sqlite", "oracle"])
def test_backends_without_a_lock(dialect_name):
    connection = RecordingConnection(dialect_name)

    assert not acquire_xact_lock(connection, SEED_LOCK_KEY, SEED_LOCK_RESOURCE)
    assert not connection.executed


def test_lock_names_are_distinct():
    assert SEED_LOCK_KEY != MIGRATION_LOCK_KEY
    assert SEED_LOCK_RESOURCE != MIGRATION_LOCK_RESOURCE
