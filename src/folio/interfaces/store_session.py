"""Store session interface for FOLIO.

A store session is the bounded-lifetime handle to the storage layer: one per
request scope in steady state, and exactly one for startup migration and
seeding. It owns a single connection and its transaction.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection


class AbstractStoreSession(abc.ABC):
    """Contract for a scoped, transactional handle to the store."""

    @property
    @abc.abstractmethod
    def connection(self) -> Connection:
        """The session's connection, opened on first access."""

    @property
    @abc.abstractmethod
    def closed(self) -> bool:
        """True once :meth:`close` has been called."""

    def __enter__(self) -> AbstractStoreSession:
        return self

    def __exit__(self, *args):
        """Exit the session context: roll back anything uncommitted, then close."""
        self.close()

    @abc.abstractmethod
    def commit(self):
        """Persist changes made through the session."""

    @abc.abstractmethod
    def rollback(self):
        """Discard uncommitted changes."""

    @abc.abstractmethod
    def close(self):
        """Roll back uncommitted work and release the connection."""
