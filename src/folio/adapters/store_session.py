"""SQLAlchemy-backed store session.

The connection is opened lazily, so building a session (e.g. when a request
scope resolves it) costs nothing until it is used.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from folio.interfaces.store_session import AbstractStoreSession

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)


class SessionClosedError(RuntimeError):
    """Raised when a closed session is used."""


class SqlAlchemyStoreSession(AbstractStoreSession):
    """Store session owning one SQLAlchemy connection."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._connection: Connection | None = None
        self._closed = False

    @property
    def connection(self) -> Connection:
        if self._closed:
            raise SessionClosedError("Store session is closed.")
        if self._connection is None:
            self._connection = self.engine.connect()
            logger.debug(
                "Opened store connection (%s)", self.engine.url.get_backend_name()
            )
        return self._connection

    @property
    def closed(self) -> bool:
        return self._closed

    def commit(self):
        if self._connection is not None:
            self._connection.commit()

    def rollback(self):
        if self._connection is not None:
            self._connection.rollback()

    def close(self):
        if self._closed:
            return
        self._closed = True
        if self._connection is not None:
            try:
                self._connection.rollback()
            finally:
                self._connection.close()
                self._connection = None
                logger.debug("Closed store connection")
