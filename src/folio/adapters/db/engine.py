"""Database engine factory.

All engines are created here so connections are configured consistently:

- key/value (SQL Server style) connection strings are passed through to
  ``pyodbc`` via ``mssql+pyodbc:///?odbc_connect=...``;
- SQLite connections get PRAGMAs enforcing foreign keys and tuning
  durability for development/test usage.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, make_url

from folio.adapters.db.connection_strings import is_url
from folio.adapters.db.dialects import DialectName

if TYPE_CHECKING:
    from sqlite3 import Connection as SQLiteConnection

    from sqlalchemy.engine import Engine

ODBC_DRIVERNAME = "mssql+pyodbc"


def to_url(connection_string: str | URL) -> URL:
    """Convert either connection string grammar into a SQLAlchemy URL."""
    if isinstance(connection_string, URL):
        return connection_string
    if is_url(connection_string):
        return make_url(connection_string)
    return URL.create(ODBC_DRIVERNAME, query={"odbc_connect": connection_string})


def is_sqlite(url: str | URL) -> bool:
    """Return True if the given connection string corresponds to SQLite."""
    return to_url(url).get_backend_name() == DialectName.SQLITE.value


def make_engine(url: str | URL, *, echo: bool = False) -> Engine:
    """Create a SQLAlchemy Engine for the given connection string.

    If the backend is SQLite, applies:
        - ``foreign_keys=ON`` (enforce referential integrity)
        - ``journal_mode=WAL`` (write-ahead logging for concurrency)
        - ``synchronous=NORMAL`` (balanced durability)

    Args:
        url: SQLAlchemy URL (str or :class:`URL`) or key/value connection string.
        echo: If True, log SQL statements.

    Returns:
        Engine: Configured SQLAlchemy Engine. No connection is opened here.
    """
    engine = create_engine(to_url(url), echo=echo)

    if is_sqlite(url):

        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_conn: SQLiteConnection, conn_record):  # type: ignore #pylint: disable=W0613
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON;")
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.execute("PRAGMA synchronous=NORMAL;")
            cur.close()

    return engine
