"""Connection string composition.

In development, several developers may share one database server while working
on different branches. :func:`compose` folds the checked-out branch name into
the catalog (database name) component of the connection string so each branch
gets its own database. Outside development the string is used as-is.

Two grammars are understood:

- **key/value** strings as used by SQL Server
  (``Server=s;Database=MyApp;Trusted_Connection=True``), where the catalog is
  the value of ``Database`` or ``Initial Catalog``;
- **SQLAlchemy URLs** (``postgresql+psycopg://u:p@host/myapp``), where the
  catalog is the URL's database. SQLite file databases get the suffix before
  the file extension; in-memory SQLite has no catalog and is left alone.

Branch sanitization policy: every character outside ``[A-Za-z0-9]`` is
replaced by ``_``, one for one. ``dev/alice`` becomes ``dev_alice``.
"""

from __future__ import annotations

import os
import re

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

CATALOG_KEYS = frozenset({"database", "initial catalog"})
PASSWORD_KEYS = frozenset({"password", "pwd"})
SUFFIX_SEPARATOR = "_"
MASK = "***"

_ILLEGAL_CHARS = re.compile(r"[^A-Za-z0-9]")
_URL_SCHEME = re.compile(r"^[A-Za-z][\w+.-]*://")
_CLOSING_QUOTE = {"'": "'", '"': '"', "{": "}"}
_SQLITE_NO_CATALOG = {"", ":memory:"}


def sanitize_branch_name(branch: str) -> str:
    """Replace every non-alphanumeric character with ``_``.

    Example:
        >>> sanitize_branch_name("feature/JIRA-12.fix")
        'feature_JIRA_12_fix'
    """
    return _ILLEGAL_CHARS.sub(SUFFIX_SEPARATOR, branch)


def is_url(connection_string: str) -> bool:
    """Return True for SQLAlchemy URLs, False for key/value strings.

    Only a leading ``scheme://`` makes a URL; ``Server=tcp://host;...`` is
    still a key/value string.
    """
    return _URL_SCHEME.match(connection_string.strip()) is not None


def split_key_value(connection_string: str) -> list[str]:
    """Split a key/value connection string into its ``key=value`` segments.

    A value opened by ``'``, ``"`` or ``{`` runs to its closing quote or
    brace, so a ``;`` inside it does not end the segment. A doubled closing
    character inside the value is an escaped literal.

    Example:
        >>> split_key_value('Server=s;Password="a;b";Database=d')
        ['Server=s', 'Password="a;b"', 'Database=d']
    """
    segments: list[str] = []
    current: list[str] = []
    closing: str | None = None
    in_value = at_value_start = False
    index = 0
    while index < len(connection_string):
        char = connection_string[index]
        current.append(char)
        index += 1
        if closing is not None:
            if char == closing:
                if connection_string[index : index + 1] == closing:
                    current.append(closing)
                    index += 1
                else:
                    closing = None
        elif char == ";":
            current.pop()
            segments.append("".join(current))
            current, in_value = [], False
        elif not in_value:
            in_value = at_value_start = char == "="
        elif at_value_start and not char.isspace():
            at_value_start = False
            closing = _CLOSING_QUOTE.get(char)
    segments.append("".join(current))
    return segments


def compose(base: str, is_development: bool, branch: str | None) -> str:
    """Return the effective connection string.

    Args:
        base: Configured connection string.
        is_development: Whether the process runs in the development environment.
        branch: Source-control branch name, or ``None`` if unknown.

    Returns:
        ``base`` unchanged unless in development with a known branch; otherwise
        ``base`` with ``_<sanitized branch>`` appended to its catalog.

    Raises:
        ValueError: If a key/value connection string names no catalog.
    """
    if not is_development or not branch:
        return base
    suffix = SUFFIX_SEPARATOR + sanitize_branch_name(branch)
    if is_url(base):
        return _compose_url(base, suffix)
    return _compose_key_value(base, suffix)


def _suffix_value(value: str, suffix: str) -> str:
    stripped = value.strip()
    if len(stripped) >= 2 and stripped[0] == stripped[-1] and stripped[0] in "'\"":
        return f"{stripped[:-1]}{suffix}{stripped[-1]}"
    if stripped.startswith("{") and stripped.endswith("}"):
        return f"{stripped[:-1]}{suffix}}}"
    return stripped + suffix


def _compose_key_value(base: str, suffix: str) -> str:
    segments = split_key_value(base)
    for index, segment in enumerate(segments):
        key, sep, value = segment.partition("=")
        if sep and key.strip().casefold() in CATALOG_KEYS:
            segments[index] = f"{key}={_suffix_value(value, suffix)}"
            return ";".join(segments)
    raise ValueError(
        "Connection string has no 'Database' or 'Initial Catalog' component."
    )


def _compose_url(base: str, suffix: str) -> str:
    url = make_url(base)
    database = url.database or ""
    if url.get_backend_name() == "sqlite":
        if database in _SQLITE_NO_CATALOG or database.startswith("file:"):
            return base
        head, tail = os.path.split(database)
        stem, ext = os.path.splitext(tail)
        new_database = os.path.join(head, f"{stem}{suffix}{ext}")
    else:
        if not database:
            raise ValueError("Database URL has no database name.")
        new_database = database + suffix
    return url.set(database=new_database).render_as_string(hide_password=False)


def mask_connection_string(connection_string: str) -> str:
    """Render a connection string with any password redacted.

    Works for both grammars; safe to show in logs and prompts.
    """
    if is_url(connection_string):
        try:
            return make_url(connection_string).render_as_string(hide_password=True)
        except ArgumentError:
            return MASK
    segments = split_key_value(connection_string)
    for index, segment in enumerate(segments):
        key, sep, _ = segment.partition("=")
        if sep and key.strip().casefold() in PASSWORD_KEYS:
            segments[index] = f"{key}={MASK}"
    return ";".join(segments)
