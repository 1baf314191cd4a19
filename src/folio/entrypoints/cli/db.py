"""FOLIO DB CLI: forward-only Alembic wrappers.

All commands target the *effective* connection string: the one resolved from
layered settings and, in development, suffixed with the branch name. That is
the same database ``folio start`` migrates.

Behavior
- Human-oriented notices go to **stderr**, Alembic output to **stdout**.
- ``upgrade`` prompts for confirmation unless ``--force`` or ``--sql`` is given.
- Destructive operations (``downgrade``, ``stamp``) are intentionally omitted.

Failure modes
- Missing ``ConnectionStrings:DefaultConnection`` or a malformed settings
  file → ``ClickException`` with the startup error message.
- Invalid or unreachable database → ``ClickException`` with guidance.
"""

from __future__ import annotations

import sys
from enum import Enum
from typing import TYPE_CHECKING

import click
import click_extra as clickx
from alembic import command
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import text
from sqlalchemy.exc import ArgumentError, DBAPIError, NoSuchModuleError

from folio import config
from folio.adapters.db.connection_strings import mask_connection_string
from folio.adapters.db.engine import make_engine
from folio.bootstrap.composition import DatabaseOptions

from .helpers import error, success, warn
from .state import CliState, pass_state

if TYPE_CHECKING:
    from alembic.config import Config
    from sqlalchemy.engine import Engine

INVALID_URL_FORMAT_MSG = (
    "ConnectionStrings:DefaultConnection is not a valid connection string."
)

CANNOT_CONNECT_MSG = (
    "The configured database is not reachable.\n"
    "Please ensure the database is running and "
    "ConnectionStrings:DefaultConnection is correct."
)

UPGRADE_SCHEMA_WARNING = (
    "This will upgrade the database schema to the latest version.\n"
    "Please ensure you have a backup before proceeding."
)

UPGRADE_SCHEMA_INSTRUCTIONS = "Run 'folio db upgrade' to update the schema."


def _effective_url(state: CliState) -> str:
    with state.host() as host:
        return host.provider.get(DatabaseOptions).connection_string


def _check_connection(url: str) -> None:
    engine = make_engine(url)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))  # pragma: no mutate
    finally:
        engine.dispose()


def _get_url(state: CliState) -> str:
    url = _effective_url(state)
    try:
        _check_connection(url)
    except DBAPIError as e:
        raise click.ClickException(CANNOT_CONNECT_MSG) from e
    except (ArgumentError, NoSuchModuleError) as e:
        raise click.ClickException(INVALID_URL_FORMAT_MSG) from e
    return url


@click.group(cls=clickx.ExtraGroup)
def db() -> None:
    """Database management commands."""


@db.command()
@click.option("--verbose", "-v", is_flag=True, help="Show alembic's verbose output.")
@pass_state
def current(state: CliState, verbose: bool) -> None:
    """Show current DB revision."""
    cfg = config.build_alembic_config(db_url=_get_url(state), stdout=sys.stdout)
    command.current(cfg, verbose=verbose)


@db.command()
@click.option("--verbose", "-v", is_flag=True, help="Show alembic's verbose output.")
def heads(verbose: bool) -> None:
    """Show available head revisions."""
    command.heads(config.build_alembic_config(stdout=sys.stdout), verbose=verbose)


@db.command()
@click.option("--verbose", "-v", is_flag=True, help="Show alembic's verbose output.")
@click.option(
    "--indicate-current",
    "-i",
    is_flag=True,
    help="Indicate the current revision.",
)
@pass_state
def history(state: CliState, verbose: bool, indicate_current: bool) -> None:
    """Show revision history."""
    db_url = _get_url(state) if indicate_current else None
    cfg = config.build_alembic_config(db_url=db_url, stdout=sys.stdout)
    command.history(cfg, verbose=verbose, indicate_current=indicate_current)


@db.command()
@click.option("--sql", is_flag=True, help="Generate SQL without executing.")
@click.option("--force", is_flag=True, help="Upgrade without confirmation.")
@pass_state
def upgrade(state: CliState, sql: bool, force: bool) -> None:
    """Upgrade the database to the head revision."""
    url = _effective_url(state) if sql else _get_url(state)
    cfg = config.build_alembic_config(db_url=url, stdout=sys.stdout)
    if not force and not sql:
        warn(UPGRADE_SCHEMA_WARNING)
        click.secho(f"db: {click.style(mask_connection_string(url), underline=True)}")
        click.confirm("Are you sure you want to proceed?", abort=True)
    command.upgrade(cfg, revision="head", sql=sql)
    if not sql:
        success("Upgrade complete!")


def _get_current_revision(engine: Engine) -> str | None:
    with engine.connect() as conn:
        return MigrationContext.configure(conn).get_current_revision()


def _get_head_revision(cfg: Config) -> str | None:
    return ScriptDirectory.from_config(cfg).get_current_head()


class MigrationStatus(Enum):
    """Describes the migration status of the database schema."""

    UP_TO_DATE = "up to date"
    OUT_OF_DATE = "out of date"
    UNINITIALIZED = "uninitialized"


@db.command()
@pass_state
def status(state: CliState) -> None:
    """Show database connection and schema status."""
    try:
        url = _get_url(state)
    except click.ClickException as e:
        error("Cannot connect to database")
        click.echo(e.format_message())
        return

    engine = make_engine(url)
    try:
        rev = _get_current_revision(engine)
    finally:
        engine.dispose()
    head = _get_head_revision(config.build_alembic_config())

    if rev == head:
        migration_status = MigrationStatus.UP_TO_DATE
    elif rev is None:
        migration_status = MigrationStatus.UNINITIALIZED
    else:
        migration_status = MigrationStatus.OUT_OF_DATE

    success("Database reachable")
    click.echo(f"Backend : {engine.dialect.name}")
    click.echo(f"URL     : {mask_connection_string(url)}")
    message = (
        f"{rev} ({migration_status.value})"
        if rev is not None
        else migration_status.value
    )
    click.echo(f"Schema  : {message}")
    if migration_status is not MigrationStatus.UP_TO_DATE:
        warn(UPGRADE_SCHEMA_INSTRUCTIONS)
