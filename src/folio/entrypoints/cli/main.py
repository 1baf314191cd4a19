"""FOLIO CLI entry point.

Defines the top-level ``folio`` command (via Click-Extra) and its subcommands:

- ``folio start``: run the full startup sequence and report readiness.
- ``folio info``: show the resolved environment and effective connection.
- ``folio db``: forward-only database management (current/heads/history/upgrade/status).

Examples
    $ folio --environment Development info
    $ FOLIO_ENVIRONMENT=Production folio -v start
"""

import logging
from pathlib import Path

import click
import click_extra as clickx
from platformdirs import user_log_dir

from folio import __version__
from folio.adapters.db.connection_strings import mask_connection_string
from folio.bootstrap.composition import DatabaseOptions
from folio.bootstrap.host import run_startup
from folio.config import DEFAULT_ENVIRONMENT, ENVIRONMENT_VARIABLE
from folio.errors import StartupError
from folio.logging import (
    DEFAULT_FLIGHT_RECORDER_CAPACITY,
    LoggingOptions,
    configure_logging,
    console_level,
    log_startup,
)
from folio.routing import RouteTable
from folio.service_layer.books import BookListService

from .db import db as db_group
from .helpers import success
from .helpers.log_level_parser import parse_log_level
from .state import CliState, pass_state

logger = logging.getLogger(__name__)


HELP = """FOLIO command-line interface.

    Resolves layered configuration (appsettings.json, appsettings.{environment}.json,
    environment variables), composes the server's services, and prepares the
    database (migrations and seed data) before the server accepts traffic.
    """


@clickx.extra_group(
    version=__version__,
    help=HELP,
    params=[
        clickx.ColorOption(show_envvar=True),
        clickx.TimerOption(show_envvar=True),
        clickx.ExtraVersionOption(),
    ],
)
@click.option(
    "--verbose",
    "-v",
    "verbose_count",
    count=True,
    help="Increase the default WARNING verbosity by one level per repetition.",
    default=0,
)
@click.option(
    "--quiet",
    "-q",
    "quiet_count",
    count=True,
    help="Decrease the default WARNING verbosity by one level per repetition.",
    default=0,
)
@click.option(
    "--debug/--no-debug",
    is_flag=True,
    help="Enable debug formatting (timestamps, logger names, source paths).",
    default=False,
)
@click.option(
    "--log-path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Flight-recorder output file.",
    default=Path(user_log_dir("folio", appauthor=False, ensure_exists=True))
    / "latest.log",
    envvar="FOLIO_LOG_PATH",
    show_default=True,
    show_envvar=True,
)
@click.option(
    "--flight-recorder/--no-flight-recorder",
    "flight_recorder",
    is_flag=True,
    help=(
        "Keep recent DEBUG records in memory and write them to --log-path when "
        "a WARNING or ERROR occurs."
    ),
    default=True,
    show_envvar=True,
)
@click.option(
    "--flight-recorder-capacity",
    type=int,
    default=DEFAULT_FLIGHT_RECORDER_CAPACITY,
    hidden=True,
    envvar="FOLIO_FLIGHT_RECORDER_CAPACITY",
    help="Capacity of the flight recorder (in number of log records).",
)
@click.option(
    "--force-flush/--no-force-flush",
    "force_flush_flight_recorder",
    is_flag=True,
    help="Always write the flight recorder to --log-path on exit.",
    default=False,
    show_default=True,
    show_envvar=True,
)
@click.option(
    "-L",
    "--logger-level",
    "logger_levels",
    multiple=True,
    callback=parse_log_level,
    help=(
        "Set MINIMUM LEVEL for specific LOGGERS (NAME=LEVEL). Repeatable "
        "(e.g. -L sqlalchemy=INFO -L alembic=WARNING)."
    ),
    default=("sqlalchemy=WARNING", "alembic=WARNING"),
    show_default=True,
    show_envvar=True,
)
@click.option(
    "--content-root",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    default=Path("."),
    envvar="FOLIO_CONTENT_ROOT",
    show_default=True,
    show_envvar=True,
    help="Directory holding appsettings*.json (and the source checkout).",
)
@click.option(
    "--environment",
    "environment_name",
    envvar=ENVIRONMENT_VARIABLE,
    default=DEFAULT_ENVIRONMENT,
    show_default=True,
    show_envvar=True,
    help="Environment name, e.g. Development or Production.",
)
@clickx.pass_context
def folio(  # pylint: disable=too-many-arguments, too-many-locals, too-many-positional-arguments
    ctx: click.Context,
    verbose_count: int,
    quiet_count: int,
    debug: bool,
    log_path: Path,
    flight_recorder: bool,
    flight_recorder_capacity: int,
    force_flush_flight_recorder: bool,
    logger_levels: dict[str, int],
    content_root: Path,
    environment_name: str,
) -> None:
    """FOLIO command-line interface."""
    options = LoggingOptions(
        level=console_level(verbose_count, quiet_count),
        debug=debug,
        color=ctx.color is not False,
        log_path=log_path if flight_recorder else None,
        capacity=flight_recorder_capacity,
        force_flush=force_flush_flight_recorder,
        logger_levels=logger_levels,
    )
    handlers = configure_logging(options)
    log_startup(logger, options, handlers, app_version=__version__)

    ctx.obj = CliState(content_root=content_root, environment_name=environment_name)
    ctx.call_on_close(logging.shutdown)


@folio.command()
@pass_state
def start(state: CliState) -> None:
    """Run startup: configuration, composition, migration and seeding."""
    try:
        host = run_startup(state.content_root, state.environment_name)
    except StartupError as e:
        raise click.ClickException(str(e)) from e

    with host:
        with host.request_scope() as scope:
            book_count = scope.get(BookListService).count()
        success("Startup complete; ready to serve.")
        _echo_summary(host.provider, host.environment)
        click.echo(f"Books       : {book_count}")


@folio.command()
@pass_state
def info(state: CliState) -> None:
    """Show the resolved environment and effective database connection."""
    with state.host() as host:
        _echo_summary(host.provider, host.environment)


def _echo_summary(provider, environment) -> None:
    options = provider.get(DatabaseOptions)
    route = provider.get(RouteTable).default
    click.echo(f"Environment : {environment.environment_name}")
    click.echo(f"Content root: {environment.content_root_path}")
    click.echo(f"Branch      : {environment.branch_name or '<none>'}")
    click.echo(f"Database    : {mask_connection_string(options.connection_string)}")
    click.echo(f"Route       : {route.name} {route.template}")


folio.add_command(db_group)
