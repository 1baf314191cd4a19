"""Process-wide logging setup for FOLIO.

Two sinks hang off the root logger:

- a Rich console on stderr, where records from libraries get a short
  ``[library]`` tag so they stand out from FOLIO's own messages;
- an optional *flight recorder*: a ``MemoryHandler`` holding the most recent
  records at DEBUG, dumped to a file as soon as something at WARNING or above
  is logged (or on exit when forced).

Request-scoped capture (see :mod:`folio.request_logging`) is installed later
by the host, once startup has succeeded.
"""

from __future__ import annotations

import logging
import os
import platform
import sys
from dataclasses import dataclass, field
from logging.handlers import MemoryHandler
from pathlib import Path
from typing import TYPE_CHECKING, Literal, TypeAlias

import alembic
import sqlalchemy
from rich.console import Console
from rich.logging import RichHandler

from folio import config

if TYPE_CHECKING:
    from logging import Logger

# pylint: disable=too-few-public-methods

PROJECT_PREFIX = "folio"
BASE_CONSOLE_LEVEL = logging.WARNING
DEFAULT_FLIGHT_RECORDER_CAPACITY = 2000

CONSOLE_FORMAT = "%(prefix)s %(message)s"
DEBUG_CONSOLE_FORMAT = "%(asctime)s %(name)s: %(message)s"
FLIGHT_RECORDER_FORMAT = (
    "[%(asctime)s] [%(process)d:%(threadName)s] %(levelname)s "
    "%(name)s:%(lineno)d: %(message)s"
)

ColorSystem: TypeAlias = Literal["auto", "standard", "256", "truecolor", "windows"]


def console_level(verbose: int = 0, quiet: int = 0) -> int:
    """Shift the WARNING baseline one level per ``-v``/``-q``, clamped to DEBUG..CRITICAL."""
    level = BASE_CONSOLE_LEVEL - 10 * verbose + 10 * quiet
    return max(logging.DEBUG, min(logging.CRITICAL, level))


@dataclass(frozen=True)
class LoggingOptions:
    """How the root logger should be wired for one process."""

    level: int = BASE_CONSOLE_LEVEL
    debug: bool = False
    color: bool = True
    log_path: Path | None = None
    capacity: int = DEFAULT_FLIGHT_RECORDER_CAPACITY
    force_flush: bool = False
    logger_levels: dict[str, int] = field(default_factory=dict)

    @property
    def flight_recorder(self) -> bool:
        return self.log_path is not None


class ThirdPartyPrefixFilter(logging.Filter):
    """Tag library records with ``[library]``; FOLIO's own records get no tag."""

    def filter(self, record: logging.LogRecord) -> bool:
        top = record.name.split(".", 1)[0]
        record.prefix = "" if top == PROJECT_PREFIX else f"[{top}]"
        return True


def config_console_handler(
    level: int = logging.INFO, debug_mode: bool = False, color: bool = True
) -> RichHandler:
    """Build the stderr console handler.

    Debug mode forces DEBUG, adds timestamps and logger names, and shows the
    emitting source file.
    """
    color_system: ColorSystem | None = "auto" if color else None
    handler = RichHandler(
        level=logging.DEBUG if debug_mode else level,
        console=Console(color_system=color_system, stderr=True),
        rich_tracebacks=True,
        show_time=False,
        show_path=debug_mode,
        enable_link_path=debug_mode,
    )
    if debug_mode:
        handler.setFormatter(logging.Formatter(DEBUG_CONSOLE_FORMAT))
        return handler
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    handler.addFilter(ThirdPartyPrefixFilter())
    return handler


def config_flight_recorder(
    path: Path,
    capacity: int = DEFAULT_FLIGHT_RECORDER_CAPACITY,
    flush_level: int = logging.WARNING,
    flush_on_close: bool = False,
) -> MemoryHandler:
    """Build the in-memory flight recorder dumping to ``path``.

    The file is only created on the first flush, so a clean run leaves no
    log file behind.
    """
    target = logging.FileHandler(path, mode="w", encoding="utf-8", delay=True)
    target.setLevel(logging.DEBUG)
    target.setFormatter(logging.Formatter(FLIGHT_RECORDER_FORMAT))
    return MemoryHandler(
        capacity=capacity,
        flushLevel=flush_level,
        target=target,
        flushOnClose=flush_on_close,
    )


def configure_logging(options: LoggingOptions) -> list[logging.Handler]:
    """Replace the root logger's handlers according to ``options``.

    Returns:
        The handlers now attached to the root logger.
    """
    handlers: list[logging.Handler] = [
        config_console_handler(options.level, options.debug, options.color)
    ]
    if options.log_path is not None:
        handlers.append(
            config_flight_recorder(
                options.log_path, options.capacity, flush_on_close=options.force_flush
            )
        )
    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    for name, level in options.logger_levels.items():
        logging.getLogger(name).setLevel(level)
    return handlers


def log_startup(
    logger: Logger,
    options: LoggingOptions,
    handlers: list[logging.Handler],
    *,
    app_version: str,
) -> None:
    """Log a one-line summary at INFO and process diagnostics at DEBUG."""
    logger.info(
        "FOLIO %s: console=%s, flight-recorder=%s",
        app_version,
        logging.getLevelName(options.level),
        options.log_path if options.flight_recorder else "OFF",
    )
    logger.debug("Python: %s", sys.version.split()[0])
    logger.debug("Platform: %s %s", platform.system(), platform.release())
    logger.debug("PID: %s, CWD: %s", os.getpid(), Path.cwd())
    logger.debug(
        "%s=%s",
        config.ENVIRONMENT_VARIABLE,
        os.environ.get(config.ENVIRONMENT_VARIABLE, "<unset>"),
    )
    logger.debug(
        "Alembic %s, SQLAlchemy %s", alembic.__version__, sqlalchemy.__version__
    )
    logger.debug("Handlers: %s", [type(h).__name__ for h in handlers])
    if options.flight_recorder:
        logger.debug(
            "Flight recorder: capacity=%d, flush_on_close=%s",
            options.capacity,
            options.force_flush,
        )
    logger.debug(
        "Per-logger overrides: %s",
        {name: logging.getLevelName(lvl) for name, lvl in options.logger_levels.items()}
        or "<none>",
    )
