"""Process startup sequence.

Startup is strictly sequential::

    resolve settings -> environment context -> compose provider
        -> [one scope: migrate -> seed] -> ready to serve

Any :class:`~folio.errors.StartupError` along the way is logged and re-raised;
the host never reports ready against a store of unknown schema version, and
request scopes cannot be opened until it does.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from folio import config
from folio.adapters.request_context import ContextVarRequestContextAccessor
from folio.bootstrap.composition import build
from folio.bootstrap.migrator import migrate
from folio.bootstrap.seeding import bundled_data_source, seed
from folio.environment import EnvironmentContext
from folio.errors import HostNotReadyError, StartupError
from folio.interfaces.request_context import RequestContext
from folio.interfaces.store_session import AbstractStoreSession
from folio.request_logging import (
    RequestScopedHandler,
    install_request_logging,
    uninstall_request_logging,
)

if TYPE_CHECKING:
    from importlib.resources.abc import Traversable

    from folio.bootstrap.registry import Module, ServiceProvider, ServiceScope
    from folio.config import Settings

logger = logging.getLogger(__name__)

SEED_DATA_PATH_KEY = "Seeding:DataSourcePath"


def seed_data_source(
    settings: Settings, environment: EnvironmentContext
) -> Path | Traversable:
    """Configured seed data directory (relative to the content root), or the bundled one."""
    configured = settings.get(SEED_DATA_PATH_KEY, None)
    if not configured:
        return bundled_data_source()
    return environment.content_root_path / configured


def prepare_database(
    provider: ServiceProvider, data_source_path: Path | Traversable
) -> None:
    """Migrate then seed through a single store session.

    The scope (and with it the session's connection) is released on every
    exit path before this function returns.

    Raises:
        MigrationError: If migration fails; seeding is not attempted.
        SeedError: If seeding fails.
    """
    with provider.create_scope() as scope:
        session = scope.get(AbstractStoreSession)
        migrate(session)
        seed(session, data_source_path)


@dataclass
class Host:
    """The composed application and its readiness state."""

    settings: Settings
    environment: EnvironmentContext
    provider: ServiceProvider
    _handler: RequestScopedHandler | None = field(default=None, init=False, repr=False)

    def __enter__(self) -> Host:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @property
    def ready(self) -> bool:
        return self._handler is not None

    def start(self) -> Host:
        """Prepare the database and start request-scoped logging.

        Raises:
            MigrationError: If the schema cannot be brought up to date.
            SeedError: If the default data cannot be inserted.
        """
        prepare_database(
            self.provider, seed_data_source(self.settings, self.environment)
        )
        self._handler = install_request_logging(self.provider)
        logger.info(
            "Startup complete (environment=%s, branch=%s)",
            self.environment.environment_name,
            self.environment.branch_name or "<none>",
        )
        return self

    @contextmanager
    def request_scope(
        self, request_id: str | None = None, path: str | None = None
    ) -> Iterator[ServiceScope]:
        """Open a service scope with an active request context.

        Raises:
            HostNotReadyError: If :meth:`start` has not completed.
        """
        if not self.ready:
            raise HostNotReadyError("Startup has not completed; not serving requests.")
        accessor = self.provider.get(ContextVarRequestContextAccessor)
        context = RequestContext(request_id or uuid.uuid4().hex, path)
        with self.provider.create_scope() as scope, accessor.activate(context):
            yield scope

    def close(self) -> None:
        if self._handler is not None:
            uninstall_request_logging(self._handler)
            self._handler = None
        self.provider.close()


def create_host(
    content_root: Path | str,
    environment_name: str | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    modules: Sequence[Module] | None = None,
) -> Host:
    """Resolve configuration and compose the provider (no database work).

    Raises:
        ConfigurationLoadError: If a settings file is malformed.
        MissingConfiguration: If a required setting is absent.
        CompositionError: If the service graph is invalid.
    """
    environment_name = environment_name or config.get_environment_name(environ)
    settings = config.resolve(
        content_root, environment_name, overrides=overrides, environ=environ
    )
    environment = EnvironmentContext.from_content_root(content_root, environment_name)
    provider = build(settings, environment, modules=modules)
    return Host(settings=settings, environment=environment, provider=provider)


def run_startup(
    content_root: Path | str, environment_name: str | None = None, **kwargs: Any
) -> Host:
    """Run the full startup sequence and return a ready host.

    Raises:
        StartupError: Any startup failure, after it has been logged.
    """
    try:
        host = create_host(content_root, environment_name, **kwargs)
    except StartupError as e:
        logger.error("Startup failed: %s", e)
        raise
    try:
        host.start()
    except StartupError as e:
        logger.error("Startup failed: %s", e)
        host.close()
        raise
    except BaseException:
        host.close()
        raise
    return host
