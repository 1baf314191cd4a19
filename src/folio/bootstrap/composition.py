"""Compose the service graph the server runs with."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError

from folio.adapters.db.connection_strings import compose, mask_connection_string
from folio.adapters.db.engine import make_engine
from folio.adapters.request_context import ContextVarRequestContextAccessor
from folio.adapters.store_session import SqlAlchemyStoreSession
from folio.bootstrap.registry import Module, ServiceProvider, ServiceRegistry
from folio.config import Settings
from folio.environment import AppInformation, EnvironmentContext
from folio.errors import CompositionError
from folio.interfaces.request_context import RequestContextAccessor
from folio.interfaces.store_session import AbstractStoreSession
from folio.request_logging import DEFAULT_MAX_REQUESTS, RequestLogStore
from folio.routing import RouteTable, default_route_table
from folio.service_layer.module import ServiceLayerModule

logger = logging.getLogger(__name__)

REQUEST_LOG_MAX_REQUESTS_KEY = "Logging:RequestLog:MaxRequests"
SQL_ECHO_KEY = "Database:Echo"

#: Registrations are merged in this order; later sources override earlier ones.
MERGE_ORDER = ("native", "modules")


@dataclass(frozen=True, slots=True)
class DatabaseOptions:
    """The one connection string exposed to the storage layer."""

    connection_string: str


def effective_connection_string(
    settings: Settings, environment: EnvironmentContext
) -> str:
    """Return ``ConnectionStrings:DefaultConnection`` adjusted for the environment.

    Raises:
        MissingConfiguration: If no default connection string is configured.
        CompositionError: If the connection string has no catalog to suffix.
    """
    base = settings.get_connection_string()
    try:
        effective = compose(base, environment.is_development, environment.branch_name)
    except (ValueError, ArgumentError) as e:
        raise CompositionError(f"Cannot compose connection string: {e}") from e
    if effective != base:
        logger.info(
            "Development branch '%s': using %s",
            environment.branch_name,
            mask_connection_string(effective),
        )
    return effective


def _build_engine(options: DatabaseOptions, echo: bool) -> Engine:
    try:
        return make_engine(options.connection_string, echo=echo)
    except ArgumentError as e:
        raise CompositionError(
            "Connection string is not valid: "
            f"{mask_connection_string(options.connection_string)}"
        ) from e


def register_native(
    settings: Settings, environment: EnvironmentContext
) -> ServiceRegistry:
    """Phase 1: the application's own registrations."""
    registry = ServiceRegistry(source=MERGE_ORDER[0])

    # environment and context
    registry.add_instance(Settings, settings)
    registry.add_instance(EnvironmentContext, environment)
    registry.add_instance(AppInformation, AppInformation(environment.branch_name))
    registry.add_singleton(
        ContextVarRequestContextAccessor, lambda _: ContextVarRequestContextAccessor()
    )
    registry.add_singleton(
        RequestContextAccessor,
        lambda r: r.get(ContextVarRequestContextAccessor),
        requires=(ContextVarRequestContextAccessor,),
        dispose=lambda _: None,
    )
    max_requests = settings.get_int(REQUEST_LOG_MAX_REQUESTS_KEY, DEFAULT_MAX_REQUESTS)
    registry.add_singleton(RequestLogStore, lambda _: RequestLogStore(max_requests))

    # storage
    options = DatabaseOptions(effective_connection_string(settings, environment))
    echo = settings.get_bool(SQL_ECHO_KEY, False)
    registry.add_instance(DatabaseOptions, options)
    registry.add_singleton(
        Engine,
        lambda r: _build_engine(r.get(DatabaseOptions), echo),
        requires=(DatabaseOptions,),
        eager=True,
        dispose=Engine.dispose,
    )
    registry.add_scoped(
        AbstractStoreSession,
        lambda r: SqlAlchemyStoreSession(r.get(Engine)),
        requires=(Engine,),
    )

    # boundary handed to the controller layer
    registry.add_singleton(RouteTable, lambda _: default_route_table())
    return registry


def default_modules() -> tuple[Module, ...]:
    return (ServiceLayerModule(),)


def build(
    settings: Settings,
    environment: EnvironmentContext,
    *,
    modules: Sequence[Module] | None = None,
) -> ServiceProvider:
    """Build the unified service provider.

    Native registrations are made first; each module then loads its own
    registrations into a separate registry layered over everything registered
    so far (so it can look up, and wrap, an earlier registration), and the
    registries are merged in :data:`MERGE_ORDER`, so a module registration
    overrides a native one for the same service.

    Args:
        settings: Resolved settings.
        environment: The process environment context.
        modules: Feature modules to load; defaults to :func:`default_modules`.

    Returns:
        A validated :class:`ServiceProvider`.

    Raises:
        MissingConfiguration: If a required setting is absent.
        CompositionError: If the merged graph cannot be validated.
    """
    registry = register_native(settings, environment)
    for module in default_modules() if modules is None else modules:
        contributions = ServiceRegistry(source=module.name, base=registry)
        module.load(contributions)
        logger.debug(
            "Module '%s' contributed %d registrations", module.name, len(contributions)
        )
        registry = registry.merge(contributions)
    provider = registry.build()
    logger.info(
        "Composed %d services for environment '%s'",
        len(registry),
        environment.environment_name,
    )
    return provider
