"""Registrations contributed by the service layer.

Loaded by the composition root after the native registrations; anything
registered here overrides a native registration for the same service.
"""

from __future__ import annotations

from folio.bootstrap.registry import ServiceRegistry
from folio.interfaces.store_session import AbstractStoreSession
from folio.service_layer.books import BookListService


class ServiceLayerModule:
    """Registers the service-layer use-cases."""

    name = "service_layer"

    def load(self, registry: ServiceRegistry) -> None:
        registry.add_transient(
            BookListService,
            lambda r: BookListService(r.get(AbstractStoreSession)),
            requires=(AbstractStoreSession,),
        )
