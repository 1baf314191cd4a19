"""Service registry and provider.

The composition root assembles the application in three phases:

1. native registrations are added to a :class:`ServiceRegistry`;
2. each feature :class:`Module` loads its registrations into a registry of
   its own;
3. the registries are merged in a fixed order and the result is validated and
   frozen into a :class:`ServiceProvider`.

Conflict rule: when two registrations bind the same service key, the one
added later wins. Merging ``a.merge(b)`` adds ``a`` then ``b``, so ``b``
overrides. An override may not change the service's lifetime.

Lifetimes:

- ``SINGLETON``: created once per provider, shared by every scope. Factories
  receive the provider itself, so a singleton can never capture a scoped
  service.
- ``SCOPED``: created once per :class:`ServiceScope` and closed when the scope
  ends. Not resolvable from the provider directly.
- ``TRANSIENT``: created on every resolution; the caller owns the instance.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Hashable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, TypeVar, overload

from folio.errors import CompositionError, ServiceNotRegisteredError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Lifetime(str, Enum):
    """How long a resolved service instance lives."""

    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


class Resolver(Protocol):
    """Anything services can be resolved from (a provider or a scope)."""

    def get(self, service: Any) -> Any: ...


Factory = Callable[[Resolver], Any]
Disposer = Callable[[Any], None]


def _close_if_closable(instance: Any) -> None:
    close = getattr(instance, "close", None)
    if callable(close):
        close()


def _leave_open(instance: Any) -> None:  # pylint: disable=unused-argument
    """Disposer for instances the registry does not own."""


def describe(service: Any) -> str:
    """Human-readable name of a service key."""
    return getattr(service, "__qualname__", None) or repr(service)


@dataclass(frozen=True, slots=True)
class ServiceDescriptor:
    """One registration: how to build ``service`` and how long it lives."""

    service: Hashable
    factory: Factory
    lifetime: Lifetime
    requires: tuple[Hashable, ...] = ()
    eager: bool = False
    source: str = "native"
    dispose: Disposer = field(default=_close_if_closable, compare=False)


class Module(Protocol):
    """A named group of registrations for one feature area."""

    name: str

    def load(self, registry: ServiceRegistry) -> None: ...


class ServiceRegistry:
    """Ordered, mutable set of service registrations.

    A registry may be layered over a read-only ``base``: lookups
    (``in``, :meth:`descriptor`) see the base registrations, while iteration,
    ``len`` and :meth:`merge` cover only this registry's own.
    """

    def __init__(
        self, source: str = "native", base: ServiceRegistry | None = None
    ) -> None:
        self.source = source
        self.base = base
        self._descriptors: dict[Hashable, ServiceDescriptor] = {}

    def __contains__(self, service: object) -> bool:
        return service in self._descriptors or (
            self.base is not None and service in self.base
        )

    def __iter__(self) -> Iterator[ServiceDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)

    def descriptor(self, service: Hashable) -> ServiceDescriptor | None:
        """Return the registration for ``service``, if any."""
        descriptor = self._descriptors.get(service)
        if descriptor is None and self.base is not None:
            return self.base.descriptor(service)
        return descriptor

    def add(self, descriptor: ServiceDescriptor) -> ServiceRegistry:
        """Add a registration, replacing any earlier one for the same service.

        Raises:
            CompositionError: If the replacement changes the lifetime.
        """
        existing = self._descriptors.get(descriptor.service)
        if existing is not None:
            if existing.lifetime is not descriptor.lifetime:
                raise CompositionError(
                    f"{describe(descriptor.service)} is registered as "
                    f"{existing.lifetime.value} by '{existing.source}' and cannot be "
                    f"re-registered as {descriptor.lifetime.value} by '{descriptor.source}'."
                )
            logger.debug(
                "Registration of %s from '%s' overrides '%s'",
                describe(descriptor.service),
                descriptor.source,
                existing.source,
            )
            del self._descriptors[descriptor.service]
        self._descriptors[descriptor.service] = descriptor
        return self

    def register(  # pylint: disable=too-many-arguments
        self,
        service: Hashable,
        factory: Factory,
        *,
        lifetime: Lifetime,
        requires: tuple[Hashable, ...] = (),
        eager: bool = False,
        dispose: Disposer | None = None,
    ) -> ServiceRegistry:
        """Register ``factory`` as the way to build ``service``."""
        return self.add(
            ServiceDescriptor(
                service=service,
                factory=factory,
                lifetime=lifetime,
                requires=tuple(requires),
                eager=eager,
                source=self.source,
                dispose=dispose or _close_if_closable,
            )
        )

    def add_instance(self, service: Hashable, instance: Any) -> ServiceRegistry:
        """Register an already-built singleton that the provider will not close."""
        return self.register(
            service,
            lambda _: instance,
            lifetime=Lifetime.SINGLETON,
            dispose=_leave_open,
        )

    def add_singleton(self, service: Hashable, factory: Factory, **kwargs: Any) -> ServiceRegistry:
        return self.register(service, factory, lifetime=Lifetime.SINGLETON, **kwargs)

    def add_scoped(self, service: Hashable, factory: Factory, **kwargs: Any) -> ServiceRegistry:
        return self.register(service, factory, lifetime=Lifetime.SCOPED, **kwargs)

    def add_transient(self, service: Hashable, factory: Factory, **kwargs: Any) -> ServiceRegistry:
        return self.register(service, factory, lifetime=Lifetime.TRANSIENT, **kwargs)

    def merge(self, other: ServiceRegistry) -> ServiceRegistry:
        """Return a new registry holding ``self`` then ``other``; ``other`` wins."""
        merged = ServiceRegistry(source=f"{self.source}+{other.source}")
        for descriptor in (*self, *other):
            merged.add(descriptor)
        return merged

    def validate(self) -> None:
        """Check that the graph can be resolved.

        Raises:
            CompositionError: On missing dependencies, singletons depending on
                scoped services, or dependency cycles.
        """
        problems: list[str] = []
        for descriptor in self:
            for dependency in descriptor.requires:
                target = self._descriptors.get(dependency)
                if target is None:
                    problems.append(
                        f"{describe(descriptor.service)} requires unregistered "
                        f"{describe(dependency)}"
                    )
                elif (
                    descriptor.lifetime is Lifetime.SINGLETON
                    and target.lifetime is Lifetime.SCOPED
                ):
                    problems.append(
                        f"singleton {describe(descriptor.service)} requires scoped "
                        f"{describe(dependency)}"
                    )
        problems.extend(self._find_cycles())
        if problems:
            raise CompositionError(
                "Service graph is invalid:\n  - " + "\n  - ".join(problems)
            )

    def _find_cycles(self) -> list[str]:
        visiting: set[Hashable] = set()
        done: set[Hashable] = set()
        cycles: list[str] = []

        def visit(service: Hashable, path: list[Hashable]) -> None:
            if service in done or service not in self._descriptors:
                return
            if service in visiting:
                loop = path[path.index(service) :] + [service]
                cycles.append("cycle " + " -> ".join(describe(s) for s in loop))
                return
            visiting.add(service)
            for dependency in self._descriptors[service].requires:
                visit(dependency, [*path, service])
            visiting.discard(service)
            done.add(service)

        for service in self._descriptors:
            visit(service, [])
        return cycles

    def build(self) -> ServiceProvider:
        """Validate and freeze the registrations into a provider.

        Eager singletons are constructed here so that wiring mistakes surface
        at startup rather than on first use.

        Raises:
            CompositionError: If validation fails or an eager singleton cannot
                be constructed.
        """
        self.validate()
        provider = ServiceProvider(self._descriptors)
        for descriptor in self:
            if not descriptor.eager:
                continue
            try:
                provider.get(descriptor.service)
            except Exception as e:  # pylint: disable=broad-except
                provider.close()
                raise CompositionError(
                    f"Cannot construct singleton {describe(descriptor.service)}: {e}"
                ) from e
        logger.debug("Service provider built with %d registrations", len(self))
        return provider


class ServiceProvider:
    """Frozen, thread-safe resolver for a validated set of registrations."""

    def __init__(self, descriptors: dict[Hashable, ServiceDescriptor]) -> None:
        self._descriptors = dict(descriptors)
        self._singletons: dict[Hashable, Any] = {}
        self._created: list[tuple[ServiceDescriptor, Any]] = []
        self._lock = threading.RLock()
        self._closed = False

    def __contains__(self, service: object) -> bool:
        return service in self._descriptors

    def __enter__(self) -> ServiceProvider:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def descriptor(self, service: Hashable) -> ServiceDescriptor:
        """Return the registration for ``service``.

        Raises:
            ServiceNotRegisteredError: If nothing provides ``service``.
        """
        try:
            return self._descriptors[service]
        except KeyError:
            raise ServiceNotRegisteredError(service) from None

    @overload
    def get(self, service: type[T]) -> T: ...

    @overload
    def get(self, service: Any) -> Any: ...

    def get(self, service: Any) -> Any:
        """Resolve a singleton or transient service.

        Raises:
            ServiceNotRegisteredError: If nothing provides ``service``.
            CompositionError: If ``service`` is scoped (use :meth:`create_scope`).
        """
        return self._resolve(service, None)

    def create_scope(self) -> ServiceScope:
        """Open a scope for scoped services; close it (or use ``with``) when done."""
        if self._closed:
            raise CompositionError("Service provider is closed.")
        return ServiceScope(self)

    def _resolve(self, service: Any, scope: ServiceScope | None) -> Any:
        descriptor = self.descriptor(service)
        if descriptor.lifetime is Lifetime.SINGLETON:
            return self._singleton(descriptor)
        if descriptor.lifetime is Lifetime.SCOPED:
            if scope is None:
                raise CompositionError(
                    f"Scoped service {describe(service)} must be resolved from a scope."
                )
            return scope._scoped(descriptor)  # pylint: disable=protected-access
        return descriptor.factory(scope if scope is not None else self)

    def _singleton(self, descriptor: ServiceDescriptor) -> Any:
        with self._lock:
            if descriptor.service not in self._singletons:
                if self._closed:
                    raise CompositionError("Service provider is closed.")
                instance = descriptor.factory(self)
                self._singletons[descriptor.service] = instance
                self._created.append((descriptor, instance))
            return self._singletons[descriptor.service]

    def close(self) -> None:
        """Dispose singletons in reverse creation order."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            created, self._created = self._created, []
            self._singletons.clear()
        _dispose_all(created)


class ServiceScope:
    """A bounded lifetime for scoped services (e.g. one request)."""

    def __init__(self, provider: ServiceProvider) -> None:
        self.provider = provider
        self._instances: dict[Hashable, Any] = {}
        self._created: list[tuple[ServiceDescriptor, Any]] = []
        self._closed = False

    def __enter__(self) -> ServiceScope:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @overload
    def get(self, service: type[T]) -> T: ...

    @overload
    def get(self, service: Any) -> Any: ...

    def get(self, service: Any) -> Any:
        """Resolve any service; scoped ones are shared within this scope."""
        return self.provider._resolve(service, self)  # pylint: disable=protected-access

    def _scoped(self, descriptor: ServiceDescriptor) -> Any:
        if self._closed:
            raise CompositionError("Service scope is closed.")
        if descriptor.service not in self._instances:
            instance = descriptor.factory(self)
            self._instances[descriptor.service] = instance
            self._created.append((descriptor, instance))
        return self._instances[descriptor.service]

    def close(self) -> None:
        """Dispose scoped instances in reverse creation order."""
        if self._closed:
            return
        self._closed = True
        created, self._created = self._created, []
        self._instances.clear()
        _dispose_all(created)


def _dispose_all(created: list[tuple[ServiceDescriptor, Any]]) -> None:
    """Dispose every instance; re-raise the first failure after all have run."""
    first_error: BaseException | None = None
    for descriptor, instance in reversed(created):
        try:
            descriptor.dispose(instance)
        except Exception as e:  # pylint: disable=broad-except
            logger.exception("Failed to dispose %s", describe(descriptor.service))
            first_error = first_error or e
    if first_error is not None:
        raise first_error
