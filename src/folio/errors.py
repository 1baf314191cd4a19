"""Startup error taxonomy.

Every error defined here is fatal to process startup: the server never runs
with degraded configuration or a store of unknown schema version. Nothing in
this package retries them.
"""

# ============================================================================
#                           Base error
# ============================================================================


class StartupError(Exception):
    """Base class for errors that prevent the server from starting."""


# ============================================================================
#                           Configuration errors
# ============================================================================


class ConfigurationLoadError(StartupError):
    """Raised when a configuration source exists but cannot be loaded."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Cannot load configuration from {source}: {reason}")
        self.source = source
        self.reason = reason


class MissingConfiguration(StartupError):
    """Raised when a required configuration key is not defined by any source."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Required configuration key '{key}' is not set.")
        self.key = key


# ============================================================================
#                           Composition errors
# ============================================================================


class CompositionError(StartupError):
    """Raised when the service graph cannot be assembled or validated."""


class ServiceNotRegisteredError(CompositionError):
    """Raised when a service is requested that no registration provides."""

    def __init__(self, service: object) -> None:
        super().__init__(f"No registration for service {_service_name(service)}.")
        self.service = service


# ============================================================================
#                           Database preparation errors
# ============================================================================


class MigrationError(StartupError):
    """Raised when outstanding schema migrations cannot be applied."""


class SeedError(StartupError):
    """Raised when default data cannot be inserted into the store."""


# ============================================================================
#                           Hosting errors
# ============================================================================


class HostNotReadyError(RuntimeError):
    """Raised when a request scope is opened before startup has completed."""


def _service_name(service: object) -> str:
    return getattr(service, "__qualname__", None) or repr(service)
