"""Request-scoped logging.

The handler is installed once per process, but it does not bind an identity
when it is built. Instead it holds a :class:`RequestContextAccessor` and asks
it, on every record, which request (if any) is in flight. Records emitted
during a request are kept under that request's id in a bounded
:class:`RequestLogStore`, so the log of a recent request can be inspected
after the fact. Records emitted outside a request (startup, background work)
are kept as context-free lines.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from folio.interfaces.request_context import RequestContextAccessor

if TYPE_CHECKING:
    from folio.bootstrap.registry import ServiceProvider

DEFAULT_MAX_REQUESTS = 20
DEFAULT_MAX_UNSCOPED = 200
NO_REQUEST = "-"
REQUEST_LINE_FORMAT = "[%(request_id)s] %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True, slots=True)
class RequestLogEntry:
    """One captured log line."""

    level: str
    logger: str
    message: str


class RequestLogStore:
    """Bounded, thread-safe store of log lines grouped by request id.

    When more than ``max_requests`` requests have logged, the request that
    started logging first is evicted.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        max_unscoped: int = DEFAULT_MAX_UNSCOPED,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self._requests: OrderedDict[str, list[RequestLogEntry]] = OrderedDict()
        self._unscoped: deque[RequestLogEntry] = deque(maxlen=max_unscoped)
        self._lock = threading.Lock()

    def add(self, request_id: str | None, entry: RequestLogEntry) -> None:
        """Record ``entry`` for ``request_id`` (``None`` means no request)."""
        with self._lock:
            if request_id is None:
                self._unscoped.append(entry)
                return
            if request_id not in self._requests:
                self._requests[request_id] = []
                while len(self._requests) > self.max_requests:
                    self._requests.popitem(last=False)
            self._requests[request_id].append(entry)

    def get(self, request_id: str) -> list[RequestLogEntry]:
        """Return the lines logged during ``request_id`` (empty if unknown)."""
        with self._lock:
            return list(self._requests.get(request_id, ()))

    def request_ids(self) -> list[str]:
        """Ids of the retained requests, oldest first."""
        with self._lock:
            return list(self._requests)

    def unscoped(self) -> list[RequestLogEntry]:
        """Lines logged while no request was active."""
        with self._lock:
            return list(self._unscoped)

    def clear(self) -> None:
        with self._lock:
            self._requests.clear()
            self._unscoped.clear()


class RequestContextFilter(logging.Filter):
    """Stamp ``record.request_id`` from the current request context.

    Always lets the record through; ``request_id`` is ``"-"`` outside a request.
    """

    def __init__(self, accessor: RequestContextAccessor) -> None:
        super().__init__()
        self.accessor = accessor

    def filter(self, record: logging.LogRecord) -> bool:
        context = self.accessor.current()
        record.request_id = context.request_id if context else NO_REQUEST
        return True


class RequestScopedHandler(logging.Handler):
    """Logging handler that files each record under the active request."""

    def __init__(
        self,
        accessor: RequestContextAccessor,
        store: RequestLogStore,
        level: int = logging.NOTSET,
    ) -> None:
        super().__init__(level=level)
        self.accessor = accessor
        self.store = store
        self.addFilter(RequestContextFilter(accessor))
        self.setFormatter(logging.Formatter(REQUEST_LINE_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            context = self.accessor.current()
            entry = RequestLogEntry(
                level=record.levelname,
                logger=record.name,
                message=self.format(record),
            )
            self.store.add(context.request_id if context else None, entry)
        except Exception:  # pylint: disable=broad-except
            self.handleError(record)


_install_lock = threading.Lock()


def install_request_logging(
    provider: ServiceProvider,
    logger: logging.Logger | None = None,
    level: int = logging.DEBUG,
) -> RequestScopedHandler:
    """Attach a :class:`RequestScopedHandler` built from ``provider``.

    Idempotent per provider and logger: a second call returns the handler
    already attached.

    Args:
        provider: Provider exposing a ``RequestContextAccessor`` and
            ``RequestLogStore``.
        logger: Logger to attach to; the root logger by default.
        level: Minimum level captured per request.

    Returns:
        The attached handler.
    """
    target = logger or logging.getLogger()
    accessor = provider.get(RequestContextAccessor)
    with _install_lock:
        for handler in target.handlers:
            if (
                isinstance(handler, RequestScopedHandler)
                and handler.accessor is accessor
            ):
                return handler
        handler = RequestScopedHandler(
            accessor, provider.get(RequestLogStore), level=level
        )
        target.addHandler(handler)
        return handler


def uninstall_request_logging(
    handler: RequestScopedHandler, logger: logging.Logger | None = None
) -> None:
    """Detach a handler attached by :func:`install_request_logging`."""
    target = logger or logging.getLogger()
    with _install_lock:
        target.removeHandler(handler)
    handler.close()
