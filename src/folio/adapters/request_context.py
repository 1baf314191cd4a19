"""Context-variable request context accessor.

Each thread and each asyncio task sees its own current request, so concurrent
requests never observe one another's context.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from folio.interfaces.request_context import RequestContext


class ContextVarRequestContextAccessor:
    """Request context accessor backed by a :class:`~contextvars.ContextVar`."""

    def __init__(self) -> None:
        self._current: ContextVar[RequestContext | None] = ContextVar(
            f"folio_request_context_{id(self)}", default=None
        )

    def current(self) -> RequestContext | None:
        return self._current.get()

    @contextmanager
    def activate(self, context: RequestContext) -> Iterator[RequestContext]:
        """Make ``context`` current until the block exits."""
        token = self._current.set(context)
        try:
            yield context
        finally:
            self._current.reset(token)
