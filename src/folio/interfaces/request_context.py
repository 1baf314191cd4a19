"""Request context capability.

Components that need to know "which request is this?" depend on a
:class:`RequestContextAccessor` rather than on serving machinery. The serving
layer makes a context current for the duration of each request; outside a
request the accessor yields ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Identity of an in-flight request."""

    request_id: str
    path: str | None = None


@runtime_checkable
class RequestContextAccessor(Protocol):
    """Something that can produce the current request context, if any."""

    def current(self) -> RequestContext | None: ...
