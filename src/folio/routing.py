"""Route table handed to the controller layer.

Only the boundary lives here: the composition root registers a
:class:`RouteTable` whose default route is
``{controller=Home}/{action=Index}/{id?}``. Dispatching to controllers belongs
to the serving layer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

DEFAULT_ROUTE_NAME = "default"
DEFAULT_ROUTE_TEMPLATE = "{controller=Home}/{action=Index}/{id?}"

_PARAMETER = re.compile(r"^\{(?P<name>\w+)(?:=(?P<default>[^}?]+))?(?P<optional>\?)?\}$")


@dataclass(frozen=True, slots=True)
class RouteParameter:
    name: str
    default: str | None = None
    optional: bool = False


def parse_template(template: str) -> tuple[RouteParameter, ...]:
    """Parse ``{name}``, ``{name=default}`` and ``{name?}`` segments.

    Raises:
        ValueError: If a segment is not a parameter placeholder.
    """
    parameters = []
    for segment in template.strip("/").split("/"):
        match = _PARAMETER.match(segment)
        if match is None:
            raise ValueError(f"Unsupported route segment {segment!r} in {template!r}")
        parameters.append(
            RouteParameter(
                name=match["name"],
                default=match["default"],
                optional=bool(match["optional"]),
            )
        )
    return tuple(parameters)


@dataclass(frozen=True, slots=True)
class Route:
    """A named URL template."""

    name: str
    template: str
    parameters: tuple[RouteParameter, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", parse_template(self.template))

    @property
    def defaults(self) -> dict[str, str]:
        return {p.name: p.default for p in self.parameters if p.default is not None}

    def match(self, path: str) -> dict[str, str] | None:
        """Return route values for ``path``, or ``None`` if it does not match."""
        segments = [s for s in path.strip("/").split("/") if s]
        if len(segments) > len(self.parameters):
            return None
        values: dict[str, str] = {}
        for index, parameter in enumerate(self.parameters):
            if index < len(segments):
                values[parameter.name] = segments[index]
            elif parameter.default is not None:
                values[parameter.name] = parameter.default
            elif not parameter.optional:
                return None
        return values


@dataclass(frozen=True, slots=True)
class RouteTable:
    """Ordered routes; the first is the default."""

    routes: tuple[Route, ...]

    @property
    def default(self) -> Route:
        return self.routes[0]

    def match(self, path: str) -> tuple[Route, dict[str, str]] | None:
        for route in self.routes:
            if (values := route.match(path)) is not None:
                return route, values
        return None


def default_route_table() -> RouteTable:
    return RouteTable(routes=(Route(DEFAULT_ROUTE_NAME, DEFAULT_ROUTE_TEMPLATE),))
