"""Error kinds raised by the routing engine and its providers."""

from __future__ import annotations


class RoutingError(Exception):
    """Base class for every routing/dispatch failure."""


class ProviderError(RoutingError):
    """An external routing call failed, timed out, or returned an unusable payload."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class RouteComputationError(RoutingError):
    """Raised to top-level callers when a route could not be computed."""


class LocationUnavailable(RoutingError):
    """No known position for the transporter."""


class DuplicateRoute(RoutingError):
    """The order already has a route."""


class InvalidTransition(RoutingError):
    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot move route from {current} to {requested}.")
        self.current = current
        self.requested = requested


class RouteAlreadyComplete(RoutingError):
    """No path points remain after the current location."""


class NotFound(RoutingError):
    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} '{identifier}' not found.")
        self.kind = kind
        self.identifier = identifier


class RouteClosed(RoutingError):
    """The route is COMPLETED or CANCELLED and can no longer be changed."""
