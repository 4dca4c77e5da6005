"""Route group exports."""

from . import health, orders, routes, transporters

__all__ = ["routes", "health", "orders", "transporters"]
