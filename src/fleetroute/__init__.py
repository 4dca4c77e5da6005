"""Routing and dispatch optimization engine."""

__version__ = "0.1.0"
