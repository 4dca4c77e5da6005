"""Route computation, visit ordering and traffic sampling."""

from .engine import RouteEngine
from .providers import (
    GoogleMapsProvider,
    MapboxProvider,
    RouteProvider,
    StraightLineProvider,
    select_provider,
)
from .tour import NearestNeighborTourPlanner, TourPlanner
from .traffic import RandomTrafficSignal, StaticTrafficSignal, TrafficSignal

__all__ = [
    "GoogleMapsProvider",
    "MapboxProvider",
    "NearestNeighborTourPlanner",
    "RandomTrafficSignal",
    "RouteEngine",
    "RouteProvider",
    "StaticTrafficSignal",
    "StraightLineProvider",
    "TourPlanner",
    "TrafficSignal",
    "select_provider",
]
