"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from ..models.domain import Waypoint

EARTH_RADIUS_KM = 6371.0


def to_radians(degrees: float) -> float:
    return degrees * (math.pi / 180.0)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = to_radians(lat1), to_radians(lat2)
    d_phi = to_radians(lat2 - lat1)
    d_lambda = to_radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: Waypoint, b: Waypoint) -> float:
    """Great-circle distance between two waypoints."""

    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def bearing_degrees(a: Waypoint, b: Waypoint) -> float:
    """Initial great-circle heading from ``a`` to ``b``, clockwise from north in [0, 360)."""

    phi1, phi2 = to_radians(a.latitude), to_radians(b.latitude)
    d_lambda = to_radians(b.longitude - a.longitude)
    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lambda)
    return math.degrees(math.atan2(y, x)) % 360.0


def path_length_km(path: Sequence[Waypoint]) -> float:
    """Sum of the distances between consecutive path points."""

    return sum(distance_km(path[index - 1], path[index]) for index in range(1, len(path)))


def distances_to(path: Sequence[Waypoint], point: Waypoint) -> np.ndarray:
    """Vectorised haversine distance from ``point`` to every point of ``path``."""

    coords = np.radians(np.array([wp.as_tuple() for wp in path], dtype=float).reshape(-1, 2))
    lat, lon = to_radians(point.latitude), to_radians(point.longitude)
    d_phi = coords[:, 0] - lat
    d_lambda = coords[:, 1] - lon
    a = np.sin(d_phi / 2) ** 2 + math.cos(lat) * np.cos(coords[:, 0]) * np.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def closest_point_index(path: Sequence[Waypoint], point: Waypoint) -> int:
    """Index of the path point nearest to ``point``; ties resolve to the lowest index."""

    if not path:
        raise ValueError("Cannot project a location onto an empty path.")
    # argmin returns the first occurrence of the minimum.
    return int(np.argmin(distances_to(path, point)))
