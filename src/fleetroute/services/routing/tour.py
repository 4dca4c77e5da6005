"""Visit-order planning for multi-stop deliveries."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ...models.domain import Waypoint
from ..geospatial import distance_km


class TourPlanner(ABC):
    """Contract for stop-ordering strategies."""

    @abstractmethod
    def order_stops(self, origin: Waypoint, stops: Sequence[Waypoint]) -> list[Waypoint]:
        raise NotImplementedError


class NearestNeighborTourPlanner(TourPlanner):
    """Greedy nearest-neighbour tour.

    Always drives to the closest unvisited stop next. O(n^2) and not
    guaranteed optimal; good enough for a handful of drops per vehicle.
    """

    def order_stops(self, origin: Waypoint, stops: Sequence[Waypoint]) -> list[Waypoint]:
        unvisited = list(stops)
        tour: list[Waypoint] = []
        current = origin

        while unvisited:
            nearest_index = 0
            min_distance = distance_km(current, unvisited[0])
            for index in range(1, len(unvisited)):
                distance = distance_km(current, unvisited[index])
                # strict comparison keeps the earliest stop on ties
                if distance < min_distance:
                    min_distance = distance
                    nearest_index = index

            current = unvisited.pop(nearest_index)
            tour.append(current)

        return tour
