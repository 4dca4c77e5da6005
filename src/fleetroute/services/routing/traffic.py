"""Per-segment traffic conditions for a planned path."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Sequence

from ...config import settings
from ...models.domain import Segment, TrafficCondition, Waypoint
from ..geospatial import bearing_degrees

TRAFFIC_LEVELS = ("light", "moderate", "heavy", "severe")


def _segments(path: Sequence[Waypoint]) -> list[Segment]:
    return [
        Segment(start=start, end=end, heading_degrees=bearing_degrees(start, end))
        for start, end in zip(path, path[1:])
    ]


class TrafficSignal(ABC):
    """Contract for traffic data sources."""

    @abstractmethod
    def sample(self, path: Sequence[Waypoint]) -> list[TrafficCondition]:
        raise NotImplementedError


class RandomTrafficSignal(TrafficSignal):
    """Synthetic traffic for demos and deployments without a traffic feed.

    Each segment is independently heavy with ``heavy_probability`` and then
    delayed by a whole number of minutes below ``max_delay_min``.
    """

    def __init__(
        self,
        heavy_probability: float | None = None,
        max_delay_min: int | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.heavy_probability = (
            settings.traffic_heavy_probability if heavy_probability is None else heavy_probability
        )
        self.max_delay_min = settings.traffic_max_delay_min if max_delay_min is None else max_delay_min
        self._rng = rng or random.Random()

    def sample(self, path: Sequence[Waypoint]) -> list[TrafficCondition]:
        conditions = []
        for segment in _segments(path):
            if self._rng.random() < self.heavy_probability:
                conditions.append(
                    TrafficCondition(segment=segment, condition="heavy", delay_min=float(self._rng.randrange(self.max_delay_min)))
                )
            else:
                conditions.append(TrafficCondition(segment=segment, condition="light", delay_min=0.0))
        return conditions


class StaticTrafficSignal(TrafficSignal):
    """Reports the same condition on every segment."""

    def __init__(self, condition: str = "light", delay_min: float = 0.0) -> None:
        if condition not in TRAFFIC_LEVELS:
            raise ValueError(f"Unknown traffic condition '{condition}'.")
        if delay_min < 0:
            raise ValueError("Traffic delay cannot be negative.")
        self.condition = condition
        self.delay_min = delay_min

    def sample(self, path: Sequence[Waypoint]) -> list[TrafficCondition]:
        return [
            TrafficCondition(segment=segment, condition=self.condition, delay_min=self.delay_min)
            for segment in _segments(path)
        ]
