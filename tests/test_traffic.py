import random

import pytest

from fleetroute.models.domain import Waypoint
from fleetroute.services.routing.traffic import RandomTrafficSignal, StaticTrafficSignal

PATH = [Waypoint(0, 0), Waypoint(0, 0.5), Waypoint(0, 1), Waypoint(0, 1.5)]


def test_one_condition_per_segment() -> None:
    conditions = RandomTrafficSignal(rng=random.Random(7)).sample(PATH)
    assert len(conditions) == len(PATH) - 1
    for index, condition in enumerate(conditions):
        assert condition.segment.start == PATH[index]
        assert condition.segment.end == PATH[index + 1]
        assert condition.condition in {"light", "heavy"}
        assert condition.delay_min >= 0


def test_light_segments_have_no_delay() -> None:
    conditions = RandomTrafficSignal(heavy_probability=0.0, rng=random.Random(1)).sample(PATH)
    assert all(c.condition == "light" and c.delay_min == 0 for c in conditions)


def test_heavy_segments_delay_within_bound() -> None:
    conditions = RandomTrafficSignal(heavy_probability=1.0, max_delay_min=5, rng=random.Random(3)).sample(PATH)
    assert all(c.condition == "heavy" and 0 <= c.delay_min < 5 for c in conditions)


def test_seeded_generator_is_reproducible() -> None:
    first = RandomTrafficSignal(rng=random.Random(42)).sample(PATH)
    second = RandomTrafficSignal(rng=random.Random(42)).sample(PATH)
    assert first == second


def test_short_paths_have_no_segments() -> None:
    assert RandomTrafficSignal().sample([Waypoint(0, 0)]) == []
    assert StaticTrafficSignal().sample([]) == []


def test_static_signal() -> None:
    conditions = StaticTrafficSignal("moderate", 2.5).sample(PATH)
    assert [c.condition for c in conditions] == ["moderate"] * 3
    assert [c.delay_min for c in conditions] == [2.5] * 3


def test_static_signal_rejects_unknown_levels() -> None:
    with pytest.raises(ValueError):
        StaticTrafficSignal("gridlock")
    with pytest.raises(ValueError):
        StaticTrafficSignal("light", -1)


def test_segments_carry_heading() -> None:
    path = [Waypoint(0, 0), Waypoint(0, 1), Waypoint(1, 1)]
    conditions = StaticTrafficSignal().sample(path)
    assert [c.segment.heading_degrees for c in conditions] == [pytest.approx(90.0), pytest.approx(0.0)]
