"""Fuel, toll and order price estimation."""

from __future__ import annotations

from datetime import datetime
from typing import Mapping, Sequence

from ..config import settings
from ..models.domain import OrderEstimate, VehicleClassLike, Waypoint
from .geospatial import distance_km, path_length_km


def _class_key(vehicle_class: VehicleClassLike) -> str:
    value = getattr(vehicle_class, "value", vehicle_class)
    return str(value).upper()


def fuel_rate(
    vehicle_class: VehicleClassLike,
    rates: Mapping[str, float] | None = None,
    default_rate: float | None = None,
) -> float:
    table = settings.fuel_rates_per_km if rates is None else rates
    fallback = settings.default_fuel_rate if default_rate is None else default_rate
    return table.get(_class_key(vehicle_class), fallback)


def fuel_cost(
    distance_km: float,
    vehicle_class: VehicleClassLike,
    rates: Mapping[str, float] | None = None,
    default_rate: float | None = None,
) -> float:
    """Fuel cost for a distance driven by the given vehicle class."""

    return distance_km * fuel_rate(vehicle_class, rates, default_rate)


def toll_cost(
    path: Sequence[Waypoint],
    threshold_km: float | None = None,
    rate_per_km: float | None = None,
) -> float:
    """Flat per-km toll applied only to paths longer than the threshold."""

    threshold = settings.toll_threshold_km if threshold_km is None else threshold_km
    rate = settings.toll_rate_per_km if rate_per_km is None else rate_per_km
    distance = path_length_km(path)
    return distance * rate if distance > threshold else 0.0


def is_peak_hour(hour: int, windows: Sequence[tuple[int, int]] | None = None) -> bool:
    windows = settings.peak_hour_windows if windows is None else windows
    return any(first <= hour <= last for first, last in windows)


def estimate_order_cost(
    pickup: Waypoint,
    delivery: Waypoint,
    weight_kg: float,
    pickup_time: datetime,
) -> OrderEstimate:
    """Quote an order from the straight-line pickup to delivery distance and the load weight.

    Pickups starting in a peak window are multiplied by ``settings.peak_multiplier``.
    The hour is read in the pickup time's own offset.
    """

    if weight_kg < 0:
        raise ValueError("Weight must not be negative.")
    distance = distance_km(pickup, delivery)
    cost = distance * settings.order_rate_per_km + weight_kg * settings.order_rate_per_kg
    peak = is_peak_hour(pickup_time.hour)
    if peak:
        cost *= settings.peak_multiplier
    return OrderEstimate(distance_km=distance, weight_kg=weight_kg, peak_time=peak, estimated_cost=cost)
