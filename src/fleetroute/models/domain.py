"""Domain models for routes, transporters and tracking records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union


class VehicleClass(str, Enum):
    MOTORCYCLE = "MOTORCYCLE"
    CAR = "CAR"
    VAN = "VAN"
    TRUCK_SMALL = "TRUCK_SMALL"
    TRUCK_MEDIUM = "TRUCK_MEDIUM"
    TRUCK_LARGE = "TRUCK_LARGE"


class TrafficModel(str, Enum):
    BEST_GUESS = "best_guess"
    PESSIMISTIC = "pessimistic"
    OPTIMISTIC = "optimistic"


class RouteStatus(str, Enum):
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Vehicle classes outside the enum are accepted and priced at the default rate.
VehicleClassLike = Union[VehicleClass, str]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Waypoint:
    """A geographic coordinate with optional address/arrival metadata.

    Equality and hashing only consider the coordinate pair.
    """

    latitude: float
    longitude: float
    address: Optional[str] = field(default=None, compare=False)
    estimated_arrival: Optional[datetime] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude {self.latitude} is outside [-90, 90].")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude {self.longitude} is outside [-180, 180].")

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class RouteRequest:
    origin: Waypoint
    destination: Waypoint
    waypoints: tuple[Waypoint, ...] = ()
    vehicle_class: VehicleClassLike = VehicleClass.CAR
    traffic_model: Optional[TrafficModel] = None
    departure_time: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class OptimizedRoute:
    path: tuple[Waypoint, ...]
    total_distance_km: float
    estimated_duration_min: float
    estimated_fuel_cost: float
    estimated_toll_cost: float
    traffic_conditions: str
    waypoints: tuple[Waypoint, ...] = ()


@dataclass(slots=True)
class PersistedRoute:
    """Stored route for a single order."""

    id: str
    order_id: str
    transporter_id: str
    vehicle_class: VehicleClassLike
    path: tuple[Waypoint, ...]
    total_distance_km: float
    estimated_duration_min: float
    estimated_fuel_cost: float
    estimated_toll_cost: float
    traffic_conditions: str
    waypoints: tuple[Waypoint, ...] = ()
    status: RouteStatus = RouteStatus.PLANNED
    actual_duration_min: Optional[float] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_optimized(self) -> OptimizedRoute:
        return OptimizedRoute(
            path=self.path,
            total_distance_km=self.total_distance_km,
            estimated_duration_min=self.estimated_duration_min,
            estimated_fuel_cost=self.estimated_fuel_cost,
            estimated_toll_cost=self.estimated_toll_cost,
            traffic_conditions=self.traffic_conditions,
            waypoints=self.waypoints,
        )

    def apply(self, route: OptimizedRoute) -> None:
        """Overwrite the planned geometry and estimates, keeping identity."""
        self.path = route.path
        self.total_distance_km = route.total_distance_km
        self.estimated_duration_min = route.estimated_duration_min
        self.estimated_fuel_cost = route.estimated_fuel_cost
        self.estimated_toll_cost = route.estimated_toll_cost
        self.traffic_conditions = route.traffic_conditions
        self.waypoints = route.waypoints
        self.updated_at = utcnow()


@dataclass(frozen=True, slots=True)
class Segment:
    start: Waypoint
    end: Waypoint
    heading_degrees: float = 0.0


@dataclass(frozen=True, slots=True)
class TrafficCondition:
    segment: Segment
    condition: str
    delay_min: float


@dataclass(slots=True)
class Transporter:
    id: str
    vehicle_class: VehicleClassLike
    current_location: Optional[Waypoint] = None
    is_available: bool = True
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class NearbyTransporter:
    transporter: Transporter
    distance_km: Optional[float] = None


@dataclass(frozen=True, slots=True)
class OrderEstimate:
    """Quoted price for moving a load from pickup to delivery."""

    distance_km: float
    weight_kg: float
    peak_time: bool
    estimated_cost: float


@dataclass(frozen=True, slots=True)
class TrackingPoint:
    transporter_id: str
    location: Waypoint
    order_id: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class RouteProgress:
    route: PersistedRoute
    current_location: Optional[TrackingPoint]
    progress_percent: int
    estimated_time_remaining_min: float

    @property
    def last_update(self) -> Optional[datetime]:
        return self.current_location.timestamp if self.current_location else None
