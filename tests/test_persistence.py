from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError

from fleetroute.errors import DuplicateRoute
from fleetroute.models.domain import (
    PersistedRoute,
    RouteRequest,
    RouteStatus,
    TrackingPoint,
    Transporter,
    VehicleClass,
    Waypoint,
)
from fleetroute.persistence import get_store
from fleetroute.persistence.store import InMemoryRecordStore
from fleetroute.services.routing.engine import RouteEngine
from fleetroute.services.routing.providers import StraightLineProvider
from fleetroute.services.routing.traffic import StaticTrafficSignal
from fleetroute.persistence.supabase_store import (
    SupabaseRecordStore,
    route_from_row,
    route_to_row,
    waypoint_from_dict,
    waypoint_to_dict,
)


def _route(route_id: str = "r1", order_id: str = "o1", transporter_id: str = "t1") -> PersistedRoute:
    return PersistedRoute(
        id=route_id,
        order_id=order_id,
        transporter_id=transporter_id,
        vehicle_class=VehicleClass.VAN,
        path=(Waypoint(0, 0, address="Depot"), Waypoint(0, 1), Waypoint(0, 2)),
        total_distance_km=222.4,
        estimated_duration_min=266.9,
        estimated_fuel_cost=26.7,
        estimated_toll_cost=4.4,
        traffic_conditions="estimated",
        waypoints=(Waypoint(0, 1),),
    )


class FakeQuery:
    """Minimal stand-in for the Supabase query builder."""

    def __init__(self, table: "FakeTable") -> None:
        self.table = table
        self.filters: list[tuple[str, object]] = []
        self.payload = None
        self.action = "select"
        self.order_by = None
        self.descending = False
        self.row_limit = None

    def select(self, *_args, **_kwargs):
        self.action = "select"
        return self

    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.action, self.payload = "update", payload
        return self

    def upsert(self, payload):
        self.action, self.payload = "upsert", payload
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by, self.descending = column, desc
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def _matches(self, row) -> bool:
        return all(row.get(column) == value for column, value in self.filters)

    def execute(self):
        rows = self.table.rows
        if self.action == "insert":
            if self.table.insert_error is not None:
                raise self.table.insert_error
            rows.append(dict(self.payload))
            return SimpleNamespace(data=[self.payload])
        if self.action == "upsert":
            rows[:] = [row for row in rows if row.get("id") != self.payload["id"]]
            rows.append(dict(self.payload))
            return SimpleNamespace(data=[self.payload])
        if self.action == "update":
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
            return SimpleNamespace(data=[])
        result = [dict(row) for row in rows if self._matches(row)]
        if self.order_by:
            result.sort(key=lambda row: row[self.order_by], reverse=self.descending)
        if self.row_limit is not None:
            result = result[: self.row_limit]
        return SimpleNamespace(data=result)


class FakeTable:
    def __init__(self) -> None:
        self.rows: list[dict] = []
        self.insert_error: Exception | None = None


class FakeSupabase:
    def __init__(self) -> None:
        self.tables: dict[str, FakeTable] = {}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self.tables.setdefault(name, FakeTable()))


def test_in_memory_store_rejects_duplicate_orders() -> None:
    store = InMemoryRecordStore()
    store.add_route(_route("r1", "o1"))
    with pytest.raises(DuplicateRoute):
        store.add_route(_route("r2", "o1"))


def test_in_memory_store_returns_copies() -> None:
    store = InMemoryRecordStore()
    store.add_route(_route())

    loaded = store.get_route("r1")
    loaded.status = RouteStatus.CANCELLED

    assert store.get_route("r1").status is RouteStatus.PLANNED
    store.save_route(loaded)
    assert store.get_route("r1").status is RouteStatus.CANCELLED


def test_in_memory_list_routes_filters() -> None:
    store = InMemoryRecordStore()
    store.add_route(_route("r1", "o1", "t1"))
    store.add_route(_route("r2", "o2", "t2"))

    assert [route.id for route in store.list_routes(transporter_id="t2")] == ["r2"]
    assert len(store.list_routes(status=RouteStatus.PLANNED)) == 2
    assert store.list_routes(status=RouteStatus.COMPLETED) == []


def test_in_memory_latest_location_scoping() -> None:
    store = InMemoryRecordStore()
    early = datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)
    late = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)
    store.record_location(TrackingPoint("t1", Waypoint(0, 1), order_id="o1", timestamp=late))
    store.record_location(TrackingPoint("t1", Waypoint(0, 0), order_id="o1", timestamp=early))
    store.record_location(TrackingPoint("t1", Waypoint(5, 5), timestamp=early))

    assert store.latest_location("t1", "o1").location == Waypoint(0, 1)
    assert store.latest_location("t1").location == Waypoint(0, 1)
    assert store.latest_location("t1", "o2") is None
    assert store.latest_location("t2") is None


def test_waypoint_dict_round_trip_keeps_metadata() -> None:
    arrival = datetime(2025, 3, 1, 12, 30, tzinfo=timezone.utc)
    waypoint = Waypoint(21.5, 39.2, address="Warehouse 4", estimated_arrival=arrival)

    restored = waypoint_from_dict(waypoint_to_dict(waypoint))

    assert restored == waypoint
    assert restored.address == "Warehouse 4"
    assert restored.estimated_arrival == arrival


def test_route_row_conversion() -> None:
    route = _route()
    row = route_to_row(route)

    assert row["status"] == "PLANNED"
    assert row["vehicle_class"] == "VAN"
    assert row["optimized_path"][0] == {"latitude": 0, "longitude": 0, "address": "Depot"}

    restored = route_from_row(row)
    assert restored.path == route.path
    assert restored.waypoints == route.waypoints
    assert restored.vehicle_class is VehicleClass.VAN
    assert restored.created_at == route.created_at


def test_route_row_keeps_unknown_vehicle_class() -> None:
    route = _route()
    route.vehicle_class = "CARGO_BIKE"
    assert route_from_row(route_to_row(route)).vehicle_class == "CARGO_BIKE"


def test_supabase_store_round_trip() -> None:
    client = FakeSupabase()
    store = SupabaseRecordStore(client)
    store.add_route(_route())

    with pytest.raises(DuplicateRoute):
        store.add_route(_route("r2", "o1"))

    loaded = store.get_route("r1")
    loaded.status = RouteStatus.IN_PROGRESS
    store.save_route(loaded)

    assert store.get_route("r1").status is RouteStatus.IN_PROGRESS
    assert store.get_route_for_order("o1").id == "r1"
    assert store.get_route("missing") is None
    assert [route.id for route in store.list_routes(transporter_id="t1", status=RouteStatus.IN_PROGRESS)] == ["r1"]


def test_supabase_store_transporters_and_tracking() -> None:
    store = SupabaseRecordStore(FakeSupabase())
    store.save_transporter(Transporter(id="t1", vehicle_class=VehicleClass.CAR, current_location=Waypoint(1, 2)))

    transporter = store.get_transporter("t1")
    assert transporter.vehicle_class is VehicleClass.CAR
    assert transporter.current_location == Waypoint(1, 2)

    store.record_location(
        TrackingPoint("t1", Waypoint(0, 0), order_id="o1", timestamp=datetime(2025, 1, 1, 8, tzinfo=timezone.utc))
    )
    store.record_location(
        TrackingPoint("t1", Waypoint(0, 1), order_id="o1", timestamp=datetime(2025, 1, 1, 9, tzinfo=timezone.utc))
    )

    latest = store.latest_location("t1", "o1")
    assert latest.location == Waypoint(0, 1)
    assert latest.timestamp == datetime(2025, 1, 1, 9, tzinfo=timezone.utc)
    assert store.latest_location("t1", "o2") is None


def test_get_store_without_supabase(monkeypatch) -> None:
    import fleetroute.persistence as persistence

    monkeypatch.setattr(persistence, "get_supabase_client", lambda: None)
    assert isinstance(get_store(), InMemoryRecordStore)


def test_get_store_with_supabase(monkeypatch) -> None:
    import fleetroute.persistence as persistence

    client = FakeSupabase()
    monkeypatch.setattr(persistence, "get_supabase_client", lambda: client)
    store = get_store()
    assert isinstance(store, SupabaseRecordStore)
    assert store.client is client


def _unique_violation() -> APIError:
    return APIError({"code": "23505", "message": "duplicate key value violates unique constraint"})


def test_supabase_unique_violation_becomes_duplicate_route() -> None:
    client = FakeSupabase()
    client.table("routes").table.insert_error = _unique_violation()
    store = SupabaseRecordStore(client)

    with pytest.raises(DuplicateRoute) as excinfo:
        store.add_route(_route())
    assert isinstance(excinfo.value.__cause__, APIError)


def test_concurrent_create_on_supabase_reports_duplicate() -> None:
    client = FakeSupabase()
    client.table("routes").table.insert_error = _unique_violation()
    engine = RouteEngine(
        SupabaseRecordStore(client),
        provider=StraightLineProvider(),
        traffic_signal=StaticTrafficSignal(),
    )
    request = RouteRequest(origin=Waypoint(0, 0), destination=Waypoint(0, 1))

    with pytest.raises(DuplicateRoute):
        engine.create_route("o1", "t1", request)


def test_supabase_other_insert_errors_propagate() -> None:
    client = FakeSupabase()
    client.table("routes").table.insert_error = APIError({"code": "42501", "message": "permission denied"})

    with pytest.raises(APIError):
        SupabaseRecordStore(client).add_route(_route())


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2025-03-01T10:15:30.12345+00:00", datetime(2025, 3, 1, 10, 15, 30, 123450, tzinfo=timezone.utc)),
        ("2025-03-01T10:15:30.1+00:00", datetime(2025, 3, 1, 10, 15, 30, 100000, tzinfo=timezone.utc)),
        ("2025-03-01T10:15:30Z", datetime(2025, 3, 1, 10, 15, 30, tzinfo=timezone.utc)),
    ],
)
def test_route_row_accepts_postgrest_timestamps(raw: str, expected: datetime) -> None:
    row = route_to_row(_route())
    row["created_at"] = raw
    row["updated_at"] = raw

    restored = route_from_row(row)

    assert restored.created_at == expected
    assert restored.updated_at == expected


def test_list_transporters_filters_availability() -> None:
    for store in (InMemoryRecordStore(), SupabaseRecordStore(FakeSupabase())):
        store.save_transporter(Transporter(id="t1", vehicle_class=VehicleClass.CAR))
        store.save_transporter(Transporter(id="t2", vehicle_class=VehicleClass.VAN, is_available=False))

        assert sorted(t.id for t in store.list_transporters()) == ["t1", "t2"]
        assert [t.id for t in store.list_transporters(available_only=True)] == ["t1"]
        assert store.get_transporter("t2").is_available is False
