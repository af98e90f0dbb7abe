"""Pydantic models for GTFS entities and the static schedule snapshot.

Fields are kept as the text delivered by the feed. Numeric values
(coordinates, sequences, distances) are parsed on demand so a malformed
value degrades to ``None`` instead of failing the whole load.
"""

from collections import defaultdict
from datetime import date
from functools import cached_property

from pydantic import BaseModel, ConfigDict, PrivateAttr

DEFAULT_ROUTE_COLOR = "666666"
DEFAULT_ROUTE_TEXT_COLOR = "FFFFFF"

# GTFS weekday column names indexed by weekday (0=Monday, 6=Sunday)
WEEKDAY_COLUMNS = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]


def parse_int(value: str | int | None) -> int | None:
    """Parse an integer field, returning None when absent or malformed."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_float(value: str | float | None) -> float | None:
    """Parse a float field, returning None when absent or malformed."""
    if value is None:
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None


class Agency(BaseModel):
    """GTFS agency entity."""

    agency_name: str
    agency_url: str | None = None


class Route(BaseModel):
    """GTFS route entity."""

    route_id: str
    route_short_name: str | None = None
    route_long_name: str | None = None
    route_type: str | None = None  # "1"=subway, "3"=bus
    route_color: str | None = None  # hex without leading '#'
    route_text_color: str | None = None

    @property
    def color(self) -> str:
        return self.route_color or DEFAULT_ROUTE_COLOR

    @property
    def text_color(self) -> str:
        return self.route_text_color or DEFAULT_ROUTE_TEXT_COLOR


class Stop(BaseModel):
    """GTFS stop entity (station or platform)."""

    stop_id: str
    stop_code: str | None = None
    stop_name: str
    stop_lat: str | None = None
    stop_lon: str | None = None
    parent_station: str | None = None  # platform -> station, one level only
    platform_code: str | None = None

    @property
    def coordinates(self) -> tuple[float, float] | None:
        """Latitude/longitude pair, or None if either is missing or malformed."""
        lat = parse_float(self.stop_lat)
        lon = parse_float(self.stop_lon)
        if lat is None or lon is None:
            return None
        return lat, lon


class Trip(BaseModel):
    """GTFS trip entity."""

    trip_id: str
    route_id: str
    service_id: str
    trip_headsign: str | None = None
    direction_id: str | None = None
    shape_id: str | None = None


class StopTime(BaseModel):
    """GTFS stop_times entity."""

    trip_id: str
    arrival_time: str | None = None  # HH:MM:SS (can exceed 24:00:00)
    departure_time: str | None = None
    stop_id: str
    stop_sequence: str
    shape_dist_traveled: str | None = None

    @property
    def sequence(self) -> int | None:
        return parse_int(self.stop_sequence)

    @property
    def distance(self) -> float | None:
        return parse_float(self.shape_dist_traveled)


class Calendar(BaseModel):
    """GTFS calendar entity for service patterns."""

    service_id: str
    monday: str = "0"
    tuesday: str = "0"
    wednesday: str = "0"
    thursday: str = "0"
    friday: str = "0"
    saturday: str = "0"
    sunday: str = "0"
    start_date: str | None = None  # YYYYMMDD
    end_date: str | None = None  # YYYYMMDD

    def is_active_on(self, service_date: date) -> bool:
        """Check whether this service runs on the given date.

        Date bounds are compared as YYYYMMDD text; a missing bound is open.
        """
        date_str = service_date.strftime("%Y%m%d")
        if self.start_date and date_str < self.start_date:
            return False
        if self.end_date and date_str > self.end_date:
            return False
        return getattr(self, WEEKDAY_COLUMNS[service_date.weekday()]) == "1"


class Shape(BaseModel):
    """GTFS shapes entity (one point of a polyline)."""

    shape_id: str
    shape_pt_lat: str
    shape_pt_lon: str
    shape_pt_sequence: str
    shape_dist_traveled: str | None = None

    @property
    def sequence(self) -> int | None:
        return parse_int(self.shape_pt_sequence)

    @property
    def point(self) -> tuple[float, float] | None:
        lat = parse_float(self.shape_pt_lat)
        lon = parse_float(self.shape_pt_lon)
        if lat is None or lon is None:
            return None
        return lat, lon


def _sequence_key(sequence: int | None) -> tuple[bool, int]:
    # unparseable sequences sort last, keeping their relative order
    return (sequence is None, sequence or 0)


class StaticSnapshot(BaseModel):
    """Immutable point-in-time copy of the static schedule.

    Derived lookups are built lazily on first use and never mutated
    afterwards. A new snapshot is created on every refresh.
    """

    model_config = ConfigDict(frozen=True)

    agencies: list[Agency] = []
    routes: list[Route] = []
    stops: list[Stop] = []
    trips: list[Trip] = []
    stop_times: list[StopTime] = []
    calendar: list[Calendar] = []
    shapes: list[Shape] = []

    _active_services: dict[date, frozenset[str]] = PrivateAttr(default_factory=dict)

    @property
    def agency(self) -> Agency | None:
        return self.agencies[0] if self.agencies else None

    @cached_property
    def routes_by_id(self) -> dict[str, Route]:
        return {route.route_id: route for route in self.routes}

    @cached_property
    def stops_by_id(self) -> dict[str, Stop]:
        return {stop.stop_id: stop for stop in self.stops}

    @cached_property
    def trips_by_id(self) -> dict[str, Trip]:
        return {trip.trip_id: trip for trip in self.trips}

    @cached_property
    def trips_by_route(self) -> dict[str, list[Trip]]:
        index: dict[str, list[Trip]] = defaultdict(list)
        for trip in self.trips:
            index[trip.route_id].append(trip)
        return dict(index)

    @cached_property
    def stop_times_by_trip(self) -> dict[str, list[StopTime]]:
        """Stop times per trip, ordered by stop_sequence (not file order)."""
        index: dict[str, list[StopTime]] = defaultdict(list)
        for stop_time in self.stop_times:
            index[stop_time.trip_id].append(stop_time)
        for stop_times in index.values():
            stop_times.sort(key=lambda st: _sequence_key(st.sequence))
        return dict(index)

    @cached_property
    def stop_times_by_stop(self) -> dict[str, list[StopTime]]:
        index: dict[str, list[StopTime]] = defaultdict(list)
        for stop_time in self.stop_times:
            index[stop_time.stop_id].append(stop_time)
        return dict(index)

    @cached_property
    def stop_ids_by_route(self) -> dict[str, frozenset[str]]:
        """Distinct stop IDs served by any trip of each route."""
        result: dict[str, frozenset[str]] = {}
        for route_id, trips in self.trips_by_route.items():
            stop_ids: set[str] = set()
            for trip in trips:
                for stop_time in self.stop_times_by_trip.get(trip.trip_id, []):
                    stop_ids.add(stop_time.stop_id)
            result[route_id] = frozenset(stop_ids)
        return result

    @cached_property
    def children_by_parent(self) -> dict[str, list[Stop]]:
        index: dict[str, list[Stop]] = defaultdict(list)
        for stop in self.stops:
            if stop.parent_station:
                index[stop.parent_station].append(stop)
        return dict(index)

    @cached_property
    def shapes_by_id(self) -> dict[str, list[Shape]]:
        index: dict[str, list[Shape]] = defaultdict(list)
        for shape in self.shapes:
            index[shape.shape_id].append(shape)
        for points in index.values():
            points.sort(key=lambda pt: _sequence_key(pt.sequence))
        return dict(index)

    def active_service_ids(self, service_date: date) -> frozenset[str]:
        """Service IDs running on a date, computed once per snapshot and date."""
        cached = self._active_services.get(service_date)
        if cached is None:
            cached = frozenset(
                entry.service_id for entry in self.calendar if entry.is_active_on(service_date)
            )
            self._active_services[service_date] = cached
        return cached

    def active_trips(self, service_date: date) -> list[Trip]:
        active = self.active_service_ids(service_date)
        return [trip for trip in self.trips if trip.service_id in active]
