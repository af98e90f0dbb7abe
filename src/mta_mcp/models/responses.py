from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DelayStatus(str, Enum):
    """Delay classification for a stop or trip."""

    ON_TIME = "on_time"
    LATE = "late"
    EARLY = "early"
    SCHEDULED = "scheduled"  # no real-time delay known


# Routes


class RouteInfo(BaseModel):
    route_id: str
    route_short_name: str | None = None
    route_long_name: str | None = None
    route_type: str | None = None
    route_color: str = Field(description="Hex color without '#', defaults to 666666")
    route_text_color: str = Field(description="Hex color without '#', defaults to FFFFFF")
    stop_count: int = Field(description="Distinct stops served by any trip of the route")
    trip_count: int = Field(description="Trips on the route across all service days")
    is_active: bool = Field(description="True if any trip of the route runs today")


class ActiveRoutesResponse(BaseModel):
    routes: list[RouteInfo]
    total: int


class RouteSummary(BaseModel):
    route_id: str
    route_short_name: str | None = None
    route_long_name: str | None = None
    stop_count: int
    trip_count: int


class AllRoutesResponse(BaseModel):
    active_routes: list[RouteSummary]
    inactive_routes: list[RouteSummary]
    total: int
    active_count: int
    inactive_count: int


class StationMarker(BaseModel):
    """Map marker for a start or end station."""

    model_config = ConfigDict(populate_by_name=True)

    lat: float
    lng: float
    name: str
    stop_id: str = Field(alias="stopId")


class RouteShape(BaseModel):
    """Polyline of a route for map display.

    Serialized by alias (camelCase), the keys the route map widget reads.
    """

    model_config = ConfigDict(populate_by_name=True)

    route_name: str = Field(alias="routeName", description="'<short name> - <long name>'")
    color: str = Field(description="Hex color with leading '#'")
    coordinates: list[tuple[float, float]] = Field(description="[lat, lon] pairs in path order")
    filtered_segment: bool = Field(default=False, alias="filteredSegment")
    point_count: int = Field(alias="pointCount")
    start_marker: StationMarker | None = Field(default=None, alias="startMarker")
    end_marker: StationMarker | None = Field(default=None, alias="endMarker")


# Stops and departures


class UpcomingDeparture(BaseModel):
    trip_id: str
    route_short_name: str
    trip_headsign: str
    scheduled_departure: str = Field(description="Scheduled departure in HH:MM:SS format")
    estimated_departure: str | None = Field(
        default=None, description="Real-time departure estimate in HH:MM (Eastern)"
    )
    delay_seconds: int | None = Field(
        default=None, description="Delay in seconds (positive=late, negative=early)"
    )
    delay: str | None = Field(default=None, description="Human-readable delay, e.g. '2m 5s late'")
    delay_status: DelayStatus = DelayStatus.SCHEDULED
    route_color: str


class StopInfo(BaseModel):
    stop_id: str
    stop_name: str
    stop_code: str | None = None
    platform_code: str | None = None
    stop_lat: str | None = None
    stop_lon: str | None = None
    parent_station: str | None = None
    upcoming_departures: list[UpcomingDeparture] = []


class StopSearchResult(BaseModel):
    stop_id: str
    stop_name: str
    stop_code: str | None = None
    stop_lat: str | None = None
    stop_lon: str | None = None
    platform_code: str | None = None
    parent_station: str | None = None
    upcoming_departures_count: int


class SearchStopsResponse(BaseModel):
    query: str
    stops: list[StopSearchResult]
    total: int


class UpcomingDeparturesResponse(BaseModel):
    stop_id: str
    stop_name: str
    route_filter: str | None = None
    updated_at: str | None = Field(default=None, description="Query time in Eastern time")
    timezone: str | None = None
    departures: list[UpcomingDeparture]
    message: str | None = None


# Trips


class StopSchedule(BaseModel):
    stop_id: str
    stop_name: str
    stop_sequence: int | None = None
    scheduled_arrival: str | None = None
    scheduled_departure: str | None = None
    estimated_arrival: str | None = None
    estimated_departure: str | None = None
    delay_seconds: int | None = None
    delay: str | None = None
    has_passed: bool = Field(
        description="Scheduled departure is before the current Eastern time (text comparison)"
    )


class TripInfo(BaseModel):
    trip_id: str
    route_id: str
    route_short_name: str
    trip_headsign: str
    direction_id: str
    service_id: str
    shape_id: str | None = None
    is_active: bool = Field(description="True if the trip's service runs today")
    has_realtime_data: bool
    delay_seconds: int | None = Field(default=None, description="Trip-level delay from the feed")
    delay_status: DelayStatus = DelayStatus.SCHEDULED
    progress_percentage: int | None = Field(
        default=None, description="0-100 along the trip, only with real-time data"
    )
    current_stop: str | None = None
    next_stop: str | None = None
    stop_schedule: list[StopSchedule] = []


class LiveTripSummary(BaseModel):
    trip_id: str
    route_short_name: str
    route_id: str
    trip_headsign: str
    delay_seconds: int | None = None
    progress_percentage: int | None = None
    current_stop: str | None = None
    next_stop: str | None = None


class LiveTripsResponse(BaseModel):
    trips: list[LiveTripSummary]
    route_filter: str | None = None
    total: int
    realtime_data_available: bool | None = None
    realtime_trip_updates: int | None = None
    realtime_last_updated: str | None = None


class TripScheduleResponse(BaseModel):
    trip_id: str
    route_short_name: str
    route_id: str
    trip_headsign: str
    has_realtime_data: bool
    show_passed_stops: bool
    schedule: list[StopSchedule]


# System


class SystemInfo(BaseModel):
    agency_name: str
    agency_url: str
    total_routes: int
    total_stops: int
    total_trips: int
    active_routes_today: int
    active_trips_today: int
    realtime_data_available: bool
    realtime_last_updated: str = Field(description="ISO timestamp of the live feed")
    realtime_trip_updates: int


class RealtimeHealth(str, Enum):
    HEALTHY = "healthy"  # updated less than 2 minutes ago
    DELAYED = "delayed"  # less than 10 minutes
    STALE = "stale"
    UNAVAILABLE = "unavailable"  # empty feed


class ServiceStatus(BaseModel):
    current_time: str
    timezone: str
    realtime_data_available: bool
    realtime_health: RealtimeHealth
    realtime_last_updated: str
    minutes_since_realtime_update: int | None = None
    realtime_trip_updates: int
    active_routes_today: int
    total_routes: int
    service_percentage: int
    active_trips_today: int
    total_stops: int


class ToolDescription(BaseModel):
    name: str
    description: str


class HelpResponse(BaseModel):
    server_description: str
    tools: dict[str, list[ToolDescription]]
    data_sources: dict[str, str]


class NotFoundResponse(BaseModel):
    """Typed not-found result with alternatives the caller can offer."""

    error: bool = True
    type: str = "not_found"
    item_type: str
    search_term: str
    available_items: list[str] | None = None
    suggestion: str | None = None


class RouteShapeResponse(BaseModel):
    """get_route_shape result: ``{"routeShape": {...}}`` or a not-found result."""

    model_config = ConfigDict(populate_by_name=True)

    route_shape: RouteShape | None = Field(default=None, alias="routeShape")
    not_found: NotFoundResponse | None = Field(default=None, alias="notFound")
