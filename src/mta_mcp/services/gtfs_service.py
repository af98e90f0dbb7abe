"""Query façade composing the caches, reconciler and derivation engine.

Every public operation obtains one (static, live) snapshot pair from the
cache and works on it exclusively, so a refresh in the middle of a query
never mixes two versions of the data.
"""

import logging
from datetime import date, datetime

from mta_mcp.data.cache import TransitDataCache
from mta_mcp.models.gtfs import DEFAULT_ROUTE_COLOR, StaticSnapshot, Stop, StopTime, Trip
from mta_mcp.models.realtime import LiveSnapshot, TripUpdate
from mta_mcp.models.responses import (
    RealtimeHealth,
    RouteInfo,
    RouteShape,
    ServiceStatus,
    StationMarker,
    StopInfo,
    StopSchedule,
    SystemInfo,
    TripInfo,
    UpcomingDeparture,
)
from mta_mcp.services.clock import EasternClock
from mta_mcp.services.derivation import (
    calculate_progress,
    classify_delay,
    estimate_stop_time,
    has_passed,
)
from mta_mcp.services.reconciler import match_stop_time, match_trip

logger = logging.getLogger(__name__)

UNKNOWN_ROUTE = "Unknown"
UNKNOWN_DESTINATION = "Unknown Destination"
UNKNOWN_STOP = "Unknown Stop"
UNKNOWN_AGENCY = "Unknown Agency"

# Departures materialized per stop in search results
SEARCH_DEPARTURE_LIMIT = 5

# Feed age thresholds for realtime health, in minutes
HEALTHY_MINUTES = 2
DELAYED_MINUTES = 10


class _QueryTime:
    """One reading of the clock, shared by every derivation in a query."""

    def __init__(self, now: datetime):
        self.now = now
        self.today: date = now.date()
        self.hms = now.strftime("%H:%M:%S")
        self.epoch = int(now.timestamp())


def _route_sort_key(route: RouteInfo) -> tuple[str, str]:
    name = route.route_short_name or ""
    return name.casefold(), name


class GTFSService:
    """Read operations over the reconciled static and live data."""

    def __init__(self, cache: TransitDataCache, clock: EasternClock | None = None):
        self.cache = cache
        self.clock = clock or EasternClock()

    def _query_time(self) -> _QueryTime:
        return _QueryTime(self.clock.now())

    # System

    async def get_system_info(self) -> SystemInfo:
        static, live = await self.cache.get_snapshots()
        return self._system_info(static, live, self._query_time())

    def _system_info(
        self, static: StaticSnapshot, live: LiveSnapshot, query_time: _QueryTime
    ) -> SystemInfo:
        active_trips = static.active_trips(query_time.today)
        agency = static.agency

        return SystemInfo(
            agency_name=agency.agency_name if agency else UNKNOWN_AGENCY,
            agency_url=(agency.agency_url or "") if agency else "",
            total_routes=len(static.routes),
            total_stops=len(static.stops),
            total_trips=len(static.trips),
            active_routes_today=len({trip.route_id for trip in active_trips}),
            active_trips_today=len(active_trips),
            realtime_data_available=not live.is_empty,
            realtime_last_updated=live.last_updated.isoformat(),
            realtime_trip_updates=len(live.trip_updates),
        )

    async def get_service_status(self) -> ServiceStatus:
        """Data freshness and service coverage for today."""
        static, live = await self.cache.get_snapshots()
        query_time = self._query_time()
        info = self._system_info(static, live, query_time)

        minutes_since_update: int | None = None
        health = RealtimeHealth.UNAVAILABLE
        if info.realtime_data_available:
            age = query_time.now - live.last_updated
            minutes_since_update = int(age.total_seconds() // 60)
            if minutes_since_update < HEALTHY_MINUTES:
                health = RealtimeHealth.HEALTHY
            elif minutes_since_update < DELAYED_MINUTES:
                health = RealtimeHealth.DELAYED
            else:
                health = RealtimeHealth.STALE

        service_percentage = 0
        if info.total_routes:
            service_percentage = round(info.active_routes_today / info.total_routes * 100)

        return ServiceStatus(
            current_time=query_time.now.isoformat(),
            timezone=self.clock.timezone_name,
            realtime_data_available=info.realtime_data_available,
            realtime_health=health,
            realtime_last_updated=info.realtime_last_updated,
            minutes_since_realtime_update=minutes_since_update,
            realtime_trip_updates=info.realtime_trip_updates,
            active_routes_today=info.active_routes_today,
            total_routes=info.total_routes,
            service_percentage=service_percentage,
            active_trips_today=info.active_trips_today,
            total_stops=info.total_stops,
        )

    # Routes

    async def get_active_routes_today(self) -> list[RouteInfo]:
        """All routes with today's activity, sorted by short name.

        Returns:
            Every route (active or not) with is_active, distinct stop_count
            and trip_count.
        """
        static = await self.cache.get_static()
        return self._route_infos(static, self._query_time().today)

    def _route_infos(self, static: StaticSnapshot, today: date) -> list[RouteInfo]:
        active_route_ids = {trip.route_id for trip in static.active_trips(today)}

        infos = [
            RouteInfo(
                route_id=route.route_id,
                route_short_name=route.route_short_name,
                route_long_name=route.route_long_name,
                route_type=route.route_type,
                route_color=route.color,
                route_text_color=route.text_color,
                stop_count=len(static.stop_ids_by_route.get(route.route_id, frozenset())),
                trip_count=len(static.trips_by_route.get(route.route_id, [])),
                is_active=route.route_id in active_route_ids,
            )
            for route in static.routes
        ]
        infos.sort(key=_route_sort_key)
        return infos

    async def get_route_info(self, route: str) -> RouteInfo | None:
        """Look up a route by ID, falling back to a case-insensitive short name."""
        routes = await self.get_active_routes_today()
        for info in routes:
            if info.route_id == route:
                return info
        wanted = route.casefold()
        for info in routes:
            if (info.route_short_name or "").casefold() == wanted:
                return info
        return None

    async def get_route_shape(
        self,
        route: str,
        start_stop_id: str | None = None,
        end_stop_id: str | None = None,
    ) -> RouteShape | None:
        """Polyline of a route with optional start/end station markers.

        Only the first shape referenced by the route's trips is used;
        multiple shapes are not merged.

        Args:
            route: Route ID or short name (case-insensitive).
            start_stop_id: Stop or station ID for the start marker.
            end_stop_id: Stop or station ID for the end marker.

        Returns:
            RouteShape, or None for an unknown route or a route without
            trips, shape references or shape points.
        """
        static = await self.cache.get_static()

        wanted = route.casefold()
        match = static.routes_by_id.get(route) or next(
            (r for r in static.routes if (r.route_short_name or "").casefold() == wanted),
            None,
        )
        if match is None:
            return None

        trips = static.trips_by_route.get(match.route_id, [])
        shape_id = next((trip.shape_id for trip in trips if trip.shape_id), None)
        if shape_id is None:
            return None

        coordinates = [
            point
            for point in (pt.point for pt in static.shapes_by_id.get(shape_id, []))
            if point is not None
        ]
        if not coordinates:
            logger.debug(f"Shape {shape_id} of route {match.route_id} has no usable points")
            return None

        return RouteShape(
            route_name=f"{match.route_short_name or ''} - {match.route_long_name or ''}",
            color=f"#{match.color}",
            coordinates=coordinates,
            filtered_segment=False,
            point_count=len(coordinates),
            start_marker=self._find_marker(static, start_stop_id) if start_stop_id else None,
            end_marker=self._find_marker(static, end_stop_id) if end_stop_id else None,
        )

    def _find_marker(self, static: StaticSnapshot, stop_id: str) -> StationMarker | None:
        """Resolve a marker: the stop itself, a child platform, then its parent station."""
        direct = static.stops_by_id.get(stop_id)
        children = static.children_by_parent.get(stop_id, [])
        parent = (
            static.stops_by_id.get(direct.parent_station)
            if direct is not None and direct.parent_station
            else None
        )

        for candidate in (direct, children[0] if children else None, parent):
            if candidate is None:
                continue
            coordinates = candidate.coordinates
            if coordinates is not None:
                return StationMarker(
                    lat=coordinates[0],
                    lng=coordinates[1],
                    name=candidate.stop_name,
                    stop_id=candidate.stop_id,
                )
        return None

    # Stops

    async def get_stop_info(self, stop_id: str, limit: int = 10) -> StopInfo | None:
        static, live = await self.cache.get_snapshots()
        stop = static.stops_by_id.get(stop_id)
        if stop is None:
            return None
        return self._stop_info(static, live, stop, limit, self._query_time())

    def _stop_info(
        self,
        static: StaticSnapshot,
        live: LiveSnapshot,
        stop: Stop,
        limit: int,
        query_time: _QueryTime,
    ) -> StopInfo:
        return StopInfo(
            stop_id=stop.stop_id,
            stop_name=stop.stop_name,
            stop_code=stop.stop_code,
            platform_code=stop.platform_code,
            stop_lat=stop.stop_lat,
            stop_lon=stop.stop_lon,
            parent_station=stop.parent_station,
            upcoming_departures=self._upcoming_departures(
                static, live, stop.stop_id, limit, None, query_time
            ),
        )

    async def get_upcoming_departures(
        self,
        stop_id: str,
        limit: int = 10,
        route_filter: str | None = None,
    ) -> list[UpcomingDeparture]:
        """Future departures from a stop with real-time estimates.

        Args:
            stop_id: Stop (platform) ID.
            limit: Maximum number of departures.
            route_filter: Case-insensitive substring of the route short name.

        Returns:
            Departures with departure_time >= now, sorted by scheduled
            departure, filtered, then truncated to limit.
        """
        static, live = await self.cache.get_snapshots()
        return self._upcoming_departures(
            static, live, stop_id, limit, route_filter, self._query_time()
        )

    def _upcoming_departures(
        self,
        static: StaticSnapshot,
        live: LiveSnapshot,
        stop_id: str,
        limit: int,
        route_filter: str | None,
        query_time: _QueryTime,
    ) -> list[UpcomingDeparture]:
        if limit < 1:
            return []
        # text comparison: GTFS times and the clock are both HH:MM:SS
        future = [
            st
            for st in static.stop_times_by_stop.get(stop_id, [])
            if st.departure_time and st.departure_time >= query_time.hms
        ]
        future.sort(key=lambda st: st.departure_time or "")

        departures: list[UpcomingDeparture] = []
        wanted_route = route_filter.casefold() if route_filter else None
        for stop_time in future:
            departure = self._departure(static, live, stop_time)
            if wanted_route and wanted_route not in departure.route_short_name.casefold():
                continue
            departures.append(departure)
            if len(departures) >= limit:
                break
        return departures

    def _departure(
        self, static: StaticSnapshot, live: LiveSnapshot, stop_time: StopTime
    ) -> UpcomingDeparture:
        trip = static.trips_by_id.get(stop_time.trip_id)
        route = static.routes_by_id.get(trip.route_id) if trip else None

        stop_update = match_stop_time(match_trip(stop_time.trip_id, live), stop_time)
        event = stop_update.departure if stop_update else None
        estimate = estimate_stop_time(stop_time.departure_time, event, self.clock)
        delay_seconds = event.delay if event is not None else None

        return UpcomingDeparture(
            trip_id=stop_time.trip_id,
            route_short_name=(route.route_short_name if route else None) or UNKNOWN_ROUTE,
            trip_headsign=(trip.trip_headsign if trip else None) or UNKNOWN_DESTINATION,
            scheduled_departure=stop_time.departure_time or "",
            estimated_departure=estimate.time if estimate.is_realtime else None,
            delay_seconds=delay_seconds,
            delay=estimate.delay,
            delay_status=classify_delay(delay_seconds),
            route_color=route.color if route else DEFAULT_ROUTE_COLOR,
        )

    async def search_stops(self, query: str, limit: int = 10) -> list[StopInfo]:
        """Case-insensitive substring search over stop name, ID and code.

        Each of the first `limit` matches carries its next departures.
        """
        static, live = await self.cache.get_snapshots()
        query_time = self._query_time()
        wanted = query.casefold()

        results: list[StopInfo] = []
        if limit < 1:
            return results
        for stop in static.stops:
            if (
                wanted in stop.stop_name.casefold()
                or wanted in stop.stop_id.casefold()
                or (stop.stop_code is not None and wanted in stop.stop_code.casefold())
            ):
                results.append(
                    self._stop_info(static, live, stop, SEARCH_DEPARTURE_LIMIT, query_time)
                )
                if len(results) >= limit:
                    break
        return results

    # Trips

    async def get_trip_info(self, trip_id: str) -> TripInfo | None:
        static, live = await self.cache.get_snapshots()
        trip = static.trips_by_id.get(trip_id)
        if trip is None:
            return None
        return self._trip_info(static, live, trip, self._query_time())

    def _trip_info(
        self,
        static: StaticSnapshot,
        live: LiveSnapshot,
        trip: Trip,
        query_time: _QueryTime,
    ) -> TripInfo:
        route = static.routes_by_id.get(trip.route_id)
        trip_update = match_trip(trip.trip_id, live)
        stop_times = static.stop_times_by_trip.get(trip.trip_id, [])
        progress = calculate_progress(
            stop_times, trip_update, static.stops_by_id, query_time.epoch
        )
        trip_delay = trip_update.delay if trip_update else None

        return TripInfo(
            trip_id=trip.trip_id,
            route_id=trip.route_id,
            route_short_name=(route.route_short_name if route else None) or UNKNOWN_ROUTE,
            trip_headsign=trip.trip_headsign or UNKNOWN_DESTINATION,
            direction_id=trip.direction_id or "0",
            service_id=trip.service_id,
            shape_id=trip.shape_id,
            is_active=trip.service_id in static.active_service_ids(query_time.today),
            has_realtime_data=trip_update is not None,
            delay_seconds=trip_delay,
            delay_status=classify_delay(trip_delay),
            progress_percentage=progress.progress if progress else None,
            current_stop=progress.current_stop if progress else None,
            next_stop=progress.next_stop if progress else None,
            stop_schedule=[
                self._stop_schedule(static, trip_update, stop_time, query_time)
                for stop_time in stop_times
            ],
        )

    def _stop_schedule(
        self,
        static: StaticSnapshot,
        trip_update: TripUpdate | None,
        stop_time: StopTime,
        query_time: _QueryTime,
    ) -> StopSchedule:
        stop = static.stops_by_id.get(stop_time.stop_id)
        stop_update = match_stop_time(trip_update, stop_time)
        arrival_event = stop_update.arrival if stop_update else None
        departure_event = stop_update.departure if stop_update else None

        arrival = estimate_stop_time(stop_time.arrival_time, arrival_event, self.clock)
        departure = estimate_stop_time(stop_time.departure_time, departure_event, self.clock)

        delay_seconds = arrival.delay_seconds
        delay = arrival.delay
        if delay_seconds is None:
            delay_seconds = departure.delay_seconds
            delay = departure.delay

        return StopSchedule(
            stop_id=stop_time.stop_id,
            stop_name=stop.stop_name if stop else UNKNOWN_STOP,
            stop_sequence=stop_time.sequence,
            scheduled_arrival=stop_time.arrival_time,
            scheduled_departure=stop_time.departure_time,
            estimated_arrival=arrival.time if arrival.is_realtime else None,
            estimated_departure=departure.time if departure.is_realtime else None,
            delay_seconds=delay_seconds,
            delay=delay,
            has_passed=has_passed(stop_time.departure_time, query_time.hms),
        )

    async def get_live_trips(
        self, route_filter: str | None = None, limit: int = 10
    ) -> list[TripInfo]:
        """Today's trips that currently have real-time data.

        Args:
            route_filter: Route short name substring (case-insensitive) or
                exact route ID.
            limit: Maximum number of trips.
        """
        static, live = await self.cache.get_snapshots()
        query_time = self._query_time()
        trips = static.active_trips(query_time.today)

        if route_filter:
            wanted = route_filter.casefold()
            route_ids = {
                route.route_id
                for route in static.routes
                if wanted in (route.route_short_name or "").casefold()
                or route.route_id == route_filter
            }
            trips = [trip for trip in trips if trip.route_id in route_ids]

        if limit < 1:
            return []

        matched = [trip for trip in trips if match_trip(trip.trip_id, live) is not None]

        live_trips: list[TripInfo] = []
        for trip in matched[:limit]:
            info = self._trip_info(static, live, trip, query_time)
            if info.has_realtime_data:
                live_trips.append(info)
        return live_trips
