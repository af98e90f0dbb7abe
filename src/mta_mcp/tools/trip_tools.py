"""MCP tools for trips and live trip tracking."""

from mcp.server.fastmcp import FastMCP

from mta_mcp.models.responses import (
    LiveTripsResponse,
    LiveTripSummary,
    NotFoundResponse,
    TripInfo,
    TripScheduleResponse,
)
from mta_mcp.services.gtfs_service import GTFSService
from mta_mcp.tools.errors import clamp_limit, not_found, tool_operation


@tool_operation("fetching trip information")
async def trip_info(service: GTFSService, trip_id: str) -> TripInfo | NotFoundResponse:
    trip = await service.get_trip_info(trip_id)
    if trip is None:
        return not_found("Trip", trip_id)
    return trip


@tool_operation("fetching live trips")
async def live_trips(
    service: GTFSService, route_filter: str | None = None, limit: int = 10
) -> LiveTripsResponse:
    trips = await service.get_live_trips(route_filter, clamp_limit(limit))

    if not trips:
        # explain the empty result with the feed state
        system_info = await service.get_system_info()
        return LiveTripsResponse(
            trips=[],
            route_filter=route_filter,
            total=0,
            realtime_data_available=system_info.realtime_data_available,
            realtime_trip_updates=system_info.realtime_trip_updates,
            realtime_last_updated=system_info.realtime_last_updated,
        )

    summaries = [
        LiveTripSummary(
            trip_id=trip.trip_id,
            route_short_name=trip.route_short_name,
            route_id=trip.route_id,
            trip_headsign=trip.trip_headsign,
            delay_seconds=trip.delay_seconds,
            progress_percentage=trip.progress_percentage,
            current_stop=trip.current_stop,
            next_stop=trip.next_stop,
        )
        for trip in trips
    ]
    return LiveTripsResponse(trips=summaries, route_filter=route_filter, total=len(summaries))


@tool_operation("fetching trip schedule")
async def trip_schedule(
    service: GTFSService, trip_id: str, show_passed_stops: bool = True
) -> TripScheduleResponse | NotFoundResponse:
    trip = await service.get_trip_info(trip_id)
    if trip is None:
        return not_found("Trip", trip_id)

    schedule = trip.stop_schedule
    if not show_passed_stops:
        schedule = [stop for stop in schedule if not stop.has_passed]

    return TripScheduleResponse(
        trip_id=trip.trip_id,
        route_short_name=trip.route_short_name,
        route_id=trip.route_id,
        trip_headsign=trip.trip_headsign,
        has_realtime_data=trip.has_realtime_data,
        show_passed_stops=show_passed_stops,
        schedule=schedule,
    )


def register_trip_tools(mcp: FastMCP, service: GTFSService) -> None:
    @mcp.tool()
    async def get_trip_info(trip_id: str) -> TripInfo | NotFoundResponse:
        """Get detailed information about an MTA trip with real-time updates.

        Args:
            trip_id: Full static trip ID (e.g., "ASP25GEN-1038-Sunday-00_128750_1..N03R").

        Returns:
            TripInfo with the stop-by-stop schedule, real-time estimates,
            progress percentage and current/next stop, or a not-found result.
        """
        return await trip_info(service, trip_id)

    @mcp.tool()
    async def get_live_trips(route_filter: str | None = None, limit: int = 10) -> LiveTripsResponse:
        """Get today's MTA trips that currently have real-time tracking data.

        Args:
            route_filter: Optional route short name (e.g., "1", "A") or route ID.
            limit: Maximum number of trips (default 10).

        Returns:
            LiveTripsResponse. When no trip matches, the response reports
            whether the live feed currently has any data.
        """
        return await live_trips(service, route_filter, limit)

    @mcp.tool()
    async def get_trip_schedule(
        trip_id: str, show_passed_stops: bool = True
    ) -> TripScheduleResponse | NotFoundResponse:
        """Get the stop-by-stop schedule for an MTA trip with real-time updates.

        Args:
            trip_id: Full static trip ID.
            show_passed_stops: Include stops the trip has already passed (default True).
        """
        return await trip_schedule(service, trip_id, show_passed_stops)
