"""MCP tools for stops and upcoming departures."""

from mcp.server.fastmcp import FastMCP

from mta_mcp.models.responses import (
    NotFoundResponse,
    SearchStopsResponse,
    StopInfo,
    StopSearchResult,
    UpcomingDeparturesResponse,
)
from mta_mcp.services.gtfs_service import GTFSService
from mta_mcp.tools.errors import clamp_limit, not_found, tool_operation


@tool_operation("searching stops")
async def search(
    service: GTFSService, query: str, limit: int = 10
) -> SearchStopsResponse | NotFoundResponse:
    stops = await service.search_stops(query, clamp_limit(limit))
    if not stops:
        return not_found(
            "Stop",
            query,
            suggestion=(
                'Try searching for station names like "Times Square", '
                '"Grand Central", or "Union Square".'
            ),
        )

    results = [
        StopSearchResult(
            stop_id=stop.stop_id,
            stop_name=stop.stop_name,
            stop_code=stop.stop_code,
            stop_lat=stop.stop_lat,
            stop_lon=stop.stop_lon,
            platform_code=stop.platform_code,
            parent_station=stop.parent_station,
            upcoming_departures_count=len(stop.upcoming_departures),
        )
        for stop in stops
    ]
    return SearchStopsResponse(query=query, stops=results, total=len(results))


async def _resolve_stop_id(service: GTFSService, stop: str) -> str | None:
    """Return the stop ID itself if known, else the first name search hit."""
    if await service.get_stop_info(stop, limit=1) is not None:
        return stop
    matches = await service.search_stops(stop, limit=1)
    return matches[0].stop_id if matches else None


@tool_operation("fetching stop information")
async def stop_info(
    service: GTFSService, stop_id: str, departure_limit: int = 10
) -> StopInfo | NotFoundResponse:
    resolved_id = await _resolve_stop_id(service, stop_id)
    info = (
        await service.get_stop_info(resolved_id, clamp_limit(departure_limit))
        if resolved_id
        else None
    )
    if info is None:
        return not_found(
            "Stop", stop_id, suggestion="Try searching for stops first using the search_stops tool."
        )
    return info


@tool_operation("fetching departures")
async def upcoming_departures(
    service: GTFSService,
    stop_id: str,
    limit: int = 5,
    route_filter: str | None = None,
) -> UpcomingDeparturesResponse | NotFoundResponse:
    resolved_id = await _resolve_stop_id(service, stop_id)
    resolved = await service.get_stop_info(resolved_id, limit=1) if resolved_id else None
    if resolved is None:
        return not_found("Stop", stop_id)

    departures = await service.get_upcoming_departures(
        resolved.stop_id, clamp_limit(limit), route_filter
    )
    if not departures:
        route_note = f" for route {route_filter}" if route_filter else ""
        return UpcomingDeparturesResponse(
            stop_id=resolved.stop_id,
            stop_name=resolved.stop_name,
            route_filter=route_filter,
            departures=[],
            message=f"No upcoming departures found{route_note}.",
        )

    return UpcomingDeparturesResponse(
        stop_id=resolved.stop_id,
        stop_name=resolved.stop_name,
        route_filter=route_filter,
        updated_at=service.clock.now().strftime("%Y-%m-%d %H:%M:%S"),
        timezone=service.clock.timezone_name,
        departures=departures,
    )


def register_stop_tools(mcp: FastMCP, service: GTFSService) -> None:
    @mcp.tool()
    async def search_stops(query: str, limit: int = 10) -> SearchStopsResponse | NotFoundResponse:
        """Search for MTA stations/stops by name, ID, or code.

        Examples:
            search_stops(query="Times Sq")  # stations with "Times Sq" in the name
            search_stops(query="726")  # stop ID and its platforms 726N/726S

        Args:
            query: Case-insensitive text matched against stop name, ID and code.
            limit: Maximum number of results (default 10, max 100).

        Returns:
            SearchStopsResponse with matching stops and the number of
            upcoming departures at each, or a not-found result.
        """
        return await search(service, query, limit)

    @mcp.tool()
    async def get_stop_info(
        stop_id: str, departure_limit: int = 10
    ) -> StopInfo | NotFoundResponse:
        """Get detailed information about an MTA station/stop with upcoming departures.

        Args:
            stop_id: Stop ID (e.g., "726") or a stop name to search for.
            departure_limit: Maximum upcoming departures to include (default 10).

        Returns:
            StopInfo, or a not-found result.
        """
        return await stop_info(service, stop_id, departure_limit)

    @mcp.tool()
    async def get_upcoming_departures(
        stop_id: str,
        limit: int = 5,
        route_filter: str | None = None,
    ) -> UpcomingDeparturesResponse | NotFoundResponse:
        """Get upcoming train departures for an MTA platform with real-time estimates.

        Args:
            stop_id: Platform ID (e.g., "726N", "726S") or a stop name to search for.
            limit: Maximum number of departures (default 5).
            route_filter: Optional route short name to filter by (e.g., "1", "7").

        Returns:
            UpcomingDeparturesResponse sorted by scheduled departure. Estimated
            times are Eastern HH:MM; delay_seconds is positive when late.
        """
        return await upcoming_departures(service, stop_id, limit, route_filter)
