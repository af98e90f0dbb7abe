"""MCP tools for system information, health and help."""

from mcp.server.fastmcp import FastMCP

from mta_mcp.models.responses import HelpResponse, ServiceStatus, SystemInfo, ToolDescription
from mta_mcp.services.gtfs_service import GTFSService
from mta_mcp.tools.errors import tool_operation

SERVER_DESCRIPTION = (
    "MCP server for NYC MTA subway data including routes, stops, trips, and real-time information"
)

TOOL_CATALOG: dict[str, list[tuple[str, str]]] = {
    "route_tools": [
        ("get_active_routes_today", "List all active MTA routes today"),
        ("get_route_info", "Get detailed information about a specific route"),
        ("list_all_routes", "List all routes (active and inactive)"),
        ("get_route_shape", "Get a route's map shape with optional start/end markers"),
    ],
    "stop_tools": [
        ("search_stops", "Search for stations by name or ID"),
        ("get_stop_info", "Get detailed station info with upcoming departures"),
        ("get_upcoming_departures", "Get upcoming trains at a specific station"),
    ],
    "trip_tools": [
        ("get_trip_info", "Get detailed information about a specific trip"),
        ("get_live_trips", "Get currently active trips with real-time data"),
        ("get_trip_schedule", "Get stop-by-stop schedule for a trip"),
    ],
    "system_tools": [
        ("health", "Check that the server is running"),
        ("get_system_info", "Get general system information and statistics"),
        ("get_service_status", "Get current service status and health check"),
        ("get_help", "Show this help information"),
    ],
}

DATA_SOURCES = {
    "static_gtfs": "Schedule, route, and stop information",
    "gtfs_realtime": "Live trip updates and delays from the MTA API",
}


@tool_operation("fetching system information")
async def system_info(service: GTFSService) -> SystemInfo:
    return await service.get_system_info()


@tool_operation("checking service status")
async def service_status(service: GTFSService) -> ServiceStatus:
    return await service.get_service_status()


def help_response() -> HelpResponse:
    return HelpResponse(
        server_description=SERVER_DESCRIPTION,
        tools={
            group: [ToolDescription(name=name, description=description) for name, description in entries]
            for group, entries in TOOL_CATALOG.items()
        },
        data_sources=DATA_SOURCES,
    )


def register_system_tools(mcp: FastMCP, service: GTFSService) -> None:
    @mcp.tool()
    async def get_system_info() -> SystemInfo:
        """Get general information about the MTA GTFS system.

        Returns agency details, route/stop/trip totals, today's active routes
        and trips, and the state of the real-time feed.
        """
        return await system_info(service)

    @mcp.tool()
    async def get_service_status() -> ServiceStatus:
        """Get the current service status and real-time data health.

        realtime_health is "healthy" when the feed is under 2 minutes old,
        "delayed" under 10 minutes, "stale" beyond that and "unavailable"
        when the feed is empty.
        """
        return await service_status(service)

    @mcp.tool()
    def get_help() -> HelpResponse:
        """Get help information about the available MTA tools and how to use them."""
        return help_response()
