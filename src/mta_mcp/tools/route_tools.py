"""MCP tools for routes and route shapes."""

from mcp.server.fastmcp import FastMCP

from mta_mcp.models.responses import (
    ActiveRoutesResponse,
    AllRoutesResponse,
    NotFoundResponse,
    RouteInfo,
    RouteShapeResponse,
    RouteSummary,
)
from mta_mcp.services.gtfs_service import GTFSService
from mta_mcp.tools.errors import not_found, tool_operation
from mta_mcp.widgets.route_map import ROUTE_MAP_URI


def _available_routes(routes: list[RouteInfo]) -> list[str]:
    return [f"{route.route_id} ({route.route_short_name or ''})" for route in routes]


def _summary(route: RouteInfo) -> RouteSummary:
    return RouteSummary(
        route_id=route.route_id,
        route_short_name=route.route_short_name,
        route_long_name=route.route_long_name,
        stop_count=route.stop_count,
        trip_count=route.trip_count,
    )


@tool_operation("fetching active routes")
async def active_routes_today(
    service: GTFSService, include_inactive: bool = False
) -> ActiveRoutesResponse:
    routes = await service.get_active_routes_today()
    if not include_inactive:
        routes = [route for route in routes if route.is_active]
    return ActiveRoutesResponse(routes=routes, total=len(routes))


@tool_operation("fetching route information")
async def route_info(service: GTFSService, route_id: str) -> RouteInfo | NotFoundResponse:
    route = await service.get_route_info(route_id)
    if route is None:
        routes = await service.get_active_routes_today()
        return not_found("Route", route_id, _available_routes(routes))
    return route


@tool_operation("fetching routes")
async def all_routes(service: GTFSService) -> AllRoutesResponse:
    routes = await service.get_active_routes_today()
    active = [_summary(route) for route in routes if route.is_active]
    inactive = [_summary(route) for route in routes if not route.is_active]
    return AllRoutesResponse(
        active_routes=active,
        inactive_routes=inactive,
        total=len(routes),
        active_count=len(active),
        inactive_count=len(inactive),
    )


@tool_operation("fetching route shape")
async def route_shape(
    service: GTFSService,
    route_id: str,
    start_stop_id: str | None = None,
    end_stop_id: str | None = None,
) -> RouteShapeResponse:
    shape = await service.get_route_shape(route_id, start_stop_id, end_stop_id)
    if shape is None:
        routes = await service.get_active_routes_today()
        return RouteShapeResponse(
            not_found=not_found("Route shape", route_id, _available_routes(routes))
        )
    return RouteShapeResponse(route_shape=shape)


def register_route_tools(mcp: FastMCP, service: GTFSService) -> None:
    @mcp.tool()
    async def get_active_routes_today(include_inactive: bool = False) -> ActiveRoutesResponse:
        """Get MTA routes that are active today with service information.

        Args:
            include_inactive: Include routes with no service today (default False).

        Returns:
            ActiveRoutesResponse with routes sorted by short name. Each route
            has its colors, distinct stop count, trip count and is_active.
        """
        return await active_routes_today(service, include_inactive)

    @mcp.tool()
    async def get_route_info(route_id: str) -> RouteInfo | NotFoundResponse:
        """Get detailed information about a specific MTA route.

        Args:
            route_id: Route ID or short name (e.g., "1", "A", "GS").

        Returns:
            RouteInfo, or a not-found result listing the available routes.
        """
        return await route_info(service, route_id)

    @mcp.tool()
    async def list_all_routes() -> AllRoutesResponse:
        """List all MTA routes, split into active and inactive today."""
        return await all_routes(service)

    @mcp.tool(
        meta={
            "openai/outputTemplate": ROUTE_MAP_URI,
            "openai/toolInvocation/invoking": "Displaying the map",
            "openai/toolInvocation/invoked": "Displayed the map",
            "openai/widgetAccessible": True,
        }
    )
    async def get_route_shape(
        route_id: str,
        start_stop_id: str | None = None,
        end_stop_id: str | None = None,
    ) -> RouteShapeResponse:
        """Get the geographic shape of an MTA route for mapping.

        Useful when someone asks about a train trip: the shape can be drawn
        on a map with the start and end stations marked.

        Args:
            route_id: Route ID or short name (e.g., "1", "2", "3").
            start_stop_id: Optional stop or station ID to mark as the start (e.g., "726").
            end_stop_id: Optional stop or station ID to mark as the end (e.g., "423").

        Returns:
            RouteShapeResponse. routeShape holds [lat, lon] coordinates in
            path order; for an unknown route notFound lists the available routes.
        """
        return await route_shape(service, route_id, start_stop_id, end_stop_id)
