"""Route map widget: HTML resource and payload parsing.

Hosts render the map from the get_route_shape result. Depending on the host,
the payload arrives either directly as ``{"routeShape": {...}}`` or wrapped
in a tool-call envelope ``{"result": {"structuredContent": {"routeShape":
{...}}}}``. Both are resolved here into one RouteShape.
"""

from typing import Annotated, Any

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from mta_mcp.models.responses import RouteShape, StationMarker

WIDGET_VERSION = "v0.3"
ROUTE_MAP_URI = f"ui://widget/{WIDGET_VERSION}/route-map.html"
ROUTE_MAP_MIME_TYPE = "text/html+skybridge"

LEAFLET_CSS = "https://unpkg.com/leaflet@1.9.4/dist/leaflet.css"
LEAFLET_CSS_INTEGRITY = "sha256-p4NxAoJBhIIN+hmNHrzRCf9tD/miZyoHS5obTRR9BMY="

ROUTE_MAP_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Route Map</title>
  <link rel="stylesheet" href="{css}"
        integrity="{integrity}"
        crossorigin=""/>
  <style>
    html, body, #map-root {{
      margin: 0;
      padding: 0;
      height: 100%;
      width: 100%;
    }}
  </style>
</head>
<body>
  <div id="map-root"></div>
  <script type="module" src="{script_url}"></script>
</body>
</html>"""


class _Marker(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lat: float
    lng: float
    name: str
    stop_id: str = Field(alias="stopId")


class _WidgetShape(BaseModel):
    """Route shape as delivered to the widget (camelCase keys)."""

    model_config = ConfigDict(populate_by_name=True)

    route_name: str = Field(alias="routeName")
    coordinates: list[tuple[float, float]]
    color: str
    filtered_segment: bool = Field(default=False, alias="filteredSegment")
    point_count: int | None = Field(default=None, alias="pointCount")
    start_marker: _Marker | None = Field(default=None, alias="startMarker")
    end_marker: _Marker | None = Field(default=None, alias="endMarker")


class _DirectPayload(BaseModel):
    route_shape: _WidgetShape | None = Field(default=None, alias="routeShape")


class _StructuredContent(BaseModel):
    route_shape: _WidgetShape | None = Field(default=None, alias="routeShape")


class _ToolResult(BaseModel):
    structured_content: _StructuredContent = Field(alias="structuredContent")


class _EnvelopePayload(BaseModel):
    result: _ToolResult


# envelope first: the direct variant also accepts an envelope, without its routeShape
RouteMapPayload = Annotated[
    _EnvelopePayload | _DirectPayload, Field(union_mode="left_to_right")
]

_PAYLOAD_ADAPTER: TypeAdapter[RouteMapPayload] = TypeAdapter(RouteMapPayload)


def _to_marker(marker: _Marker | None) -> StationMarker | None:
    if marker is None:
        return None
    return StationMarker(lat=marker.lat, lng=marker.lng, name=marker.name, stop_id=marker.stop_id)


def parse_route_map_payload(payload: Any) -> RouteShape | None:
    """Resolve either widget payload variant into a RouteShape.

    Returns:
        The RouteShape, or None when the payload carries no route shape or
        matches neither variant.
    """
    try:
        parsed = _PAYLOAD_ADAPTER.validate_python(payload)
    except ValidationError:
        return None

    if isinstance(parsed, _EnvelopePayload):
        shape = parsed.result.structured_content.route_shape
    else:
        shape = parsed.route_shape
    if shape is None:
        return None

    return RouteShape(
        route_name=shape.route_name,
        color=shape.color,
        coordinates=shape.coordinates,
        filtered_segment=shape.filtered_segment,
        point_count=shape.point_count if shape.point_count is not None else len(shape.coordinates),
        start_marker=_to_marker(shape.start_marker),
        end_marker=_to_marker(shape.end_marker),
    )


def render_route_map_html(script_url: str) -> str:
    return ROUTE_MAP_TEMPLATE.format(
        css=LEAFLET_CSS, integrity=LEAFLET_CSS_INTEGRITY, script_url=script_url
    )


def register_route_map(mcp: FastMCP, script_url: str) -> None:
    html = render_route_map_html(script_url)

    @mcp.resource(ROUTE_MAP_URI, name="route-map", mime_type=ROUTE_MAP_MIME_TYPE)
    def route_map() -> str:
        """HTML shell of the route map widget."""
        return html
