import argparse
import asyncio
import logging
from datetime import UTC, datetime
from pathlib import Path

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel

from mta_mcp import __version__
from mta_mcp.data.cache import TransitDataCache
from mta_mcp.data.config import MTAConfig, get_config
from mta_mcp.data.gtfs_loader import GTFSLoader
from mta_mcp.data.live_loader import LiveFeedLoader
from mta_mcp.data.static_loader import StaticScheduleLoader
from mta_mcp.services.clock import EasternClock
from mta_mcp.services.gtfs_service import GTFSService
from mta_mcp.tools.route_tools import register_route_tools
from mta_mcp.tools.stop_tools import register_stop_tools
from mta_mcp.tools.system_tools import register_system_tools
from mta_mcp.tools.trip_tools import register_trip_tools
from mta_mcp.widgets.route_map import register_route_map


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str


def health() -> HealthResponse:
    """Check if the MTA MCP server is running and healthy.

    Returns the server status, version, and current timestamp.
    """
    return HealthResponse(
        status="ok",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
    )


def build_service(config: MTAConfig) -> GTFSService:
    """Wire one cache and one query service for this process."""
    cache = TransitDataCache(
        static_loader=StaticScheduleLoader(config.db_path).load,
        live_loader=LiveFeedLoader(config).load,
        static_ttl=config.static_cache_ttl_seconds,
        live_ttl=config.realtime_cache_ttl_seconds,
    )
    return GTFSService(cache, EasternClock(config.timezone))


def build_server(config: MTAConfig | None = None, service: GTFSService | None = None) -> FastMCP:
    """Create the MCP server with every tool registered against one service."""
    config = config or get_config()
    service = service or build_service(config)

    mcp = FastMCP(
        "MTA Transit",
        instructions=(
            "NYC MTA subway information - routes, stations, upcoming departures "
            "and live trip tracking with real-time delays"
        ),
    )
    mcp.tool()(health)

    register_route_tools(mcp, service)
    register_stop_tools(mcp, service)
    register_trip_tools(mcp, service)
    register_system_tools(mcp, service)
    register_route_map(mcp, config.widget_script_url)
    return mcp


async def run_ingest(gtfs_path: Path, db_path: Path) -> None:
    """Run GTFS ingestion."""
    loader = GTFSLoader(db_path)
    row_counts = await loader.ingest(gtfs_path)

    print("\nIngestion complete. Row counts:")
    for table, count in row_counts.items():
        print(f"  {table}: {count:,}")


def main() -> None:
    config = get_config()

    parser = argparse.ArgumentParser(
        prog="mta-mcp",
        description="MTA Transit MCP Server",
    )
    subparsers = parser.add_subparsers(dest="command")

    # ingest command
    ingest_parser = subparsers.add_parser(
        "ingest",
        help="Ingest GTFS data into SQLite database",
    )
    ingest_parser.add_argument(
        "gtfs_path",
        type=Path,
        help="Path to GTFS directory or ZIP file",
    )
    ingest_parser.add_argument(
        "--db",
        type=Path,
        default=config.db_path,
        help="SQLite database path (default: data/gtfs.db or MTA_DB_PATH env var)",
    )
    ingest_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    if args.command == "ingest":
        # Configure logging
        log_level = logging.DEBUG if args.verbose else logging.INFO
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

        asyncio.run(run_ingest(args.gtfs_path, args.db))
    else:
        # Default: run MCP server
        build_server(config).run()


if __name__ == "__main__":
    main()
