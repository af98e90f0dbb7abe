"""MTA subway MCP server: static GTFS schedule reconciled with GTFS-Realtime."""

__version__ = "0.1.0"
