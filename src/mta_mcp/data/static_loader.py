"""Load the static schedule from SQLite into an in-memory snapshot."""

import asyncio
import logging
from pathlib import Path
from typing import Any

import aiosqlite
from pydantic import BaseModel

from mta_mcp.data.database import open_schedule_db
from mta_mcp.models.gtfs import (
    Agency,
    Calendar,
    Route,
    Shape,
    StaticSnapshot,
    Stop,
    StopTime,
    Trip,
)

logger = logging.getLogger(__name__)

# snapshot field -> (table, model)
SNAPSHOT_TABLES: dict[str, tuple[str, type[BaseModel]]] = {
    "agencies": ("agency", Agency),
    "routes": ("routes", Route),
    "stops": ("stops", Stop),
    "trips": ("trips", Trip),
    "stop_times": ("stop_times", StopTime),
    "calendar": ("calendar", Calendar),
    "shapes": ("shapes", Shape),
}

Record = dict[str, Any]


def build_snapshot(tables: dict[str, list[Record]]) -> StaticSnapshot:
    """Validate raw table rows into a StaticSnapshot with its large indexes built.

    CPU bound: run it off the event loop.
    """
    snapshot = StaticSnapshot(
        **{
            field: [model.model_validate(record) for record in tables.get(field, [])]
            for field, (_, model) in SNAPSHOT_TABLES.items()
        }
    )
    # large indexes, built here rather than on the first query
    _ = (snapshot.stop_times_by_trip, snapshot.stop_times_by_stop, snapshot.shapes_by_id)
    return snapshot


class StaticScheduleLoader:
    """Reads every schedule table wholesale into a StaticSnapshot.

    Failures (missing database, missing table, invalid rows) propagate:
    without a schedule there is nothing to serve.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    async def load(self) -> StaticSnapshot:
        async with open_schedule_db(self.db_path) as db:
            tables = {
                field: await self._read_table(db, table_name)
                for field, (table_name, _) in SNAPSHOT_TABLES.items()
            }

        snapshot = await asyncio.to_thread(build_snapshot, tables)

        logger.info(
            f"Loaded static schedule: {len(snapshot.routes):,} routes, "
            f"{len(snapshot.stops):,} stops, {len(snapshot.trips):,} trips, "
            f"{len(snapshot.stop_times):,} stop times"
        )
        return snapshot

    async def _read_table(self, db: aiosqlite.Connection, table_name: str) -> list[Record]:
        async with db.execute(f"SELECT * FROM {table_name}") as cursor:
            rows = await cursor.fetchall()
        # NULL columns fall back to model defaults
        return [{key: row[key] for key in row.keys() if row[key] is not None} for row in rows]
