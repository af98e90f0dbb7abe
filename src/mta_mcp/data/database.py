"""Read-only access to the schedule database built by ``mta-mcp ingest``."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite


@asynccontextmanager
async def open_schedule_db(db_path: Path) -> AsyncIterator[aiosqlite.Connection]:
    """Open the schedule database read-only, with rows addressable by column name.

    Ingestion swaps in a new file rather than writing in place, so a reader
    never sees a half-loaded schedule.

    Raises:
        FileNotFoundError: If the database has not been ingested yet.
    """
    if not db_path.exists():
        raise FileNotFoundError(
            f"Database not found at {db_path}. Run 'mta-mcp ingest <gtfs_path>' to create it."
        )

    uri = f"{db_path.resolve().as_uri()}?mode=ro"
    async with aiosqlite.connect(uri, uri=True) as db:
        db.row_factory = aiosqlite.Row
        yield db
