"""GTFS data loader for ingesting the static schedule into SQLite."""

import csv
import io
import logging
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TextIO

import aiosqlite

logger = logging.getLogger(__name__)

# Every column is TEXT: values are kept exactly as delivered by the feed and
# parsed on demand by the models.
SCHEMA_SQL = """
-- agency
CREATE TABLE agency (
    agency_name TEXT NOT NULL,
    agency_url TEXT
);

-- routes
CREATE TABLE routes (
    route_id TEXT PRIMARY KEY,
    route_short_name TEXT,
    route_long_name TEXT,
    route_type TEXT,
    route_color TEXT,
    route_text_color TEXT
);

-- stops
CREATE TABLE stops (
    stop_id TEXT PRIMARY KEY,
    stop_code TEXT,
    stop_name TEXT NOT NULL,
    stop_lat TEXT,
    stop_lon TEXT,
    parent_station TEXT,
    platform_code TEXT
);

-- calendar
CREATE TABLE calendar (
    service_id TEXT PRIMARY KEY,
    monday TEXT,
    tuesday TEXT,
    wednesday TEXT,
    thursday TEXT,
    friday TEXT,
    saturday TEXT,
    sunday TEXT,
    start_date TEXT,
    end_date TEXT
);

-- trips
CREATE TABLE trips (
    trip_id TEXT PRIMARY KEY,
    route_id TEXT NOT NULL,
    service_id TEXT NOT NULL,
    trip_headsign TEXT,
    direction_id TEXT,
    shape_id TEXT
);

-- stop_times
CREATE TABLE stop_times (
    trip_id TEXT NOT NULL,
    arrival_time TEXT,
    departure_time TEXT,
    stop_id TEXT NOT NULL,
    stop_sequence TEXT NOT NULL,
    shape_dist_traveled TEXT
);

-- shapes
CREATE TABLE shapes (
    shape_id TEXT NOT NULL,
    shape_pt_lat TEXT NOT NULL,
    shape_pt_lon TEXT NOT NULL,
    shape_pt_sequence TEXT NOT NULL,
    shape_dist_traveled TEXT
);
"""

INDEX_SQL = """
CREATE INDEX idx_stops_parent ON stops(parent_station);
CREATE INDEX idx_trips_route ON trips(route_id);
CREATE INDEX idx_stop_times_trip ON stop_times(trip_id);
CREATE INDEX idx_stop_times_stop ON stop_times(stop_id);
CREATE INDEX idx_shapes_shape ON shapes(shape_id);
"""

# Table definitions: table_name -> (csv_filename, columns)
TABLE_DEFINITIONS: dict[str, tuple[str, list[str]]] = {
    "agency": ("agency.txt", ["agency_name", "agency_url"]),
    "routes": (
        "routes.txt",
        [
            "route_id",
            "route_short_name",
            "route_long_name",
            "route_type",
            "route_color",
            "route_text_color",
        ],
    ),
    "stops": (
        "stops.txt",
        [
            "stop_id",
            "stop_code",
            "stop_name",
            "stop_lat",
            "stop_lon",
            "parent_station",
            "platform_code",
        ],
    ),
    "calendar": (
        "calendar.txt",
        [
            "service_id",
            "monday",
            "tuesday",
            "wednesday",
            "thursday",
            "friday",
            "saturday",
            "sunday",
            "start_date",
            "end_date",
        ],
    ),
    "trips": (
        "trips.txt",
        ["trip_id", "route_id", "service_id", "trip_headsign", "direction_id", "shape_id"],
    ),
    "stop_times": (
        "stop_times.txt",
        [
            "trip_id",
            "arrival_time",
            "departure_time",
            "stop_id",
            "stop_sequence",
            "shape_dist_traveled",
        ],
    ),
    "shapes": (
        "shapes.txt",
        ["shape_id", "shape_pt_lat", "shape_pt_lon", "shape_pt_sequence", "shape_dist_traveled"],
    ),
}

# Columns that must appear in the header, and be non-empty for a row to be
# inserted. Other columns are optional.
REQUIRED_COLUMNS: dict[str, list[str]] = {
    "agency": ["agency_name"],
    "routes": ["route_id"],
    "stops": ["stop_id", "stop_name"],
    "calendar": ["service_id", "start_date", "end_date"],
    "trips": ["trip_id", "route_id", "service_id"],
    "stop_times": ["trip_id", "stop_id", "stop_sequence"],
    "shapes": ["shape_id", "shape_pt_lat", "shape_pt_lon", "shape_pt_sequence"],
}

# Files without which the schedule cannot be served.
REQUIRED_FILES = {"routes.txt", "stops.txt", "trips.txt", "stop_times.txt"}

# Non-standard header spellings seen in the wild -> canonical column
HEADER_ALIASES: dict[str, str] = {
    "shape_distance_traveled": "shape_dist_traveled",
}

# Chunk size for bulk inserts
CHUNK_SIZE = 10000


def _clean(value: str) -> str | None:
    value = value.strip()
    return value or None


class GTFSLoader:
    """Loader for ingesting GTFS data into SQLite."""

    def __init__(self, db_path: Path):
        """Initialize the loader.

        Args:
            db_path: Path where the SQLite database will be created.
        """
        self.db_path = Path(db_path)

    async def ingest(self, gtfs_path: Path) -> dict[str, int]:
        """Ingest GTFS data from a directory or ZIP file into SQLite.

        Uses atomic swap: loads into temp DB, then replaces the target DB.
        A running server picks up the new database on its next static refresh.

        Args:
            gtfs_path: Path to GTFS directory or ZIP file.

        Returns:
            Dictionary with row counts per table.

        Raises:
            FileNotFoundError: If GTFS path doesn't exist.
            ValueError: If required GTFS files or columns are missing.
        """
        gtfs_path = Path(gtfs_path)
        if not gtfs_path.exists():
            raise FileNotFoundError(f"GTFS path not found: {gtfs_path}")

        # Ensure parent directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        temp_db = self.db_path.with_suffix(".tmp.db")

        try:
            # Remove temp db if it exists from a previous failed run
            temp_db.unlink(missing_ok=True)

            async with aiosqlite.connect(temp_db) as db:
                # Performance optimizations for bulk loading
                await db.execute("PRAGMA journal_mode=OFF")
                await db.execute("PRAGMA synchronous=OFF")
                await db.execute("PRAGMA cache_size=10000")

                await db.executescript(SCHEMA_SQL)
                await db.commit()
                row_counts = await self._load_all_tables(db, gtfs_path)
                logger.info("Creating indexes...")
                await db.executescript(INDEX_SQL)
                await db.commit()
                await self._verify_integrity(db)

            # atomic swap
            temp_db.replace(self.db_path)

            logger.info(f"GTFS ingestion complete: {self.db_path}")
            return row_counts

        except Exception:
            temp_db.unlink(missing_ok=True)
            raise

    async def _load_all_tables(self, db: aiosqlite.Connection, gtfs_path: Path) -> dict[str, int]:
        """Load all GTFS tables from directory or ZIP."""
        row_counts: dict[str, int] = {}

        with self._open_source(gtfs_path) as open_csv:
            for table_name, (csv_filename, columns) in TABLE_DEFINITIONS.items():
                with open_csv(csv_filename) as f:
                    if f is None:
                        if csv_filename in REQUIRED_FILES:
                            raise ValueError(f"Required GTFS file {csv_filename} not found")
                        logger.warning(f"Optional file {csv_filename} not found")
                        row_counts[table_name] = 0
                        continue
                    row_counts[table_name] = await self._load_table(
                        db, table_name, columns, f, csv_filename
                    )

        return row_counts

    @contextmanager
    def _open_source(self, gtfs_path: Path) -> Iterator[Any]:
        """Yield a function opening one GTFS file as text (or None if absent)."""
        if gtfs_path.is_file() and gtfs_path.suffix == ".zip":
            with zipfile.ZipFile(gtfs_path, "r") as zf:
                names = set(zf.namelist())

                @contextmanager
                def open_zip_member(filename: str) -> Iterator[TextIO | None]:
                    if filename not in names:
                        yield None
                        return
                    with zf.open(filename) as raw:
                        yield io.TextIOWrapper(raw, encoding="utf-8-sig")

                yield open_zip_member
        else:

            @contextmanager
            def open_file(filename: str) -> Iterator[TextIO | None]:
                csv_path = gtfs_path / filename
                if not csv_path.exists():
                    yield None
                    return
                with open(csv_path, encoding="utf-8-sig") as f:
                    yield f

            yield open_file

    async def _load_table(
        self,
        db: aiosqlite.Connection,
        table_name: str,
        columns: list[str],
        f: TextIO,
        filename: str,
    ) -> int:
        """Load a single CSV file into a table."""
        logger.info(f"Loading {table_name} from {filename}...")

        placeholders = ",".join(["?"] * len(columns))
        insert_sql = f"INSERT INTO {table_name} ({','.join(columns)}) VALUES ({placeholders})"
        required = REQUIRED_COLUMNS.get(table_name, [])

        reader = csv.reader(f)
        header_index = self._build_header_index(reader, columns, required, filename)

        loaded = 0
        skipped = 0
        batch: list[tuple[str | None, ...]] = []
        for values in self._iter_rows(reader, header_index, columns, required):
            if values is None:
                skipped += 1
                continue
            batch.append(values)
            if len(batch) == CHUNK_SIZE:
                await db.executemany(insert_sql, batch)
                loaded += len(batch)
                batch.clear()
        if batch:
            await db.executemany(insert_sql, batch)
            loaded += len(batch)

        await db.commit()
        suffix = f" (skipped {skipped:,} invalid)" if skipped else ""
        logger.info(f"  Loaded {loaded:,} rows into {table_name}{suffix}")
        return loaded

    def _iter_rows(
        self,
        reader: Iterator[list[str]],
        header_index: dict[str, int],
        columns: list[str],
        required: list[str],
    ) -> Iterator[tuple[str | None, ...] | None]:
        """Yield insert values per CSV row, or None for a row missing a required value.

        Values are stripped and empty strings become NULL. Blank lines are ignored.
        """
        for row in reader:
            if not row:
                continue
            record = {
                column: _clean(row[idx]) if idx < len(row) else None
                for column, idx in header_index.items()
            }
            if any(record.get(column) is None for column in required):
                yield None
            else:
                yield tuple(record.get(column) for column in columns)

    def _build_header_index(
        self,
        reader: Iterator[list[str]],
        columns: list[str],
        required: list[str],
        filename: str,
    ) -> dict[str, int]:
        """Map each known column to its position in the header.

        Raises:
            ValueError: If the file is empty or a required column is missing.
        """
        header = next(reader, None)
        if header is None:
            raise ValueError(f"{filename} is empty")
        expected = set(columns)
        header_index: dict[str, int] = {}
        for idx, name in enumerate(header):
            column = HEADER_ALIASES.get(name.strip(), name.strip())
            if column in expected:
                header_index.setdefault(column, idx)
        missing = [column for column in required if column not in header_index]
        if missing:
            raise ValueError(f"{filename} missing columns: {', '.join(missing)}")
        return header_index

    async def _verify_integrity(self, db: aiosqlite.Connection) -> None:
        """Verify the core tables are populated after loading."""
        logger.info("Verifying database integrity...")

        for table_name in ("routes", "stops", "trips", "stop_times"):
            async with db.execute(f"SELECT COUNT(*) FROM {table_name}") as cursor:
                row = await cursor.fetchone()
                if row is None or row[0] == 0:
                    raise ValueError(f"No {table_name} loaded - check GTFS data")

        logger.info("Database integrity verified")
