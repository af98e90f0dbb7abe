import asyncio
import zipfile
from datetime import date
from pathlib import Path
from unittest.mock import patch

import aiosqlite
import pytest

from mta_mcp.data.gtfs_loader import GTFSLoader
from mta_mcp.data.static_loader import StaticScheduleLoader, build_snapshot


@pytest.fixture
def sample_gtfs_dir(tmp_path: Path) -> Path:
    """Create a sample GTFS directory with minimal valid data."""
    gtfs_dir = tmp_path / "gtfs"
    gtfs_dir.mkdir()

    # agency.txt
    (gtfs_dir / "agency.txt").write_text(
        "agency_id,agency_name,agency_url,agency_timezone,agency_lang,agency_phone\n"
        "MTA NYCT,MTA New York City Transit,http://www.mta.info,America/New_York,en,718-330-1234\n"
    )

    # routes.txt
    (gtfs_dir / "routes.txt").write_text(
        "agency_id,route_id,route_short_name,route_long_name,route_type,route_desc,route_url,route_color,route_text_color\n"
        "MTA NYCT,1,1,Broadway - 7 Avenue Local,1,,,EE352E,\n"
        "MTA NYCT,GS,GS,42 St Shuttle,1,,,6D6E71,FFFFFF\n"
    )

    # stops.txt
    (gtfs_dir / "stops.txt").write_text(
        "stop_id,stop_name,stop_lat,stop_lon,location_type,parent_station\n"
        "127,Times Sq-42 St,40.75529,-73.987495,1,\n"
        "127N,Times Sq-42 St,40.75529,-73.987495,,127\n"
        "128N,34 St-Penn Station,40.750373,-73.991057,,128\n"
    )

    # calendar.txt
    (gtfs_dir / "calendar.txt").write_text(
        "service_id,monday,tuesday,wednesday,thursday,friday,saturday,sunday,start_date,end_date\n"
        "Weekday,1,1,1,1,1,0,0,20250101,20251231\n"
        "Sunday,0,0,0,0,0,0,1,20250101,20251231\n"
    )

    # trips.txt
    (gtfs_dir / "trips.txt").write_text(
        "route_id,trip_id,service_id,trip_headsign,direction_id,shape_id\n"
        "1,ASP25GEN-1038-Weekday-00_128750_1..N03R,Weekday,Van Cortlandt Park-242 St,0,1..N03R\n"
        "GS,ASP25GEN-GS-Sunday-00_000600_GS.N01R,Sunday,Times Sq-42 St,,\n"
    )

    # stop_times.txt - uses the non-standard distance header
    (gtfs_dir / "stop_times.txt").write_text(
        "trip_id,stop_id,arrival_time,departure_time,stop_sequence,shape_distance_traveled\n"
        "ASP25GEN-1038-Weekday-00_128750_1..N03R,128N,08:25:00,08:25:00,2,1.0\n"
        "ASP25GEN-1038-Weekday-00_128750_1..N03R,127N,08:35:00,08:35:00,3,3.0\n"
        "ASP25GEN-GS-Sunday-00_000600_GS.N01R,127N,25:10:00,25:10:00,1,\n"
    )

    # shapes.txt
    (gtfs_dir / "shapes.txt").write_text(
        "shape_id,shape_pt_sequence,shape_pt_lat,shape_pt_lon\n"
        "1..N03R,0,40.702068,-74.013664\n"
        "1..N03R,1,40.703199,-74.014792\n"
    )

    return gtfs_dir


@pytest.fixture
def sample_gtfs_zip(sample_gtfs_dir: Path, tmp_path: Path) -> Path:
    """Create a sample GTFS ZIP file from the directory."""
    zip_path = tmp_path / "gtfs.zip"
    with zipfile.ZipFile(zip_path, "w") as zf:
        for file_path in sample_gtfs_dir.iterdir():
            zf.write(file_path, file_path.name)
    return zip_path


async def fetch_all(db_path: Path, sql: str) -> list[aiosqlite.Row]:
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(sql) as cursor:
            return list(await cursor.fetchall())


class TestGTFSLoader:
    """Tests for GTFSLoader."""

    async def test_ingest_from_directory(self, sample_gtfs_dir: Path, tmp_path: Path) -> None:
        """Test ingesting GTFS data from a directory."""
        db_path = tmp_path / "test.db"
        loader = GTFSLoader(db_path)

        row_counts = await loader.ingest(sample_gtfs_dir)

        assert db_path.exists()
        assert row_counts == {
            "agency": 1,
            "routes": 2,
            "stops": 3,
            "calendar": 2,
            "trips": 2,
            "stop_times": 3,
            "shapes": 2,
        }

    async def test_ingest_from_zip(self, sample_gtfs_zip: Path, tmp_path: Path) -> None:
        """Test ingesting GTFS data from a ZIP file."""
        db_path = tmp_path / "test.db"
        loader = GTFSLoader(db_path)

        row_counts = await loader.ingest(sample_gtfs_zip)

        assert db_path.exists()
        assert row_counts["routes"] == 2
        assert row_counts["stops"] == 3
        assert row_counts["stop_times"] == 3

    async def test_atomic_swap_creates_new_db(self, sample_gtfs_dir: Path, tmp_path: Path) -> None:
        """Test that ingestion creates the database atomically."""
        db_path = tmp_path / "test.db"
        temp_path = db_path.with_suffix(".tmp.db")

        loader = GTFSLoader(db_path)
        await loader.ingest(sample_gtfs_dir)

        # Final DB should exist, temp should not
        assert db_path.exists()
        assert not temp_path.exists()

    async def test_atomic_swap_replaces_existing(
        self, sample_gtfs_dir: Path, tmp_path: Path
    ) -> None:
        """Test that ingestion replaces an existing database."""
        db_path = tmp_path / "test.db"

        loader = GTFSLoader(db_path)
        await loader.ingest(sample_gtfs_dir)
        await loader.ingest(sample_gtfs_dir)

        routes = await fetch_all(db_path, "SELECT route_id FROM routes")
        assert len(routes) == 2

    async def test_missing_path(self, tmp_path: Path) -> None:
        """Test that a missing GTFS path leaves no database behind."""
        db_path = tmp_path / "test.db"
        temp_path = db_path.with_suffix(".tmp.db")

        loader = GTFSLoader(db_path)

        with pytest.raises(FileNotFoundError):
            await loader.ingest(tmp_path / "nonexistent")

        assert not db_path.exists()
        assert not temp_path.exists()

    async def test_missing_required_file(self, sample_gtfs_dir: Path, tmp_path: Path) -> None:
        """A feed without stop_times.txt is rejected and the old database kept."""
        db_path = tmp_path / "test.db"
        loader = GTFSLoader(db_path)
        await loader.ingest(sample_gtfs_dir)

        (sample_gtfs_dir / "stop_times.txt").unlink()
        with pytest.raises(ValueError, match="stop_times.txt"):
            await loader.ingest(sample_gtfs_dir)

        assert not db_path.with_suffix(".tmp.db").exists()
        stop_times = await fetch_all(db_path, "SELECT * FROM stop_times")
        assert len(stop_times) == 3

    async def test_missing_optional_file(self, sample_gtfs_dir: Path, tmp_path: Path) -> None:
        (sample_gtfs_dir / "shapes.txt").unlink()
        loader = GTFSLoader(tmp_path / "test.db")

        row_counts = await loader.ingest(sample_gtfs_dir)

        assert row_counts["shapes"] == 0

    async def test_missing_required_column(self, sample_gtfs_dir: Path, tmp_path: Path) -> None:
        (sample_gtfs_dir / "trips.txt").write_text(
            "route_id,trip_id,trip_headsign\n1,T1,Somewhere\n"
        )
        loader = GTFSLoader(tmp_path / "test.db")

        with pytest.raises(ValueError, match="trips.txt missing columns: service_id"):
            await loader.ingest(sample_gtfs_dir)

    async def test_rows_missing_required_values_skipped(
        self, sample_gtfs_dir: Path, tmp_path: Path
    ) -> None:
        with (sample_gtfs_dir / "stops.txt").open("a") as f:
            f.write(",No ID Station,40.0,-73.0,,\n")
        loader = GTFSLoader(tmp_path / "test.db")

        row_counts = await loader.ingest(sample_gtfs_dir)

        assert row_counts["stops"] == 3

    async def test_creates_parent_directories(self, sample_gtfs_dir: Path, tmp_path: Path) -> None:
        """Test that parent directories are created if needed."""
        db_path = tmp_path / "subdir" / "nested" / "test.db"

        loader = GTFSLoader(db_path)
        await loader.ingest(sample_gtfs_dir)

        assert db_path.exists()


class TestDataIntegrity:
    """Tests for data integrity after ingestion."""

    async def test_values_stored_as_text(self, sample_gtfs_dir: Path, tmp_path: Path) -> None:
        """Numbers and times are kept verbatim."""
        db_path = tmp_path / "test.db"
        await GTFSLoader(db_path).ingest(sample_gtfs_dir)

        routes = await fetch_all(db_path, "SELECT * FROM routes WHERE route_id = '1'")
        assert routes[0]["route_type"] == "1"
        assert routes[0]["route_color"] == "EE352E"

        stop_times = await fetch_all(
            db_path, "SELECT * FROM stop_times WHERE stop_sequence = '1'"
        )
        assert stop_times[0]["arrival_time"] == "25:10:00"

    async def test_empty_values_become_null(self, sample_gtfs_dir: Path, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        await GTFSLoader(db_path).ingest(sample_gtfs_dir)

        routes = await fetch_all(db_path, "SELECT * FROM routes WHERE route_id = '1'")
        assert routes[0]["route_text_color"] is None

        trips = await fetch_all(db_path, "SELECT * FROM trips WHERE route_id = 'GS'")
        assert trips[0]["direction_id"] is None
        assert trips[0]["shape_id"] is None

    async def test_distance_header_alias(self, sample_gtfs_dir: Path, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        await GTFSLoader(db_path).ingest(sample_gtfs_dir)

        rows = await fetch_all(
            db_path, "SELECT shape_dist_traveled FROM stop_times ORDER BY stop_sequence DESC"
        )
        assert [row["shape_dist_traveled"] for row in rows] == ["3.0", "1.0", None]


class TestStaticScheduleLoader:
    """Tests for reading the ingested database into a snapshot."""

    async def test_load_snapshot(self, sample_gtfs_dir: Path, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        await GTFSLoader(db_path).ingest(sample_gtfs_dir)

        snapshot = await StaticScheduleLoader(db_path).load()

        assert snapshot.agency is not None
        assert snapshot.agency.agency_name == "MTA New York City Transit"
        assert len(snapshot.routes) == 2
        assert snapshot.routes_by_id["1"].text_color == "FFFFFF"
        assert snapshot.stops_by_id["127N"].parent_station == "127"
        assert snapshot.stops_by_id["127N"].coordinates == (40.75529, -73.987495)
        assert len(snapshot.shapes_by_id["1..N03R"]) == 2

    async def test_loaded_calendar_activity(self, sample_gtfs_dir: Path, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        await GTFSLoader(db_path).ingest(sample_gtfs_dir)

        snapshot = await StaticScheduleLoader(db_path).load()

        monday = date(2025, 3, 10)
        assert [trip.route_id for trip in snapshot.active_trips(monday)] == ["1"]
        assert snapshot.active_service_ids(date(2025, 3, 16)) == frozenset({"Sunday"})

    async def test_stop_times_ordered_by_sequence(
        self, sample_gtfs_dir: Path, tmp_path: Path
    ) -> None:
        db_path = tmp_path / "test.db"
        await GTFSLoader(db_path).ingest(sample_gtfs_dir)

        snapshot = await StaticScheduleLoader(db_path).load()

        stop_times = snapshot.stop_times_by_trip["ASP25GEN-1038-Weekday-00_128750_1..N03R"]
        assert [st.stop_id for st in stop_times] == ["128N", "127N"]

    async def test_missing_database(self, tmp_path: Path) -> None:
        loader = StaticScheduleLoader(tmp_path / "missing.db")

        with pytest.raises(FileNotFoundError, match="mta-mcp ingest"):
            await loader.load()

    async def test_snapshot_built_in_worker_thread(
        self, sample_gtfs_dir: Path, tmp_path: Path
    ) -> None:
        """Row validation and index building run off the event loop."""
        db_path = tmp_path / "test.db"
        await GTFSLoader(db_path).ingest(sample_gtfs_dir)

        with patch(
            "mta_mcp.data.static_loader.asyncio.to_thread", wraps=asyncio.to_thread
        ) as to_thread:
            snapshot = await StaticScheduleLoader(db_path).load()

        to_thread.assert_called_once()
        assert to_thread.call_args.args[0] is build_snapshot
        assert "stop_times_by_trip" in vars(snapshot)
        assert "stop_times_by_stop" in vars(snapshot)


def test_build_snapshot_from_records() -> None:
    snapshot = build_snapshot(
        {
            "routes": [{"route_id": "1", "route_short_name": "1"}],
            "stop_times": [
                {"trip_id": "T", "stop_id": "B", "stop_sequence": "2"},
                {"trip_id": "T", "stop_id": "A", "stop_sequence": "1"},
            ],
        }
    )

    assert snapshot.routes_by_id["1"].color == "666666"
    assert [st.stop_id for st in snapshot.stop_times_by_trip["T"]] == ["A", "B"]
    assert snapshot.stops == []
