"""Shared fixtures: a small subway schedule, a live feed and a frozen clock."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from mta_mcp.data.cache import TransitDataCache
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
from mta_mcp.models.realtime import (
    LiveSnapshot,
    StopTimeEvent,
    StopTimeUpdate,
    TripDescriptor,
    TripUpdate,
)
from mta_mcp.services.clock import FixedClock
from mta_mcp.services.gtfs_service import GTFSService

EASTERN = ZoneInfo("America/New_York")

# Monday morning rush
FIXED_NOW = datetime(2025, 3, 10, 8, 30, 0, tzinfo=EASTERN)
NOW_EPOCH = int(FIXED_NOW.timestamp())

LIVE_TRIP = "ASP25GEN-1038-Weekday-00_128750_1..N03R"
SCHEDULED_ONLY_TRIP = "ASP25GEN-1038-Weekday-00_130000_1..N03R"
A_TRIP = "A-TRIP-1"
WEEKEND_TRIP = "GS-TRIP"


class FakeLoader:
    """Loader returning a fixed value and counting calls."""

    def __init__(self, value):
        self.value = value
        self.calls = 0

    async def load(self):
        self.calls += 1
        return self.value


def build_static_snapshot() -> StaticSnapshot:
    return StaticSnapshot(
        agencies=[Agency(agency_name="MTA New York City Transit", agency_url="http://www.mta.info")],
        routes=[
            Route(route_id="GS", route_short_name="GS", route_long_name="42 St Shuttle"),
            Route(
                route_id="1",
                route_short_name="1",
                route_long_name="Broadway - 7 Avenue Local",
                route_type="1",
                route_color="EE352E",
            ),
            Route(route_id="A", route_short_name="A", route_long_name="8 Avenue Express"),
        ],
        stops=[
            Stop(stop_id="127", stop_name="Times Sq-42 St", stop_lat="40.75529", stop_lon="-73.987495"),
            Stop(
                stop_id="127N",
                stop_name="Times Sq-42 St",
                stop_lat="40.75529",
                stop_lon="-73.987495",
                parent_station="127",
            ),
            Stop(
                stop_id="127S",
                stop_name="Times Sq-42 St",
                stop_lat="40.75529",
                stop_lon="-73.987495",
                parent_station="127",
            ),
            Stop(stop_id="128", stop_name="34 St-Penn Station"),
            Stop(
                stop_id="128N",
                stop_name="34 St-Penn Station",
                stop_lat="40.750373",
                stop_lon="-73.991057",
                parent_station="128",
            ),
            Stop(stop_id="129N", stop_name="28 St", stop_lat="40.747215", stop_lon="-73.993365"),
            Stop(
                stop_id="A27N",
                stop_code="P42",
                stop_name="42 St-Port Authority Bus Terminal",
                stop_lat="40.757308",
                stop_lon="-73.989735",
            ),
            Stop(stop_id="130", stop_name="Test Station", stop_lat="40.7", stop_lon="-73.9"),
            Stop(stop_id="130N", stop_name="Test Platform", stop_lat="n/a", parent_station="130"),
        ],
        trips=[
            Trip(
                trip_id=LIVE_TRIP,
                route_id="1",
                service_id="WEEKDAY",
                trip_headsign="Van Cortlandt Park-242 St",
                direction_id="0",
                shape_id="1..N03R",
            ),
            Trip(
                trip_id=SCHEDULED_ONLY_TRIP,
                route_id="1",
                service_id="WEEKDAY",
                trip_headsign="Van Cortlandt Park-242 St",
                direction_id="0",
                shape_id="1..N03R",
            ),
            Trip(trip_id=A_TRIP, route_id="A", service_id="WEEKDAY", trip_headsign="Inwood-207 St"),
            Trip(trip_id=WEEKEND_TRIP, route_id="GS", service_id="WEEKEND", shape_id="GS.S01"),
        ],
        stop_times=[
            # file order differs from stop_sequence order
            StopTime(
                trip_id=LIVE_TRIP,
                arrival_time="08:35:00",
                departure_time="08:35:00",
                stop_id="127N",
                stop_sequence="3",
                shape_dist_traveled="3.0",
            ),
            StopTime(
                trip_id=LIVE_TRIP,
                arrival_time="08:20:00",
                departure_time="08:20:00",
                stop_id="129N",
                stop_sequence="1",
                shape_dist_traveled="0",
            ),
            StopTime(
                trip_id=LIVE_TRIP,
                arrival_time="08:25:00",
                departure_time="08:25:00",
                stop_id="128N",
                stop_sequence="2",
                shape_dist_traveled="1.0",
            ),
            StopTime(
                trip_id=SCHEDULED_ONLY_TRIP,
                arrival_time="09:00:00",
                departure_time="09:00:00",
                stop_id="129N",
                stop_sequence="1",
            ),
            StopTime(
                trip_id=SCHEDULED_ONLY_TRIP,
                arrival_time="09:05:00",
                departure_time="09:05:00",
                stop_id="128N",
                stop_sequence="2",
            ),
            StopTime(
                trip_id=SCHEDULED_ONLY_TRIP,
                arrival_time="09:15:00",
                departure_time="09:15:00",
                stop_id="127N",
                stop_sequence="3",
            ),
            StopTime(
                trip_id=A_TRIP,
                arrival_time="08:40:00",
                departure_time="08:40:00",
                stop_id="A27N",
                stop_sequence="1",
            ),
            StopTime(
                trip_id=A_TRIP,
                arrival_time="08:50:00",
                departure_time="08:50:00",
                stop_id="128N",
                stop_sequence="2",
            ),
            StopTime(
                trip_id=WEEKEND_TRIP,
                arrival_time="10:00:00",
                departure_time="10:00:00",
                stop_id="127S",
                stop_sequence="1",
            ),
        ],
        calendar=[
            Calendar(
                service_id="WEEKDAY",
                monday="1",
                tuesday="1",
                wednesday="1",
                thursday="1",
                friday="1",
                start_date="20250101",
                end_date="20251231",
            ),
            Calendar(
                service_id="WEEKEND",
                saturday="1",
                sunday="1",
                start_date="20250101",
                end_date="20251231",
            ),
        ],
        shapes=[
            Shape(shape_id="1..N03R", shape_pt_lat="40.74", shape_pt_lon="-73.99", shape_pt_sequence="2"),
            Shape(shape_id="1..N03R", shape_pt_lat="40.73", shape_pt_lon="-74.00", shape_pt_sequence="1"),
            Shape(shape_id="1..N03R", shape_pt_lat="40.75", shape_pt_lon="-73.98", shape_pt_sequence="3"),
            Shape(shape_id="1..N03R", shape_pt_lat="abc", shape_pt_lon="-73.97", shape_pt_sequence="4"),
        ],
    )


def build_live_snapshot() -> LiveSnapshot:
    return LiveSnapshot(
        trip_updates=[
            TripUpdate(trip=TripDescriptor(trip_id="")),
            TripUpdate(
                trip=TripDescriptor(trip_id="128750_1..N03R", route_id="1"),
                delay=60,
                stop_time_update=[
                    StopTimeUpdate(
                        stop_id="129N",
                        departure=StopTimeEvent(time=NOW_EPOCH - 300, delay=60),
                    ),
                    StopTimeUpdate(
                        stop_id="128N",
                        arrival=StopTimeEvent(time=NOW_EPOCH + 120, delay=60),
                        departure=StopTimeEvent(time=NOW_EPOCH + 150, delay=60),
                    ),
                    # matched by sequence only
                    StopTimeUpdate(stop_sequence=3, departure=StopTimeEvent(delay=0)),
                ],
            ),
            # duplicate later in the feed: never chosen
            TripUpdate(trip=TripDescriptor(trip_id="128750_1..N03R"), delay=999),
            TripUpdate(trip=TripDescriptor(trip_id="999999_6..S01R", route_id="6")),
        ],
        last_updated=FIXED_NOW - timedelta(seconds=30),
        fetched_at=FIXED_NOW,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(FIXED_NOW)


@pytest.fixture
def static_snapshot() -> StaticSnapshot:
    return build_static_snapshot()


@pytest.fixture
def live_snapshot() -> LiveSnapshot:
    return build_live_snapshot()


@pytest.fixture
def transit_cache(static_snapshot: StaticSnapshot, live_snapshot: LiveSnapshot) -> TransitDataCache:
    return TransitDataCache(
        static_loader=FakeLoader(static_snapshot).load,
        live_loader=FakeLoader(live_snapshot).load,
    )


@pytest.fixture
def service(transit_cache: TransitDataCache, clock: FixedClock) -> GTFSService:
    return GTFSService(transit_cache, clock)


@pytest.fixture
def offline_service(static_snapshot: StaticSnapshot, clock: FixedClock) -> GTFSService:
    """Service whose live feed is down (degraded to an empty snapshot)."""
    cache = TransitDataCache(
        static_loader=FakeLoader(static_snapshot).load,
        live_loader=FakeLoader(LiveSnapshot.empty()).load,
    )
    return GTFSService(cache, clock)
