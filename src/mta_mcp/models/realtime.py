"""Pydantic models for GTFS-RT data.

These models represent the subset of GTFS-RT trip update fields we actually
use. Full GTFS-RT spec has many more fields, but we only model what we need.
"""

from datetime import UTC, datetime
from functools import cached_property

from pydantic import BaseModel, ConfigDict


class StopTimeEvent(BaseModel):
    """Predicted arrival or departure time at a stop."""

    delay: int | None = None  # seconds late (positive) or early (negative)
    time: int | None = None  # predicted unix timestamp


class StopTimeUpdate(BaseModel):
    """Update for a single stop in a trip.

    Feeds populate stop_id, stop_sequence or both.
    """

    stop_sequence: int | None = None
    stop_id: str | None = None
    arrival: StopTimeEvent | None = None
    departure: StopTimeEvent | None = None


class TripDescriptor(BaseModel):
    """Identifies a trip for real-time updates.

    The MTA trip_id is a suffix of the static trip_id, e.g. "128750_1..N03R"
    for static "ASP25GEN-1038-Sunday-00_128750_1..N03R".
    """

    trip_id: str | None = None
    route_id: str | None = None
    direction_id: int | None = None
    start_time: str | None = None  # HH:MM:SS
    start_date: str | None = None  # YYYYMMDD


class TripUpdate(BaseModel):
    """Real-time update for a single trip."""

    trip: TripDescriptor
    stop_time_update: list[StopTimeUpdate] = []
    delay: int | None = None  # trip-level delay in seconds
    timestamp: int | None = None


class FeedHeader(BaseModel):
    """Header information from GTFS-RT feed."""

    gtfs_realtime_version: str
    timestamp: int | None = None


class LiveSnapshot(BaseModel):
    """Most recently fetched trip updates, replaced wholesale on refresh."""

    model_config = ConfigDict(frozen=True)

    trip_updates: list[TripUpdate] = []
    last_updated: datetime  # feed header timestamp, or fetch time if absent
    fetched_at: datetime
    header: FeedHeader | None = None

    @classmethod
    def empty(cls) -> "LiveSnapshot":
        """Degraded snapshot used when the feed cannot be fetched or decoded."""
        now = datetime.now(UTC)
        return cls(trip_updates=[], last_updated=now, fetched_at=now)

    @property
    def is_empty(self) -> bool:
        return not self.trip_updates

    @cached_property
    def trip_index(self) -> "TripUpdateIndex":
        return TripUpdateIndex(self.trip_updates)


class TripUpdateIndex:
    """Suffix lookup from static trip IDs to live trip updates.

    Matching policy: a live trip_id matches a static trip_id when it is a
    non-empty suffix of it (equality included). When several live updates
    match, the one that appears first in the feed wins. Probing every suffix
    of the static ID gives the same answer as scanning the feed in order.
    """

    def __init__(self, trip_updates: list[TripUpdate]):
        self._first_by_trip_id: dict[str, tuple[int, TripUpdate]] = {}
        for position, update in enumerate(trip_updates):
            trip_id = update.trip.trip_id
            if trip_id and trip_id not in self._first_by_trip_id:
                self._first_by_trip_id[trip_id] = (position, update)

    def __len__(self) -> int:
        return len(self._first_by_trip_id)

    def match(self, static_trip_id: str) -> TripUpdate | None:
        best: tuple[int, TripUpdate] | None = None
        for start in range(len(static_trip_id)):
            candidate = self._first_by_trip_id.get(static_trip_id[start:])
            if candidate is not None and (best is None or candidate[0] < best[0]):
                best = candidate
        return best[1] if best else None
