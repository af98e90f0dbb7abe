from datetime import UTC, datetime

import httpx
from google.transit import gtfs_realtime_pb2

from mta_mcp.data.config import MTAConfig
from mta_mcp.models.realtime import (
    FeedHeader,
    LiveSnapshot,
    StopTimeEvent,
    StopTimeUpdate,
    TripDescriptor,
    TripUpdate,
)


class GTFSRTClient:
    """Async HTTP client for fetching the MTA GTFS-RT trip updates feed.

    Usage:
        async with GTFSRTClient(config) as client:
            live = await client.fetch_trip_updates()
    """

    def __init__(self, config: MTAConfig):
        """Initialize the client.

        Args:
            config: Configuration with feed URL, optional API key and timeout.
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "GTFSRTClient":
        """Enter async context - create HTTP client."""
        headers = {}
        if self._config.api_key:
            headers["x-api-key"] = self._config.api_key
        self._client = httpx.AsyncClient(
            headers=headers, timeout=self._config.http_timeout_seconds
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_trip_updates(self) -> LiveSnapshot:
        """Fetch and parse the trip updates feed.

        Returns:
            LiveSnapshot with parsed trip updates.

        Raises:
            RuntimeError: If client not initialized.
            httpx.HTTPError: If the HTTP request fails.
            google.protobuf.message.DecodeError: If the body is not a feed message.
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        response = await self._client.get(self._config.trip_updates_url)
        response.raise_for_status()

        feed = gtfs_realtime_pb2.FeedMessage()
        feed.ParseFromString(response.content)

        return self._parse_trip_updates(feed)

    def _parse_trip_updates(self, feed: gtfs_realtime_pb2.FeedMessage) -> LiveSnapshot:
        """Parse protobuf feed message into a LiveSnapshot."""
        fetched_at = datetime.now(UTC)
        header_timestamp = feed.header.timestamp if feed.header.HasField("timestamp") else None
        header = FeedHeader(
            gtfs_realtime_version=feed.header.gtfs_realtime_version,
            timestamp=header_timestamp,
        )

        trip_updates: list[TripUpdate] = []
        for entity in feed.entity:
            if entity.HasField("trip_update"):
                trip_updates.append(self._parse_trip_update(entity.trip_update))

        last_updated = (
            datetime.fromtimestamp(header_timestamp, UTC) if header_timestamp else fetched_at
        )
        return LiveSnapshot(
            trip_updates=trip_updates,
            last_updated=last_updated,
            fetched_at=fetched_at,
            header=header,
        )

    def _parse_trip_update(self, tu: gtfs_realtime_pb2.TripUpdate) -> TripUpdate:
        """Parse a single trip update entity."""
        stop_time_updates = [self._parse_stop_time_update(stu) for stu in tu.stop_time_update]

        return TripUpdate(
            trip=self._parse_trip_descriptor(tu.trip),
            stop_time_update=stop_time_updates,
            delay=tu.delay if tu.HasField("delay") else None,
            timestamp=tu.timestamp if tu.HasField("timestamp") else None,
        )

    def _parse_stop_time_event(
        self, event: gtfs_realtime_pb2.TripUpdate.StopTimeEvent
    ) -> StopTimeEvent:
        # HasField keeps an explicit delay of 0 ("on time") distinct from absent
        return StopTimeEvent(
            delay=event.delay if event.HasField("delay") else None,
            time=event.time if event.HasField("time") else None,
        )

    def _parse_stop_time_update(
        self, stu: gtfs_realtime_pb2.TripUpdate.StopTimeUpdate
    ) -> StopTimeUpdate:
        """Parse a single stop time update."""
        arrival = None
        if stu.HasField("arrival"):
            arrival = self._parse_stop_time_event(stu.arrival)

        departure = None
        if stu.HasField("departure"):
            departure = self._parse_stop_time_event(stu.departure)

        return StopTimeUpdate(
            stop_sequence=stu.stop_sequence if stu.HasField("stop_sequence") else None,
            stop_id=stu.stop_id if stu.stop_id else None,
            arrival=arrival,
            departure=departure,
        )

    def _parse_trip_descriptor(self, td: gtfs_realtime_pb2.TripDescriptor) -> TripDescriptor:
        """Parse a trip descriptor."""
        return TripDescriptor(
            trip_id=td.trip_id if td.trip_id else None,
            route_id=td.route_id if td.route_id else None,
            direction_id=td.direction_id if td.HasField("direction_id") else None,
            start_time=td.start_time if td.start_time else None,
            start_date=td.start_date if td.start_date else None,
        )
