"""Pair live feed entries with static schedule rows.

The MTA live feed never carries the full static trip_id, only a trailing
part of it:

    static:   ASP25GEN-1038-Sunday-00_128750_1..N03R
    realtime:                        128750_1..N03R

Trips are therefore matched by suffix, first match in feed order wins.
Duplicate live trips for the same static trip are not detected.
"""

from mta_mcp.models.gtfs import StopTime, parse_int
from mta_mcp.models.realtime import LiveSnapshot, StopTimeUpdate, TripUpdate


def match_trip(static_trip_id: str, live: LiveSnapshot) -> TripUpdate | None:
    """Find the live update for a static trip.

    Args:
        static_trip_id: Full trip_id from trips.txt.
        live: Current live snapshot.

    Returns:
        The first update (feed order) whose trip_id is a non-empty suffix of
        static_trip_id, or None.
    """
    return live.trip_index.match(static_trip_id)


def match_stop_update(
    trip_update: TripUpdate | None,
    stop_id: str,
    stop_sequence: str | int | None,
) -> StopTimeUpdate | None:
    """Find the per-stop update for a stop of a trip.

    stop_id and stop_sequence are alternative keys: feeds populate one or the
    other, so the first update matching either is returned.
    """
    if trip_update is None:
        return None
    sequence = parse_int(stop_sequence)
    for update in trip_update.stop_time_update:
        if update.stop_id is not None and update.stop_id == stop_id:
            return update
        if sequence is not None and update.stop_sequence == sequence:
            return update
    return None


def match_stop_time(trip_update: TripUpdate | None, stop_time: StopTime) -> StopTimeUpdate | None:
    return match_stop_update(trip_update, stop_time.stop_id, stop_time.stop_sequence)
