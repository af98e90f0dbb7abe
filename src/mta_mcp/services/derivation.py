"""Derive presented fields from a static stop time and its live update.

Estimated times, delay formatting and classification, "has this stop
passed" and trip progress. All wall-clock values use the agency timezone
supplied by the clock.
"""

from pydantic import BaseModel

from mta_mcp.models.gtfs import Stop, StopTime
from mta_mcp.models.realtime import StopTimeEvent, TripUpdate
from mta_mcp.models.responses import DelayStatus
from mta_mcp.services.clock import EasternClock
from mta_mcp.services.reconciler import match_stop_time
from mta_mcp.services.schedule_service import safe_gtfs_time_to_seconds, seconds_to_clock


class StopTimeEstimate(BaseModel):
    """Scheduled time, possibly replaced by a real-time estimate."""

    time: str | None
    delay_seconds: int | None = None
    delay: str | None = None
    is_realtime: bool = False


class TripProgress(BaseModel):
    """Position of a trip along its stops."""

    progress: int  # 0-100
    current_index: int
    next_index: int
    current_stop: str | None = None
    next_stop: str | None = None


def format_delay(delay_seconds: int) -> str:
    """Format a delay for humans.

    Examples:
        0 -> "On time", 125 -> "2m 5s late", -65 -> "1m 5s early"
    """
    if delay_seconds == 0:
        return "On time"

    minutes, seconds = divmod(abs(delay_seconds), 60)
    if delay_seconds > 0:
        return f"{minutes}m {seconds}s late"
    return f"{minutes}m {seconds}s early"


def classify_delay(delay_seconds: int | None) -> DelayStatus:
    if delay_seconds is None:
        return DelayStatus.SCHEDULED
    if delay_seconds == 0:
        return DelayStatus.ON_TIME
    if delay_seconds > 0:
        return DelayStatus.LATE
    return DelayStatus.EARLY


def estimate_stop_time(
    scheduled: str | None,
    event: StopTimeEvent | None,
    clock: EasternClock,
) -> StopTimeEstimate:
    """Estimate an arrival or departure time at a stop.

    Resolution order:
        1. No event, or an event with neither time nor delay: the scheduled
           time verbatim, not real-time.
        2. Absolute predicted time: rendered as local HH:MM, with the delay
           when the feed provides one.
        3. Delay only: scheduled time-of-day plus the delay, as local HH:MM.

    Args:
        scheduled: Scheduled GTFS time (HH:MM:SS) from stop_times.
        event: Arrival or departure event from the matched stop update.
        clock: Clock providing the agency timezone.

    Returns:
        StopTimeEstimate with is_realtime set when live data was applied.
    """
    if event is None:
        return StopTimeEstimate(time=scheduled)

    delay_text = format_delay(event.delay) if event.delay is not None else None

    if event.time is not None:
        return StopTimeEstimate(
            time=clock.epoch_to_clock(event.time),
            delay_seconds=event.delay,
            delay=delay_text,
            is_realtime=True,
        )

    if event.delay is not None:
        scheduled_seconds = safe_gtfs_time_to_seconds(scheduled)
        if scheduled_seconds is None:
            return StopTimeEstimate(time=scheduled)
        return StopTimeEstimate(
            time=seconds_to_clock(scheduled_seconds + event.delay),
            delay_seconds=event.delay,
            delay=delay_text,
            is_realtime=True,
        )

    return StopTimeEstimate(time=scheduled)


def has_passed(departure_time: str | None, now_time: str) -> bool:
    """Whether a scheduled departure is before the current wall-clock time.

    Plain text comparison of HH:MM:SS strings. GTFS times of 24:00:00 and
    later (post-midnight service) never compare as passed, and early-morning
    clock times make them look far in the future.
    """
    if not departure_time:
        return False
    return departure_time < now_time


def _is_before(event: StopTimeEvent | None, now_epoch: int) -> bool:
    return event is not None and event.time is not None and event.time < now_epoch


def calculate_progress(
    stop_times: list[StopTime],
    trip_update: TripUpdate | None,
    stops_by_id: dict[str, Stop],
    now_epoch: int,
) -> TripProgress | None:
    """Locate a trip along its stops using live stop predictions.

    A single forward pass: a past live departure moves the current stop to
    the following one; a past live arrival makes that stop current and ends
    the scan.

    Progress is distance-based when shape_dist_traveled parses for the
    current, first and last stops, otherwise index-based.

    Args:
        stop_times: The trip's stop times ordered by stop_sequence.
        trip_update: Matched live update, if any.
        stops_by_id: Stop lookup used to resolve names.
        now_epoch: Current unix time.

    Returns:
        TripProgress, or None without stop times or live stop updates.
    """
    if not stop_times or trip_update is None or not trip_update.stop_time_update:
        return None

    last_index = len(stop_times) - 1
    current_index = 0

    for i, stop_time in enumerate(stop_times):
        update = match_stop_time(trip_update, stop_time)
        if update is None:
            continue
        if _is_before(update.departure, now_epoch):
            current_index = min(i + 1, last_index)
        elif _is_before(update.arrival, now_epoch):
            current_index = i
            break

    next_index = min(current_index + 1, last_index)

    progress = 0.0
    current_distance = stop_times[current_index].distance
    start_distance = stop_times[0].distance
    end_distance = stop_times[last_index].distance
    if current_distance is not None and start_distance is not None and end_distance is not None:
        total_distance = end_distance - start_distance
        if total_distance > 0:
            progress = (current_distance - start_distance) / total_distance * 100
    else:
        progress = current_index / max(last_index, 1) * 100

    current_stop = stops_by_id.get(stop_times[current_index].stop_id)
    next_stop = stops_by_id.get(stop_times[next_index].stop_id)
    current_name = current_stop.stop_name if current_stop else None
    next_name = next_stop.stop_name if next_stop else None

    return TripProgress(
        progress=round(min(max(progress, 0.0), 100.0)),
        current_index=current_index,
        next_index=next_index,
        current_stop=current_name,
        next_stop=next_name,
    )
