"""GTFS schedule time helpers."""


def parse_gtfs_time(time_str: str) -> tuple[int, int, int]:
    """Parse a GTFS time string into hours, minutes, seconds.

    GTFS times can exceed 24:00:00 for trips that extend past midnight.
    For example, "25:30:00" means 1:30 AM the next day.

    Args:
        time_str: Time string in HH:MM:SS format (hours can exceed 24).

    Returns:
        Tuple of (hours, minutes, seconds).

    Raises:
        ValueError: If the time string is invalid.
    """
    parts = time_str.strip().split(":")
    if len(parts) != 3:
        raise ValueError(f"Invalid GTFS time format: {time_str}")

    try:
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2])
    except ValueError as e:
        raise ValueError(f"Invalid GTFS time format: {time_str}") from e

    return hours, minutes, seconds


def gtfs_time_to_seconds(time_str: str) -> int:
    """Convert a GTFS time string to seconds since midnight.

    Args:
        time_str: Time string in HH:MM:SS format.

    Returns:
        Total seconds since midnight (can exceed 86400 for next-day times).
    """
    hours, minutes, seconds = parse_gtfs_time(time_str)
    return hours * 3600 + minutes * 60 + seconds


def safe_gtfs_time_to_seconds(time_str: str | None) -> int | None:
    """Like gtfs_time_to_seconds, but returns None for missing or malformed times."""
    if not time_str:
        return None
    try:
        return gtfs_time_to_seconds(time_str)
    except ValueError:
        return None


def seconds_to_clock(total_seconds: int) -> str:
    """Render seconds since midnight as an HH:MM wall-clock time.

    Values outside one day wrap around, so 25:30 renders as "01:30" and a
    negative offset before midnight renders on the previous evening.
    """
    total_seconds %= 86400
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    return f"{hours:02d}:{minutes:02d}"
