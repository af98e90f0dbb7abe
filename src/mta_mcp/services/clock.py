"""Clock for the transit system's local time (Eastern for the MTA).

The host may run in UTC; every "now", "today" and wall-clock rendering goes
through this class so service days and comparisons use the agency zone.
"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "America/New_York"


class EasternClock:
    """Supplies the current time in the agency timezone."""

    def __init__(self, timezone: str = DEFAULT_TIMEZONE):
        self.timezone_name = timezone
        self.tz = ZoneInfo(timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()

    def time_string(self) -> str:
        """Current wall-clock time as HH:MM:SS, comparable with GTFS times."""
        return self.now().strftime("%H:%M:%S")

    def timestamp(self) -> int:
        return int(self.now().timestamp())

    def epoch_to_clock(self, epoch: int, with_seconds: bool = False) -> str:
        """Render a unix timestamp as local wall-clock HH:MM (or HH:MM:SS)."""
        dt = datetime.fromtimestamp(epoch, self.tz)
        return dt.strftime("%H:%M:%S" if with_seconds else "%H:%M")


class FixedClock(EasternClock):
    """Clock frozen at a given instant, for tests and reproducible queries."""

    def __init__(self, at: datetime, timezone: str = DEFAULT_TIMEZONE):
        super().__init__(timezone)
        if at.tzinfo is None:
            at = at.replace(tzinfo=self.tz)
        self._at = at.astimezone(self.tz)

    def now(self) -> datetime:
        return self._at
