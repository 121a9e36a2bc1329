"""Local calendar-day keys and staleness checks."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta, tzinfo


def to_day_key(instant: datetime, tz: tzinfo | None = None) -> str:
    """Return the ``YYYY-MM-DD`` key of the local calendar day containing ``instant``.

    Aware instants are converted to ``tz`` (the system local zone when ``tz`` is
    None) before the date is read. Naive instants are taken as local wall time.
    """
    if instant.tzinfo is not None:
        instant = instant.astimezone(tz)
    return f"{instant.year:04d}-{instant.month:02d}-{instant.day:02d}"


def parse_day_key(day_key: str) -> date:
    """Parse a day key back into a date."""
    return date.fromisoformat(day_key)


def shift_day_key(day_key: str, days: int) -> str:
    """Return the key ``days`` calendar days after ``day_key``."""
    shifted = parse_day_key(day_key) + timedelta(days=days)
    return shifted.isoformat()


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


@dataclass
class LocalCalendar:
    """Maps the wall clock onto local day keys."""

    timezone: tzinfo | None = None
    clock: Callable[[], datetime] = field(default=utc_now)

    def now(self) -> datetime:
        """Return the current instant in the local zone."""
        return self.clock().astimezone(self.timezone)

    def today(self) -> str:
        """Return today's day key."""
        return to_day_key(self.clock(), self.timezone)

    def is_stale(self, day_key: str) -> bool:
        """Return True when ``day_key`` is no longer today."""
        return day_key != self.today()

    def days_ago(self, days: int) -> str:
        """Return the key of the day ``days`` days before today."""
        return shift_day_key(self.today(), -days)
