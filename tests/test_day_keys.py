"""Tests for local day keys."""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from fittrack.services.day_keys import (
    LocalCalendar,
    parse_day_key,
    shift_day_key,
    to_day_key,
)
from tests.conftest import MutableClock

NEW_YORK = ZoneInfo("America/New_York")


def test_same_local_day_yields_same_key() -> None:
    morning = datetime(2024, 3, 10, 0, 5, tzinfo=NEW_YORK)
    night = datetime(2024, 3, 10, 23, 55, tzinfo=NEW_YORK)

    assert to_day_key(morning, NEW_YORK) == "2024-03-10"
    assert to_day_key(night, NEW_YORK) == "2024-03-10"


def test_keys_differ_across_local_midnight() -> None:
    before = datetime(2024, 3, 10, 23, 59, 59, tzinfo=NEW_YORK)
    after = before + timedelta(seconds=2)

    assert to_day_key(before, NEW_YORK) == "2024-03-10"
    assert to_day_key(after, NEW_YORK) == "2024-03-11"


def test_local_day_differs_from_utc_day() -> None:
    # 02:00 UTC is still the previous evening in New York.
    instant = datetime(2024, 6, 2, 2, 0, tzinfo=UTC)

    assert to_day_key(instant, NEW_YORK) == "2024-06-01"
    assert to_day_key(instant, UTC) == "2024-06-02"


def test_naive_instant_is_local_wall_time() -> None:
    assert to_day_key(datetime(2024, 1, 5, 23, 30)) == "2024-01-05"


def test_key_is_zero_padded() -> None:
    assert to_day_key(datetime(987, 1, 2, tzinfo=UTC), UTC) == "0987-01-02"


def test_shift_day_key_crosses_month_and_year() -> None:
    assert shift_day_key("2024-03-01", -1) == "2024-02-29"
    assert shift_day_key("2023-12-31", 1) == "2024-01-01"
    assert parse_day_key("2024-02-29").day == 29


def test_calendar_staleness_follows_clock() -> None:
    clock = MutableClock(datetime(2024, 3, 10, 22, 0, tzinfo=UTC))
    calendar = LocalCalendar(timezone=UTC, clock=clock)
    cached = calendar.today()

    assert not calendar.is_stale(cached)

    clock.advance(hours=1, minutes=59)
    assert not calendar.is_stale(cached)

    clock.advance(minutes=2)
    assert calendar.is_stale(cached)
    assert calendar.today() == "2024-03-11"


def test_days_ago() -> None:
    clock = MutableClock(datetime(2024, 3, 10, 12, 0, tzinfo=UTC))
    calendar = LocalCalendar(timezone=UTC, clock=clock)

    assert calendar.days_ago(6) == "2024-03-04"
    assert calendar.days_ago(0) == "2024-03-10"
