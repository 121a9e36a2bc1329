"""Tests for history and average queries."""

import asyncio

import pytest

from fittrack.domain.daily_logs import DailyLogRecord, MacroTotals
from fittrack.services.aggregates import AggregateQueryService, HistoryWindow
from fittrack.services.daily_log_store import InvalidEntryError
from fittrack.services.day_keys import shift_day_key


def _log(day_key: str, clock, **fields) -> DailyLogRecord:
    return DailyLogRecord(
        day_key=day_key, created_at=clock(), updated_at=clock(), **fields
    )


def test_weight_history_filters_and_orders(gateway, calendar, clock, user_id) -> None:
    today = calendar.today()
    for offset, weight in [(0, 150.0), (-3, None), (-1, 151.5), (-5, 152.0)]:
        day_key = shift_day_key(today, offset)
        gateway.logs[(user_id, day_key)] = _log(day_key, clock, weight_lbs=weight)
    old_day = shift_day_key(today, -20)
    gateway.logs[(user_id, old_day)] = _log(old_day, clock, weight_lbs=149.0)
    service = AggregateQueryService(gateway=gateway, calendar=calendar)

    points = asyncio.run(service.weight_history(user_id, HistoryWindow.WEEK))

    assert [point.weight_lbs for point in points] == [152.0, 151.5, 150.0]
    assert points[-1].day_key == today
    assert points[0].label == "03/05"


def test_weight_history_window_includes_boundary_day(
    gateway, calendar, clock, user_id
) -> None:
    boundary = calendar.days_ago(30)
    gateway.logs[(user_id, boundary)] = _log(boundary, clock, weight_lbs=160.0)
    service = AggregateQueryService(gateway=gateway, calendar=calendar)

    points = asyncio.run(service.weight_history(user_id, "30d"))
    shorter = asyncio.run(service.weight_history(user_id, 14))

    assert [point.day_key for point in points] == [boundary]
    assert shorter == []


def test_weight_history_empty_and_signed_out(gateway, calendar, user_id) -> None:
    service = AggregateQueryService(gateway=gateway, calendar=calendar)

    assert asyncio.run(service.weight_history(user_id, HistoryWindow.MONTH)) == []
    assert asyncio.run(service.weight_history(None, HistoryWindow.WEEK)) == []
    assert gateway.calls == ["query_logs_in_range"]


def test_weight_history_rejects_unknown_window(gateway, calendar, user_id) -> None:
    service = AggregateQueryService(gateway=gateway, calendar=calendar)

    with pytest.raises(InvalidEntryError):
        asyncio.run(service.weight_history(user_id, "90d"))
    with pytest.raises(InvalidEntryError):
        asyncio.run(service.weight_history(user_id, 0))


def test_query_failure_returns_empty_results(gateway, calendar, user_id) -> None:
    gateway.failing.add("query_logs_in_range")
    service = AggregateQueryService(gateway=gateway, calendar=calendar)

    points = asyncio.run(service.weight_history(user_id, HistoryWindow.WEEK))
    averages = asyncio.run(service.seven_day_averages(user_id))

    assert points == []
    assert averages.calories is None
    assert averages.sleep_hours is None


def test_seven_day_averages(gateway, calendar, clock, user_id) -> None:
    today = calendar.today()
    rows = {
        0: {"macros": MacroTotals(protein_g=100, carbs_g=200, fat_g=50), "steps": 0},
        -1: {"macros": MacroTotals(protein_g=40), "sleep_hours": 7, "steps": 7000},
        -6: {"sleep_hours": 9, "steps": 0},
    }
    for offset, fields in rows.items():
        day_key = shift_day_key(today, offset)
        gateway.logs[(user_id, day_key)] = _log(day_key, clock, **fields)
    # Outside the window: today - 7.
    stale_day = shift_day_key(today, -7)
    gateway.logs[(user_id, stale_day)] = _log(
        stale_day, clock, steps=99999, sleep_hours=1
    )
    service = AggregateQueryService(gateway=gateway, calendar=calendar)

    averages = asyncio.run(service.seven_day_averages(user_id))

    assert averages.calories == pytest.approx((1650 + 160) / 3)
    assert averages.protein_g == pytest.approx(140 / 3)
    assert averages.steps == pytest.approx(7000 / 3)
    assert averages.sleep_hours == 8


def test_seven_day_averages_without_rows(gateway, calendar, clock, user_id) -> None:
    service = AggregateQueryService(gateway=gateway, calendar=calendar)

    averages = asyncio.run(service.seven_day_averages(user_id))
    signed_out = asyncio.run(service.seven_day_averages(None))

    assert averages.calories is None
    assert averages.steps is None
    assert signed_out.protein_g is None


def test_averages_read_remote_rows_not_cache(gateway, calendar, clock, user_id) -> None:
    today = calendar.today()
    gateway.logs[(user_id, today)] = _log(today, clock, steps=1000)
    service = AggregateQueryService(gateway=gateway, calendar=calendar)

    first = asyncio.run(service.seven_day_averages(user_id))
    clock.advance(hours=1)
    gateway.logs[(user_id, today)] = _log(today, clock, steps=3000)
    second = asyncio.run(service.seven_day_averages(user_id))

    assert first.steps == 1000
    assert second.steps == 3000
