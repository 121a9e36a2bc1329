"""Read-only history and average queries over stored logs."""

import logging
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from fittrack.domain.stats import LogSummary, SevenDayAverages, WeightPoint
from fittrack.services.daily_log_store import InvalidEntryError
from fittrack.services.day_keys import LocalCalendar
from fittrack.services.gateway import PersistenceError, PersistenceGateway
from fittrack.services.metrics import average, calories, zero_filled_average

_logger = logging.getLogger(__name__)

AVERAGE_WINDOW_DAYS = 7


class HistoryWindow(StrEnum):
    """Preset ranges for the weight chart."""

    WEEK = "7d"
    TWO_WEEKS = "14d"
    MONTH = "30d"

    @property
    def days(self) -> int:
        """Number of days covered."""
        return int(self.value.removesuffix("d"))


@dataclass
class AggregateQueryService:
    """Queries the remote store directly; results are never cached."""

    gateway: PersistenceGateway
    calendar: LocalCalendar

    async def weight_history(
        self, user_id: UUID | None, window: HistoryWindow | str | int
    ) -> list[WeightPoint]:
        """Return weights logged since ``window`` days ago, oldest first."""
        days = _window_days(window)
        if user_id is None:
            return []
        start = self.calendar.days_ago(days)
        rows = await self._query(user_id, start, "weight history")
        points = [
            WeightPoint(day_key=row.day_key, weight_lbs=row.weight_lbs)
            for row in rows
            if row.weight_lbs is not None
        ]
        return sorted(points, key=lambda point: point.day_key)

    async def seven_day_averages(self, user_id: UUID | None) -> SevenDayAverages:
        """Return averages over the last seven days, today included.

        Calories, protein and steps are averaged over every logged day with
        missing values counted as zero; sleep only over days it was logged.
        """
        if user_id is None:
            return SevenDayAverages()
        start = self.calendar.days_ago(AVERAGE_WINDOW_DAYS - 1)
        rows = await self._query(user_id, start, "seven-day averages")
        if not rows:
            return SevenDayAverages()
        return SevenDayAverages(
            calories=zero_filled_average(rows, _row_calories),
            protein_g=zero_filled_average(rows, lambda row: row.protein_g),
            steps=zero_filled_average(rows, lambda row: row.steps),
            sleep_hours=average(rows, lambda row: row.sleep_hours),
        )

    async def _query(
        self, user_id: UUID, start_day_key: str, what: str
    ) -> list[LogSummary]:
        try:
            return await self.gateway.query_logs_in_range(
                user_id, start_day_key, self.calendar.today()
            )
        except PersistenceError:
            _logger.warning(
                "Failed to query %s for user %s", what, user_id, exc_info=True
            )
            return []


def _window_days(window: HistoryWindow | str | int) -> int:
    if isinstance(window, int) and not isinstance(window, bool):
        if window <= 0:
            raise InvalidEntryError("window must be a positive number of days")
        return window
    try:
        return HistoryWindow(window).days
    except ValueError as exc:
        raise InvalidEntryError(f"unknown window: {window}") from exc


def _row_calories(row: LogSummary) -> float:
    return calories(row.protein_g or 0, row.carbs_g or 0, row.fat_g or 0)
