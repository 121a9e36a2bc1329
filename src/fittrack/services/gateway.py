"""Persistence interface for daily logs and per-user settings."""

from datetime import date
from typing import Protocol
from uuid import UUID

from fittrack.domain.daily_logs import DailyLogRecord
from fittrack.domain.settings import (
    CycleField,
    CycleSettings,
    GoalField,
    Height,
    ProfileField,
    UserGoals,
    UserProfile,
)
from fittrack.domain.stats import LogSummary


class PersistenceError(RuntimeError):
    """Raised when the remote store cannot complete a request.

    A missing row is not an error; lookups return None for it.
    """


class PersistenceGateway(Protocol):
    """Remote record store for one user's health data."""

    async def fetch_today_log(
        self, user_id: UUID, day_key: str
    ) -> DailyLogRecord | None:
        """Return the stored log for ``day_key``, if any."""

    async def upsert_log(self, user_id: UUID, record: DailyLogRecord) -> None:
        """Insert or replace the full log keyed by (user, day)."""

    async def fetch_goals(self, user_id: UUID) -> UserGoals | None:
        """Return stored goals, if any."""

    async def update_goal_field(
        self, user_id: UUID, goal: GoalField, value: float
    ) -> None:
        """Persist a single goal target."""

    async def fetch_profile(self, user_id: UUID) -> UserProfile | None:
        """Return the stored profile, if any."""

    async def update_profile_field(
        self, user_id: UUID, profile_field: ProfileField, value: int | Height
    ) -> None:
        """Persist a single profile attribute."""

    async def fetch_cycle_settings(self, user_id: UUID) -> CycleSettings | None:
        """Return stored cycle settings, if any."""

    async def update_cycle_settings_field(
        self, user_id: UUID, cycle_field: CycleField, value: int | date
    ) -> None:
        """Persist a single cycle setting."""

    async def query_logs_in_range(
        self, user_id: UUID, start_day_key: str, end_day_key: str
    ) -> list[LogSummary]:
        """Return logs between two day keys (inclusive), oldest first."""
