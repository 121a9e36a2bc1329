"""Supabase binding for the persistence gateway."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient

from fittrack.domain.daily_logs import DailyLogRecord, MacroTotals, Rating, Ratings
from fittrack.domain.settings import (
    DEFAULT_GOALS,
    CycleField,
    CycleSettings,
    GoalField,
    Height,
    ProfileField,
    UserGoals,
    UserProfile,
)
from fittrack.domain.stats import LogSummary
from fittrack.services.gateway import PersistenceError, PersistenceGateway
from fittrack.services.metrics import calories

_GOAL_COLUMNS = {
    GoalField.PROTEIN: "protein_goal",
    GoalField.CARBS: "carbs_goal",
    GoalField.FAT: "fat_goal",
    GoalField.STEPS: "steps_goal",
    GoalField.SLEEP: "sleep_goal",
}

_CYCLE_COLUMNS = {
    CycleField.CYCLE_LENGTH: "cycle_length_days",
    CycleField.PERIOD_LENGTH: "period_length_days",
    CycleField.LAST_PERIOD_START: "last_period_start",
}


@dataclass
class SupabasePersistenceGateway(PersistenceGateway):
    """Reads and writes the daily_logs, user_goals and profiles tables."""

    client: AsyncClient

    async def fetch_today_log(
        self, user_id: UUID, day_key: str
    ) -> DailyLogRecord | None:
        """Return the log row for the day, if present."""
        query = (
            self.client.table("daily_logs")
            .select("*")
            .eq("user_id", str(user_id))
            .eq("log_date", day_key)
            .limit(1)
        )
        response = await _execute(query, "fetch daily log")
        if not response.data:
            return None
        return _parse_log(response.data[0])

    async def upsert_log(self, user_id: UUID, record: DailyLogRecord) -> None:
        """Insert or overwrite the full row for (user, day)."""
        macros = record.macros
        payload = {
            "user_id": str(user_id),
            "log_date": record.day_key,
            "protein_grams": macros.protein_g,
            "carbs_grams": macros.carbs_g,
            "fat_grams": macros.fat_g,
            "total_calories": calories(macros.protein_g, macros.carbs_g, macros.fat_g),
            "sleep_hours": record.sleep_hours,
            "weight_lbs": record.weight_lbs,
            "is_period_day": record.is_period_day,
            "steps": record.steps,
            "energy_rating": _rating_value(record.ratings.energy),
            "hunger_rating": _rating_value(record.ratings.hunger),
            "motivation_rating": _rating_value(record.ratings.motivation),
            "created_at": record.created_at.isoformat(),
            "updated_at": record.updated_at.isoformat(),
        }
        query = self.client.table("daily_logs").upsert(
            payload, on_conflict="user_id,log_date"
        )
        await _execute(query, "upsert daily log")

    async def fetch_goals(self, user_id: UUID) -> UserGoals | None:
        """Return stored goals, if present."""
        query = (
            self.client.table("user_goals")
            .select("protein_goal, carbs_goal, fat_goal, steps_goal, sleep_goal")
            .eq("user_id", str(user_id))
            .limit(1)
        )
        response = await _execute(query, "fetch goals")
        if not response.data:
            return None
        row = response.data[0]
        return UserGoals(
            protein_g=_float_or(row.get("protein_goal"), DEFAULT_GOALS.protein_g),
            carbs_g=_float_or(row.get("carbs_goal"), DEFAULT_GOALS.carbs_g),
            fat_g=_float_or(row.get("fat_goal"), DEFAULT_GOALS.fat_g),
            steps=int(_float_or(row.get("steps_goal"), DEFAULT_GOALS.steps)),
            sleep_hours=_float_or(row.get("sleep_goal"), DEFAULT_GOALS.sleep_hours),
        )

    async def update_goal_field(
        self, user_id: UUID, goal: GoalField, value: float
    ) -> None:
        """Write one goal column, creating the goals row if needed."""
        query = self.client.table("user_goals").upsert(
            {
                "user_id": str(user_id),
                _GOAL_COLUMNS[goal]: value,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="user_id",
        )
        await _execute(query, "update goal")

    async def fetch_profile(self, user_id: UUID) -> UserProfile | None:
        """Return age and height from the profile row, if present."""
        row = await self._profile_row(
            user_id, "age, height_feet, height_inches", "fetch profile"
        )
        if row is None:
            return None
        feet = row.get("height_feet")
        inches = row.get("height_inches")
        height = (
            Height(feet=int(feet), inches=int(inches))
            if feet is not None and inches is not None
            else None
        )
        age = row.get("age")
        return UserProfile(age=int(age) if age is not None else None, height=height)

    async def update_profile_field(
        self, user_id: UUID, profile_field: ProfileField, value: int | Height
    ) -> None:
        """Write age, or both height columns together."""
        if profile_field is ProfileField.HEIGHT:
            if not isinstance(value, Height):
                raise TypeError("height must be a Height")
            columns: dict[str, object] = {
                "height_feet": value.feet,
                "height_inches": value.inches,
            }
        else:
            columns = {"age": value}
        await self._update_profile(user_id, columns, "update profile")

    async def fetch_cycle_settings(self, user_id: UUID) -> CycleSettings | None:
        """Return cycle settings from the profile row, if present."""
        row = await self._profile_row(
            user_id,
            "cycle_length_days, period_length_days, last_period_start",
            "fetch cycle settings",
        )
        if row is None:
            return None
        defaults = CycleSettings()
        last_start = row.get("last_period_start")
        return CycleSettings(
            cycle_length_days=int(
                row.get("cycle_length_days") or defaults.cycle_length_days
            ),
            period_length_days=int(
                row.get("period_length_days") or defaults.period_length_days
            ),
            last_period_start=(
                date.fromisoformat(last_start)
                if isinstance(last_start, str) and last_start
                else None
            ),
        )

    async def update_cycle_settings_field(
        self, user_id: UUID, cycle_field: CycleField, value: int | date
    ) -> None:
        """Write one cycle column on the profile row."""
        stored = value.isoformat() if isinstance(value, date) else value
        await self._update_profile(
            user_id, {_CYCLE_COLUMNS[cycle_field]: stored}, "update cycle settings"
        )

    async def query_logs_in_range(
        self, user_id: UUID, start_day_key: str, end_day_key: str
    ) -> list[LogSummary]:
        """Return partial logs between two days, oldest first."""
        query = (
            self.client.table("daily_logs")
            .select(
                "log_date, protein_grams, carbs_grams, fat_grams, steps, "
                "sleep_hours, weight_lbs"
            )
            .eq("user_id", str(user_id))
            .gte("log_date", start_day_key)
            .lte("log_date", end_day_key)
            .order("log_date", desc=False)
        )
        response = await _execute(query, "query daily logs")
        return [_parse_summary(row) for row in response.data or []]

    async def _profile_row(
        self, user_id: UUID, columns: str, action: str
    ) -> dict[str, object] | None:
        query = (
            self.client.table("profiles")
            .select(columns)
            .eq("id", str(user_id))
            .limit(1)
        )
        response = await _execute(query, action)
        if not response.data:
            return None
        return response.data[0]

    async def _update_profile(
        self, user_id: UUID, columns: dict[str, object], action: str
    ) -> None:
        query = self.client.table("profiles").upsert(
            {
                "id": str(user_id),
                **columns,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="id",
        )
        await _execute(query, action)


async def _execute(query, action: str):  # type: ignore[no-untyped-def]
    try:
        return await query.execute()
    except (APIError, httpx.HTTPError) as exc:
        raise PersistenceError(f"Supabase {action} failed: {exc}") from exc


def _parse_log(row: dict[str, object]) -> DailyLogRecord:
    created_at = _parse_timestamp(row.get("created_at"))
    updated_at = _parse_timestamp(row.get("updated_at")) or created_at
    now = datetime.now(tz=UTC)
    return DailyLogRecord(
        day_key=str(row["log_date"]),
        created_at=created_at or now,
        updated_at=updated_at or now,
        macros=MacroTotals(
            protein_g=_float_or(row.get("protein_grams"), 0.0),
            carbs_g=_float_or(row.get("carbs_grams"), 0.0),
            fat_g=_float_or(row.get("fat_grams"), 0.0),
        ),
        sleep_hours=_optional_float(row.get("sleep_hours")),
        weight_lbs=_optional_float(row.get("weight_lbs")),
        is_period_day=row.get("is_period_day"),
        steps=int(row.get("steps") or 0),
        ratings=Ratings(
            energy=_parse_rating(row.get("energy_rating")),
            hunger=_parse_rating(row.get("hunger_rating")),
            motivation=_parse_rating(row.get("motivation_rating")),
        ),
    )


def _parse_summary(row: dict[str, object]) -> LogSummary:
    steps = row.get("steps")
    return LogSummary(
        day_key=str(row["log_date"]),
        protein_g=_optional_float(row.get("protein_grams")),
        carbs_g=_optional_float(row.get("carbs_grams")),
        fat_g=_optional_float(row.get("fat_grams")),
        steps=int(steps) if steps is not None else None,
        sleep_hours=_optional_float(row.get("sleep_hours")),
        weight_lbs=_optional_float(row.get("weight_lbs")),
    )


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None


def _parse_rating(value: object) -> Rating | None:
    if value is None:
        return None
    return Rating(int(value))


def _rating_value(rating: Rating | None) -> int | None:
    return int(rating) if rating is not None else None


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    return float(value)


def _float_or(value: object, default: float) -> float:
    if value is None:
        return float(default)
    return float(value)
