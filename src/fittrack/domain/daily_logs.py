"""Domain models for the daily health log."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import IntEnum, StrEnum


class Rating(IntEnum):
    """Five-point subjective rating."""

    VERY_LOW = 1
    LOW = 2
    MODERATE = 3
    HIGH = 4
    VERY_HIGH = 5


class MacroType(StrEnum):
    """Macronutrients tracked as running daily totals."""

    PROTEIN = "protein"
    CARBS = "carbs"
    FAT = "fat"


class RatingKind(StrEnum):
    """Subjective ratings captured once per day."""

    ENERGY = "energy"
    HUNGER = "hunger"
    MOTIVATION = "motivation"


@dataclass(frozen=True)
class MacroTotals:
    """Grams of each macronutrient logged for the day."""

    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0

    def grams(self, macro: MacroType) -> float:
        """Return the running total for a macronutrient."""
        return getattr(self, f"{macro.value}_g")

    def add(self, macro: MacroType, grams: float) -> "MacroTotals":
        """Return totals with ``grams`` added to one macronutrient."""
        return replace(self, **{f"{macro.value}_g": self.grams(macro) + grams})


@dataclass(frozen=True)
class Ratings:
    """Energy, hunger and motivation ratings; each may be unset."""

    energy: Rating | None = None
    hunger: Rating | None = None
    motivation: Rating | None = None

    def get(self, kind: RatingKind) -> Rating | None:
        """Return a single rating."""
        return getattr(self, kind.value)

    def with_rating(self, kind: RatingKind, value: Rating | None) -> "Ratings":
        """Return ratings with one value replaced."""
        return replace(self, **{kind.value: value})


@dataclass(frozen=True)
class DailyLogRecord:
    """Everything logged for one user on one local calendar day.

    Calories are not stored here; they are always derived from ``macros``.
    """

    day_key: str
    created_at: datetime
    updated_at: datetime
    macros: MacroTotals = field(default_factory=MacroTotals)
    sleep_hours: float | None = None
    weight_lbs: float | None = None
    is_period_day: bool | None = None
    steps: int = 0
    ratings: Ratings = field(default_factory=Ratings)


def empty_daily_log(day_key: str, now: datetime) -> DailyLogRecord:
    """Return an unsaved, zeroed record for ``day_key``."""
    return DailyLogRecord(day_key=day_key, created_at=now, updated_at=now)
