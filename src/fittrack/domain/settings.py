"""Per-user goals, profile and cycle settings."""

from dataclasses import dataclass, replace
from datetime import date
from enum import StrEnum

from fittrack.services.metrics import calories


class GoalField(StrEnum):
    """Goals that can be edited; the calorie goal is derived from macros."""

    PROTEIN = "protein"
    CARBS = "carbs"
    FAT = "fat"
    STEPS = "steps"
    SLEEP = "sleep"


class ProfileField(StrEnum):
    """Editable profile attributes."""

    AGE = "age"
    HEIGHT = "height"


class CycleField(StrEnum):
    """Editable cycle settings."""

    CYCLE_LENGTH = "cycle_length_days"
    PERIOD_LENGTH = "period_length_days"
    LAST_PERIOD_START = "last_period_start"


class CyclePhase(StrEnum):
    """Menstrual cycle phases reported by a cycle predictor."""

    MENSTRUAL = "menstrual"
    FOLLICULAR = "follicular"
    OVULATION = "ovulation"
    LUTEAL = "luteal"


_GOAL_ATTRS = {
    GoalField.PROTEIN: "protein_g",
    GoalField.CARBS: "carbs_g",
    GoalField.FAT: "fat_g",
    GoalField.STEPS: "steps",
    GoalField.SLEEP: "sleep_hours",
}


@dataclass(frozen=True)
class UserGoals:
    """Daily targets for a user."""

    protein_g: float = 120
    carbs_g: float = 250
    fat_g: float = 65
    steps: int = 10000
    sleep_hours: float = 8

    @property
    def calories(self) -> float:
        """Calorie goal implied by the macro goals."""
        return calories(self.protein_g, self.carbs_g, self.fat_g)

    def get(self, goal: GoalField) -> float:
        """Return the target for a goal field."""
        return getattr(self, _GOAL_ATTRS[goal])

    def with_goal(self, goal: GoalField, value: float) -> "UserGoals":
        """Return goals with one target replaced."""
        if goal is GoalField.STEPS:
            value = int(value)
        return replace(self, **{_GOAL_ATTRS[goal]: value})


DEFAULT_GOALS = UserGoals()


@dataclass(frozen=True)
class Height:
    """Height as a feet and inches pair."""

    feet: int
    inches: int


@dataclass(frozen=True)
class UserProfile:
    """Optional body attributes for a user."""

    age: int | None = None
    height: Height | None = None


@dataclass(frozen=True)
class CycleSettings:
    """Inputs an external cycle predictor needs."""

    cycle_length_days: int = 28
    period_length_days: int = 5
    last_period_start: date | None = None


@dataclass(frozen=True)
class CycleInfo:
    """Predicted cycle state for display."""

    phase: CyclePhase
    cycle_day: int
    next_period_in: int
