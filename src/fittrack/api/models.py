"""Pydantic request models for the API."""

from datetime import date

from pydantic import BaseModel, Field

from fittrack.domain.daily_logs import MacroType


class MacroEntry(BaseModel):
    """Grams to add to a macronutrient; negative values correct mistakes."""

    macro: MacroType
    grams: float


class SleepEntry(BaseModel):
    """Hours slept, or null to clear."""

    hours: float | None = Field(default=None, ge=0, le=24)


class WeightEntry(BaseModel):
    """Body weight in pounds, or null to clear."""

    lbs: float | None = Field(default=None, ge=0)


class PeriodEntry(BaseModel):
    """Period-day flag; null leaves it unset."""

    is_period_day: bool | None = None


class RatingEntry(BaseModel):
    """Rating on the 1-5 scale, or null to clear."""

    value: int | None = Field(default=None, ge=1, le=5)


class StepsEntry(BaseModel):
    """Step count for the day."""

    steps: int = Field(ge=0)


class GoalUpdate(BaseModel):
    """New target for a goal."""

    value: float = Field(ge=0)


class AgeUpdate(BaseModel):
    """New age."""

    age: int = Field(gt=0)


class HeightUpdate(BaseModel):
    """New height; feet and inches are always set together."""

    feet: int = Field(ge=0)
    inches: int = Field(ge=0, lt=12)


class CycleUpdate(BaseModel):
    """New value for a cycle setting."""

    value: int | date


class Credentials(BaseModel):
    """Email and password for sign-up or sign-in."""

    email: str
    password: str
