"""Domain models for history and averages."""

from dataclasses import dataclass


@dataclass(frozen=True)
class LogSummary:
    """Partial daily log returned by range queries."""

    day_key: str
    protein_g: float | None = None
    carbs_g: float | None = None
    fat_g: float | None = None
    steps: int | None = None
    sleep_hours: float | None = None
    weight_lbs: float | None = None


@dataclass(frozen=True)
class WeightPoint:
    """One logged weight."""

    day_key: str
    weight_lbs: float

    @property
    def label(self) -> str:
        """Chart label in ``MM/DD`` form."""
        _, month, day = self.day_key.split("-")
        return f"{month}/{day}"


@dataclass(frozen=True)
class SevenDayAverages:
    """Trailing averages; ``None`` means there was nothing to average."""

    calories: float | None = None
    protein_g: float | None = None
    steps: float | None = None
    sleep_hours: float | None = None
