"""Derived nutrition metrics and averaging helpers."""

from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")

PROTEIN_KCAL_PER_G = 4
CARBS_KCAL_PER_G = 4
FAT_KCAL_PER_G = 9


def calories(protein: float, carbs: float, fat: float) -> float:
    """Return calories for the given macronutrient grams."""
    return (
        protein * PROTEIN_KCAL_PER_G + carbs * CARBS_KCAL_PER_G + fat * FAT_KCAL_PER_G
    )


def average(
    records: Iterable[T], selector: Callable[[T], float | None]
) -> float | None:
    """Average a field over the records where it is present.

    Returns None when no record has the field.
    """
    values = [value for value in map(selector, records) if value is not None]
    if not values:
        return None
    return sum(values) / len(values)


def zero_filled_average(
    records: Sequence[T], selector: Callable[[T], float | None]
) -> float | None:
    """Average a cumulative field over every record, counting missing values as 0."""
    if not records:
        return None
    total = sum(selector(record) or 0 for record in records)
    return total / len(records)


def goal_progress(value: float, goal: float) -> float:
    """Return percent progress toward a goal, capped at 100."""
    if goal <= 0:
        return 0.0
    return min(value / goal * 100, 100.0)
