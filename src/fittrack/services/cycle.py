"""Cycle predictor interface."""

from dataclasses import dataclass
from typing import Protocol

from fittrack.domain.settings import CycleInfo, CyclePhase, CycleSettings


class CyclePredictor(Protocol):
    """Predicts the current cycle state from stored settings."""

    def predict(self, settings: CycleSettings) -> CycleInfo:
        """Return the predicted phase, cycle day and days to next period."""


@dataclass
class FixedCyclePredictor(CyclePredictor):
    """Returns the same prediction regardless of settings."""

    info: CycleInfo = CycleInfo(
        phase=CyclePhase.FOLLICULAR, cycle_day=8, next_period_in=6
    )

    def predict(self, settings: CycleSettings) -> CycleInfo:
        """Return the fixed prediction."""
        return self.info
