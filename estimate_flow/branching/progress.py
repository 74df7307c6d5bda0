"""
Progress reporting for the questionnaire.

The raw value jumps whenever an answer lands; ProgressSmoother eases the
displayed value towards it so a progress bar can animate.
"""

from dataclasses import dataclass

from ..config import FlowConfig


def raw_progress(
    set_index: int,
    total_sets: int,
    answered_in_set: int,
    expected_in_set: int
) -> float:
    """Overall 0-100 progress for a position in the flow."""
    if total_sets <= 0:
        return 0.0
    if set_index >= total_sets:
        return 100.0

    within = 0.0
    if expected_in_set > 0:
        within = min(answered_in_set / expected_in_set, 1.0)

    return (set_index + within) / total_sets * 100


@dataclass
class ProgressSmoother:
    """Exponential ease towards a target value."""
    factor: float = 0.1
    snap_threshold: float = 0.5
    displayed: float = 0.0
    target: float = 0.0

    @classmethod
    def from_config(cls, config: FlowConfig) -> "ProgressSmoother":
        return cls(factor=config.smoothing_factor, snap_threshold=config.snap_threshold)

    @property
    def settled(self) -> bool:
        return self.displayed == self.target

    def set_target(self, target: float):
        self.target = max(0.0, min(100.0, target))

    def tick(self) -> float:
        """Move a step towards the target and return the displayed value."""
        step = self.displayed + (self.target - self.displayed) * self.factor
        if abs(step - self.target) < self.snap_threshold:
            step = self.target
        self.displayed = step
        return self.displayed

    def settle(self, max_ticks: int = 500) -> float:
        """Tick until the target is reached."""
        for _ in range(max_ticks):
            if self.settled:
                break
            self.tick()
        return self.displayed
