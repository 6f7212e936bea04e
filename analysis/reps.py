from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from .utils import HysteresisThresholds


@dataclass
class RepState:
    in_bottom: bool = False
    reps: int = 0


class RepCounter:
    """
    Rep counter on a single joint angle with hysteresis.

    - When the angle <= thresholds.go_down: enter bottom
    - When the angle >= thresholds.go_up: exit bottom, count a rep
    """

    def __init__(self, thresholds: HysteresisThresholds) -> None:
        if thresholds.go_down >= thresholds.go_up:
            raise ValueError("go_down must be below go_up")
        self.thresholds = thresholds
        self.state = RepState()

    @property
    def reps(self) -> int:
        return self.state.reps

    def reset(self) -> None:
        self.state = RepState()

    def process(self, angle: Optional[float]) -> Dict[str, object]:
        """
        angle is in degrees. NaN/None yields no state change.
        Returns an event dict: {rep_event, reps, flags}
        """
        rep_event: Optional[str] = None
        value = float("nan") if angle is None else float(angle)

        if np.isfinite(value):
            if not self.state.in_bottom and value <= self.thresholds.go_down:
                self.state.in_bottom = True
            elif self.state.in_bottom and value >= self.thresholds.go_up:
                self.state.in_bottom = False
                self.state.reps += 1
                rep_event = "rep_complete"

        return {
            "rep_event": rep_event,
            "reps": self.state.reps,
            "flags": {"in_bottom": self.state.in_bottom},
        }
