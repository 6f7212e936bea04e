from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class HysteresisThresholds:
    """Pair of thresholds to avoid chatter: enter condition at go_down, exit at go_up."""
    go_down: float  # degrees, tighter/stricter direction
    go_up: float    # degrees, looser opposite direction


# Joints below this detector confidence are treated as absent for the tick
MIN_CONFIDENCE = 0.5

# Samples kept per angle for the moving average
BUFFER_CAPACITY = 5

# Detection cadence of the live coach (seconds)
TICK_INTERVAL_S = 0.5

# Form score bands shown next to the rep counter
SCORE_EXCELLENT = 90.0
SCORE_GOOD = 75.0
