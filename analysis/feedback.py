from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Tuple

from .utils import SCORE_EXCELLENT, SCORE_GOOD


EXCELLENT = "Excellent!"

OVER = "over"
UNDER = "under"

TIER_GOOD = "good"
TIER_CAUTION = "caution"

AngleKind = Tuple[str, str]  # (exercise, angle name)


# Corrective cue per (exercise, angle) and direction of the deviation.
# "over" means the measured angle is larger than ideal, "under" smaller.
MESSAGES: Mapping[AngleKind, Mapping[str, str]] = {
    ("squat", "knee"): {OVER: "Squat deeper", UNDER: "Don't squat too deep"},
    ("squat", "hip"): {OVER: "Hinge forward at the hips", UNDER: "Keep your chest up"},
    ("squat", "back"): {OVER: "Don't lean so far forward", UNDER: "Lean your torso slightly forward"},
    ("pushup", "elbow"): {OVER: "Lower your chest further", UNDER: "Don't drop too low"},
    ("pushup", "body"): {OVER: "Keep your body straight", UNDER: "Keep your hips in line with your shoulders"},
    ("lunge", "front_knee"): {OVER: "Bend your front knee more", UNDER: "Don't push your front knee too far"},
    ("lunge", "back_knee"): {OVER: "Lower your back knee", UNDER: "Ease off on your back knee"},
    ("deadlift", "hip"): {OVER: "Hinge further at the hips", UNDER: "Raise your chest, don't fold over"},
    ("deadlift", "knee"): {OVER: "Soften your knees", UNDER: "Don't squat the deadlift"},
    ("plank", "body"): {OVER: "Keep your body straight", UNDER: "Straighten your body, hips in line"},
    ("plank", "elbow"): {OVER: "Bring your elbows under your shoulders", UNDER: "Move your elbows forward"},
}


@dataclass(frozen=True)
class FeedbackBar:
    position: float
    ideal_position: float = 0.5


@dataclass(frozen=True)
class Feedback:
    feedback: str
    bar: Optional[FeedbackBar]


def classify(
    current: float,
    ideal: float,
    display_range: float,
    excellent_range: float,
    angle_kind: AngleKind,
) -> Feedback:
    """
    Band a smoothed angle against its ideal.

    Off-scale values (|deviation| > display_range) get no bar and no feedback.
    Otherwise the bar position maps [ideal - display_range, ideal + display_range]
    onto [0, 1] with the ideal at 0.5.
    """
    deviation = current - ideal
    if abs(deviation) > display_range:
        return Feedback(feedback="", bar=None)

    span = 2.0 * display_range
    position = (current - (ideal - display_range)) / span if span > 0 else 0.5
    bar = FeedbackBar(position=max(0.0, min(1.0, position)))

    if abs(deviation) <= excellent_range:
        return Feedback(feedback=EXCELLENT, bar=bar)
    direction = OVER if deviation > 0 else UNDER
    return Feedback(feedback=MESSAGES.get(angle_kind, {}).get(direction, ""), bar=bar)


def tier(current: float, ideal: float, display_range: float, excellent_range: float) -> Optional[str]:
    """Colour tier for rendering: same thresholds as classify()."""
    deviation = abs(current - ideal)
    if deviation <= excellent_range:
        return TIER_GOOD
    if deviation <= display_range:
        return TIER_CAUTION
    return None


def form_score(deviations: Iterable[Tuple[float, float]]) -> Optional[float]:
    """
    Overall 0-100 score from (|deviation|, display_range) pairs of the detected angles.
    Each angle scores linearly from 1 at the ideal to 0 at the edge of its display range.
    Returns None when nothing was detected.
    """
    parts = []
    for deviation, display_range in deviations:
        if display_range <= 0:
            parts.append(1.0 if deviation == 0 else 0.0)
        else:
            parts.append(max(0.0, 1.0 - abs(deviation) / display_range))
    if not parts:
        return None
    return round(100.0 * sum(parts) / len(parts), 1)


def form_label(score: Optional[float]) -> Optional[str]:
    if score is None:
        return None
    if score >= SCORE_EXCELLENT:
        return "Excellent"
    if score >= SCORE_GOOD:
        return "Good"
    return "Needs Work"
