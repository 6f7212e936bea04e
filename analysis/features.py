from __future__ import annotations

from math import acos, degrees, hypot, isfinite
from typing import Optional

from pose.backend import Keypoint

from .utils import MIN_CONFIDENCE


def is_detected(value: Optional[float]) -> bool:
    """True when an angle value is usable (not None/NaN/inf)."""
    return value is not None and isfinite(value)


def joint_angle(
    a: Optional[Keypoint],
    b: Optional[Keypoint],
    c: Optional[Keypoint],
    *,
    min_confidence: float = MIN_CONFIDENCE,
) -> float:
    """
    Returns the interior angle at B (in degrees, within [0, 180]) for triangle (A,B,C).

    - If any point is None, has non-finite coordinates or confidence below
      min_confidence, returns NaN
    - If either vector is near-zero, returns NaN
    """
    if a is None or b is None or c is None:
        return float("nan")
    if min(a.confidence, b.confidence, c.confidence) < min_confidence:
        return float("nan")
    if not all(isfinite(v) for v in (a.x, a.y, b.x, b.y, c.x, c.y)):
        return float("nan")

    abx, aby = a.x - b.x, a.y - b.y
    cbx, cby = c.x - b.x, c.y - b.y
    n1 = hypot(abx, aby)
    n2 = hypot(cbx, cby)
    if n1 <= 1e-12 or n2 <= 1e-12:
        return float("nan")

    cos_theta = (abx * cbx + aby * cby) / (n1 * n2)
    # Clamp due to numerical errors
    cos_theta = max(-1.0, min(1.0, cos_theta))
    return degrees(acos(cos_theta))
