from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np

from .backend import Keypoint


# Skeleton edges between COCO keypoint names
CONNECTIONS: Tuple[Tuple[str, str], ...] = (
    # Torso
    ("left_shoulder", "right_shoulder"), ("left_shoulder", "left_hip"),
    ("right_shoulder", "right_hip"), ("left_hip", "right_hip"),
    # Arms
    ("left_shoulder", "left_elbow"), ("left_elbow", "left_wrist"),
    ("right_shoulder", "right_elbow"), ("right_elbow", "right_wrist"),
    # Legs
    ("left_hip", "left_knee"), ("left_knee", "left_ankle"),
    ("right_hip", "right_knee"), ("right_knee", "right_ankle"),
)

# BGR colours per feedback tier
TIER_COLORS: Dict[Optional[str], Tuple[int, int, int]] = {
    "good": (94, 197, 34),
    "caution": (8, 179, 234),
    None: (160, 160, 160),
}


def _project_to_px(width: int, height: int, kp: Keypoint) -> Tuple[int, int]:
    x = 0.0 if np.isnan(kp.x) else kp.x
    y = 0.0 if np.isnan(kp.y) else kp.y
    px = max(0, min(width - 1, int(round(x * (width - 1)))))
    py = max(0, min(height - 1, int(round(y * (height - 1)))))
    return px, py


def draw_keypoints(
    frame_bgr: np.ndarray,
    keypoints: Sequence[Keypoint],
    *,
    point_color: Tuple[int, int, int] = (0, 255, 0),
    line_color: Tuple[int, int, int] = (0, 200, 255),
    confidence_threshold: float = 0.5,
    draw_connections: Iterable[Tuple[str, str]] = CONNECTIONS,
) -> np.ndarray:
    """Draw keypoints and skeletal connections on the frame (in place) and return it.

    Does not require OpenCV at import; uses it lazily to avoid hard dependency during tests.
    """
    if not isinstance(frame_bgr, np.ndarray) or frame_bgr.ndim != 3:
        return frame_bgr
    try:
        import cv2  # type: ignore
    except ImportError:
        return frame_bgr

    height, width = frame_bgr.shape[:2]
    radius = max(2, int(round(0.006 * max(width, height))))
    thickness = max(1, int(round(0.003 * max(width, height))))
    visible = {kp.name: kp for kp in keypoints if kp.confidence >= confidence_threshold}

    # Draw connections first so points render on top
    for a, b in draw_connections:
        if a in visible and b in visible:
            cv2.line(
                frame_bgr,
                _project_to_px(width, height, visible[a]),
                _project_to_px(width, height, visible[b]),
                line_color,
                thickness,
            )
    for kp in visible.values():
        cv2.circle(frame_bgr, _project_to_px(width, height, kp), radius, point_color, -1)
    return frame_bgr


def draw_feedback_bars(frame_bgr: np.ndarray, snapshot, *, origin: Tuple[int, int] = (16, 16)) -> np.ndarray:
    """
    Render one horizontal bar per angle of the snapshot: an ideal marker at the
    centre, the current position coloured by tier, and the feedback text.
    Off-scale or undetected angles are listed without a bar.
    """
    if not isinstance(frame_bgr, np.ndarray) or frame_bgr.ndim != 3:
        return frame_bgr
    try:
        import cv2  # type: ignore
    except ImportError:
        return frame_bgr

    x0, y = origin
    bar_w, bar_h = 220, 12
    angles: Mapping[str, object] = snapshot.angles
    for name, metric in angles.items():
        value = "--" if metric.value is None else f"{metric.value:.0f} deg"
        label = f"{name}: {value} {metric.feedback}".strip()
        cv2.putText(frame_bgr, label, (x0, y + 12), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1, cv2.LINE_AA)
        y += 18
        if metric.bar is not None:
            color = TIER_COLORS.get(metric.tier, TIER_COLORS[None])
            cv2.rectangle(frame_bgr, (x0, y), (x0 + bar_w, y + bar_h), (60, 60, 60), -1)
            ideal_x = x0 + int(round(metric.bar.ideal_position * bar_w))
            cv2.line(frame_bgr, (ideal_x, y - 2), (ideal_x, y + bar_h + 2), (255, 255, 255), 1)
            pos_x = x0 + int(round(metric.bar.position * bar_w))
            cv2.circle(frame_bgr, (pos_x, y + bar_h // 2), bar_h // 2 + 2, color, -1)
        y += bar_h + 10

    footer = f"reps: {snapshot.reps}"
    if snapshot.form_score is not None:
        footer += f"  form: {snapshot.form_score:.0f}% ({snapshot.form_label})"
    cv2.putText(frame_bgr, footer, (x0, y + 12), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1, cv2.LINE_AA)
    return frame_bgr


def draw_overlay(frame_bgr: np.ndarray, keypoints: Sequence[Keypoint], snapshot) -> np.ndarray:
    """Skeleton plus feedback bars, drawn in place."""
    draw_keypoints(frame_bgr, keypoints)
    return draw_feedback_bars(frame_bgr, snapshot)
