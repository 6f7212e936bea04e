from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Keypoint:
    name: str
    x: float
    y: float
    confidence: float


# 17-point COCO layout, the order detectors report keypoints in
KEYPOINT_NAMES: Tuple[str, ...] = (
    "nose",
    "left_eye",
    "right_eye",
    "left_ear",
    "right_ear",
    "left_shoulder",
    "right_shoulder",
    "left_elbow",
    "right_elbow",
    "left_wrist",
    "right_wrist",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
)

# MediaPipe BlazePose landmark index for each COCO keypoint
BLAZEPOSE_INDEX: Dict[str, int] = {
    "nose": 0,
    "left_eye": 2,
    "right_eye": 5,
    "left_ear": 7,
    "right_ear": 8,
    "left_shoulder": 11,
    "right_shoulder": 12,
    "left_elbow": 13,
    "right_elbow": 14,
    "left_wrist": 15,
    "right_wrist": 16,
    "left_hip": 23,
    "right_hip": 24,
    "left_knee": 25,
    "right_knee": 26,
    "left_ankle": 27,
    "right_ankle": 28,
}


Pose = List[Keypoint]


class ResourceAcquisitionError(RuntimeError):
    """A camera or detector could not be acquired; needs user action to retry."""


class DetectorLoadError(ResourceAcquisitionError):
    pass


def keypoints_from_dicts(items) -> Pose:
    """Build a pose from detector-style dicts: {name, x, y, score}.

    ``confidence`` is accepted in place of ``score``.
    """
    pose: Pose = []
    for item in items:
        conf = item.get("score", item.get("confidence", 0.0))
        pose.append(
            Keypoint(
                name=str(item["name"]),
                x=float(item["x"]),
                y=float(item["y"]),
                confidence=float(conf if conf is not None else 0.0),
            )
        )
    return pose


class PoseBackend:
    """
    Single-person pose detector using MediaPipe BlazePose.

    - Keeps the model warm-loaded after construction
    - Accepts BGR frames (as from OpenCV)
    - Returns zero or one pose per frame, each a list of 17 named keypoints
      with coordinates normalized to [0, 1]
    """

    def __init__(
        self,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        pose_model: Optional[object] = None,
    ) -> None:
        """
        If pose_model is provided, it must expose a .process(np.ndarray[R,G,B]) -> result
        where result.pose_landmarks is either None or an object with .landmark list
        of 33 items, each having attributes .x, .y and .visibility in [0, 1].
        """
        self._closed = False
        self._external_model = pose_model is not None
        if pose_model is not None:
            self._pose = pose_model
            return

        try:
            import mediapipe as mp  # type: ignore
        except Exception as exc:  # pragma: no cover - exercised only when mediapipe missing
            raise DetectorLoadError(
                "mediapipe is required for PoseBackend. Install with `pip install mediapipe`"
            ) from exc

        try:
            self._pose = mp.solutions.pose.Pose(
                model_complexity=model_complexity,
                enable_segmentation=False,
                smooth_landmarks=True,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
        except Exception as exc:  # pragma: no cover - depends on local model files
            raise DetectorLoadError(f"Failed to load pose model: {exc}") from exc
        logger.info("Pose model loaded (complexity=%d)", model_complexity)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Dispose the underlying model. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._external_model:
            # Injected models are owned by the caller
            return
        close_fn = getattr(self._pose, "close", None)
        if callable(close_fn):
            close_fn()
        logger.debug("Pose detector disposed")

    def __enter__(self) -> "PoseBackend":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def detect(self, frame_bgr: np.ndarray) -> List[Pose]:
        """Run pose detection on a BGR image frame and return the detected poses."""
        if self._closed:
            raise RuntimeError("PoseBackend is closed")
        if not isinstance(frame_bgr, np.ndarray) or frame_bgr.ndim < 2:
            raise ValueError("frame_bgr must be an HxWxC numpy array")

        # Convert BGR (OpenCV) -> RGB without requiring cv2
        if frame_bgr.ndim == 3 and frame_bgr.shape[2] >= 3:
            frame_rgb = np.ascontiguousarray(frame_bgr[..., 2::-1])
        else:
            frame_rgb = frame_bgr

        result = self._pose.process(frame_rgb)
        if result is None or getattr(result, "pose_landmarks", None) is None:
            return []

        landmarks = getattr(result.pose_landmarks, "landmark", None)
        if not landmarks:
            return []

        pose: Pose = []
        for name in KEYPOINT_NAMES:
            idx = BLAZEPOSE_INDEX[name]
            if idx >= len(landmarks):
                pose.append(Keypoint(name=name, x=float("nan"), y=float("nan"), confidence=0.0))
                continue
            lm = landmarks[idx]
            x = float(getattr(lm, "x", 0.0))
            y = float(getattr(lm, "y", 0.0))
            conf = float(getattr(lm, "visibility", 0.0))
            # Clamp to [0,1]
            x = 0.0 if np.isnan(x) else max(0.0, min(1.0, x))
            y = 0.0 if np.isnan(y) else max(0.0, min(1.0, y))
            conf = 0.0 if np.isnan(conf) else max(0.0, min(1.0, conf))
            pose.append(Keypoint(name=name, x=x, y=y, confidence=conf))
        return [pose]
