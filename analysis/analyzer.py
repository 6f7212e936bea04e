from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from pose.backend import Keypoint
from pose.smoothing import TemporalSmoother

from .feedback import FeedbackBar, classify, form_label, form_score, tier
from .features import is_detected, joint_angle
from .profiles import ExerciseProfile, get_profile, resolve_triplet
from .reps import RepCounter
from .utils import BUFFER_CAPACITY, MIN_CONFIDENCE


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AngleMetric:
    value: Optional[float] = None
    feedback: str = ""
    bar: Optional[FeedbackBar] = None
    tier: Optional[str] = None

    @property
    def detected(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class MetricsSnapshot:
    exercise: str
    angles: Dict[str, AngleMetric] = field(default_factory=dict)
    reps: int = 0
    form_score: Optional[float] = None
    form_label: Optional[str] = None

    @classmethod
    def empty(cls, profile: ExerciseProfile) -> "MetricsSnapshot":
        return cls(exercise=profile.name, angles={name: AngleMetric() for name in profile.angles})

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def _best_pose(poses: Sequence[Sequence[Keypoint]]) -> Optional[Sequence[Keypoint]]:
    best = None
    best_score = -1.0
    for pose in poses:
        if not pose:
            continue
        score = float(np.mean([kp.confidence for kp in pose]))
        if score > best_score:
            best_score = score
            best = pose
    return best


class FormAnalyzer:
    """
    Per-tick exercise form analysis for the currently selected exercise.

    Each update() runs: pose -> raw joint angles -> temporal smoothing ->
    feedback banding -> rep counting -> MetricsSnapshot.
    """

    def __init__(
        self,
        exercise: str = "squat",
        *,
        capacity: int = BUFFER_CAPACITY,
        min_confidence: float = MIN_CONFIDENCE,
    ) -> None:
        self.min_confidence = float(min_confidence)
        self.smoother = TemporalSmoother(capacity=capacity)
        self.profile = get_profile(exercise)
        self.rep_counter: Optional[RepCounter] = None
        self.snapshot = MetricsSnapshot.empty(self.profile)
        self._reset_for_profile()

    def _reset_for_profile(self) -> None:
        self.smoother.reset()
        thresholds = self.profile.rep_thresholds
        self.rep_counter = RepCounter(thresholds) if thresholds is not None else None
        self.snapshot = MetricsSnapshot.empty(self.profile)

    def select_exercise(self, exercise: str) -> ExerciseProfile:
        """Switch the active profile. Angle history never carries over."""
        profile = get_profile(exercise)
        self.profile = profile
        self._reset_for_profile()
        logger.info("Exercise switched to %s", profile.name)
        return profile

    def raw_angles(self, pose: Sequence[Keypoint]) -> Dict[str, float]:
        by_name = {kp.name: kp for kp in pose}
        angles: Dict[str, float] = {}
        for name, spec in self.profile.angles.items():
            triple = resolve_triplet(spec, by_name, min_confidence=self.min_confidence)
            if triple is None:
                angles[name] = float("nan")
            else:
                angles[name] = joint_angle(*triple, min_confidence=self.min_confidence)
        return angles

    def update(self, poses: Sequence[Sequence[Keypoint]]) -> MetricsSnapshot:
        pose = _best_pose(poses)
        if pose is None:
            # Keep the previous snapshot so the display does not flicker
            return self.snapshot

        raw = self.raw_angles(pose)
        metrics: Dict[str, AngleMetric] = {}
        deviations = []
        for name, spec in self.profile.angles.items():
            value = raw[name]
            if is_detected(value):
                self.smoother.update(name, value)
            else:
                logger.debug("%s/%s not detected this tick", self.profile.name, name)

            if self.smoother.count(name) == 0:
                metrics[name] = AngleMetric()
                continue

            smoothed = self.smoother.average(name)
            banded = classify(
                smoothed, spec.ideal, spec.display_range, spec.excellent_range, (self.profile.name, name)
            )
            metrics[name] = AngleMetric(
                value=smoothed,
                feedback=banded.feedback,
                bar=banded.bar,
                tier=tier(smoothed, spec.ideal, spec.display_range, spec.excellent_range),
            )
            deviations.append((smoothed - spec.ideal, spec.display_range))

        reps = 0
        if self.rep_counter is not None:
            # Raw angle: smoothing would attenuate threshold crossings
            event = self.rep_counter.process(raw[self.profile.rep_angle])
            reps = int(event["reps"])
            if event["rep_event"] == "rep_complete":
                logger.info("%s rep %d complete", self.profile.name, reps)

        score = form_score(deviations)
        self.snapshot = MetricsSnapshot(
            exercise=self.profile.name,
            angles=metrics,
            reps=reps,
            form_score=score,
            form_label=form_label(score),
        )
        return self.snapshot


def analyze_frames(
    frames: Iterable[Sequence[Keypoint]],
    exercise: str,
    *,
    capacity: int = BUFFER_CAPACITY,
) -> Dict[str, object]:
    """
    Run a fresh analyzer over per-tick poses (an empty pose means nothing was
    detected on that tick) and return a JSON-serializable dict:

    {
      "exercise": "squat",
      "ticks": 5,
      "snapshot": {...final MetricsSnapshot...},
      "history": [{...}, ...]
    }
    """
    analyzer = FormAnalyzer(exercise, capacity=capacity)
    history: List[Dict[str, object]] = []
    for pose in frames:
        snapshot = analyzer.update([pose] if pose else [])
        history.append(snapshot.to_dict())
    return {
        "exercise": analyzer.profile.name,
        "ticks": len(history),
        "snapshot": analyzer.snapshot.to_dict(),
        "history": history,
    }
