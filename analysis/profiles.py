from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from pose.backend import Keypoint

from .utils import MIN_CONFIDENCE, HysteresisThresholds


SIDES = ("left", "right")

# Reference point straight above the vertex; measures lean from vertical
VERTICAL = "vertical"


class UnknownExerciseError(KeyError):
    pass


@dataclass(frozen=True)
class AngleSpec:
    """
    An angle of interest for one exercise, measured at joints[1] between the
    rays to joints[0] and joints[2].

    Joint names are side-less ("hip", "knee", ...). side="best" picks whichever
    side of the body is more confidently detected on each tick. An end joint
    may be VERTICAL, a point directly above the vertex.
    """
    joints: Tuple[str, str, str]
    ideal: float
    display_range: float
    excellent_range: float
    side: str = "best"

    def __post_init__(self) -> None:
        if len(self.joints) != 3:
            raise ValueError("joints must name exactly three keypoints")
        if self.excellent_range < 0 or self.display_range < 0:
            raise ValueError("ranges must be non-negative")
        if self.display_range < self.excellent_range:
            raise ValueError("display_range must be >= excellent_range")
        if self.side not in ("best",) + SIDES:
            raise ValueError(f"unsupported side: {self.side!r}")
        if self.joints[1] == VERTICAL:
            raise ValueError("the vertex must be a body keypoint")

    @property
    def candidate_sides(self) -> Tuple[str, ...]:
        return SIDES if self.side == "best" else (self.side,)

    def keypoint_names(self, side: str) -> Tuple[str, str, str]:
        a, b, c = (j if j == VERTICAL else f"{side}_{j}" for j in self.joints)
        return (a, b, c)


@dataclass(frozen=True)
class ExerciseProfile:
    name: str
    label: str
    angles: Mapping[str, AngleSpec]
    rep_angle: Optional[str] = None
    rep_thresholds: Optional[HysteresisThresholds] = None
    aliases: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "angles", MappingProxyType(dict(self.angles)))
        if self.rep_angle is not None and self.rep_angle not in self.angles:
            raise ValueError(f"rep_angle {self.rep_angle!r} is not one of the profile angles")
        if (self.rep_angle is None) != (self.rep_thresholds is None):
            raise ValueError("rep_angle and rep_thresholds must be given together")


def _build_profiles(*profiles: ExerciseProfile) -> Mapping[str, ExerciseProfile]:
    return MappingProxyType({p.name: p for p in profiles})


# Ideal values and ranges are in degrees
PROFILES: Mapping[str, ExerciseProfile] = _build_profiles(
    ExerciseProfile(
        name="squat",
        label="Squats",
        angles={
            "knee": AngleSpec(("hip", "knee", "ankle"), ideal=70.0, display_range=100.0, excellent_range=15.0),
            "hip": AngleSpec(("shoulder", "hip", "knee"), ideal=80.0, display_range=90.0, excellent_range=15.0),
            "back": AngleSpec(("shoulder", "hip", VERTICAL), ideal=30.0, display_range=60.0, excellent_range=15.0),
        },
        rep_angle="knee",
        rep_thresholds=HysteresisThresholds(go_down=110.0, go_up=150.0),
        aliases=("squats",),
    ),
    ExerciseProfile(
        name="pushup",
        label="Push-ups",
        angles={
            "elbow": AngleSpec(("shoulder", "elbow", "wrist"), ideal=90.0, display_range=90.0, excellent_range=15.0),
            "body": AngleSpec(("shoulder", "hip", "ankle"), ideal=180.0, display_range=45.0, excellent_range=15.0),
        },
        rep_angle="elbow",
        rep_thresholds=HysteresisThresholds(go_down=90.0, go_up=150.0),
        aliases=("push-up", "push-ups", "pushups", "push up"),
    ),
    ExerciseProfile(
        name="lunge",
        label="Lunges",
        angles={
            "front_knee": AngleSpec(("hip", "knee", "ankle"), ideal=90.0, display_range=90.0, excellent_range=15.0, side="left"),
            "back_knee": AngleSpec(("hip", "knee", "ankle"), ideal=90.0, display_range=90.0, excellent_range=20.0, side="right"),
        },
        rep_angle="front_knee",
        rep_thresholds=HysteresisThresholds(go_down=110.0, go_up=150.0),
        aliases=("lunges",),
    ),
    ExerciseProfile(
        name="deadlift",
        label="Deadlifts",
        angles={
            "hip": AngleSpec(("shoulder", "hip", "knee"), ideal=100.0, display_range=80.0, excellent_range=15.0),
            "knee": AngleSpec(("hip", "knee", "ankle"), ideal=135.0, display_range=45.0, excellent_range=15.0),
        },
        rep_angle="hip",
        rep_thresholds=HysteresisThresholds(go_down=115.0, go_up=160.0),
        aliases=("deadlifts",),
    ),
    ExerciseProfile(
        name="plank",
        label="Planks",
        angles={
            "body": AngleSpec(("shoulder", "hip", "ankle"), ideal=180.0, display_range=45.0, excellent_range=10.0),
            "elbow": AngleSpec(("shoulder", "elbow", "wrist"), ideal=90.0, display_range=60.0, excellent_range=15.0),
        },
        aliases=("planks",),
    ),
)


def _normalize(name: str) -> str:
    return re.sub(r"[\s_-]+", "", name.strip().lower())


_LOOKUP: Dict[str, str] = {}
for _profile in PROFILES.values():
    for _key in (_profile.name, _profile.label) + _profile.aliases:
        _LOOKUP[_normalize(_key)] = _profile.name


def get_profile(name: str) -> ExerciseProfile:
    """Look up a profile by name, display label ("Push-ups") or alias."""
    key = _LOOKUP.get(_normalize(name)) if isinstance(name, str) else None
    if key is None:
        raise UnknownExerciseError(f"Unknown exercise: {name!r}")
    return PROFILES[key]


def resolve_triplet(
    spec: AngleSpec,
    keypoints: Mapping[str, Keypoint],
    *,
    min_confidence: float = MIN_CONFIDENCE,
) -> Optional[Tuple[Keypoint, Keypoint, Keypoint]]:
    """
    Choose the side where all three joints are detected; if both are, pick the
    one with higher summed confidence. All three joints always come from the
    same side. Returns None when no side qualifies.
    """
    best = None
    best_score = -1.0
    for side in spec.candidate_sides:
        names = spec.keypoint_names(side)
        found = [keypoints.get(n) for n in names if n != VERTICAL]
        if any(kp is None or kp.confidence < min_confidence for kp in found):
            continue
        score = float(sum(kp.confidence for kp in found))
        if score > best_score:
            best_score = score
            vertex = keypoints[names[1]]
            best = tuple(_vertical_above(vertex) if n == VERTICAL else keypoints[n] for n in names)
    return best


def _vertical_above(vertex: Keypoint) -> Keypoint:
    # Image y grows downwards
    return Keypoint(name=VERTICAL, x=vertex.x, y=vertex.y - 1.0, confidence=vertex.confidence)
