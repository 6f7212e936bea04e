from __future__ import annotations

import pytest

from pose.backend import Keypoint
from analysis.profiles import (
    PROFILES,
    VERTICAL,
    AngleSpec,
    ExerciseProfile,
    UnknownExerciseError,
    get_profile,
    resolve_triplet,
)
from analysis.utils import HysteresisThresholds


def _kp(name: str, x: float, y: float, c: float = 0.9) -> Keypoint:
    return Keypoint(name=name, x=x, y=y, confidence=c)


def test_profiles_have_two_to_four_angles():
    assert {"squat", "pushup", "lunge", "deadlift", "plank"} <= set(PROFILES)
    for profile in PROFILES.values():
        assert 2 <= len(profile.angles) <= 4
        for spec in profile.angles.values():
            assert spec.display_range >= spec.excellent_range


def test_get_profile_accepts_labels_and_aliases():
    assert get_profile("Push-ups").name == "pushup"
    assert get_profile("push up").name == "pushup"
    assert get_profile("Squats").name == "squat"
    assert get_profile("LUNGE").name == "lunge"
    assert get_profile("Planks").name == "plank"


def test_get_profile_unknown_raises():
    with pytest.raises(UnknownExerciseError):
        get_profile("yoga")
    with pytest.raises(KeyError):
        get_profile("")


def test_angle_spec_rejects_inverted_ranges():
    with pytest.raises(ValueError):
        AngleSpec(("hip", "knee", "ankle"), ideal=90.0, display_range=10.0, excellent_range=15.0)
    with pytest.raises(ValueError):
        AngleSpec(("hip", "knee", "ankle"), ideal=90.0, display_range=10.0, excellent_range=5.0, side="up")


def test_profile_is_immutable():
    profile = PROFILES["squat"]
    with pytest.raises(TypeError):
        profile.angles["ankle"] = profile.angles["knee"]
    with pytest.raises(AttributeError):
        profile.name = "other"


def test_profile_rep_settings_must_match():
    spec = AngleSpec(("hip", "knee", "ankle"), ideal=90.0, display_range=45.0, excellent_range=10.0)
    with pytest.raises(ValueError):
        ExerciseProfile(name="x", label="X", angles={"knee": spec}, rep_angle="knee")
    with pytest.raises(ValueError):
        ExerciseProfile(
            name="x",
            label="X",
            angles={"knee": spec},
            rep_angle="elbow",
            rep_thresholds=HysteresisThresholds(go_down=90.0, go_up=150.0),
        )


def test_resolve_triplet_prefers_more_confident_side():
    spec = PROFILES["squat"].angles["knee"]
    kps = {
        k.name: k
        for k in [
            _kp("left_hip", 0.4, 0.5, 0.6),
            _kp("left_knee", 0.5, 0.6, 0.6),
            _kp("left_ankle", 0.5, 0.8, 0.6),
            _kp("right_hip", 0.6, 0.5, 0.95),
            _kp("right_knee", 0.7, 0.6, 0.95),
            _kp("right_ankle", 0.7, 0.8, 0.95),
        ]
    }
    triple = resolve_triplet(spec, kps)
    assert [k.name for k in triple] == ["right_hip", "right_knee", "right_ankle"]


def test_resolve_triplet_never_mixes_sides():
    spec = PROFILES["squat"].angles["hip"]
    kps = {
        k.name: k
        for k in [
            _kp("left_shoulder", 0.4, 0.3),
            _kp("left_hip", 0.4, 0.5),
            _kp("left_knee", 0.5, 0.6, 0.2),  # too uncertain
            _kp("right_shoulder", 0.6, 0.3),
            _kp("right_hip", 0.6, 0.5),
            _kp("right_knee", 0.7, 0.6),
        ]
    }
    triple = resolve_triplet(spec, kps)
    assert [k.name for k in triple] == ["right_shoulder", "right_hip", "right_knee"]


def test_resolve_triplet_fixed_side_and_missing():
    spec = PROFILES["lunge"].angles["back_knee"]
    kps = {k.name: k for k in [_kp("left_hip", 0.4, 0.5), _kp("left_knee", 0.5, 0.6), _kp("left_ankle", 0.5, 0.8)]}
    assert resolve_triplet(spec, kps) is None


def test_vertical_reference_is_synthesized_above_vertex():
    spec = PROFILES["squat"].angles["back"]
    assert spec.keypoint_names("left") == ("left_shoulder", "left_hip", VERTICAL)
    kps = {k.name: k for k in [_kp("left_shoulder", 0.6, 0.3), _kp("left_hip", 0.5, 0.5, 0.8)]}
    shoulder, hip, up = resolve_triplet(spec, kps)
    assert hip.name == "left_hip"
    assert (up.x, up.y, up.confidence) == (0.5, -0.5, 0.8)


def test_vertical_cannot_be_the_vertex():
    with pytest.raises(ValueError):
        AngleSpec(("shoulder", VERTICAL, "hip"), ideal=30.0, display_range=60.0, excellent_range=15.0)
