from __future__ import annotations

import math
from typing import Dict, List, Tuple

import pytest

from analysis.analyzer import FormAnalyzer, MetricsSnapshot, analyze_frames
from analysis.profiles import PROFILES, UnknownExerciseError
from pose.backend import KEYPOINT_NAMES, Keypoint


def _pose(points: Dict[str, Tuple[float, float]], c: float = 0.9) -> List[Keypoint]:
    """Full 17-keypoint pose; joints not given are reported with zero confidence."""
    pose = []
    for name in KEYPOINT_NAMES:
        if name in points:
            x, y = points[name]
            pose.append(Keypoint(name=name, x=x, y=y, confidence=c))
        else:
            pose.append(Keypoint(name=name, x=0.0, y=0.0, confidence=0.0))
    return pose


# Side view, left side visible: knee at 90, hip at 60, torso 30 degrees from vertical
SQUAT_BOTTOM = {
    "left_shoulder": (0.6, 0.5 - 0.1 * math.sqrt(3)),
    "left_hip": (0.5, 0.5),
    "left_knee": (0.7, 0.5),
    "left_ankle": (0.7, 0.7),
}

# Standing: knee and hip straight
STANDING = {
    "left_shoulder": (0.5, 0.1),
    "left_hip": (0.5, 0.3),
    "left_knee": (0.5, 0.5),
    "left_ankle": (0.5, 0.7),
}


def test_initial_snapshot_has_profile_angles_undetected():
    analyzer = FormAnalyzer("squat")
    snap = analyzer.snapshot
    assert set(snap.angles) == set(PROFILES["squat"].angles)
    assert all(not m.detected and m.bar is None for m in snap.angles.values())


def test_single_tick_squat_snapshot():
    analyzer = FormAnalyzer("squat")
    snap = analyzer.update([_pose(SQUAT_BOTTOM)])

    knee = snap.angles["knee"]
    assert knee.value == pytest.approx(90.0)
    assert knee.feedback == "Squat deeper"  # 20 degrees over the ideal of 70
    assert knee.bar.position == pytest.approx(0.6)
    assert knee.tier == "caution"

    hip = snap.angles["hip"]
    assert hip.value == pytest.approx(60.0)
    assert hip.feedback == "Keep your chest up"  # 20 degrees under the ideal of 80
    assert hip.bar.position == pytest.approx(70.0 / 180.0)
    assert hip.tier == "caution"

    back = snap.angles["back"]
    assert back.value == pytest.approx(30.0)
    assert back.feedback == "Excellent!"
    assert back.bar.position == pytest.approx(0.5)
    assert back.tier == "good"

    assert snap.form_score == pytest.approx(85.9)
    assert snap.form_label == "Good"
    assert snap.reps == 0


def test_upright_torso_reads_zero_back_tilt():
    analyzer = FormAnalyzer("squat")
    snap = analyzer.update([_pose(STANDING)])
    assert snap.angles["back"].value == pytest.approx(0.0, abs=1e-6)
    assert snap.angles["back"].feedback == "Lean your torso slightly forward"


def test_identical_ticks_match_single_tick():
    single = analyze_frames([_pose(SQUAT_BOTTOM)], "squat")["snapshot"]
    repeated = analyze_frames([_pose(SQUAT_BOTTOM)] * 5, "squat")
    assert repeated["ticks"] == 5
    final = repeated["snapshot"]
    assert set(final["angles"]) == set(single["angles"]) == {"knee", "hip", "back"}
    for name, metric in single["angles"].items():
        assert final["angles"][name]["value"] == pytest.approx(metric["value"])
        assert final["angles"][name]["feedback"] == metric["feedback"]
        assert final["angles"][name]["bar"]["position"] == pytest.approx(metric["bar"]["position"])
    # Every intermediate snapshot is already stable
    for snap in repeated["history"]:
        assert snap["angles"]["knee"]["value"] == pytest.approx(90.0)


def test_zero_poses_keep_previous_snapshot():
    analyzer = FormAnalyzer("squat")
    first = analyzer.update([_pose(SQUAT_BOTTOM)])
    assert analyzer.update([]) is first
    assert analyzer.snapshot is first


def test_low_confidence_joint_is_skipped_for_the_tick():
    analyzer = FormAnalyzer("squat")
    analyzer.update([_pose(SQUAT_BOTTOM)])
    # Knee drops below the confidence threshold: no new sample, window retained
    weak = _pose(STANDING)
    weak = [Keypoint(k.name, k.x, k.y, 0.3) if k.name == "left_knee" else k for k in weak]
    snap = analyzer.update([weak])
    assert analyzer.smoother.count("knee") == 1
    assert snap.angles["knee"].value == pytest.approx(90.0)


def test_smoothing_averages_recent_ticks():
    analyzer = FormAnalyzer("squat")
    analyzer.update([_pose(SQUAT_BOTTOM)])
    snap = analyzer.update([_pose(STANDING)])
    assert snap.angles["knee"].value == pytest.approx(135.0)


def test_switching_exercise_clears_history():
    analyzer = FormAnalyzer("squat")
    for _ in range(3):
        analyzer.update([_pose(SQUAT_BOTTOM)])
    assert analyzer.smoother.count("knee") == 3

    analyzer.select_exercise("deadlift")
    assert analyzer.smoother.count("knee") == 0
    assert set(analyzer.snapshot.angles) == set(PROFILES["deadlift"].angles)
    assert not analyzer.snapshot.angles["knee"].detected

    snap = analyzer.update([_pose(STANDING)])
    # No leak of the squat's 90 degree knee history into the new average
    assert snap.angles["knee"].value == pytest.approx(180.0)


def test_pause_free_rep_counting_uses_raw_angles():
    analyzer = FormAnalyzer("squat")
    for points in (STANDING, SQUAT_BOTTOM, STANDING):
        snap = analyzer.update([_pose(points)])
    assert snap.reps == 1


def test_best_pose_is_used_when_several_are_detected():
    analyzer = FormAnalyzer("squat")
    faint = _pose(STANDING, c=0.55)
    strong = _pose(SQUAT_BOTTOM, c=0.95)
    snap = analyzer.update([faint, strong])
    assert snap.angles["knee"].value == pytest.approx(90.0)


def test_snapshot_names_always_match_profile():
    analyzer = FormAnalyzer("pushup")
    snap = analyzer.update([_pose(SQUAT_BOTTOM)])
    assert set(snap.angles) == {"elbow", "body"}
    assert not snap.angles["elbow"].detected
    assert isinstance(snap, MetricsSnapshot)


def test_unknown_exercise_raises():
    with pytest.raises(UnknownExerciseError):
        FormAnalyzer("yoga")
    analyzer = FormAnalyzer("squat")
    with pytest.raises(UnknownExerciseError):
        analyzer.select_exercise("yoga")
    assert analyzer.profile.name == "squat"


def test_analyze_frames_schema():
    out = analyze_frames([_pose(STANDING), [], _pose(SQUAT_BOTTOM)], "Squats")
    assert out["exercise"] == "squat"
    assert out["ticks"] == 3
    assert len(out["history"]) == 3
    # Empty tick repeated the previous snapshot
    assert out["history"][1] == out["history"][0]
    snap = out["snapshot"]
    assert set(snap) == {"exercise", "angles", "reps", "form_score", "form_label"}
    assert set(snap["angles"]["knee"]) == {"value", "feedback", "bar", "tier"}
