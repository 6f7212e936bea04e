from __future__ import annotations

import pytest

from analysis.feedback import (
    EXCELLENT,
    MESSAGES,
    TIER_CAUTION,
    TIER_GOOD,
    classify,
    form_label,
    form_score,
    tier,
)
from analysis.profiles import PROFILES


KNEE = ("squat", "knee")


def test_classify_at_ideal_is_excellent_and_centered():
    fb = classify(70.0, 70.0, 100.0, 15.0, KNEE)
    assert fb.feedback == EXCELLENT
    assert fb.bar is not None
    assert fb.bar.position == pytest.approx(0.5)
    assert fb.bar.ideal_position == 0.5


def test_classify_over_deviation_uses_over_message():
    fb = classify(95.0, 70.0, 100.0, 15.0, KNEE)
    assert fb.feedback == "Squat deeper"
    assert fb.bar.position == pytest.approx((95 - (-30)) / 200)


def test_classify_under_deviation_uses_under_message():
    fb = classify(40.0, 70.0, 100.0, 15.0, KNEE)
    assert fb.feedback == "Don't squat too deep"
    assert fb.bar.position == pytest.approx(0.35)


def test_classify_off_scale_has_no_bar_or_feedback():
    fb = classify(220.0, 70.0, 100.0, 15.0, KNEE)
    assert fb.bar is None
    assert fb.feedback == ""


def test_classify_boundaries_are_inclusive():
    assert classify(85.0, 70.0, 100.0, 15.0, KNEE).feedback == EXCELLENT
    edge = classify(170.0, 70.0, 100.0, 15.0, KNEE)
    assert edge.bar is not None and edge.bar.position == pytest.approx(1.0)


def test_classify_unknown_kind_has_empty_cue():
    fb = classify(100.0, 70.0, 100.0, 15.0, ("tai-chi", "wrist"))
    assert fb.feedback == ""
    assert fb.bar is not None


def test_tier_thresholds():
    assert tier(75.0, 70.0, 100.0, 15.0) == TIER_GOOD
    assert tier(120.0, 70.0, 100.0, 15.0) == TIER_CAUTION
    assert tier(171.0, 70.0, 100.0, 15.0) is None


def test_every_profile_angle_has_both_messages():
    for profile in PROFILES.values():
        for name in profile.angles:
            entry = MESSAGES[(profile.name, name)]
            assert entry["over"] and entry["under"]
            assert entry["over"] != entry["under"]


def test_form_score_and_label():
    assert form_score([]) is None
    assert form_label(None) is None
    assert form_score([(0.0, 100.0), (0.0, 45.0)]) == 100.0
    score = form_score([(20.0, 100.0), (10.0, 90.0)])
    assert score == pytest.approx(84.4)
    assert form_label(score) == "Good"
    assert form_label(95.0) == "Excellent"
    assert form_label(40.0) == "Needs Work"
    # Off-scale deviations bottom out at zero
    assert form_score([(500.0, 100.0)]) == 0.0
