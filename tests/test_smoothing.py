from __future__ import annotations

import pytest

from pose.smoothing import RollingBuffer, TemporalSmoother


def test_rolling_buffer_keeps_last_values():
    buf = RollingBuffer(capacity=5)
    for v in [10.0, 20.0, 30.0, 40.0, 50.0, 60.0, 70.0]:
        buf.push(v)
    assert len(buf) == 5
    assert buf.values == [30.0, 40.0, 50.0, 60.0, 70.0]
    assert buf.mean() == pytest.approx(50.0)


def test_rolling_buffer_empty_mean_is_zero():
    buf = RollingBuffer(capacity=3)
    assert buf.mean() == 0.0
    buf.push(4.0)
    buf.clear()
    assert len(buf) == 0 and buf.mean() == 0.0


def test_rolling_buffer_rejects_bad_capacity():
    with pytest.raises(ValueError):
        RollingBuffer(capacity=0)


def test_smoother_averages_per_buffer():
    sm = TemporalSmoother(capacity=5)
    for v in [1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0]:
        sm.update("knee", v)
    sm.update("hip", 100.0)
    assert sm.count("knee") == 5
    assert sm.average("knee") == pytest.approx(5.0)
    assert sm.average("hip") == pytest.approx(100.0)


def test_smoother_ignores_non_finite_samples():
    sm = TemporalSmoother(capacity=5)
    sm.update("elbow", 90.0)
    sm.update("elbow", float("nan"))
    sm.update("elbow", None)
    sm.update("elbow", float("inf"))
    sm.update("elbow", 100.0)
    assert sm.count("elbow") == 2
    assert sm.average("elbow") == pytest.approx(95.0)


def test_smoother_unknown_buffer_and_reset():
    sm = TemporalSmoother()
    assert sm.average("missing") == 0.0
    sm.update("knee", 80.0)
    sm.reset()
    assert sm.count("knee") == 0
    assert sm.average("knee") == 0.0
