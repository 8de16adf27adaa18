"""
Signal Smoother Tests
EMA convergence, stale decay, zero snapping and reset on face loss.
"""

import math

import pytest

from drowsiness_fusion.signal_smoother import SignalSmoother, SmoothedSignal


# ─── SmoothedSignal ───────────────────────────────────────────

def test_ema_update_formula():
    signal = SmoothedSignal(0.38)
    assert signal.update(1.0, 0.0) == pytest.approx(0.38)
    assert signal.update(1.0, 0.1) == pytest.approx(0.38 + 0.62 * 0.38)


def test_ema_converges_to_constant_input():
    signal = SmoothedSignal(0.3)
    for i in range(40):
        signal.update(0.9, i * 0.1)
    assert signal.ema == pytest.approx(0.9, abs=1e-4)


def test_invalid_alpha_rejected():
    with pytest.raises(ValueError):
        SmoothedSignal(0.0)
    with pytest.raises(ValueError):
        SmoothedSignal(1.5)


def test_decay_is_monotonic_and_snaps_to_zero():
    signal = SmoothedSignal(0.3, decay_factor=0.82, zero_snap=0.03)
    signal.ema = 0.5
    previous = signal.ema
    for _ in range(20):
        current = signal.decay()
        assert current <= previous
        previous = current
    assert signal.ema == 0.0


def test_age_infinite_before_first_update():
    signal = SmoothedSignal(0.3, stale_after=0.7)
    assert signal.age(5.0) == math.inf
    assert signal.is_stale(5.0)
    signal.update(0.5, 5.0)
    assert signal.age(5.5) == pytest.approx(0.5)
    assert not signal.is_stale(5.5)
    assert signal.is_stale(5.8)


# ─── SignalSmoother ───────────────────────────────────────────

def test_missing_eye_sample_keeps_ema():
    smoother = SignalSmoother()
    smoother.update_eye(0.8, 0.0)
    before = smoother.eye_ema
    assert smoother.update_eye(None, 0.1) == before


def test_mouth_not_decayed_while_fresh():
    smoother = SignalSmoother()
    smoother.update_mouth(0.9, 0.0)
    before = smoother.mouth_ema
    assert smoother.update_mouth(None, 0.5) == before


def test_mouth_decays_once_when_stale():
    smoother = SignalSmoother()
    smoother.update_mouth(0.9, 0.0)
    before = smoother.mouth_ema
    assert smoother.update_mouth(None, 1.0) == pytest.approx(before * 0.82)


def test_weak_mouth_signal_decays_twice():
    smoother = SignalSmoother()
    smoother.update_mouth(0.9, 0.0)
    before = smoother.mouth_ema
    after = smoother.update_mouth(0.05, 0.1)
    assert after == pytest.approx(before * 0.82 ** 2)
    assert smoother.mouth.last_raw == 0.05
    assert smoother.mouth.last_update == 0.1


def test_face_missing_resets_after_timeout():
    smoother = SignalSmoother()
    smoother.update_eye(0.9, 0.0)
    smoother.update_mouth(0.9, 0.0)
    smoother.on_face_missing(1.0, 1.0)
    assert smoother.eye_ema > 0.0
    smoother.on_face_missing(1.6, 1.6)
    assert smoother.eye_ema == 0.0
    assert smoother.mouth_ema == 0.0
