"""
Calibration Tests
Threshold formulas, floors, the yawn peak fallback and the sampling window.
"""

import numpy as np
import pytest

from drowsiness_fusion.calibrator import Calibrator, compute_thresholds


# ─── compute_thresholds ───────────────────────────────────────

def test_eye_threshold_mean_plus_k_std():
    samples = [0.1, 0.2, 0.3]
    eye, _ = compute_thresholds(samples, 0.0, 0.8)
    assert eye == pytest.approx(0.2 + 2.75 * np.std(samples))


def test_eye_threshold_floor():
    eye, _ = compute_thresholds([0.01] * 50, 0.0, 0.8)
    assert eye == 0.18


def test_eye_threshold_capped_at_one():
    eye, _ = compute_thresholds([0.0, 1.0] * 10, 0.0, 0.8)
    assert eye == 1.0


def test_yawn_threshold_from_peak():
    _, yawn = compute_thresholds([0.1], 0.9, 0.8)
    assert yawn == pytest.approx(0.585)


def test_yawn_threshold_floor():
    _, yawn = compute_thresholds([0.1], 0.2, 0.8)
    assert yawn == 0.28


def test_yawn_threshold_keeps_prior_without_peak():
    _, yawn = compute_thresholds([0.1], 0.0, 0.65)
    assert yawn == 0.65


def test_thresholds_deterministic():
    samples = list(np.linspace(0.05, 0.4, 120))
    assert compute_thresholds(samples, 0.7, 0.8) == compute_thresholds(samples, 0.7, 0.8)


# ─── Calibrator window ────────────────────────────────────────

def test_window_completes_after_target_samples():
    calibrator = Calibrator(calibration_frames=3)
    assert calibrator.active
    assert calibrator.add_sample(0.1, 0.5, 0.8) is None
    assert calibrator.add_sample(0.1, 0.9, 0.8) is None
    assert calibrator.progress == pytest.approx(200.0 / 3)
    result = calibrator.add_sample(0.1, 0.4, 0.8)

    assert result is not None
    assert result.sample_count == 3
    assert result.eye_threshold == 0.18
    assert result.yawn_threshold == pytest.approx(0.9 * 0.65)
    assert not calibrator.active
    assert calibrator.progress == 100.0


def test_frames_without_sample_still_count():
    calibrator = Calibrator(calibration_frames=2)
    assert calibrator.add_sample(None, 0.3, 0.8) is None
    assert calibrator.active
    result = calibrator.add_sample(0.2, 0.3, 0.8)

    assert result is not None
    assert result.sample_count == 1
    assert not calibrator.active


def test_window_without_any_sample_ends_unchanged():
    calibrator = Calibrator(calibration_frames=3)
    for _ in range(3):
        assert calibrator.add_sample(None, 0.0, 0.8) is None
    assert not calibrator.active
    assert calibrator.progress == 100.0


def test_finish_without_samples_changes_nothing():
    calibrator = Calibrator(calibration_frames=10)
    assert calibrator.finish(0.8) is None
    assert not calibrator.active


def test_inactive_calibrator_ignores_samples():
    calibrator = Calibrator(calibration_frames=1, active=False)
    assert calibrator.add_sample(0.5, 0.5, 0.8) is None


def test_restart_discards_previous_samples():
    calibrator = Calibrator(calibration_frames=2)
    calibrator.add_sample(0.9, 0.0, 0.8)
    calibrator.start()
    assert calibrator.add_sample(0.1, 0.0, 0.8) is None
    result = calibrator.add_sample(0.1, 0.0, 0.8)
    assert result.eye_threshold == 0.18
