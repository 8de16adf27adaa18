"""
Signal Extractor Tests
Classifier crops, per-eye averaging, mouth inference cadence and the
detector-native closed-eye estimate.
"""

import numpy as np
import pytest

from drowsiness_fusion.classifier import classify_safely, prepare_crop
from drowsiness_fusion.data_structures import Rect
from drowsiness_fusion.region_locator import RegionLocator
from drowsiness_fusion.signal_extractor import SignalExtractor, detector_closed_estimate

from helpers import FRAME_H, FRAME_W, StubClassifier, make_frame, make_observation


def _extract(classifier, obs=None, frame_index=1, every=2):
    obs = obs or make_observation()
    regions = RegionLocator().locate(obs, FRAME_W, FRAME_H)
    extractor = SignalExtractor(classifier, mouth_classify_every=every)
    return extractor.extract(make_frame(), obs, regions, frame_index)


# ─── Detector-native estimate ─────────────────────────────────

def test_detector_estimate_is_one_minus_mean_openness():
    obs = make_observation(open_probs=(0.2, 0.4))
    assert detector_closed_estimate(obs) == pytest.approx(0.7)


def test_detector_estimate_needs_both_eyes():
    assert detector_closed_estimate(make_observation(open_probs=(0.5, None))) is None


def test_no_classifier_only_detector_signal():
    raw = _extract(None, make_observation(open_probs=(0.0, 0.0)))
    assert raw.closed_prob is None
    assert raw.yawn_prob is None
    assert raw.detector_closed == pytest.approx(1.0)


# ─── Eye classification ───────────────────────────────────────

def test_per_eye_probabilities_are_averaged():
    clf = StubClassifier([(0.2, 0.0, 0.0, 0.0), (0.6, 0.0, 0.0, 0.0)])
    raw = _extract(clf, frame_index=1)
    assert len(clf.calls) == 2
    assert clf.calls[0] == (24, 24, 3)
    assert raw.closed_prob == pytest.approx(0.4)


def test_merged_eye_region_used_without_eye_landmarks():
    clf = StubClassifier((0.7, 0.0, 0.0, 0.0))
    raw = _extract(clf, make_observation(eyes=None), frame_index=1)
    assert len(clf.calls) == 1
    assert raw.closed_prob == pytest.approx(0.7)


def test_classifier_failure_reads_as_zero():
    clf = StubClassifier(RuntimeError("model crashed"))
    raw = _extract(clf, frame_index=2)
    assert raw.closed_prob == 0.0
    assert raw.yawn_prob == 0.0


def test_probabilities_clamped_to_unit_range():
    raw = _extract(StubClassifier((1.7, 0.0, 0.0, -0.3)), frame_index=2)
    assert raw.closed_prob == 1.0
    assert raw.yawn_prob == 0.0


# ─── Mouth cadence ────────────────────────────────────────────

def test_mouth_classified_on_cadence_frames_only():
    clf = StubClassifier((0.0, 0.0, 0.0, 0.9))
    assert _extract(clf, frame_index=4).yawn_prob == pytest.approx(0.9)
    assert _extract(clf, frame_index=5).yawn_prob is None


def test_mouth_skipped_for_small_face():
    obs = make_observation(
        face=Rect(250, 150, 350, 250),
        eyes=((280.0, 180.0), (320.0, 180.0)),
        mouth=((280.0, 220.0), (320.0, 220.0), (300.0, 230.0)),
    )
    raw = _extract(StubClassifier((0.0, 0.0, 0.0, 0.9)), obs, frame_index=2)
    assert raw.yawn_prob is None


def test_yawn_index_beyond_output_reads_as_zero():
    clf = StubClassifier((0.5, 0.5), num_classes=2)
    assert _extract(clf, frame_index=2).yawn_prob == 0.0


# ─── Classifier helpers ───────────────────────────────────────

def test_prepare_crop_resizes_to_input_size():
    crop = prepare_crop(make_frame(), Rect(10, 20, 110, 70), (32, 16))
    assert crop.shape == (16, 32, 3)


def test_prepare_crop_empty_region():
    assert prepare_crop(make_frame(), Rect(10, 10, 10, 40), (32, 32)) is None


def test_classify_safely_pads_short_output():
    probs = classify_safely(StubClassifier((0.3,), num_classes=4), np.zeros((24, 24, 3), dtype=np.uint8))
    assert probs.shape == (4,)
    assert probs[0] == pytest.approx(0.3)
    assert probs[3] == 0.0
