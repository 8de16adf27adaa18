"""
EAR Tests
Eye Aspect Ratio geometry and the EAR -> openness mapping used by the
MediaPipe adapter.
"""

import pytest

from drowsiness_fusion.ear_detector import calculate_ear, ear_to_open_probability

OPEN_EYE = [(0, 0), (1, 1), (2, 1), (3, 0), (2, -1), (1, -1)]


def test_ear_of_open_eye():
    assert calculate_ear(OPEN_EYE) == pytest.approx(4.0 / 6.0)


def test_ear_of_closed_eye_is_zero():
    flat = [(0, 0), (1, 0), (2, 0), (3, 0), (2, 0), (1, 0)]
    assert calculate_ear(flat) == 0.0


def test_ear_invalid_input():
    assert calculate_ear(OPEN_EYE[:5]) is None
    assert calculate_ear([(1, 1)] * 6) is None


@pytest.mark.parametrize("ear, expected", [
    (0.10, 0.0),
    (0.16, 0.0),
    (0.23, 0.5),
    (0.30, 1.0),
    (0.45, 1.0),
])
def test_ear_to_open_probability(ear, expected):
    assert ear_to_open_probability(ear) == pytest.approx(expected)


def test_ear_to_open_probability_passes_none():
    assert ear_to_open_probability(None) is None


def test_ear_to_open_probability_bad_bounds():
    with pytest.raises(ValueError):
        ear_to_open_probability(0.2, closed=0.3, opened=0.3)
