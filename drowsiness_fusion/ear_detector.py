"""
EAR (Eye Aspect Ratio) Module
Eye openness from the six-point eye contour, for detectors without a native
eye-openness output
"""

import numpy as np

from .config import EAR_CLOSED, EAR_OPEN


def calculate_ear(eye_landmarks):
    """
    Eye Aspect Ratio of one eye.

    Args:
        eye_landmarks: 6 (x, y) points p1..p6, corners at p1 and p4

    Returns:
        (|p2-p6| + |p3-p5|) / (2 * |p1-p4|), or None for malformed input
    """
    pts = np.asarray(eye_landmarks, dtype=np.float32)
    if pts.shape != (6, 2):
        return None

    vertical = np.linalg.norm(pts[[1, 2]] - pts[[5, 4]], axis=1).sum()
    horizontal = np.linalg.norm(pts[0] - pts[3])
    if horizontal == 0:
        return None
    return float(vertical / (2.0 * horizontal))


def ear_to_open_probability(ear, closed=EAR_CLOSED, opened=EAR_OPEN):
    """
    Linearly map an EAR value onto [0, 1] eye openness.

    Returns:
        0.0 at or below `closed`, 1.0 at or above `opened`; None if `ear` is None
    """
    if ear is None:
        return None
    if opened <= closed:
        raise ValueError("opened EAR must be greater than closed EAR")
    return float(np.clip((ear - closed) / (opened - closed), 0.0, 1.0))
