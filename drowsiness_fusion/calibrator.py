"""
Calibration Module
Derives per-user eye and yawn thresholds from an initial observation window
"""

import logging
from typing import List, NamedTuple, Optional

import numpy as np

from .config import (
    CALIBRATION_FRAMES,
    CALIBRATION_EYE_K,
    CALIBRATION_EYE_FLOOR,
    CALIBRATION_YAWN_FACTOR,
    CALIBRATION_YAWN_FLOOR,
)

logger = logging.getLogger(__name__)


class CalibrationResult(NamedTuple):
    eye_threshold: float
    yawn_threshold: float
    sample_count: int


class CalibrationSession:
    """
    Samples collected during one calibration window.

    The window spans `target_frames` frames with a usable face, whether or not
    each frame produced an eye sample.
    """

    def __init__(self, target_frames=CALIBRATION_FRAMES, active=True):
        self.samples: List[float] = []
        self.peak_yawn_score = 0.0
        self.frames_seen = 0
        self.target_frames = max(1, int(target_frames))
        self.active = active

    @property
    def is_complete(self):
        return self.frames_seen >= self.target_frames

    def clear(self):
        self.samples.clear()
        self.peak_yawn_score = 0.0
        self.frames_seen = 0


def compute_thresholds(
    samples,
    peak_yawn_score,
    prior_yawn_threshold,
    eye_k=CALIBRATION_EYE_K,
    eye_floor=CALIBRATION_EYE_FLOOR,
    yawn_factor=CALIBRATION_YAWN_FACTOR,
    yawn_floor=CALIBRATION_YAWN_FLOOR,
):
    """
    Compute (eye_threshold, yawn_threshold) from calibration data.

    eye  = min(1, max(eye_floor, mean + k * stddev))  (population stddev)
    yawn = max(yawn_floor, peak * factor)             (prior threshold if no peak was seen)
    """
    values = np.asarray(samples, dtype=np.float64)
    mu = float(np.mean(values))
    sigma = float(np.std(values))
    eye_threshold = min(1.0, max(eye_floor, mu + eye_k * sigma))
    yawn_candidate = peak_yawn_score * yawn_factor if peak_yawn_score > 0.0 else prior_yawn_threshold
    yawn_threshold = max(yawn_floor, yawn_candidate)
    return eye_threshold, yawn_threshold


class Calibrator:
    """
    Collects closed-eye samples and the peak combined yawn score while active,
    and produces new thresholds once `calibration_frames` face frames were seen.
    """

    def __init__(
        self,
        calibration_frames=CALIBRATION_FRAMES,
        active=True,
        eye_k=CALIBRATION_EYE_K,
        eye_floor=CALIBRATION_EYE_FLOOR,
        yawn_factor=CALIBRATION_YAWN_FACTOR,
        yawn_floor=CALIBRATION_YAWN_FLOOR,
    ):
        self.calibration_frames = calibration_frames
        self.eye_k = eye_k
        self.eye_floor = eye_floor
        self.yawn_factor = yawn_factor
        self.yawn_floor = yawn_floor
        self.session = CalibrationSession(calibration_frames, active=active)
        if active:
            logger.info("[CALIBRATION] enabled for %d frames", calibration_frames)

    @property
    def active(self):
        return self.session.active

    @property
    def progress(self):
        """Calibration progress (0-100%)."""
        if not self.session.active:
            return 100.0
        return min(100.0, self.session.frames_seen * 100.0 / self.session.target_frames)

    def start(self):
        """(Re)start a calibration window, discarding any collected samples."""
        self.session = CalibrationSession(self.calibration_frames, active=True)
        logger.info("[CALIBRATION] started for %d frames", self.calibration_frames)

    def cancel(self):
        self.session.clear()
        self.session.active = False

    def add_sample(self, closed_prob, combined_yawn_score, yawn_threshold) -> Optional[CalibrationResult]:
        """
        Record one face frame while calibrating; `closed_prob` may be None.

        Returns:
            CalibrationResult when this frame completed the window, else None
        """
        session = self.session
        if not session.active:
            return None
        session.frames_seen += 1
        if closed_prob is not None:
            session.samples.append(float(closed_prob))
        if combined_yawn_score > session.peak_yawn_score:
            session.peak_yawn_score = combined_yawn_score
        if session.is_complete:
            return self.finish(yawn_threshold)
        return None

    def finish(self, yawn_threshold) -> Optional[CalibrationResult]:
        """
        End the window and compute thresholds.

        Args:
            yawn_threshold: Yawn threshold currently installed, kept when no yawn peak was seen

        Returns:
            CalibrationResult, or None when the window collected no samples
        """
        session = self.session
        if not session.samples:
            session.active = False
            logger.info("[CALIBRATION] ended: no samples, thresholds unchanged")
            return None

        eye, yawn = compute_thresholds(
            session.samples,
            session.peak_yawn_score,
            yawn_threshold,
            eye_k=self.eye_k,
            eye_floor=self.eye_floor,
            yawn_factor=self.yawn_factor,
            yawn_floor=self.yawn_floor,
        )
        result = CalibrationResult(eye, yawn, len(session.samples))
        session.clear()
        session.active = False
        logger.info("[CALIBRATION] finished: EYE=%.3f YAWN=%.3f (%d samples)", eye, yawn, result.sample_count)
        return result
