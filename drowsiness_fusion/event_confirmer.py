"""
Event Confirmation Module
Hysteresis for the three alert channels:
- eye closure must stay above threshold for a sustained duration
- yawns need consecutive qualifying frames and a minimum gap between events
- lost face is timed from the first frame without a face
"""

import logging

from .config import (
    EYE_THRESHOLD,
    YAWN_THRESHOLD,
    EYE_EMA_PRESENT_MIN,
    EYE_MODEL_WEIGHT,
    MOUTH_MODEL_WEIGHT,
    MOUTH_ASPECT_DIVISOR,
    MIN_YAWN_WIDTH_RATIO,
    MIN_YAWN_WIDTH_PX,
    EYE_CLOSED_SECONDS,
    YAWN_CONSECUTIVE_REQUIRED,
    YAWN_EVENT_GAP_SECONDS,
    YAWN_EVENTS_FOR_ALERT,
    LOST_FACE_ALERT_SECONDS,
)

logger = logging.getLogger(__name__)


def combine_eye_scores(eye_ema, detector_closed, model_weight=EYE_MODEL_WEIGHT, present_min=EYE_EMA_PRESENT_MIN):
    """
    Fuse the smoothed classifier score with the detector-native estimate.

    Args:
        eye_ema: Smoothed closed-eye probability (at or below `present_min` counts as unavailable)
        detector_closed: Detector closed-eye estimate, or None if unavailable

    Returns:
        Combined score in [0, 1]; 0 when neither signal is available
    """
    model_available = eye_ema > present_min
    if model_available and detector_closed is not None:
        score = eye_ema * model_weight + detector_closed * (1.0 - model_weight)
    elif model_available:
        score = eye_ema
    elif detector_closed is not None:
        score = detector_closed
    else:
        score = 0.0
    return min(max(score, 0.0), 1.0)


def mouth_aspect_score(mouth_height, face_height, divisor=MOUTH_ASPECT_DIVISOR):
    """Geometric mouth-opening score: min(1, mouthHeight / (faceHeight * divisor))."""
    if face_height <= 0 or mouth_height <= 0:
        return 0.0
    return min(1.0, mouth_height / (face_height * divisor))


def combine_yawn_scores(mouth_ema, aspect_score, model_weight=MOUTH_MODEL_WEIGHT):
    return mouth_ema * model_weight + aspect_score * (1.0 - model_weight)


class EyeClosureConfirmer:
    """
    Raises the eye alert once the combined score has stayed above threshold
    for `closed_seconds`. Any frame at or below threshold restarts the timer.
    """

    def __init__(self, threshold=EYE_THRESHOLD, closed_seconds=EYE_CLOSED_SECONDS):
        self.threshold = threshold
        self.closed_seconds = closed_seconds
        self.closed_since = None

    def update(self, score, timestamp):
        if score > self.threshold:
            if self.closed_since is None:
                self.closed_since = timestamp
            return timestamp - self.closed_since >= self.closed_seconds

        self.closed_since = None
        return False

    def closed_duration(self, timestamp):
        if self.closed_since is None:
            return 0.0
        return max(0.0, timestamp - self.closed_since)

    def reset(self):
        self.closed_since = None


class YawnConfirmer:
    """
    Counts confirmed yawns.

    A frame qualifies when the combined yawn score exceeds the threshold and
    the mouth region is wide enough. `consecutive_required` qualifying frames
    in a row confirm one yawn, provided `event_gap` seconds have passed since
    the previous one.
    """

    def __init__(
        self,
        threshold=YAWN_THRESHOLD,
        consecutive_required=YAWN_CONSECUTIVE_REQUIRED,
        event_gap=YAWN_EVENT_GAP_SECONDS,
        events_for_alert=YAWN_EVENTS_FOR_ALERT,
        min_width_ratio=MIN_YAWN_WIDTH_RATIO,
        min_width_px=MIN_YAWN_WIDTH_PX,
    ):
        self.threshold = threshold
        self.consecutive_required = consecutive_required
        self.event_gap = event_gap
        self.events_for_alert = events_for_alert
        self.min_width_ratio = min_width_ratio
        self.min_width_px = min_width_px
        self.reset()

    def reset(self):
        self.consecutive = 0
        self.count = 0
        self.last_event_time = None

    def qualifies(self, combined_score, mouth_width, face_width):
        wide_enough = mouth_width >= max(int(face_width * self.min_width_ratio), self.min_width_px)
        return combined_score > self.threshold and wide_enough

    def update(self, combined_score, mouth_width, face_width, timestamp):
        """
        Feed one frame.

        Returns:
            True if this frame confirmed a yawn
        """
        if self.qualifies(combined_score, mouth_width, face_width):
            self.consecutive += 1
        else:
            self.consecutive = 0

        gap_ok = self.last_event_time is None or timestamp - self.last_event_time >= self.event_gap
        if self.consecutive >= self.consecutive_required and gap_ok:
            self.count += 1
            self.consecutive = 0
            self.last_event_time = timestamp
            logger.debug("[YAWN] confirmed -> counter=%d combined=%.3f", self.count, combined_score)
            return True
        return False

    def take_alert(self):
        """True once the count reaches `events_for_alert`; the count then restarts at 0."""
        if self.count >= self.events_for_alert:
            self.count = 0
            return True
        return False


class LostFaceTracker:
    """Counts frames without a face and times how long the face has been gone."""

    def __init__(self, alert_after=LOST_FACE_ALERT_SECONDS):
        self.alert_after = alert_after
        self.reset()

    def reset(self):
        self.count = 0
        self.missing_since = None

    def on_missing(self, timestamp):
        """
        Record a frame without a face.

        Returns:
            Tuple of (seconds since the face went missing, alert flag)
        """
        if self.missing_since is None:
            self.missing_since = timestamp
        self.count += 1
        elapsed = max(0.0, timestamp - self.missing_since)
        return elapsed, elapsed >= self.alert_after

    def on_seen(self):
        self.missing_since = None

    def absent_for(self, timestamp):
        if self.missing_since is None:
            return 0.0
        return max(0.0, timestamp - self.missing_since)
