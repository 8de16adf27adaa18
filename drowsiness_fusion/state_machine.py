"""
Drowsiness State Machine Module
Top-level fusion engine: runs region location, signal extraction, smoothing,
calibration and event confirmation once per frame and publishes an immutable
DrowsinessState snapshot.
"""

import dataclasses
import logging
import threading
import time
from typing import Optional, Protocol

import numpy as np

from .calibrator import Calibrator
from .classifier import Classifier
from .config import (
    EYE_THRESHOLD,
    YAWN_THRESHOLD,
    CALIBRATE_ON_START,
    CALIBRATION_FRAMES,
    EYE_CLOSED_SECONDS,
    MOUTH_CLASSIFY_EVERY_N,
    LOST_FACE_ALERT_SECONDS,
    MIN_FACE_AREA,
    WARMUP_FRAMES,
    MOUTH_ASPECT_DIVISOR,
)
from .data_structures import DebugInfo, DrowsinessState, FrameObservation, OverlayInfo
from .event_confirmer import (
    EyeClosureConfirmer,
    LostFaceTracker,
    YawnConfirmer,
    combine_eye_scores,
    combine_yawn_scores,
    mouth_aspect_score,
)
from .region_locator import RegionLocator
from .signal_extractor import SignalExtractor
from .signal_smoother import SignalSmoother

logger = logging.getLogger(__name__)


class FaceLandmarkDetector(Protocol):
    """External face detector: returns the first face of a frame as an observation."""

    def detect(self, frame: np.ndarray) -> FrameObservation:
        ...


def _check_unit(name, value):
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")
    return float(value)


class DrowsinessStateMachine:
    """
    Fuses per-frame face observations into a drowsiness assessment.

    One frame is fused at a time; the published `state`, `overlay` and `debug`
    snapshots are replaced wholesale and may be read from any thread.

    Alert channels:
    - eyes: combined closed-eye score above threshold for `eye_closed_seconds`
    - yawn: `YAWN_EVENTS_FOR_ALERT` confirmed yawns (counter then restarts)
    - lost: no face for `lost_face_alert_seconds`
    """

    def __init__(
        self,
        classifier: Optional[Classifier] = None,
        eye_threshold=EYE_THRESHOLD,
        yawn_threshold=YAWN_THRESHOLD,
        calibrate_on_start=CALIBRATE_ON_START,
        calibration_frames=CALIBRATION_FRAMES,
        eye_closed_seconds=EYE_CLOSED_SECONDS,
        mouth_classify_every=MOUTH_CLASSIFY_EVERY_N,
        lost_face_alert_seconds=LOST_FACE_ALERT_SECONDS,
        min_face_area=MIN_FACE_AREA,
        warmup_frames=WARMUP_FRAMES,
        mouth_aspect_divisor=MOUTH_ASPECT_DIVISOR,
        verbose=False,
        clock=time.monotonic,
    ):
        self.classifier = classifier
        self.calibrate_on_start = calibrate_on_start
        self.min_face_area = min_face_area
        self.warmup_frames = warmup_frames
        self.mouth_aspect_divisor = mouth_aspect_divisor
        self.verbose = verbose
        self.clock = clock

        self.locator = RegionLocator()
        self.extractor = SignalExtractor(classifier, mouth_classify_every=mouth_classify_every)
        self.smoother = SignalSmoother()
        self.calibrator = Calibrator(calibration_frames, active=calibrate_on_start)
        self.eye_confirmer = EyeClosureConfirmer(_check_unit("eye_threshold", eye_threshold), eye_closed_seconds)
        self.yawn_confirmer = YawnConfirmer(_check_unit("yawn_threshold", yawn_threshold))
        self.lost_face = LostFaceTracker(lost_face_alert_seconds)

        self._lock = threading.Lock()
        self._frame_count = 0
        self._state = DrowsinessState()
        self._overlay: Optional[OverlayInfo] = None
        self._debug: Optional[DebugInfo] = None

    # ── Public read API ───────────────────────────────────────────────────────

    @property
    def state(self) -> DrowsinessState:
        return self._state

    @property
    def overlay(self) -> Optional[OverlayInfo]:
        return self._overlay

    @property
    def debug(self) -> Optional[DebugInfo]:
        return self._debug

    @property
    def eye_threshold(self):
        return self.eye_confirmer.threshold

    @property
    def yawn_threshold(self):
        return self.yawn_confirmer.threshold

    @property
    def eye_closed_seconds(self):
        return self.eye_confirmer.closed_seconds

    @property
    def mouth_classify_every(self):
        return self.extractor.mouth_classify_every

    @property
    def frame_count(self):
        return self._frame_count

    @property
    def calibrating(self):
        return self.calibrator.active

    # ── Control API ───────────────────────────────────────────────────────────

    def set_eye_threshold(self, value):
        with self._lock:
            self.eye_confirmer.threshold = _check_unit("eye threshold", value)

    def set_yawn_threshold(self, value):
        with self._lock:
            self.yawn_confirmer.threshold = _check_unit("yawn threshold", value)

    def set_eye_closed_seconds(self, seconds):
        if seconds < 0:
            raise ValueError(f"closed duration must be >= 0, got {seconds}")
        with self._lock:
            self.eye_confirmer.closed_seconds = float(seconds)

    def set_mouth_classify_every(self, n):
        with self._lock:
            self.extractor.mouth_classify_every = max(1, int(n))

    def start_calibration(self):
        """Restart calibration and clear every accumulated counter and timer."""
        with self._lock:
            self._clear_temporal_state()
            self.calibrator.start()
            self._state = DrowsinessState()

    def reset(self):
        """Full reset: temporal state, frame counter, published snapshots."""
        with self._lock:
            self._clear_temporal_state()
            self._frame_count = 0
            if self.calibrate_on_start:
                self.calibrator.start()
            else:
                self.calibrator.cancel()
            self._state = DrowsinessState()
            self._overlay = None
            self._debug = None
            logger.info("Internal state RESET")

    def close(self):
        """Release the classifier."""
        if self.classifier is None:
            return
        try:
            self.classifier.close()
        except Exception as e:
            logger.warning("Error closing classifier: %s", e)

    # ── Frame processing ──────────────────────────────────────────────────────

    def process(self, frame: np.ndarray, detector: FaceLandmarkDetector, timestamp=None) -> DrowsinessState:
        """
        Detect the face in `frame` and fuse the result.

        A detector failure is logged and the frame is skipped without
        touching any state.
        """
        try:
            observation = detector.detect(frame)
        except Exception as e:
            logger.warning("Face detection failed: %s", e)
            return self._state
        return self.process_frame(observation, frame, timestamp)

    def process_frame(self, observation: FrameObservation, frame: np.ndarray, timestamp=None) -> DrowsinessState:
        """
        Fuse one detector observation.

        Args:
            observation: Detector output for this frame
            frame: HxWxC RGB image the observation refers to
            timestamp: Monotonic seconds; defaults to the engine clock

        Returns:
            The newly published DrowsinessState
        """
        now = self.clock() if timestamp is None else timestamp
        with self._lock:
            self._frame_count += 1
            if observation.has_face:
                self._handle_face(observation, frame, now)
            else:
                self._handle_no_face(now)
            return self._state

    def _handle_no_face(self, now):
        was_alert = self._state.is_lost_face_alert
        elapsed, alert = self.lost_face.on_missing(now)
        self.smoother.on_face_missing(elapsed, now)
        self.yawn_confirmer.consecutive = 0
        self.eye_confirmer.reset()

        self._state = dataclasses.replace(
            self._state,
            lost_face_count=self.lost_face.count,
            is_eye_alert=False,
            is_yawn_alert=False,
            is_lost_face_alert=alert,
        )
        self._overlay = None
        self._debug = None

        if alert and not was_alert:
            logger.info("[LOST FACE] no face for %.1fs", elapsed)
        elif self.verbose:
            logger.debug("No face for %.3fs. alert=%s", elapsed, alert)

    def _handle_face(self, observation, frame, now):
        self.lost_face.on_seen()

        face_box = observation.face_box
        if face_box.area < self.min_face_area:
            # Too small to score, but not lost either
            if self.verbose:
                logger.debug("Face too small: area=%d", face_box.area)
            self._overlay = None
            self._state = dataclasses.replace(self._state, is_lost_face_alert=False)
            return

        frame_h, frame_w = frame.shape[:2]
        regions = self.locator.locate(observation, frame_w, frame_h)
        raw = self.extractor.extract(frame, observation, regions, self._frame_count)

        eye_ema = self.smoother.update_eye(raw.closed_prob, now)
        mouth_ema = self.smoother.update_mouth(raw.yawn_prob, now)
        aspect = mouth_aspect_score(regions.mouth.height, face_box.height, self.mouth_aspect_divisor)
        combined_yawn = combine_yawn_scores(mouth_ema, aspect)

        if self.calibrator.active:
            sample = raw.closed_prob if raw.closed_prob is not None else raw.detector_closed
            result = self.calibrator.add_sample(sample, combined_yawn, self.yawn_confirmer.threshold)
            if result is not None:
                self.eye_confirmer.threshold = result.eye_threshold
                self.yawn_confirmer.threshold = result.yawn_threshold

        eye_score = combine_eye_scores(eye_ema, raw.detector_closed)
        eye_alert = self.eye_confirmer.update(eye_score, now)

        yawn_alert = False
        if self._frame_count > self.warmup_frames:
            if self.yawn_confirmer.update(combined_yawn, regions.mouth.width, face_box.width, now):
                logger.info("[YAWN] confirmed -> counter=%d combined=%.3f mouthEma=%.3f",
                            self.yawn_confirmer.count, combined_yawn, mouth_ema)
            yawn_alert = self.yawn_confirmer.take_alert()

        self._state = DrowsinessState(
            eye_score=eye_score,
            yawn_count=self.yawn_confirmer.count,
            lost_face_count=self.lost_face.count,
            is_eye_alert=eye_alert,
            is_yawn_alert=yawn_alert,
            is_lost_face_alert=False,
        )
        self._publish_snapshots(observation, regions, raw, combined_yawn, frame_w, frame_h, now)

        if self.verbose:
            logger.debug(
                "closedProb=%s eyeEma=%.3f detectorClosed=%s eyeScore=%.3f mouthEma=%.3f aspect=%.3f combined=%.3f",
                raw.closed_prob, eye_ema, raw.detector_closed, eye_score, mouth_ema, aspect, combined_yawn,
            )

    def _publish_snapshots(self, observation, regions, raw, combined_yawn, frame_w, frame_h, now):
        face_n = regions.face.normalized(frame_w, frame_h)
        eyes_n = regions.eyes.normalized(frame_w, frame_h)
        mouth_n = regions.mouth.normalized(frame_w, frame_h)
        closed_prob = raw.closed_prob if raw.closed_prob is not None else 0.0
        mouth = self.smoother.mouth

        self._overlay = OverlayInfo(
            face=face_n,
            eyes=eyes_n,
            mouth=mouth_n,
            closed_prob=closed_prob,
            detector_left_open=max(observation.left_eye_open_prob or 0.0, 0.0),
            detector_right_open=max(observation.right_eye_open_prob or 0.0, 0.0),
            yawn_prob=mouth.ema,
        )
        age = mouth.age(now)
        self._debug = DebugInfo(
            face=face_n,
            eyes=eyes_n,
            mouth=mouth_n,
            closed_prob=closed_prob,
            yawn_prob=mouth.ema,
            detector_closed=raw.detector_closed,
            combined_yawn_score=combined_yawn,
            eye_ema=self.smoother.eye_ema,
            mouth_ema=mouth.ema,
            mouth_raw_last=mouth.last_raw,
            mouth_age_seconds=None if age == float("inf") else age,
        )

    def _clear_temporal_state(self):
        self.smoother.reset()
        self.eye_confirmer.reset()
        self.yawn_confirmer.reset()
        self.lost_face.reset()
