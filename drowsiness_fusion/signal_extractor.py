"""
Signal Extraction Module
Turns one frame's regions into raw per-frame scalar signals:
- closed-eye probability from the classifier (per-eye crops averaged)
- yawn probability from the classifier (mouth crop, every Nth frame only)
- closed-eye estimate from the detector's own eye-openness probabilities
"""

import logging
from typing import NamedTuple, Optional

import numpy as np

from .classifier import Classifier, classify_safely, prepare_crop
from .config import (
    EYE_CLASS_INDEX,
    YAWN_CLASS_INDEX,
    MIN_EYE_CROP_SIDE,
    MOUTH_CLASSIFY_EVERY_N,
    MIN_MOUTH_CROP_WIDTH,
    MIN_MOUTH_CROP_HEIGHT,
    MIN_FACE_SIDE_FOR_MOUTH,
)
from .data_structures import FrameObservation
from .region_locator import FaceRegions

logger = logging.getLogger(__name__)


class RawSignals(NamedTuple):
    """
    Raw signals for one frame.

    None means "not measured this frame", which is different from zero.
    """
    closed_prob: Optional[float]
    yawn_prob: Optional[float]
    detector_closed: Optional[float]


def _unit(value: float) -> float:
    return float(min(max(value, 0.0), 1.0))


def _pick(probs, index):
    return _unit(probs[index]) if index < len(probs) else 0.0


def detector_closed_estimate(observation: FrameObservation) -> Optional[float]:
    """1 - mean(eye openness) when the detector reported both eyes, else None."""
    left = observation.left_eye_open_prob
    right = observation.right_eye_open_prob
    if left is None or right is None:
        return None
    return _unit(1.0 - (left + right) / 2.0)


class SignalExtractor:
    """
    Invokes the classifier on cropped regions and reads detector-native signals.

    Works without a classifier: the classifier-driven signals are then
    reported as unavailable and only the detector estimate is produced.
    """

    def __init__(
        self,
        classifier: Optional[Classifier] = None,
        mouth_classify_every: int = MOUTH_CLASSIFY_EVERY_N,
        eye_class_index: int = EYE_CLASS_INDEX,
        yawn_class_index: int = YAWN_CLASS_INDEX,
    ):
        self.classifier = classifier
        self.mouth_classify_every = max(1, int(mouth_classify_every))
        self.eye_class_index = eye_class_index
        self.yawn_class_index = yawn_class_index

    def extract(self, frame: np.ndarray, observation: FrameObservation,
                regions: FaceRegions, frame_index: int) -> RawSignals:
        closed_prob = None
        yawn_prob = None
        if self.classifier is not None:
            eye_probs = self._classify_eyes(frame, regions)
            if eye_probs is not None:
                closed_prob = _pick(eye_probs, self.eye_class_index)
            if self.should_classify_mouth(regions, frame_index):
                mouth_probs = self._classify_region(frame, regions.mouth)
                if mouth_probs is not None:
                    yawn_prob = _pick(mouth_probs, self.yawn_class_index)
                    logger.debug("mouth probs=%s", np.round(mouth_probs, 3).tolist())

        return RawSignals(closed_prob, yawn_prob, detector_closed_estimate(observation))

    def should_classify_mouth(self, regions: FaceRegions, frame_index: int) -> bool:
        """Mouth inference runs on cadence frames, for large enough crops and faces."""
        if frame_index % self.mouth_classify_every != 0:
            return False
        if not regions.mouth.is_larger_than(MIN_MOUTH_CROP_WIDTH, MIN_MOUTH_CROP_HEIGHT):
            return False
        face = regions.face
        return face.height >= MIN_FACE_SIDE_FOR_MOUTH or face.width >= MIN_FACE_SIDE_FOR_MOUTH

    def _classify_eyes(self, frame, regions):
        # Per-eye crops first, merged region as fallback
        usable = [r for r in regions.per_eye if r.is_larger_than(MIN_EYE_CROP_SIDE, MIN_EYE_CROP_SIDE)]
        vectors = []
        for region in usable:
            probs = self._classify_region(frame, region)
            if probs is not None:
                vectors.append(probs)
        if vectors:
            return np.mean(vectors, axis=0)
        return self._classify_region(frame, regions.eyes)

    def _classify_region(self, frame, region):
        crop = prepare_crop(frame, region, self.classifier.input_size)
        if crop is None:
            return None
        return classify_safely(self.classifier, crop)
