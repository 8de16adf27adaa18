"""
Region Locator Module
Derives the eye and mouth sub-regions of a frame from the face box and landmarks
"""

from typing import NamedTuple, Tuple

from .config import (
    EYE_HALF_WIDTH_FACTOR,
    EYE_HALF_HEIGHT_FACTOR,
    EYE_MIN_HALF_WIDTH,
    EYE_MIN_HALF_HEIGHT,
    EYE_FALLBACK_HEIGHT_RATIO,
    MOUTH_SIDE_PADDING,
    MOUTH_MIN_SPAN,
    MOUTH_ABOVE_SPAN,
    MOUTH_BELOW_SPAN,
    MOUTH_FALLBACK_HEIGHT_RATIO,
    MIN_FACE_BOX_HEIGHT,
    PER_EYE_MIN_DISTANCE,
    PER_EYE_WIDTH_FACTOR,
    PER_EYE_HEIGHT_FACTOR,
    PER_EYE_MIN_WIDTH,
    PER_EYE_MIN_HEIGHT,
)
from .data_structures import FrameObservation, Rect


class FaceRegions(NamedTuple):
    """Regions located for one frame."""
    face: Rect
    eyes: Rect
    mouth: Rect
    per_eye: Tuple[Rect, ...]    # (left, right) crops; empty without eye landmarks


class RegionLocator:
    """
    Locates eye and mouth regions with geometric fallbacks.

    Never fails: every rectangle is clamped to the frame, and degenerate ones
    are left for the size checks downstream.
    """

    def locate(self, observation: FrameObservation, frame_width: int, frame_height: int) -> FaceRegions:
        face = observation.face_box.clamp(frame_width, frame_height)
        return FaceRegions(
            face=face,
            eyes=self.eye_region(observation, frame_width, frame_height),
            mouth=self.mouth_region(observation, frame_width, frame_height),
            per_eye=self.per_eye_crops(observation, frame_width, frame_height),
        )

    def eye_region(self, observation: FrameObservation, frame_width: int, frame_height: int) -> Rect:
        eyes = observation.eye_landmarks
        if eyes is not None:
            left_eye, right_eye = eyes
            cx = int((left_eye.x + right_eye.x) / 2.0)
            cy = int((left_eye.y + right_eye.y) / 2.0)
            eye_dist = abs(right_eye.x - left_eye.x)
            pad_x = max(int(eye_dist * EYE_HALF_WIDTH_FACTOR), EYE_MIN_HALF_WIDTH)
            pad_y = max(int(eye_dist * EYE_HALF_HEIGHT_FACTOR), EYE_MIN_HALF_HEIGHT)
            return Rect(cx - pad_x, cy - pad_y, cx + pad_x, cy + pad_y).clamp(frame_width, frame_height)

        face = observation.face_box.clamp(frame_width, frame_height)
        h = max(face.height, MIN_FACE_BOX_HEIGHT)
        band = Rect(face.left, face.top, face.right, face.top + int(h * EYE_FALLBACK_HEIGHT_RATIO))
        return band.clamp(frame_width, frame_height)

    def mouth_region(self, observation: FrameObservation, frame_width: int, frame_height: int) -> Rect:
        mouth = observation.mouth_landmarks
        if mouth is not None:
            mouth_left, mouth_right, mouth_bottom = mouth
            span = max(
                int(abs(mouth_right.y - mouth_left.y)),
                int(abs(mouth_bottom.y - mouth_left.y)),
                MOUTH_MIN_SPAN,
            )
            return Rect(
                int(mouth_left.x - MOUTH_SIDE_PADDING),
                int(mouth_bottom.y - span * MOUTH_ABOVE_SPAN),
                int(mouth_right.x + MOUTH_SIDE_PADDING),
                int(mouth_bottom.y + span * MOUTH_BELOW_SPAN),
            ).clamp(frame_width, frame_height)

        face = observation.face_box.clamp(frame_width, frame_height)
        h = max(face.height, MIN_FACE_BOX_HEIGHT)
        top = face.top + int(h * (1.0 - MOUTH_FALLBACK_HEIGHT_RATIO))
        return Rect(face.left, top, face.right, face.bottom).clamp(frame_width, frame_height)

    def per_eye_crops(self, observation: FrameObservation, frame_width: int, frame_height: int) -> Tuple[Rect, ...]:
        """One crop centred on each eye landmark, sized from the inter-eye distance."""
        eyes = observation.eye_landmarks
        if eyes is None:
            return ()

        left_eye, right_eye = eyes
        eye_dist = max(abs(right_eye.x - left_eye.x), PER_EYE_MIN_DISTANCE)
        crop_w = max(int(eye_dist * PER_EYE_WIDTH_FACTOR), PER_EYE_MIN_WIDTH)
        crop_h = max(int(crop_w * PER_EYE_HEIGHT_FACTOR), PER_EYE_MIN_HEIGHT)

        crops = []
        for eye in (left_eye, right_eye):
            crops.append(Rect(
                int(eye.x - crop_w / 2.0),
                int(eye.y - crop_h / 2.0),
                int(eye.x + crop_w / 2.0),
                int(eye.y + crop_h / 2.0),
            ).clamp(frame_width, frame_height))
        return tuple(crops)
