"""
Data Structures Module
Shared value types that flow between the fusion modules.

Everything here is immutable: a new snapshot replaces the old one after each
frame, so readers on other threads never observe a half-updated value.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class AlertKind(str, Enum):
    """Alert channels, in escalation priority order."""
    EYES = "eyes"
    YAWN = "yawn"
    LOST = "lost"


# ── Geometry ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Point:
    """A 2-D position in frame pixel coordinates."""
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned rectangle in frame pixel coordinates.

    `right` and `bottom` are exclusive, so width = right - left.
    """
    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)

    def clamp(self, frame_width: int, frame_height: int) -> "Rect":
        """Clamp every edge into [0, frame size]."""
        return Rect(
            min(max(self.left, 0), frame_width),
            min(max(self.top, 0), frame_height),
            min(max(self.right, 0), frame_width),
            min(max(self.bottom, 0), frame_height),
        )

    def is_larger_than(self, min_width: int, min_height: int) -> bool:
        return self.width > min_width and self.height > min_height

    def normalized(self, frame_width: int, frame_height: int) -> Tuple[float, float, float, float]:
        """Return (left, top, right, bottom) scaled into [0, 1]."""
        bw = float(max(frame_width, 1))
        bh = float(max(frame_height, 1))

        def _unit(v):
            return min(max(v, 0.0), 1.0)

        return (
            _unit(self.left / bw),
            _unit(self.top / bh),
            _unit(self.right / bw),
            _unit(self.bottom / bh),
        )


# ── Detector output ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FrameObservation:
    """
    One face-detector result for one frame.

    `face_box` is None when no face was found. Landmarks and per-eye openness
    probabilities are individually optional.
    """
    face_box: Optional[Rect] = None
    left_eye: Optional[Point] = None
    right_eye: Optional[Point] = None
    mouth_left: Optional[Point] = None
    mouth_right: Optional[Point] = None
    mouth_bottom: Optional[Point] = None
    left_eye_open_prob: Optional[float] = None
    right_eye_open_prob: Optional[float] = None

    @property
    def has_face(self) -> bool:
        return self.face_box is not None

    @property
    def eye_landmarks(self) -> Optional[Tuple[Point, Point]]:
        """(left, right) when both eye landmarks are present, else None."""
        if self.left_eye is None or self.right_eye is None:
            return None
        return self.left_eye, self.right_eye

    @property
    def mouth_landmarks(self) -> Optional[Tuple[Point, Point, Point]]:
        """(left, right, bottom) when all three mouth landmarks are present, else None."""
        if self.mouth_left is None or self.mouth_right is None or self.mouth_bottom is None:
            return None
        return self.mouth_left, self.mouth_right, self.mouth_bottom


# ── Published snapshots ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class DrowsinessState:
    """Public drowsiness assessment, replaced wholesale after every frame."""
    eye_score: float = 0.0
    yawn_count: int = 0
    lost_face_count: int = 0
    is_eye_alert: bool = False
    is_yawn_alert: bool = False
    is_lost_face_alert: bool = False

    def active_alerts(self) -> Tuple[AlertKind, ...]:
        """Raised alert flags in priority order (eyes > yawn > lost)."""
        flags = (
            (AlertKind.EYES, self.is_eye_alert),
            (AlertKind.YAWN, self.is_yawn_alert),
            (AlertKind.LOST, self.is_lost_face_alert),
        )
        return tuple(kind for kind, raised in flags if raised)


@dataclass(frozen=True)
class OverlayInfo:
    """Normalized region rectangles plus current scores, for visualization."""
    face: Tuple[float, float, float, float]
    eyes: Tuple[float, float, float, float]
    mouth: Tuple[float, float, float, float]
    closed_prob: float
    detector_left_open: float
    detector_right_open: float
    yawn_prob: float


@dataclass(frozen=True)
class DebugInfo:
    """Verbose per-frame diagnostics."""
    face: Tuple[float, float, float, float]
    eyes: Tuple[float, float, float, float]
    mouth: Tuple[float, float, float, float]
    closed_prob: float
    yawn_prob: float
    detector_closed: Optional[float]
    combined_yawn_score: float
    eye_ema: float
    mouth_ema: float
    mouth_raw_last: float
    mouth_age_seconds: Optional[float]
