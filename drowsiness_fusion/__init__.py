"""
Driver Drowsiness Fusion Engine

Turns per-frame face detections and classifier outputs into a stable
drowsiness assessment:
- Region location (eye / mouth crops)
- Signal extraction (classifier + detector-native eye openness)
- EMA smoothing with stale-data decay
- Per-user threshold calibration
- Debounced eye, yawn and lost-face events
- Alert escalation with a cancellable countdown
"""

from .data_structures import (
    AlertKind,
    DebugInfo,
    DrowsinessState,
    FrameObservation,
    OverlayInfo,
    Point,
    Rect,
)
from .state_machine import DrowsinessStateMachine

__version__ = "1.0.0"

__all__ = [
    "AlertKind",
    "DebugInfo",
    "DrowsinessState",
    "DrowsinessStateMachine",
    "FrameObservation",
    "OverlayInfo",
    "Point",
    "Rect",
]
