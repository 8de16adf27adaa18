"""
Shared builders for the fusion engine tests: synthetic frames, detector
observations and a scripted classifier. No camera or model needed.
"""

import numpy as np

from drowsiness_fusion.data_structures import FrameObservation, Point, Rect

FRAME_W = 640
FRAME_H = 480
FPS = 30.0


def make_frame(height=FRAME_H, width=FRAME_W):
    """Create a mid-grey RGB frame."""
    return np.full((height, width, 3), 128, dtype=np.uint8)


def make_observation(
    face=Rect(200, 100, 400, 340),
    eyes=((260.0, 180.0), (340.0, 180.0)),
    mouth=((260.0, 290.0), (340.0, 290.0), (300.0, 300.0)),
    open_probs=(None, None),
):
    """
    Create a detector observation for a frontal 200x240 face.

    Pass `eyes=None` / `mouth=None` to drop the landmarks.
    """
    left_eye = right_eye = None
    if eyes is not None:
        left_eye, right_eye = (Point(*xy) for xy in eyes)
    mouth_left = mouth_right = mouth_bottom = None
    if mouth is not None:
        mouth_left, mouth_right, mouth_bottom = (Point(*xy) for xy in mouth)
    return FrameObservation(
        face_box=face,
        left_eye=left_eye,
        right_eye=right_eye,
        mouth_left=mouth_left,
        mouth_right=mouth_right,
        mouth_bottom=mouth_bottom,
        left_eye_open_prob=open_probs[0],
        right_eye_open_prob=open_probs[1],
    )


class StubClassifier:
    """
    Classifier returning scripted probability vectors.

    `outputs` is either one vector returned on every call, or a list consumed
    call by call (the last entry repeats). An Exception instance is raised.
    """

    def __init__(self, outputs, num_classes=4, input_size=(24, 24)):
        self.outputs = outputs
        self.num_classes = num_classes
        self.input_size = input_size
        self.calls = []
        self.closed = False

    def classify(self, image):
        self.calls.append(image.shape)
        if isinstance(self.outputs, list):
            out = self.outputs[min(len(self.calls) - 1, len(self.outputs) - 1)]
        else:
            out = self.outputs
        if isinstance(out, Exception):
            raise out
        return out

    def close(self):
        self.closed = True
