"""
Face Detection Module
MediaPipe Face Mesh adapter producing one FrameObservation per frame
"""

import mediapipe as mp
import numpy as np

from .data_structures import FrameObservation, Point, Rect
from .ear_detector import calculate_ear, ear_to_open_probability

mp_face_mesh = mp.solutions.face_mesh


class FaceDetector:
    """
    MediaPipe Face Mesh detector for the face box, eye and mouth landmarks.

    Face Mesh has no eye-openness classifier, so per-eye openness is derived
    from the Eye Aspect Ratio of the eye contour.
    """

    # MediaPipe Face Mesh landmark indices (image-left eye first)
    LEFT_EYE_INDICES = [33, 160, 158, 133, 153, 144]
    RIGHT_EYE_INDICES = [362, 385, 387, 263, 373, 380]

    # 61: left mouth corner, 291: right mouth corner, 17: bottom of the lower lip
    MOUTH_LEFT = 61
    MOUTH_RIGHT = 291
    MOUTH_BOTTOM = 17

    def __init__(self, min_detection_confidence=0.5, min_tracking_confidence=0.5):
        self.face_mesh = mp_face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=1,
            refine_landmarks=True,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def detect(self, frame):
        """
        Detect the first face in an RGB frame.

        Args:
            frame: RGB image frame (H, W, 3)

        Returns:
            FrameObservation; `face_box` is None when no face was found
        """
        results = self.face_mesh.process(frame)
        if not results.multi_face_landmarks:
            return FrameObservation()
        return self.to_observation(results.multi_face_landmarks[0], frame.shape)

    def to_observation(self, face_landmarks, frame_shape):
        h, w = frame_shape[:2]
        pts = np.array([(lm.x * w, lm.y * h) for lm in face_landmarks.landmark], dtype=np.float32)

        x_min, y_min = pts.min(axis=0)
        x_max, y_max = pts.max(axis=0)
        face_box = Rect(int(x_min), int(y_min), int(np.ceil(x_max)), int(np.ceil(y_max)))

        left_eye = pts[self.LEFT_EYE_INDICES]
        right_eye = pts[self.RIGHT_EYE_INDICES]

        return FrameObservation(
            face_box=face_box,
            left_eye=self._point(left_eye.mean(axis=0)),
            right_eye=self._point(right_eye.mean(axis=0)),
            mouth_left=self._point(pts[self.MOUTH_LEFT]),
            mouth_right=self._point(pts[self.MOUTH_RIGHT]),
            mouth_bottom=self._point(pts[self.MOUTH_BOTTOM]),
            left_eye_open_prob=ear_to_open_probability(calculate_ear(left_eye.tolist())),
            right_eye_open_prob=ear_to_open_probability(calculate_ear(right_eye.tolist())),
        )

    def close(self):
        self.face_mesh.close()

    @staticmethod
    def _point(xy):
        return Point(float(xy[0]), float(xy[1]))
