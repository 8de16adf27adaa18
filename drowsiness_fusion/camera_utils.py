"""
Camera Utilities Module
Camera opening with backend/index probing, and a single-slot buffer that
keeps only the freshest frame for the fusion loop
"""

import logging
import threading
import time

import cv2

from .config import (
    CAMERA_INDEX,
    CAMERA_BACKEND,
    CAMERA_PROBE_COUNT,
    FRAME_WIDTH,
    FRAME_HEIGHT,
    TARGET_FPS,
)

logger = logging.getLogger(__name__)


def _backend_candidates(backend=CAMERA_BACKEND):
    """Capture backends to try, None meaning OpenCV's default."""
    backend = str(backend).upper()
    if backend == "DSHOW" and hasattr(cv2, "CAP_DSHOW"):
        return [cv2.CAP_DSHOW]
    if backend == "MSMF" and hasattr(cv2, "CAP_MSMF"):
        return [cv2.CAP_MSMF]
    candidates = [getattr(cv2, name) for name in ("CAP_DSHOW", "CAP_MSMF") if hasattr(cv2, name)]
    candidates.append(None)
    return candidates


def _try_open(index, backend, warmup_reads=10):
    cap = cv2.VideoCapture(index, backend) if backend is not None else cv2.VideoCapture(index)
    if not cap.isOpened():
        cap.release()
        return None

    cap.set(cv2.CAP_PROP_FRAME_WIDTH, FRAME_WIDTH)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, FRAME_HEIGHT)
    cap.set(cv2.CAP_PROP_FPS, TARGET_FPS)

    for _ in range(warmup_reads):
        ret, _frame = cap.read()
        if ret:
            return cap
        time.sleep(0.05)
    cap.release()
    return None


def open_camera(index=CAMERA_INDEX, backend=CAMERA_BACKEND, probe_count=CAMERA_PROBE_COUNT):
    """
    Open a working capture device, probing backends and nearby indices.

    Returns:
        cv2.VideoCapture object

    Raises:
        RuntimeError: If no camera delivers frames
    """
    indices = [index] + [i for i in range(probe_count) if i != index]
    last_error = None
    for candidate in _backend_candidates(backend):
        for idx in indices:
            try:
                cap = _try_open(idx, candidate)
            except cv2.error as e:
                last_error = e
                continue
            if cap is not None:
                logger.info("Camera opened: index=%d, backend=%s", idx, "DEFAULT" if candidate is None else candidate)
                return cap

    msg = f"Could not read frames from any camera (tried indices {indices})"
    if last_error:
        msg += f"; last error: {last_error}"
    raise RuntimeError(msg)


class LatestFrameSlot:
    """
    Holds at most one frame. `put` overwrites, `take` waits for and removes it.

    Frames overwritten before being taken are counted in `dropped`.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._frame = None
        self._timestamp = None
        self._closed = False
        self.dropped = 0

    def put(self, frame, timestamp):
        with self._cond:
            if self._frame is not None:
                self.dropped += 1
            self._frame = frame
            self._timestamp = timestamp
            self._cond.notify()

    def take(self, timeout=None):
        """
        Returns:
            (frame, timestamp), or (None, None) on timeout or after close()
        """
        with self._cond:
            self._cond.wait_for(lambda: self._frame is not None or self._closed, timeout=timeout)
            frame, timestamp = self._frame, self._timestamp
            self._frame = None
            self._timestamp = None
            return frame, timestamp

    def close(self):
        with self._cond:
            self._closed = True
            self._cond.notify_all()
