"""
Classifier Contract Module
Interface to the external eye/yawn image classifier, plus crop preparation
and failure-tolerant invocation
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional, Protocol, Sequence, Tuple

import cv2
import numpy as np

from .config import CLASSIFIER_TIMEOUT_SECONDS
from .data_structures import Rect

logger = logging.getLogger(__name__)


class Classifier(Protocol):
    """
    Externally maintained image classifier.

    `classify` receives an RGB image already resized to `input_size`
    (width, height) and returns a probability vector of length `num_classes`.
    Index 0 is the closed-eye probability; the yawn index is fixed by the model.
    """

    input_size: Tuple[int, int]
    num_classes: int

    def classify(self, image: np.ndarray) -> Sequence[float]:
        ...

    def close(self) -> None:
        ...


def prepare_crop(frame: np.ndarray, region: Rect, input_size: Tuple[int, int]) -> Optional[np.ndarray]:
    """
    Cut `region` out of `frame` and resize it to the classifier input size.

    Args:
        frame: HxWxC image (RGB)
        region: Rectangle already clamped to the frame
        input_size: (width, height) expected by the classifier

    Returns:
        Resized crop, or None if the region is empty
    """
    if region.width <= 0 or region.height <= 0:
        return None
    crop = frame[region.top:region.bottom, region.left:region.right]
    if crop.size == 0:
        return None
    return cv2.resize(crop, tuple(input_size), interpolation=cv2.INTER_LINEAR)


def classify_safely(classifier: Classifier, image: np.ndarray) -> np.ndarray:
    """
    Run the classifier, substituting an all-zero vector on any failure.

    The result always has exactly `classifier.num_classes` entries.
    """
    num_classes = int(classifier.num_classes)
    try:
        raw = np.asarray(classifier.classify(image), dtype=np.float32).ravel()
    except Exception as e:
        logger.warning("Classification failed, using zero vector: %s", e)
        return np.zeros(num_classes, dtype=np.float32)

    probs = np.zeros(num_classes, dtype=np.float32)
    n = min(num_classes, raw.size)
    probs[:n] = raw[:n]
    return probs


class SingleWorkerClassifier:
    """
    Runs an inner classifier on one dedicated worker thread.

    At most one call is in flight. A call that does not finish within
    `timeout` is cancelled if it has not started and raises; while it keeps
    running, further calls are refused instead of queued behind it.
    `classify_safely` turns both cases into a zero vector.
    """

    def __init__(self, inner: Classifier, timeout: float = CLASSIFIER_TIMEOUT_SECONDS):
        self.inner = inner
        self.timeout = timeout
        self.input_size = inner.input_size
        self.num_classes = inner.num_classes
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="classifier")
        self._lock = threading.Lock()
        self._in_flight: Optional[Future] = None

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._in_flight is not None and not self._in_flight.done()

    def classify(self, image: np.ndarray) -> Sequence[float]:
        with self._lock:
            if self._in_flight is not None and not self._in_flight.done():
                raise RuntimeError("classifier still busy with a previous frame")
            future = self._executor.submit(self.inner.classify, image)
            self._in_flight = future
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError:
            future.cancel()
            raise

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        self.inner.close()
