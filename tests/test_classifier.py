"""
Worker Classifier Tests
SingleWorkerClassifier timeouts, refusal while a slow call is still running,
and recovery once the worker frees up.
"""

import threading
import time

import numpy as np
import pytest

from drowsiness_fusion.classifier import SingleWorkerClassifier, classify_safely

from helpers import StubClassifier


class _GatedClassifier:
    """Blocks every call until `gate` is set."""

    input_size = (24, 24)
    num_classes = 4

    def __init__(self):
        self.gate = threading.Event()
        self.calls = 0
        self.closed = False

    def classify(self, image):
        self.calls += 1
        self.gate.wait(timeout=5.0)
        return (0.0, 0.0, 0.0, 1.0)

    def close(self):
        self.closed = True


def _wait_idle(worker, timeout=2.0):
    deadline = time.monotonic() + timeout
    while worker.busy and time.monotonic() < deadline:
        time.sleep(0.01)
    return not worker.busy


IMAGE = np.zeros((24, 24), dtype=np.float32)


# ─── Passthrough ──────────────────────────────────────────────

def test_worker_returns_inner_result():
    inner = StubClassifier((0.1, 0.2, 0.3, 0.4))
    worker = SingleWorkerClassifier(inner, timeout=1.0)

    assert worker.input_size == (24, 24)
    assert worker.num_classes == 4
    assert list(worker.classify(IMAGE)) == pytest.approx([0.1, 0.2, 0.3, 0.4])

    worker.close()
    assert inner.closed


# ─── Slow inner classifier ────────────────────────────────────

def test_timeout_yields_zero_vector():
    inner = _GatedClassifier()
    worker = SingleWorkerClassifier(inner, timeout=0.05)

    probs = classify_safely(worker, IMAGE)
    assert probs.tolist() == [0.0, 0.0, 0.0, 0.0]
    assert worker.busy

    inner.gate.set()
    worker.close()


def test_calls_refused_while_previous_still_running():
    inner = _GatedClassifier()
    worker = SingleWorkerClassifier(inner, timeout=0.05)

    classify_safely(worker, IMAGE)
    for _ in range(5):
        assert classify_safely(worker, IMAGE).tolist() == [0.0, 0.0, 0.0, 0.0]
    assert inner.calls == 1

    inner.gate.set()
    worker.close()


def test_worker_recovers_after_slow_call_finishes():
    inner = _GatedClassifier()
    worker = SingleWorkerClassifier(inner, timeout=0.05)
    classify_safely(worker, IMAGE)

    inner.gate.set()
    assert _wait_idle(worker)

    probs = classify_safely(worker, IMAGE)
    assert probs.tolist() == pytest.approx([0.0, 0.0, 0.0, 1.0])
    assert inner.calls == 2
    worker.close()
