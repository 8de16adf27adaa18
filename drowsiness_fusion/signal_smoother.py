"""
Signal Smoothing Module
Exponential moving averages for the eye-closure and yawn signals, with
stale-input decay for the sparsely sampled mouth signal
"""

import math
from typing import Optional

from .config import (
    EYE_EMA_ALPHA,
    MOUTH_EMA_ALPHA,
    MOUTH_MIN_RAW_SIGNAL,
    MOUTH_DECAY_FACTOR,
    MOUTH_STALE_SECONDS,
    EMA_ZERO_SNAP,
    FACE_LOST_RESET_SECONDS,
)


class SmoothedSignal:
    """
    One EMA-smoothed signal.

    update: ema <- alpha * raw + (1 - alpha) * ema
    decay:  ema <- ema * decay_factor ** steps, snapped to 0 below `zero_snap`
    """

    def __init__(self, alpha, stale_after=math.inf, decay_factor=1.0, zero_snap=0.0):
        if not 0.0 < alpha <= 1.0:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        self.alpha = alpha
        self.stale_after = stale_after
        self.decay_factor = decay_factor
        self.zero_snap = zero_snap
        self.reset()

    def reset(self):
        """Forget all history."""
        self.ema = 0.0
        self.last_raw = 0.0
        self.last_update: Optional[float] = None

    def update(self, raw, timestamp):
        self.last_raw = raw
        self.ema = self.alpha * raw + (1.0 - self.alpha) * self.ema
        self.last_update = timestamp
        return self.ema

    def decay(self, steps=1):
        self.ema *= self.decay_factor ** steps
        if self.ema < self.zero_snap:
            self.ema = 0.0
        return self.ema

    def age(self, timestamp):
        """Seconds since the last raw input (infinite if there never was one)."""
        if self.last_update is None:
            return math.inf
        return max(0.0, timestamp - self.last_update)

    def is_stale(self, timestamp):
        return self.age(timestamp) > self.stale_after


class SignalSmoother:
    """
    Owns the eye and mouth EMAs.

    The eye signal is updated on every frame that produced one. The mouth
    signal only gets new input on inference frames: weak raw values decay it
    twice, and on other frames it decays once when the last inference is stale.
    """

    def __init__(
        self,
        eye_alpha=EYE_EMA_ALPHA,
        mouth_alpha=MOUTH_EMA_ALPHA,
        mouth_min_raw=MOUTH_MIN_RAW_SIGNAL,
        mouth_decay=MOUTH_DECAY_FACTOR,
        mouth_stale_after=MOUTH_STALE_SECONDS,
        zero_snap=EMA_ZERO_SNAP,
        face_lost_reset_after=FACE_LOST_RESET_SECONDS,
    ):
        self.eye = SmoothedSignal(eye_alpha)
        self.mouth = SmoothedSignal(
            mouth_alpha,
            stale_after=mouth_stale_after,
            decay_factor=mouth_decay,
            zero_snap=zero_snap,
        )
        self.mouth_min_raw = mouth_min_raw
        self.face_lost_reset_after = face_lost_reset_after

    @property
    def eye_ema(self):
        return self.eye.ema

    @property
    def mouth_ema(self):
        return self.mouth.ema

    def update_eye(self, closed_prob, timestamp):
        if closed_prob is not None:
            self.eye.update(closed_prob, timestamp)
        return self.eye.ema

    def update_mouth(self, yawn_prob, timestamp):
        """
        Args:
            yawn_prob: Raw yawn probability, or None when the mouth was not classified
            timestamp: Current timestamp (seconds)
        """
        if yawn_prob is None:
            self._decay_if_stale(timestamp)
            return self.mouth.ema

        if yawn_prob >= self.mouth_min_raw:
            self.mouth.update(yawn_prob, timestamp)
        else:
            # Near-zero raw output: decay faster instead of averaging noise in
            self.mouth.last_raw = yawn_prob
            self.mouth.last_update = timestamp
            self.mouth.decay(steps=2)
        return self.mouth.ema

    def on_face_missing(self, absent_for, timestamp):
        """Called on frames without a usable face; `absent_for` is seconds since loss."""
        self._decay_if_stale(timestamp)
        if absent_for > self.face_lost_reset_after:
            self.reset()

    def reset(self):
        self.eye.reset()
        self.mouth.reset()

    def _decay_if_stale(self, timestamp):
        if self.mouth.is_stale(timestamp):
            self.mouth.decay()
