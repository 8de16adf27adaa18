"""
Alert Escalation Module
Turns a raised alert flag into one outbound dispatch after a cancellable countdown.

States: IDLE -> PENDING(kind) -> DISPATCHED | CANCELLED -> IDLE
"""

import logging
import threading
import time
from enum import Enum
from typing import Optional

from .alerter import AlertDispatcher
from .config import ESCALATION_COUNTDOWN_SECONDS
from .data_structures import AlertKind, DrowsinessState

logger = logging.getLogger(__name__)


class EscalationState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    DISPATCHED = "dispatched"
    CANCELLED = "cancelled"


class AlertEscalator:
    """
    Watches published DrowsinessState snapshots and escalates alerts.

    A raised flag starts a countdown once per raised period, so a sustained
    condition is dispatched (or cancelled) once and needs a false->true
    transition to escalate again. At most one countdown exists at a time; a
    flag raised meanwhile waits until the escalator is idle again.

    With `threaded=True` expiry fires from a threading.Timer. With
    `threaded=False` the caller drives expiry by calling `tick()`.
    """

    def __init__(
        self,
        dispatcher: AlertDispatcher,
        countdown_seconds=ESCALATION_COUNTDOWN_SECONDS,
        threaded=True,
        clock=time.monotonic,
    ):
        self.dispatcher = dispatcher
        self.countdown_seconds = countdown_seconds
        self.threaded = threaded
        self.clock = clock

        self._lock = threading.Lock()
        self._pending: Optional[AlertKind] = None
        self._started_at = None
        self._token = 0
        self._timer: Optional[threading.Timer] = None
        self._escalated = set()

        self.last_outcome = EscalationState.IDLE
        self.dispatch_count = 0

    @property
    def state(self) -> EscalationState:
        return EscalationState.PENDING if self._pending is not None else EscalationState.IDLE

    @property
    def pending_kind(self) -> Optional[AlertKind]:
        return self._pending

    def remaining(self, now=None):
        """Seconds left on the countdown (0.0 when idle)."""
        with self._lock:
            if self._pending is None:
                return 0.0
            now = self.clock() if now is None else now
            return max(0.0, self._started_at + self.countdown_seconds - now)

    def observe(self, state: DrowsinessState, now=None) -> Optional[AlertKind]:
        """
        Feed the latest snapshot.

        Returns:
            The alert kind whose countdown was started, if any
        """
        raised = state.active_alerts()
        self._escalated.intersection_update(raised)
        waiting = [kind for kind in raised if kind not in self._escalated]
        if waiting and self.start(waiting[0], now):
            self._escalated.add(waiting[0])
            return waiting[0]
        return None

    def start(self, kind: AlertKind, now=None) -> bool:
        """Begin a countdown for `kind`; refused while another is pending."""
        with self._lock:
            if self._pending is not None:
                return False
            self._pending = kind
            self._started_at = self.clock() if now is None else now
            self._token += 1
            if self.threaded:
                self._timer = threading.Timer(self.countdown_seconds, self._expire, args=(self._token,))
                self._timer.daemon = True
                self._timer.start()
        logger.info("[ESCALATION] %s alert pending, dispatch in %.1fs", kind.value, self.countdown_seconds)
        return True

    def cancel(self, kind: Optional[AlertKind] = None) -> bool:
        """
        Cancel the pending countdown (only if it is for `kind`, when given).

        Returns:
            True if a countdown was cancelled
        """
        with self._lock:
            if self._pending is None or (kind is not None and kind != self._pending):
                return False
            cancelled = self._pending
            self._clear_pending()
            self.last_outcome = EscalationState.CANCELLED
        logger.info("[ESCALATION] %s alert cancelled", cancelled.value)
        return True

    def tick(self, now=None) -> Optional[AlertKind]:
        """
        Poll-mode expiry check.

        Returns:
            The dispatched alert kind, if the countdown expired on this tick
        """
        with self._lock:
            if self._pending is None:
                return None
            now = self.clock() if now is None else now
            if now - self._started_at < self.countdown_seconds:
                return None
            token = self._token
        return self._expire(token)

    def close(self):
        with self._lock:
            self._clear_pending()

    def _expire(self, token):
        with self._lock:
            # A cancel or a newer countdown invalidates this expiry
            if token != self._token or self._pending is None:
                return None
            kind = self._pending
            self._clear_pending()
            self.last_outcome = EscalationState.DISPATCHED
            self.dispatch_count += 1

        logger.info("[ESCALATION] dispatching %s alert", kind.value)
        try:
            self.dispatcher.dispatch(kind)
        except Exception:
            logger.exception("Alert dispatcher failed for %s", kind.value)
        return kind

    def _clear_pending(self):
        self._pending = None
        self._started_at = None
        self._token += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
