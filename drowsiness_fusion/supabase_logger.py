"""
Supabase Cloud Integration Module
Records drowsiness snapshots and dispatched alerts in a Supabase database

Tables:
- driving_sessions: one row per session, updated with a summary on end
- driver_snapshots: periodic DrowsinessState snapshots (every N seconds)
- alert_events: every alert the escalator dispatched
"""

import logging
import os
import time
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv
from supabase import Client, create_client

from .config import SUPABASE_SNAPSHOT_INTERVAL_SECONDS
from .data_structures import AlertKind, DrowsinessState

logger = logging.getLogger(__name__)


def _utc_now():
    return datetime.now(timezone.utc).isoformat()


class SupabaseLogger:
    """
    Logs drowsiness data to Supabase; also usable as an alert dispatcher.

    Logging strategy:
    - Snapshots throttled to one per `snapshot_interval` seconds
    - Alert events logged immediately on dispatch
    - Session summary on end
    Every call is a no-op when the logger is not initialized.
    """

    def __init__(self, supabase_url: Optional[str] = None, supabase_key: Optional[str] = None,
                 snapshot_interval=SUPABASE_SNAPSHOT_INTERVAL_SECONDS, client: Optional[Client] = None):
        """
        Args:
            supabase_url: Supabase project URL (or SUPABASE_URL env var)
            supabase_key: Supabase anon key (or SUPABASE_KEY env var)
            snapshot_interval: Minimum seconds between two logged snapshots
            client: Ready-made client, bypassing credential lookup
        """
        self.initialized = False
        self.client: Optional[Client] = client
        self.snapshot_interval = snapshot_interval
        self.current_session_id: Optional[str] = None
        self.session_start_time: Optional[float] = None
        self.alert_count = 0
        self._last_snapshot_time: Optional[float] = None

        if client is not None:
            self.initialized = True
            return

        load_dotenv()
        url = supabase_url or os.getenv("SUPABASE_URL")
        key = supabase_key or os.getenv("SUPABASE_KEY")
        if not url or not key:
            logger.warning("Supabase credentials not provided. Cloud logging disabled.")
            return

        try:
            self.client = create_client(url, key)
            self.initialized = True
            logger.info("Supabase logger initialized")
        except Exception as e:
            logger.error("Failed to initialize Supabase logger: %s", e)

    def is_initialized(self) -> bool:
        return self.initialized

    def start_session(self) -> Optional[str]:
        """
        Start a new driving session.

        Returns:
            Session ID, or None if not initialized or the insert failed
        """
        if not self.initialized:
            return None

        self.session_start_time = time.time()
        session_id = f"session_{int(self.session_start_time * 1000)}"
        try:
            self.client.table("driving_sessions").insert({
                "session_id": session_id,
                "started_at": _utc_now(),
                "status": "active",
            }).execute()
        except Exception as e:
            logger.error("Error starting session: %s", e)
            return None

        self.current_session_id = session_id
        self.alert_count = 0
        logger.info("Started driving session: %s", session_id)
        return session_id

    def log_snapshot(self, state: DrowsinessState, eye_threshold: float, yawn_threshold: float,
                     now: Optional[float] = None) -> bool:
        """
        Log a DrowsinessState snapshot, at most once per `snapshot_interval`.

        Returns:
            True if a row was written
        """
        if not self.initialized:
            return False
        now = time.monotonic() if now is None else now
        if self._last_snapshot_time is not None and now - self._last_snapshot_time < self.snapshot_interval:
            return False

        try:
            self.client.table("driver_snapshots").insert({
                "session_id": self.current_session_id,
                "timestamp": _utc_now(),
                "eye_score": round(state.eye_score, 3),
                "yawn_count": state.yawn_count,
                "lost_face_count": state.lost_face_count,
                "eye_alert": state.is_eye_alert,
                "yawn_alert": state.is_yawn_alert,
                "lost_face_alert": state.is_lost_face_alert,
                "eye_threshold": round(eye_threshold, 3),
                "yawn_threshold": round(yawn_threshold, 3),
            }).execute()
        except Exception as e:
            logger.error("Error logging snapshot: %s", e)
            return False
        self._last_snapshot_time = now
        return True

    def log_alert(self, kind: AlertKind) -> bool:
        if not self.initialized:
            return False
        try:
            self.client.table("alert_events").insert({
                "session_id": self.current_session_id,
                "alert_type": kind.value,
                "timestamp": _utc_now(),
            }).execute()
        except Exception as e:
            logger.error("Error logging alert: %s", e)
            return False
        self.alert_count += 1
        logger.info("Alert logged to Supabase: %s", kind.value)
        return True

    def dispatch(self, kind: AlertKind) -> None:
        self.log_alert(kind)

    def end_session(self, lost_face_count: int = 0):
        """Close the current session with a summary row update."""
        if not self.initialized or not self.current_session_id:
            return

        duration = time.time() - self.session_start_time if self.session_start_time else 0.0
        try:
            self.client.table("driving_sessions").update({
                "ended_at": _utc_now(),
                "status": "completed",
                "duration_seconds": round(duration, 2),
                "total_alerts": self.alert_count,
                "lost_face_frames": lost_face_count,
            }).eq("session_id", self.current_session_id).execute()
        except Exception as e:
            logger.error("Error ending session: %s", e)
            return

        logger.info("Session ended: %s (Duration: %.1fs)", self.current_session_id, duration)
        self.current_session_id = None
        self.session_start_time = None
