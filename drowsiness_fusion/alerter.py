"""
Alert Dispatch Module
Outbound transports invoked by the escalator once an alert is confirmed:
- local audible alarm (pygame tone, winsound on Windows)
- Telegram Bot API message
- fan-out to several transports, offline ones first
"""

import logging
import os
import sys
import threading
import time
from array import array
from typing import Optional, Protocol, Sequence

import pygame
import requests
from dotenv import load_dotenv

from .config import (
    ALERT_BEEP_FREQUENCY_HZ,
    ALERT_BEEP_SECONDS,
    TELEGRAM_TIMEOUT_SECONDS,
)
from .data_structures import AlertKind

logger = logging.getLogger(__name__)

ALERT_MESSAGES = {
    AlertKind.EYES: "⚠️ Drowsiness detected: prolonged eye closure.",
    AlertKind.YAWN: "⚠️ Drowsiness detected: excessive yawning.",
    AlertKind.LOST: "⚠️ Drowsiness detected: face not visible to the camera.",
}
DEFAULT_MESSAGE = "⚠️ Drowsiness alert detected. Drive carefully."


def alert_message(kind):
    return ALERT_MESSAGES.get(kind, DEFAULT_MESSAGE)


class AlertDispatcher(Protocol):
    """Receives confirmed alerts. Owns its transport and its own error reporting."""

    def dispatch(self, kind: AlertKind) -> None:
        ...


def _beep(frequency_hz: int, duration_s: float):
    """
    Cross-platform beep:
    - Windows: winsound.Beep
    - Else: pygame mixer square-wave tone
    """
    if sys.platform.startswith("win"):
        import winsound
        winsound.Beep(int(frequency_hz), int(duration_s * 1000))
        return

    sample_rate = 22050
    n_samples = int(duration_s * sample_rate)
    buf = array("h")
    period = max(1, int(sample_rate / max(1, frequency_hz)))
    amp = 12000
    for i in range(n_samples):
        buf.append(amp if (i % period) < (period // 2) else -amp)
    sound = pygame.mixer.Sound(buffer=buf.tobytes())
    sound.play()


class BeepAlertDispatcher:
    """Plays a short burst of alarm tones on a background thread."""

    def __init__(self, frequency_hz=ALERT_BEEP_FREQUENCY_HZ, duration_s=ALERT_BEEP_SECONDS, repeats=3):
        self.frequency_hz = frequency_hz
        self.duration_s = duration_s
        self.repeats = repeats
        self.audio_enabled = False
        try:
            pygame.mixer.init()
            self.audio_enabled = True
        except pygame.error as e:
            logger.warning("Audio alerts disabled (pygame mixer not available): %s", e)

    def dispatch(self, kind: AlertKind) -> None:
        if not self.audio_enabled and not sys.platform.startswith("win"):
            logger.warning("Audio disabled, %s alert not played", kind.value)
            return
        threading.Thread(target=self._alarm_loop, name="alert-beep", daemon=True).start()

    def _alarm_loop(self):
        for _ in range(self.repeats):
            try:
                _beep(self.frequency_hz, self.duration_s)
            except Exception as e:
                logger.error("Audio alert error: %s", e)
                return
            time.sleep(self.duration_s * 2)


class TelegramAlertDispatcher:
    """
    Sends the alert text through the Telegram Bot API.

    Token and chat id come from the arguments, or from TELEGRAM_BOT_TOKEN /
    TELEGRAM_CHAT_ID in the environment or a .env file.
    """

    API_URL = "https://api.telegram.org/bot{token}/sendMessage"

    def __init__(self, token: Optional[str] = None, chat_id: Optional[str] = None,
                 timeout=TELEGRAM_TIMEOUT_SECONDS, session: Optional[requests.Session] = None):
        load_dotenv()
        self.token = token or os.getenv("TELEGRAM_BOT_TOKEN")
        self.chat_id = chat_id or os.getenv("TELEGRAM_CHAT_ID")
        self.timeout = timeout
        self.session = session or requests.Session()
        if not self.is_configured():
            logger.warning("Telegram token/chat id not provided. Telegram alerts disabled.")

    def is_configured(self) -> bool:
        return bool(self.token) and bool(self.chat_id)

    def dispatch(self, kind: AlertKind) -> None:
        self.send(alert_message(kind))

    def send(self, message: str) -> bool:
        if not self.is_configured():
            return False

        payload = {"chat_id": self.chat_id, "text": message, "parse_mode": "HTML"}
        try:
            response = self.session.post(self.API_URL.format(token=self.token), data=payload, timeout=self.timeout)
            body = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error("Telegram send failed: %s", e)
            return False

        ok = 200 <= response.status_code < 300 and bool(body.get("ok"))
        if ok:
            logger.info("Alert sent to Telegram")
        else:
            logger.error("Telegram rejected alert: status=%s body=%s", response.status_code, body)
        return ok


class CompositeAlertDispatcher:
    """Dispatches to each transport in order; a failing transport does not stop the rest."""

    def __init__(self, dispatchers: Sequence[AlertDispatcher]):
        self.dispatchers = list(dispatchers)

    def dispatch(self, kind: AlertKind) -> None:
        for dispatcher in self.dispatchers:
            try:
                dispatcher.dispatch(kind)
            except Exception:
                logger.exception("Dispatcher %s failed", type(dispatcher).__name__)
