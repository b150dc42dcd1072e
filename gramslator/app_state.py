"""Shared application state and the latest-wins signal used between tasks."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any

SAMPLE_RATE = 8_000
"""PCM sample rate in Hz, shared between microphone capture and Deepgram."""

LANGUAGES: tuple[str, ...] = ("es", "fr", "de", "ja", "ga", "hi", "uk")
"""Supported target language codes, cycled through by touch input."""


class ServiceStatus(Enum):
    """Connection status of a remote service (WiFi, Deepgram, Translate)."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


_EMPTY = object()


class Signal:
    """A single-slot async signal with latest-wins semantics.

    Signalling several times before anyone waits keeps only the most recent
    value; a waiter takes the value and leaves the signal empty.
    """

    def __init__(self) -> None:
        self._value: Any = _EMPTY
        self._event = asyncio.Event()

    def signal(self, value: Any = None) -> None:
        """Store ``value`` (replacing any pending one) and wake a waiter."""
        self._value = value
        self._event.set()

    def signaled(self) -> bool:
        """Whether a value is pending."""
        return self._value is not _EMPTY

    def reset(self) -> None:
        """Discard any pending value."""
        self._value = _EMPTY
        self._event.clear()

    async def wait(self) -> Any:
        """Wait until a value is pending, then take and return it."""
        while self._value is _EMPTY:
            self._event.clear()
            await self._event.wait()
        value = self._value
        self._value = _EMPTY
        self._event.clear()
        return value


@dataclass(frozen=True)
class StateSnapshot:
    """A consistent copy of the shared state at one moment."""

    transcript: str = ""
    translation: str = ""
    wifi_status: ServiceStatus = ServiceStatus.IDLE
    deepgram_status: ServiceStatus = ServiceStatus.IDLE
    translate_status: ServiceStatus = ServiceStatus.IDLE
    target_lang: str = LANGUAGES[0]


class AppState:
    """Thread-safe holder of the transcript, translation, statuses and language.

    Every ``update_*`` method returns ``True`` only when the stored value
    actually changed, so callers can avoid needless redraws or requests.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._transcript = ""
        self._translation = ""
        self._wifi_status = ServiceStatus.IDLE
        self._deepgram_status = ServiceStatus.IDLE
        self._translate_status = ServiceStatus.IDLE
        self._lang_index = 0

    def _replace(self, name: str, value: Any) -> bool:
        with self._lock:
            if getattr(self, name) == value:
                return False
            setattr(self, name, value)
            return True

    def update_transcript(self, text: str) -> bool:
        """Store a new transcript; return whether it differed."""
        return self._replace("_transcript", text)

    def update_translation(self, text: str) -> bool:
        """Store a new translation; return whether it differed."""
        return self._replace("_translation", text)

    def update_wifi_status(self, status: ServiceStatus) -> bool:
        """Store the WiFi status; return whether it changed."""
        return self._replace("_wifi_status", ServiceStatus(status))

    def update_deepgram_status(self, status: ServiceStatus) -> bool:
        """Store the Deepgram status; return whether it changed."""
        return self._replace("_deepgram_status", ServiceStatus(status))

    def update_translate_status(self, status: ServiceStatus) -> bool:
        """Store the translation service status; return whether it changed."""
        return self._replace("_translate_status", ServiceStatus(status))

    def snapshot(self) -> StateSnapshot:
        """Return a copy of the whole state."""
        with self._lock:
            return StateSnapshot(
                transcript=self._transcript,
                translation=self._translation,
                wifi_status=self._wifi_status,
                deepgram_status=self._deepgram_status,
                translate_status=self._translate_status,
                target_lang=LANGUAGES[self._lang_index],
            )

    def cycle_target_lang(self, forward: bool) -> str:
        """Move to the next (or previous) language and return its code."""
        with self._lock:
            step = 1 if forward else -1
            self._lang_index = (self._lang_index + step) % len(LANGUAGES)
            return LANGUAGES[self._lang_index]

    def target_lang(self) -> str:
        """Return the current target language code."""
        with self._lock:
            return LANGUAGES[self._lang_index]