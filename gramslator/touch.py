"""Touch input: left and right taps cycle the target language."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Optional

from .app_state import AppState, Signal
from .messages import TranscriptMessage

log = logging.getLogger(__name__)

DISPLAY_WIDTH = 480
"""Display width in pixels after rotation."""
TOUCH_PANEL_WIDTH = 320
"""Native (portrait) width of the touch panel in pixels."""
ZONE_MID_X = DISPLAY_WIDTH // 2
POLL_INTERVAL = 0.02
"""Seconds between touch polls (about 50 Hz)."""

Point = tuple[int, int]


class Zone(Enum):
    """Half of the screen a touch landed in."""

    LEFT = "left"
    RIGHT = "right"


def to_display_coords(touch_x: int, touch_y: int) -> Point:
    """Map native panel coordinates to rotated display coordinates."""
    return (DISPLAY_WIDTH - 1 - touch_y, TOUCH_PANEL_WIDTH - 1 - touch_x)


def classify_zone(display_x: int) -> Zone:
    """Left half is ``[0, 240)``, right half the rest."""
    return Zone.LEFT if display_x < ZONE_MID_X else Zone.RIGHT


class TouchHandler:
    """Turns touches into language changes, once per finger-down per zone."""

    def __init__(
        self,
        state: AppState,
        display_signal: Signal,
        translate_signal: Signal,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        self.state = state
        self.display_signal = display_signal
        self.translate_signal = translate_signal
        self.poll_interval = poll_interval
        self.active_zone: Optional[Zone] = None

    def handle(self, point: Optional[Point]) -> Optional[str]:
        """Process one poll result in native panel coordinates.

        ``None`` means no finger is down.  Returns the new language code when
        the touch changed it, otherwise ``None``.
        """
        if point is None:
            self.active_zone = None
            return None
        display_x, display_y = to_display_coords(*point)
        zone = classify_zone(display_x)
        if zone is self.active_zone:
            return None
        lang = self.state.cycle_target_lang(zone is Zone.RIGHT)
        log.info("touch %s: lang=%s, display=(%d, %d)", zone.name, lang, display_x, display_y)
        self.display_signal.signal()
        self.translate_signal.signal(TranscriptMessage.retranslate())
        self.active_zone = zone
        return lang

    async def run(self, poll: Callable[[], Awaitable[Optional[Point]]]) -> None:
        """Poll forever; a poll raising ``OSError`` (no new data) is skipped."""
        while True:
            try:
                point = await poll()
            except OSError:
                pass
            else:
                self.handle(point)
            await asyncio.sleep(self.poll_interval)