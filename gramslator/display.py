"""The display loop: status, translation and transcript on the screen."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Optional

from .app_state import AppState, Signal
from .font import FontRenderer
from .framebuffer import ContiguousTarget, Framebuffer, Rect, Rgb666
from .layout import (
    ANIM_FRAME_MS,
    BG,
    H_PAD,
    SCREEN_H,
    SCREEN_W,
    SCROLL_SPEED,
    SEPARATOR_Y,
    TRANSCRIPT_COLOR,
    TRANSCRIPT_PX,
    TRANSCRIPT_Y,
    TRANSLATION_COLOR,
    TRANSLATION_PX,
    TRANSLATION_Y,
    Section,
    draw_separator,
    render_section,
)
from .status import (
    draw_primary_status,
    draw_translate_status,
    primary_status_text,
    translate_status_text,
)

log = logging.getLogger(__name__)

LANG_OVERLAY_PX = 96.0
LANG_OVERLAY_COLOR = Rgb666(63, 50, 20)
LANG_OVERLAY_SECONDS = 1.0
_OVERLAY_PAD = 16


def render_lang_overlay(fb: Framebuffer, renderer: FontRenderer, lang: str) -> None:
    """Draw the language code large and centred on a cleared backdrop."""
    text_w = renderer.text_width(lang, LANG_OVERLAY_PX)
    text_h = renderer.line_height(LANG_OVERLAY_PX)
    x = int((SCREEN_W - text_w) / 2)
    y = int((SCREEN_H - text_h) / 2)
    backdrop = Rect(
        x - _OVERLAY_PAD,
        y - _OVERLAY_PAD,
        int(text_w) + 2 * _OVERLAY_PAD,
        int(text_h) + 2 * _OVERLAY_PAD,
    )
    fb.fill_solid(backdrop, BG)
    renderer.draw_text(fb, lang, (x, y), LANG_OVERLAY_PX, LANG_OVERLAY_COLOR, BG)


class DisplayRenderer:
    """Keeps the screen in step with the shared application state.

    The translation is shown large in the upper section and the transcript
    small below the separator; overflowing text scrolls.  Service problems
    replace the translation with a status message, and a language change
    shows the new code over everything for a second.
    """

    def __init__(
        self,
        panel: ContiguousTarget,
        fb: Framebuffer,
        renderer: FontRenderer,
        state: AppState,
        display_signal: Signal,
        *,
        ssid: str = "",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.panel = panel
        self.fb = fb
        self.renderer = renderer
        self.state = state
        self.display_signal = display_signal
        self.ssid = ssid
        self.clock = clock
        self.translation_section = Section()
        self.transcript_section = Section()
        self.overlay_deadline: Optional[float] = None
        self._max_text_width = float(SCREEN_W - 2 * H_PAD)
        self._translation_h = SEPARATOR_Y - TRANSLATION_Y
        self._transcript_h = SCREEN_H - TRANSCRIPT_Y
        self._scroll_per_frame = SCROLL_SPEED * (ANIM_FRAME_MS / 1000.0)
        self._last_transcript = ""
        self._last_translation = ""
        self._last_primary = ""
        self._last_tr_status = ""
        self._last_lang = state.target_lang()

    @property
    def animating(self) -> bool:
        """Whether either section is still scrolling."""
        return (
            self.translation_section.is_animating()
            or self.transcript_section.is_animating()
        )

    def _flush(self) -> int:
        try:
            return self.fb.flush(self.panel)
        except OSError as exc:
            log.warning("display flush error: %s", exc)
            return 0

    def start(self) -> int:
        """Clear the screen and show the current language; return pixels pushed."""
        self.fb.clear(BG)
        draw_separator(self.fb)
        pushed = self._flush()
        render_lang_overlay(self.fb, self.renderer, self._last_lang)
        pushed += self._flush()
        self.overlay_deadline = self.clock() + LANG_OVERLAY_SECONDS
        return pushed

    def update(self, now: float) -> int:
        """Apply the current state at time ``now``; return pixels pushed."""
        state = self.state.snapshot()

        if state.translation != self._last_translation:
            self.translation_section.update_text(
                state.translation,
                self.renderer,
                TRANSLATION_PX,
                self._max_text_width,
                float(self._translation_h),
            )
            self._last_translation = state.translation
        if state.transcript != self._last_transcript:
            self.transcript_section.update_text(
                state.transcript,
                self.renderer,
                TRANSCRIPT_PX,
                self._max_text_width,
                float(self._transcript_h),
            )
            self._last_transcript = state.transcript

        primary = primary_status_text(state.wifi_status, state.deepgram_status)
        if primary != self._last_primary:
            draw_primary_status(
                self.fb,
                self.renderer,
                state.wifi_status,
                primary,
                self._translation_h,
                self.ssid,
            )
            if not primary:
                self.translation_section.needs_redraw = True
            self._last_primary = primary

        tr_status = translate_status_text(state.translate_status)
        if tr_status != self._last_tr_status:
            draw_translate_status(self.fb, self.renderer, tr_status)
            self._last_tr_status = tr_status

        pushed = 0
        if state.target_lang != self._last_lang:
            self._last_lang = state.target_lang
            self.overlay_deadline = now + LANG_OVERLAY_SECONDS
            render_lang_overlay(self.fb, self.renderer, self._last_lang)
            pushed += self._flush()

        overlay_visible = False
        if self.overlay_deadline is not None:
            if now >= self.overlay_deadline:
                self.overlay_deadline = None
                self.translation_section.needs_redraw = True
                self.transcript_section.needs_redraw = True
            else:
                overlay_visible = True

        self.translation_section.advance(self._scroll_per_frame)
        self.transcript_section.advance(self._scroll_per_frame)

        if overlay_visible:
            return pushed

        if self.translation_section.needs_redraw and not self._last_primary:
            render_section(
                self.fb,
                self.renderer,
                self.translation_section,
                TRANSLATION_PX,
                TRANSLATION_COLOR,
                TRANSLATION_Y,
                self._translation_h,
            )
            self.translation_section.needs_redraw = False

        if self.transcript_section.needs_redraw:
            render_section(
                self.fb,
                self.renderer,
                self.transcript_section,
                TRANSCRIPT_PX,
                TRANSCRIPT_COLOR,
                TRANSCRIPT_Y,
                self._transcript_h,
            )
            self.transcript_section.needs_redraw = False

        draw_separator(self.fb)
        if self.fb.is_dirty():
            pushed += self._flush()
        return pushed

    async def _wait(self) -> None:
        if self.animating:
            timeout: Optional[float] = ANIM_FRAME_MS / 1000.0
        elif self.overlay_deadline is not None:
            timeout = max(0.0, self.overlay_deadline - self.clock())
        else:
            timeout = None
        if timeout is None:
            await self.display_signal.wait()
            return
        try:
            await asyncio.wait_for(self.display_signal.wait(), timeout)
        except asyncio.TimeoutError:
            pass

    async def run(self) -> None:
        """Render forever, waking on signals, animation frames and overlay expiry."""
        self.start()
        while True:
            await self._wait()
            self.update(self.clock())