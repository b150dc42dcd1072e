"""Status texts for the remote services and their on-screen indicators."""

from __future__ import annotations

from .app_state import ServiceStatus
from .font import FontRenderer
from .framebuffer import Framebuffer, Rect, Rgb666
from .layout import (
    BG,
    PRIMARY_STATUS_PX,
    PRIMARY_STATUS_SUBTITLE_PX,
    SCREEN_W,
    TR_STATUS_COLOR,
    TR_STATUS_H,
    TR_STATUS_PX,
    TR_STATUS_W,
    TR_STATUS_X,
    TR_STATUS_Y,
    TRANSLATION_Y,
)

STATUS_COLOR = Rgb666(63, 63, 63)
SUBTITLE_COLOR = Rgb666(40, 40, 40)
_LINE_GAP = 6


def _half(value: int) -> int:
    return int(value / 2)


def primary_status_text(wifi: ServiceStatus, deepgram: ServiceStatus) -> str:
    """Plain-English WiFi/Deepgram problem text; empty when both are healthy."""
    if wifi in (ServiceStatus.IDLE, ServiceStatus.CONNECTING):
        return "Connecting to WiFi..."
    if wifi is ServiceStatus.ERROR:
        return "WiFi disconnected"
    if deepgram in (ServiceStatus.IDLE, ServiceStatus.CONNECTING):
        return "Connecting to Deepgram..."
    if deepgram is ServiceStatus.ERROR:
        return "Deepgram disconnected"
    return ""


def translate_status_text(translate: ServiceStatus) -> str:
    """Short indicator text for the translation service."""
    if translate is ServiceStatus.CONNECTING:
        return "TR..."
    if translate is ServiceStatus.ERROR:
        return "TR!"
    return ""


def draw_primary_status(
    fb: Framebuffer,
    renderer: FontRenderer,
    wifi_status: ServiceStatus,
    primary_status: str,
    section_h: int,
    ssid: str,
) -> None:
    """Clear the translation region and centre the status text in it.

    While WiFi is not connected the network name is shown underneath.
    """
    fb.fill_solid(Rect(0, TRANSLATION_Y, SCREEN_W, section_h), BG)
    if not primary_status:
        return

    line1_h = int(renderer.line_height(PRIMARY_STATUS_PX))
    if wifi_status is not ServiceStatus.CONNECTED:
        line2_h = int(renderer.line_height(PRIMARY_STATUS_SUBTITLE_PX))
        total_h = line1_h + _LINE_GAP + line2_h
        y1 = TRANSLATION_Y + _half(section_h - total_h)
        y2 = y1 + line1_h + _LINE_GAP
        renderer.draw_text_centered(
            fb, primary_status, y1, SCREEN_W, PRIMARY_STATUS_PX, STATUS_COLOR, BG
        )
        renderer.draw_text_centered(
            fb, ssid, y2, SCREEN_W, PRIMARY_STATUS_SUBTITLE_PX, SUBTITLE_COLOR, BG
        )
    else:
        y = TRANSLATION_Y + _half(section_h - line1_h)
        renderer.draw_text_centered(
            fb, primary_status, y, SCREEN_W, PRIMARY_STATUS_PX, STATUS_COLOR, BG
        )


def draw_translate_status(fb: Framebuffer, renderer: FontRenderer, tr_status: str) -> None:
    """Redraw the small translation indicator in the top-right corner."""
    fb.fill_solid(Rect(TR_STATUS_X, TR_STATUS_Y, TR_STATUS_W, TR_STATUS_H), BG)
    if tr_status:
        renderer.draw_text(
            fb, tr_status, (TR_STATUS_X, TR_STATUS_Y), TR_STATUS_PX, TR_STATUS_COLOR, BG
        )