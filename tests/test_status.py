import pytest

from gramslator.app_state import ServiceStatus
from gramslator.font import FontRenderer
from gramslator.framebuffer import Framebuffer, Rgb666
from gramslator.layout import (
    SCREEN_H,
    SCREEN_W,
    TR_STATUS_H,
    TR_STATUS_W,
    TR_STATUS_X,
    TR_STATUS_Y,
    TRANSLATION_Y,
)
from gramslator.status import (
    draw_primary_status,
    draw_translate_status,
    primary_status_text,
    translate_status_text,
)

S = ServiceStatus


class BoxFace:
    def vertical_metrics(self, px):
        return (0.8 * px, -0.2 * px)

    def has_glyph(self, ch):
        return 32 <= ord(ch) < 127

    def advance(self, ch, px):
        return px * 0.5

    def rasterize(self, ch, px):
        if ch == " ":
            return None
        w, h = int(px * 0.5), int(px)
        return (0, int(0.8 * px), w, h, bytes([255]) * (w * h))

    def codepoints(self):
        return range(32, 127)


@pytest.fixture
def renderer():
    return FontRenderer(BoxFace())


def colors_in(fb):
    raw = bytes(fb.data)
    return set(zip(raw[0::3], raw[1::3], raw[2::3]))


@pytest.mark.parametrize(
    "wifi, deepgram, expected",
    [
        (S.IDLE, S.CONNECTED, "Connecting to WiFi..."),
        (S.CONNECTING, S.ERROR, "Connecting to WiFi..."),
        (S.ERROR, S.CONNECTED, "WiFi disconnected"),
        (S.CONNECTED, S.IDLE, "Connecting to Deepgram..."),
        (S.CONNECTED, S.CONNECTING, "Connecting to Deepgram..."),
        (S.CONNECTED, S.ERROR, "Deepgram disconnected"),
        (S.CONNECTED, S.CONNECTED, ""),
    ],
)
def test_primary_status_text(wifi, deepgram, expected):
    assert primary_status_text(wifi, deepgram) == expected


@pytest.mark.parametrize(
    "status, expected",
    [(S.CONNECTING, "TR..."), (S.ERROR, "TR!"), (S.IDLE, ""), (S.CONNECTED, "")],
)
def test_translate_status_text(status, expected):
    assert translate_status_text(status) == expected


def test_primary_status_empty_only_clears(renderer):
    fb = Framebuffer(SCREEN_W, SCREEN_H)
    fb.clear(Rgb666.RED)
    draw_primary_status(fb, renderer, S.CONNECTED, "", 260, "net")
    assert fb.pixel(0, TRANSLATION_Y) == Rgb666.BLACK
    assert fb.pixel(SCREEN_W - 1, TRANSLATION_Y + 259) == Rgb666.BLACK
    assert fb.pixel(0, TRANSLATION_Y + 260) == Rgb666.RED
    assert fb.pixel(0, TRANSLATION_Y - 1) == Rgb666.RED


def test_primary_status_with_ssid(renderer):
    fb = Framebuffer(SCREEN_W, SCREEN_H)
    draw_primary_status(fb, renderer, S.CONNECTING, "Connecting to WiFi...", 260, "net")
    colors = colors_in(fb)
    assert (63, 63, 63) in colors
    assert (40, 40, 40) in colors


def test_primary_status_without_ssid(renderer):
    fb = Framebuffer(SCREEN_W, SCREEN_H)
    draw_primary_status(fb, renderer, S.CONNECTED, "Deepgram disconnected", 260, "net")
    colors = colors_in(fb)
    assert (63, 63, 63) in colors
    assert (40, 40, 40) not in colors


def test_primary_status_is_centered(renderer):
    fb = Framebuffer(SCREEN_W, SCREEN_H)
    draw_primary_status(fb, renderer, S.CONNECTED, "Deepgram disconnected", 260, "net")
    fb.take_dirty()
    lit = [
        x
        for x in range(SCREEN_W)
        for y in range(TRANSLATION_Y, TRANSLATION_Y + 260, 4)
        if fb.pixel(x, y) == Rgb666.WHITE
    ]
    assert abs((min(lit) + max(lit) + 1) / 2 - SCREEN_W / 2) <= 3


def test_translate_status_drawn_and_cleared(renderer):
    fb = Framebuffer(SCREEN_W, SCREEN_H)
    draw_translate_status(fb, renderer, "TR!")
    region = {
        fb.pixel(x, y)
        for x in range(TR_STATUS_X, TR_STATUS_X + TR_STATUS_W)
        for y in range(TR_STATUS_Y, TR_STATUS_Y + TR_STATUS_H)
    }
    assert Rgb666(32, 32, 32) in region
    fb.fill_solid(fb.bounds, Rgb666.RED)
    draw_translate_status(fb, renderer, "")
    assert fb.pixel(TR_STATUS_X, TR_STATUS_Y) == Rgb666.BLACK
    assert fb.pixel(TR_STATUS_X - 1, TR_STATUS_Y) == Rgb666.RED
    assert fb.pixel(TR_STATUS_X, TR_STATUS_Y + TR_STATUS_H) == Rgb666.RED