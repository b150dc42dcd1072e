import pytest

from gramslator.font import FontRenderer
from gramslator.framebuffer import Framebuffer, Rect, Rgb666
from gramslator.layout import (
    BG,
    H_PAD,
    SCREEN_H,
    SCREEN_W,
    SEPARATOR_Y,
    Section,
    draw_separator,
    render_section,
    word_wrap,
)


class BoxFace:
    """Each glyph is a solid block half as wide as the pixel size."""

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


def test_wrap_empty_gives_one_empty_line(renderer):
    assert word_wrap(renderer, "", 10.0, 100.0) == [""]
    assert word_wrap(renderer, "   \t ", 10.0, 100.0) == [""]


def test_wrap_collapses_whitespace(renderer):
    assert word_wrap(renderer, "  a   b  ", 10.0, 400.0) == ["a b"]


def test_wrap_breaks_between_words(renderer):
    text = "hello world"
    assert word_wrap(renderer, text, 10.0, renderer.text_width(text, 10.0)) == [text]
    assert word_wrap(renderer, text, 10.0, renderer.text_width(text, 10.0) - 1) == [
        "hello",
        "world",
    ]


def test_wrap_breaks_long_word(renderer):
    word = "abcdefghijklmnop"
    lines = word_wrap(renderer, word, 10.0, 20.0)
    assert "".join(lines) == word
    assert len(lines) > 1
    assert all(renderer.text_width(line, 10.0) <= 20.0 for line in lines)


def test_wrap_lines_fit(renderer):
    text = "the quick brown fox jumps over the lazy dog again and again"
    lines = word_wrap(renderer, text, 10.0, 60.0)
    assert " ".join(lines) == text
    assert all(renderer.text_width(line, 10.0) <= 60.0 for line in lines)


def test_section_scroll_target(renderer):
    section = Section()
    section.update_text("aaaa bbbb cccc", renderer, 10.0, 20.0, 20.0)
    assert len(section.lines) == 3
    assert section.total_height == len(section.lines) * (renderer.line_height(10.0) + 2.0)
    assert section.scroll_target == section.total_height - 20.0
    assert section.needs_redraw
    assert section.is_animating()


def test_section_no_scroll_when_fits(renderer):
    section = Section()
    section.update_text("short", renderer, 10.0, 200.0, 100.0)
    assert section.scroll_target == 0.0
    assert not section.is_animating()


def test_section_advance_converges(renderer):
    section = Section()
    section.update_text("aaaa bbbb cccc dddd", renderer, 10.0, 20.0, 20.0)
    section.needs_redraw = False
    section.advance(1.0)
    assert section.scroll_offset == 1.0
    assert section.needs_redraw
    section.advance(1000.0)
    assert section.scroll_offset == section.scroll_target
    assert not section.is_animating()
    section.needs_redraw = False
    section.advance(5.0)
    assert not section.needs_redraw
    assert section.scroll_offset == section.scroll_target


def test_section_offset_clamped_on_shorter_text(renderer):
    section = Section()
    section.update_text("aaaa bbbb cccc dddd", renderer, 10.0, 20.0, 20.0)
    section.advance(1000.0)
    section.update_text("aaaa bbbb", renderer, 10.0, 20.0, 20.0)
    assert section.scroll_offset <= section.scroll_target


def test_render_section_draws_and_clips(renderer):
    fb = Framebuffer(SCREEN_W, SCREEN_H)
    fb.clear(Rgb666.RED)
    color = Rgb666(10, 20, 30)
    section = Section()
    section.update_text("hello world", renderer, 10.0, 400.0, 30.0)
    render_section(fb, renderer, section, 10.0, color, 100, 30)
    assert fb.pixel(H_PAD, 100) == color
    assert fb.pixel(0, 100) == BG
    assert fb.pixel(0, 99) == Rgb666.RED
    assert fb.pixel(0, 130) == Rgb666.RED
    fb.fill_solid(Rect(0, 0, 1, 1), Rgb666.GREEN)
    assert fb.pixel(0, 0) == Rgb666.GREEN


def test_render_section_scrolled_text_stays_inside(renderer):
    fb = Framebuffer(SCREEN_W, SCREEN_H)
    fb.clear(Rgb666.RED)
    section = Section()
    section.update_text("aaaa bbbb cccc dddd", renderer, 10.0, 20.0, 20.0)
    section.advance(1000.0)
    render_section(fb, renderer, section, 10.0, Rgb666.WHITE, 100, 20)
    assert fb.pixel(H_PAD, 99) == Rgb666.RED
    assert fb.pixel(H_PAD, 120) == Rgb666.RED
    colors = {fb.pixel(x, y) for x in range(H_PAD, H_PAD + 20) for y in range(100, 120)}
    assert Rgb666.WHITE in colors


def test_draw_separator():
    fb = Framebuffer(SCREEN_W, SCREEN_H)
    draw_separator(fb)
    assert fb.pixel(H_PAD, SEPARATOR_Y) == Rgb666(20, 20, 20)
    assert fb.pixel(H_PAD - 1, SEPARATOR_Y) == Rgb666.BLACK
    assert fb.pixel(SCREEN_W - H_PAD, SEPARATOR_Y) == Rgb666.BLACK
    assert fb.dirty_rect() == Rect(H_PAD, SEPARATOR_Y, SCREEN_W - 2 * H_PAD, 1)