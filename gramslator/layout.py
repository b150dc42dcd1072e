"""Screen layout constants, word wrapping and scrolling text sections."""

from __future__ import annotations

from .font import FontRenderer
from .framebuffer import Framebuffer, Rect, Rgb666

SCREEN_W = 480
SCREEN_H = 320

H_PAD = 8
"""Horizontal padding from the screen edges."""

TRANSLATION_Y = 4
TRANSLATION_PX = 48.0
TRANSLATION_COLOR = Rgb666(32, 58, 63)

SEPARATOR_Y = 264
"""Row of the separator line between translation and transcript."""
SEPARATOR_COLOR = Rgb666(20, 20, 20)

TRANSCRIPT_Y = SEPARATOR_Y + 3
TRANSCRIPT_PX = 20.0
TRANSCRIPT_COLOR = Rgb666(48, 48, 48)

BG = Rgb666.BLACK
"""Background colour of the whole screen."""

PRIMARY_STATUS_PX = 28.0
PRIMARY_STATUS_SUBTITLE_PX = 20.0

TR_STATUS_X = SCREEN_W - 80
TR_STATUS_Y = 2
TR_STATUS_W = 72
TR_STATUS_H = 16
TR_STATUS_PX = 14.0
TR_STATUS_COLOR = Rgb666(32, 32, 32)

SCROLL_SPEED = 900.0
"""Scroll animation speed in pixels per second."""
ANIM_FRAME_MS = 33
"""Duration of one animation frame in milliseconds (about 30 fps)."""


def word_wrap(renderer: FontRenderer, text: str, px: float, max_width: float) -> list[str]:
    """Split ``text`` into lines no wider than ``max_width`` at size ``px``.

    Lines break at whitespace; a word wider than a whole line is broken
    between characters.  Empty input yields a single empty line.
    """
    lines: list[str] = []
    current = ""
    current_width = 0.0
    space_advance = renderer.text_width(" ", px)

    for word in text.split():
        word_width = renderer.text_width(word, px)
        if not current:
            if word_width <= max_width:
                current = word
                current_width = word_width
            else:
                for ch in word:
                    cw = renderer.char_advance(ch, px)
                    if current_width + cw > max_width and current:
                        lines.append(current)
                        current = ""
                        current_width = 0.0
                    current += ch
                    current_width += cw
        elif current_width + space_advance + word_width <= max_width:
            current = f"{current} {word}"
            current_width += space_advance + word_width
        else:
            lines.append(current)
            current = word
            current_width = word_width

    if current:
        lines.append(current)
    return lines or [""]


class Section:
    """Wrapped text of one screen section and its scroll animation."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.total_height = 0.0
        self.scroll_offset = 0.0
        self.scroll_target = 0.0
        self.needs_redraw = False

    def update_text(
        self,
        text: str,
        renderer: FontRenderer,
        px: float,
        max_width: float,
        section_height: float,
    ) -> None:
        """Re-wrap ``text`` and recompute how far the section must scroll."""
        self.lines = word_wrap(renderer, text, px, max_width)
        line_h = renderer.line_height(px) + 2.0
        self.total_height = len(self.lines) * line_h
        self.scroll_target = max(self.total_height - section_height, 0.0)
        self.scroll_offset = min(self.scroll_offset, self.scroll_target)
        self.needs_redraw = True

    def is_animating(self) -> bool:
        """Whether the scroll animation has not yet reached its target."""
        return self.scroll_target - self.scroll_offset > 0.5

    def advance(self, amount: float) -> None:
        """Move the scroll position ``amount`` pixels toward the target."""
        if self.is_animating():
            self.scroll_offset = min(self.scroll_offset + amount, self.scroll_target)
            self.needs_redraw = True


def render_section(
    fb: Framebuffer,
    renderer: FontRenderer,
    section: Section,
    px: float,
    color: Rgb666,
    section_y: int,
    section_height: int,
) -> None:
    """Clear the section and draw its visible lines, clipped to its bounds."""
    area = Rect(0, section_y, SCREEN_W, section_height)
    fb.set_clip(area)
    try:
        fb.fill_solid(area, BG)
        line_h = int(renderer.line_height(px)) + 2
        y = section_y - int(section.scroll_offset)
        for line in section.lines:
            if y + line_h <= section_y:
                y += line_h
                continue
            if y >= section_y + section_height:
                break
            renderer.draw_text(fb, line, (H_PAD, y), px, color, BG)
            y += line_h
    finally:
        fb.set_clip(None)


def draw_separator(fb: Framebuffer) -> None:
    """Draw the thin horizontal line between the two sections."""
    fb.fill_solid(Rect(H_PAD, SEPARATOR_Y, SCREEN_W - 2 * H_PAD, 1), SEPARATOR_COLOR)