"""Lazy-caching anti-aliased text renderer built on a pluggable font face."""

from __future__ import annotations

import io
import struct
import unicodedata
from collections import OrderedDict
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Optional, Protocol

from .framebuffer import ContiguousTarget, Rect, Rgb666

DEFAULT_MAX_CACHE_SIZE = 256
"""Default number of cached glyphs before least-recently-used eviction."""

RasterGlyph = tuple[int, int, int, int, bytes]
"""``(bearing_x, bearing_y, width, height, coverage)`` as produced by a face."""


class FontFace(Protocol):
    """What the renderer needs from a font, in pixel units."""

    def vertical_metrics(self, px: float) -> tuple[float, float]:
        """``(ascender, descender)``; the descender is negative."""
        ...

    def has_glyph(self, ch: str) -> bool: ...

    def advance(self, ch: str, px: float) -> float: ...

    def rasterize(self, ch: str, px: float) -> Optional[RasterGlyph]:
        """Coverage bitmap of the glyph, or ``None`` if it has no outline."""
        ...

    def codepoints(self) -> Iterable[int]: ...


@dataclass
class Glyph:
    """A rasterised glyph: coverage bitmap plus placement metrics."""

    width: int
    height: int
    bearing_x: int
    bearing_y: int
    advance_width: float
    bitmap: bytes = field(default=b"", repr=False)

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


class FontRenderer:
    """Renders text from a font face, rasterising glyphs on first use.

    Rasterised glyphs are kept in a bounded cache keyed on
    ``(character, pixel size)``; when it is full, the least recently used
    entry is evicted.
    """

    def __init__(self, face: FontFace, max_cache_size: int = DEFAULT_MAX_CACHE_SIZE) -> None:
        self.face = face
        self._cache: OrderedDict[tuple[str, float], Glyph] = OrderedDict()
        self._max_cache_size = max_cache_size

    @classmethod
    def from_bytes(cls, font_data: bytes) -> "FontRenderer":
        """Create a renderer for raw TrueType/OpenType font bytes."""
        return cls(TrueTypeFace(font_data))

    @property
    def cache_size(self) -> int:
        """Number of glyphs currently cached."""
        return len(self._cache)

    def set_max_cache_size(self, max_size: int) -> None:
        """Change the cache limit; excess entries are evicted lazily."""
        self._max_cache_size = max_size

    def line_height(self, px: float) -> float:
        """Ascent minus descent at the given pixel size."""
        ascender, descender = self.face.vertical_metrics(px)
        return ascender - descender

    def ascent(self, px: float) -> float:
        """Height above the baseline at the given pixel size."""
        return self.face.vertical_metrics(px)[0]

    def char_advance(self, ch: str, px: float) -> float:
        """Advance width of ``ch``; zero if the font lacks it."""
        if not self.face.has_glyph(ch):
            return 0.0
        return self.face.advance(ch, px)

    def text_width(self, text: str, px: float) -> float:
        """Sum of the advance widths of every character in ``text``."""
        return sum(self.char_advance(ch, px) for ch in text)

    def available_chars(self) -> list[str]:
        """Sorted, de-duplicated printable characters the font can render."""
        chars = set()
        for cp in self.face.codepoints():
            if not 0 <= cp <= 0x10FFFF or 0xD800 <= cp <= 0xDFFF:
                continue
            ch = chr(cp)
            if unicodedata.category(ch) == "Cc":
                continue
            if self.face.has_glyph(ch):
                chars.add(ch)
        return sorted(chars)

    def _rasterize(self, ch: str, px: float) -> Glyph:
        if not self.face.has_glyph(ch):
            return Glyph(0, 0, 0, 0, self.char_advance(" ", px))
        advance = self.face.advance(ch, px)
        raster = self.face.rasterize(ch, px)
        if raster is None:
            return Glyph(0, 0, 0, 0, advance)
        bearing_x, bearing_y, width, height, bitmap = raster
        if width == 0 or height == 0:
            return Glyph(0, 0, bearing_x, bearing_y, advance)
        return Glyph(width, height, bearing_x, bearing_y, advance, bytes(bitmap))

    def glyph(self, ch: str, px: float) -> Glyph:
        """Return the cached glyph, rasterising it on a miss."""
        key = (ch, px)
        cached = self._cache.get(key)
        if cached is not None:
            self._cache.move_to_end(key)
            return cached
        if self._cache and len(self._cache) >= self._max_cache_size:
            self._cache.popitem(last=False)
        glyph = self._rasterize(ch, px)
        self._cache[key] = glyph
        return glyph

    def draw_text(
        self,
        target: ContiguousTarget,
        text: str,
        position: tuple[int, int],
        px: float,
        color: Rgb666,
        bg: Rgb666,
    ) -> tuple[int, int]:
        """Draw ``text`` with its box's top-left at ``position``.

        Glyph pixels are blended between ``bg`` and ``color`` by coverage.
        Returns the pen position just past the last character.
        """
        x, y = position
        pen_x = x
        baseline_y = y + int(self.ascent(px))
        for ch in text:
            glyph = self.glyph(ch, px)
            if not glyph.is_empty:
                area = Rect(
                    pen_x + glyph.bearing_x,
                    baseline_y - glyph.bearing_y,
                    glyph.width,
                    glyph.height,
                )
                target.fill_contiguous(area, _blend(glyph.bitmap, color, bg))
            pen_x += int(glyph.advance_width)
        return (pen_x, y)

    def draw_text_centered(
        self,
        target: ContiguousTarget,
        text: str,
        y: int,
        display_width: int,
        px: float,
        color: Rgb666,
        bg: Rgb666,
    ) -> tuple[int, int]:
        """Draw ``text`` horizontally centred across ``display_width``."""
        x = _trunc_div(display_width - int(self.text_width(text, px)), 2)
        return self.draw_text(target, text, (x, y), px, color, bg)


def _blend(bitmap: bytes, fg: Rgb666, bg: Rgb666) -> Iterator[Rgb666]:
    for c in bitmap:
        inv = 255 - c
        yield Rgb666(
            (fg.r * c + bg.r * inv) // 255,
            (fg.g * c + bg.g * inv) // 255,
            (fg.b * c + bg.b * inv) // 255,
        )


class TrueTypeFace:
    """A :class:`FontFace` over TrueType/OpenType bytes, rasterised by Pillow."""

    def __init__(self, font_data: bytes) -> None:
        from PIL import ImageFont

        self._data = bytes(font_data)
        self._fonts: dict[int, ImageFont.FreeTypeFont] = {}
        self._cmap = frozenset(_parse_cmap(self._data))
        self._font(16)

    def _font(self, px: float):
        from PIL import ImageFont

        size = max(1, round(px))
        font = self._fonts.get(size)
        if font is None:
            font = ImageFont.truetype(io.BytesIO(self._data), size=size)
            self._fonts[size] = font
        return font

    def vertical_metrics(self, px: float) -> tuple[float, float]:
        ascent, descent = self._font(px).getmetrics()
        return float(ascent), float(-descent)

    def has_glyph(self, ch: str) -> bool:
        return ord(ch) in self._cmap

    def advance(self, ch: str, px: float) -> float:
        return float(self._font(px).getlength(ch))

    def rasterize(self, ch: str, px: float) -> Optional[RasterGlyph]:
        from PIL import Image, ImageDraw

        font = self._font(px)
        x0, y0, x1, y1 = font.getbbox(ch, anchor="ls")
        width, height = x1 - x0, y1 - y0
        if width <= 0 or height <= 0:
            return None
        image = Image.new("L", (width, height), 0)
        ImageDraw.Draw(image).text((-x0, -y0), ch, fill=255, font=font, anchor="ls")
        return (x0, -y0, width, height, image.tobytes())

    def codepoints(self) -> Iterable[int]:
        return sorted(self._cmap)


def _parse_cmap(data: bytes) -> set[int]:
    """Codepoints mapped to a real glyph by the first usable Unicode subtable."""
    try:
        (num_tables,) = struct.unpack_from(">H", data, 4)
        cmap_offset = None
        for i in range(num_tables):
            tag, _, offset, _ = struct.unpack_from(">4sIII", data, 12 + 16 * i)
            if tag == b"cmap":
                cmap_offset = offset
                break
        if cmap_offset is None:
            return set()
        (n_sub,) = struct.unpack_from(">H", data, cmap_offset + 2)
        for i in range(n_sub):
            platform, encoding, sub_offset = struct.unpack_from(
                ">HHI", data, cmap_offset + 4 + 8 * i
            )
            if not (platform == 0 or (platform == 3 and encoding in (1, 10))):
                continue
            base = cmap_offset + sub_offset
            (fmt,) = struct.unpack_from(">H", data, base)
            if fmt == 4:
                return _cmap_format4(data, base)
            if fmt == 12:
                return _cmap_format12(data, base)
    except struct.error:
        pass
    return set()


def _cmap_format4(data: bytes, base: int) -> set[int]:
    (seg_x2,) = struct.unpack_from(">H", data, base + 6)
    seg = seg_x2 // 2
    ends = struct.unpack_from(f">{seg}H", data, base + 14)
    starts = struct.unpack_from(f">{seg}H", data, base + 16 + seg_x2)
    deltas = struct.unpack_from(f">{seg}h", data, base + 16 + 2 * seg_x2)
    ro_pos = base + 16 + 3 * seg_x2
    range_offsets = struct.unpack_from(f">{seg}H", data, ro_pos)
    result = set()
    for i, (start, end, delta, ro) in enumerate(zip(starts, ends, deltas, range_offsets)):
        for c in range(start, end + 1):
            if c == 0xFFFF:
                continue
            if ro == 0:
                gid = (c + delta) & 0xFFFF
            else:
                addr = ro_pos + 2 * i + ro + 2 * (c - start)
                (gid,) = struct.unpack_from(">H", data, addr)
                if gid:
                    gid = (gid + delta) & 0xFFFF
            if gid:
                result.add(c)
    return result


def _cmap_format12(data: bytes, base: int) -> set[int]:
    (n_groups,) = struct.unpack_from(">I", data, base + 12)
    result = set()
    for i in range(n_groups):
        start, end, start_gid = struct.unpack_from(">III", data, base + 16 + 12 * i)
        for c in range(start, end + 1):
            if start_gid + (c - start):
                result.add(c)
    return result