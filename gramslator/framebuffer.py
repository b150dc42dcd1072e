"""In-memory RGB666 framebuffer with clipping and dirty-region tracking."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import ClassVar, Optional, Protocol


@dataclass(frozen=True)
class Rgb666:
    """A colour with 6-bit red, green and blue channels (0..63)."""

    r: int
    g: int
    b: int

    BLACK: ClassVar["Rgb666"]
    WHITE: ClassVar["Rgb666"]
    RED: ClassVar["Rgb666"]
    GREEN: ClassVar["Rgb666"]
    BLUE: ClassVar["Rgb666"]

    def __post_init__(self) -> None:
        for channel in (self.r, self.g, self.b):
            if not 0 <= channel <= 63:
                raise ValueError(f"Rgb666 channel out of range: {channel}")


Rgb666.BLACK = Rgb666(0, 0, 0)
Rgb666.WHITE = Rgb666(63, 63, 63)
Rgb666.RED = Rgb666(63, 0, 0)
Rgb666.GREEN = Rgb666(0, 63, 0)
Rgb666.BLUE = Rgb666(0, 0, 63)


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle given by its top-left corner and size."""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("rectangle size must not be negative")

    @property
    def right(self) -> int:
        """One past the rightmost column."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """One past the bottom row."""
        return self.y + self.height

    def is_empty(self) -> bool:
        """Whether the rectangle covers no pixels."""
        return self.width == 0 or self.height == 0

    def intersection(self, other: Rect) -> Rect:
        """Overlap of two rectangles; a zero rectangle if they do not overlap."""
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return Rect(0, 0, 0, 0)
        return Rect(left, top, right - left, bottom - top)

    def union(self, other: Rect) -> Rect:
        """Smallest rectangle enclosing both rectangles."""
        left = min(self.x, other.x)
        top = min(self.y, other.y)
        right = max(self.right, other.right)
        bottom = max(self.bottom, other.bottom)
        return Rect(left, top, right - left, bottom - top)

    def contains(self, x: int, y: int) -> bool:
        """Whether the pixel ``(x, y)`` lies inside the rectangle."""
        return self.x <= x < self.right and self.y <= y < self.bottom


class ContiguousTarget(Protocol):
    """Anything that accepts a rectangle of colours in row-major order."""

    def fill_contiguous(self, area: Rect, colors: Iterable[Rgb666]) -> None: ...


class Framebuffer:
    """A width x height RGB666 pixel buffer, three bytes per pixel.

    Every drawing operation marks the affected area dirty; :meth:`flush`
    pushes only the bounding box of changes since the previous flush.
    An optional clip rectangle restricts all drawing.
    """

    def __init__(self, width: int, height: int) -> None:
        if width < 0 or height < 0:
            raise ValueError("framebuffer size must not be negative")
        self.width = width
        self.height = height
        self._buf = bytearray(width * height * 3)
        self._dirty: Optional[Rect] = None
        self._clip: Optional[Rect] = None

    @property
    def size(self) -> tuple[int, int]:
        """``(width, height)`` in pixels."""
        return (self.width, self.height)

    @property
    def bounds(self) -> Rect:
        """The rectangle covering the whole framebuffer."""
        return Rect(0, 0, self.width, self.height)

    @property
    def data(self) -> memoryview:
        """Read-only view of the raw ``[r, g, b]`` pixel bytes."""
        return memoryview(self._buf).toreadonly()

    def is_dirty(self) -> bool:
        """Whether anything changed since the last flush."""
        return self._dirty is not None

    def dirty_rect(self) -> Optional[Rect]:
        """Bounding box of changes since the last flush, if any."""
        return self._dirty

    def set_clip(self, clip: Optional[Rect]) -> None:
        """Restrict drawing to ``clip``; ``None`` removes the restriction."""
        self._clip = clip

    def _visible(self, x: int, y: int) -> bool:
        if not (0 <= x < self.width and 0 <= y < self.height):
            return False
        return self._clip is None or self._clip.contains(x, y)

    def _mark_dirty(self, rect: Rect) -> None:
        clamped = rect.intersection(self.bounds)
        if self._clip is not None:
            clamped = clamped.intersection(self._clip)
        if clamped.is_empty():
            return
        self._dirty = clamped if self._dirty is None else self._dirty.union(clamped)

    def _set(self, x: int, y: int, color: Rgb666) -> None:
        idx = (y * self.width + x) * 3
        self._buf[idx : idx + 3] = bytes((color.r, color.g, color.b))

    def pixel(self, x: int, y: int) -> Rgb666:
        """Return the colour stored at ``(x, y)``."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"pixel ({x}, {y}) outside framebuffer")
        idx = (y * self.width + x) * 3
        r, g, b = self._buf[idx : idx + 3]
        return Rgb666(r, g, b)

    def clear(self, color: Rgb666) -> None:
        """Fill the whole (clipped) framebuffer with ``color``."""
        self.fill_solid(self.bounds, color)

    def draw_pixels(self, pixels: Iterable[tuple[tuple[int, int], Rgb666]]) -> None:
        """Draw individual ``((x, y), color)`` pixels, skipping invisible ones."""
        min_x = min_y = None
        max_x = max_y = 0
        for (x, y), color in pixels:
            if not self._visible(x, y):
                continue
            self._set(x, y, color)
            if min_x is None:
                min_x, min_y, max_x, max_y = x, y, x, y
            else:
                min_x, min_y = min(min_x, x), min(min_y, y)
                max_x, max_y = max(max_x, x), max(max_y, y)
        if min_x is not None:
            self._mark_dirty(Rect(min_x, min_y, max_x - min_x + 1, max_y - min_y + 1))

    def fill_contiguous(self, area: Rect, colors: Iterable[Rgb666]) -> None:
        """Fill ``area`` row by row from ``colors``, skipping invisible pixels."""
        if area.width == 0:
            return
        self._mark_dirty(area)
        limit = area.width * area.height
        for i, color in enumerate(colors):
            if i >= limit:
                break
            row, col = divmod(i, area.width)
            x, y = area.x + col, area.y + row
            if self._visible(x, y):
                self._set(x, y, color)

    def fill_solid(self, area: Rect, color: Rgb666) -> None:
        """Fill ``area`` (clamped to the buffer and clip) with one colour."""
        clipped = area.intersection(self.bounds)
        if self._clip is not None:
            clipped = clipped.intersection(self._clip)
        if clipped.is_empty():
            return
        self._mark_dirty(clipped)
        run = bytes((color.r, color.g, color.b)) * clipped.width
        for row in range(clipped.y, clipped.bottom):
            start = (row * self.width + clipped.x) * 3
            self._buf[start : start + len(run)] = run

    def take_dirty(self) -> Optional[Rect]:
        """Return the dirty rectangle and reset the tracker."""
        dirty, self._dirty = self._dirty, None
        return dirty

    def _region_colors(self, rect: Rect) -> Iterator[Rgb666]:
        for row in range(rect.y, rect.bottom):
            for col in range(rect.x, rect.right):
                yield self.pixel(col, row)

    def flush(self, display: ContiguousTarget) -> int:
        """Send the dirty region to ``display``; return the pixel count pushed."""
        dirty = self.take_dirty()
        if dirty is None:
            return 0
        display.fill_contiguous(dirty, self._region_colors(dirty))
        return dirty.width * dirty.height