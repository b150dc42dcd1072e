"""Pixel streaming to an ILI9488 panel over a command/data serial link."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol

WIRE_BUF_SIZE = 4092
"""Size of one streamed pixel chunk in bytes."""

CMD_COLUMN_ADDRESS_SET = 0x2A
CMD_PAGE_ADDRESS_SET = 0x2B
CMD_MEMORY_WRITE = 0x2C

_WIRE_TABLE = bytes((b << 2) & 0xFF for b in range(256))


class PanelBus(Protocol):
    """The serial bus the panel hangs on."""

    def write(self, data: bytes) -> None: ...

    async def write_async(self, data: bytes) -> None: ...


class OutputPin(Protocol):
    """A digital output line (chip select or data/command)."""

    def set_high(self) -> None: ...

    def set_low(self) -> None: ...


def _check_region(fb_buf: bytes, fb_width: int, sx: int, sy: int, w: int, h: int) -> None:
    if min(fb_width, sx, sy, w, h) < 0:
        raise ValueError("region coordinates must not be negative")
    if w and h:
        end = ((sy + h - 1) * fb_width + sx + w) * 3
        if end > len(fb_buf):
            raise IndexError("region extends past the end of the framebuffer")


def _encoded_rows(
    fb_buf: bytes, fb_width: int, sx: int, sy: int, w: int, h: int
) -> Iterator[bytes]:
    for row in range(sy, sy + h):
        start = (row * fb_width + sx) * 3
        yield bytes(fb_buf[start : start + w * 3]).translate(_WIRE_TABLE)


def encode_region(fb_buf: bytes, fb_width: int, sx: int, sy: int, w: int, h: int) -> bytes:
    """Convert a framebuffer region to panel wire format (each channel << 2)."""
    _check_region(fb_buf, fb_width, sx, sy, w, h)
    return b"".join(_encoded_rows(fb_buf, fb_width, sx, sy, w, h))


def iter_wire_chunks(
    fb_buf: bytes,
    fb_width: int,
    sx: int,
    sy: int,
    w: int,
    h: int,
    chunk_size: int = WIRE_BUF_SIZE,
) -> Iterator[bytes]:
    """Yield the encoded region in chunks of whole pixels no larger than ``chunk_size``."""
    if chunk_size < 3:
        raise ValueError("chunk size must hold at least one pixel")
    _check_region(fb_buf, fb_width, sx, sy, w, h)
    per_chunk = chunk_size // 3 * 3
    pending = bytearray()
    for row in _encoded_rows(fb_buf, fb_width, sx, sy, w, h):
        pending += row
        while len(pending) >= per_chunk:
            yield bytes(pending[:per_chunk])
            del pending[:per_chunk]
    if pending:
        yield bytes(pending)


class PanelLink:
    """Drives the panel: short commands written directly, pixels streamed in chunks."""

    def __init__(
        self,
        bus: PanelBus,
        cs: OutputPin,
        dc: OutputPin,
        chunk_size: int = WIRE_BUF_SIZE,
    ) -> None:
        self.bus = bus
        self.cs = cs
        self.dc = dc
        self.chunk_size = chunk_size

    def send_command(self, cmd: int, args: bytes = b"") -> None:
        """Send a command byte, then its parameter bytes if any."""
        self.dc.set_low()
        self.cs.set_low()
        self.bus.write(bytes([cmd & 0xFF]))
        self.cs.set_high()
        if args:
            self.dc.set_high()
            self.cs.set_low()
            self.bus.write(bytes(args))
            self.cs.set_high()

    def set_address_window(self, sx: int, sy: int, ex: int, ey: int) -> None:
        """Select the inclusive pixel window the next memory write fills."""
        self.send_command(CMD_COLUMN_ADDRESS_SET, _pair(sx, ex))
        self.send_command(CMD_PAGE_ADDRESS_SET, _pair(sy, ey))

    async def flush_region(
        self, fb_buf: bytes, fb_width: int, sx: int, sy: int, w: int, h: int
    ) -> int:
        """Stream a framebuffer region to the panel; return the pixel count."""
        pixel_count = w * h
        if pixel_count == 0:
            return 0
        _check_region(fb_buf, fb_width, sx, sy, w, h)
        self.set_address_window(sx, sy, sx + w - 1, sy + h - 1)
        self.dc.set_low()
        self.cs.set_low()
        try:
            self.bus.write(bytes([CMD_MEMORY_WRITE]))
            self.dc.set_high()
            for chunk in iter_wire_chunks(fb_buf, fb_width, sx, sy, w, h, self.chunk_size):
                await self.bus.write_async(chunk)
        finally:
            self.cs.set_high()
        return pixel_count


def _pair(start: int, end: int) -> bytes:
    return (start & 0xFFFF).to_bytes(2, "big") + (end & 0xFFFF).to_bytes(2, "big")