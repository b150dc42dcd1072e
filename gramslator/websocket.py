"""WebSocket frame encoding, masking and reading over a byte stream."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol

MAX_HEADER_LEN = 14
"""Longest possible frame header: 2 + 8 length bytes + 4 mask bytes."""


class Stream(Protocol):
    async def read(self, size: int) -> bytes: ...

    async def write_all(self, data: bytes) -> None: ...


class FrameType(Enum):
    """WebSocket frame opcodes."""

    CONTINUATION = 0x0
    TEXT = 0x1
    BINARY = 0x2
    CLOSE = 0x8
    PING = 0x9
    PONG = 0xA


class WebSocketError(Exception):
    """A frame could not be read: malformed, too large or cut short."""


def mask_payload(payload: bytes, mask_key: int, offset: int = 0) -> bytes:
    """XOR ``payload`` with the repeating 4-byte ``mask_key``.

    ``offset`` is the position of ``payload`` within the whole frame payload.
    Masking is its own inverse.
    """
    mask = (mask_key & 0xFFFFFFFF).to_bytes(4, "big")
    return bytes(b ^ mask[(offset + i) % 4] for i, b in enumerate(payload))


def encode_frame_header(
    frame_type: FrameType, payload_len: int, mask_key: Optional[int] = None
) -> bytes:
    """Header of a final (FIN) frame of ``frame_type`` carrying ``payload_len`` bytes."""
    if payload_len < 0:
        raise ValueError("payload length must not be negative")
    mask_bit = 0x80 if mask_key is not None else 0
    header = bytearray([0x80 | FrameType(frame_type).value])
    if payload_len < 126:
        header.append(mask_bit | payload_len)
    elif payload_len <= 0xFFFF:
        header.append(mask_bit | 126)
        header += payload_len.to_bytes(2, "big")
    else:
        header.append(mask_bit | 127)
        header += payload_len.to_bytes(8, "big")
    if mask_key is not None:
        header += (mask_key & 0xFFFFFFFF).to_bytes(4, "big")
    return bytes(header)


async def send_frame(
    conn: Stream, frame_type: FrameType, payload: bytes, mask_key: Optional[int] = None
) -> None:
    """Send one frame, masking the payload when ``mask_key`` is given."""
    header = encode_frame_header(frame_type, len(payload), mask_key)
    body = mask_payload(payload, mask_key) if mask_key is not None else bytes(payload)
    await conn.write_all(header + body)


async def send_binary_premasked(conn: Stream, mask_key: int, payload: bytes) -> None:
    """Send a binary frame whose payload was already masked with ``mask_key``.

    The header and the payload go out as two writes.
    """
    await conn.write_all(encode_frame_header(FrameType.BINARY, len(payload), mask_key))
    await conn.write_all(bytes(payload))


async def _read_exact(conn: Stream, size: int) -> bytes:
    data = bytearray()
    while len(data) < size:
        chunk = await conn.read(size - len(data))
        if not chunk:
            raise WebSocketError("connection closed in the middle of a frame")
        data += chunk
    return bytes(data)


async def read_frame(conn: Stream, max_len: int) -> tuple[FrameType, bytes]:
    """Read one frame and return its type and (unmasked) payload."""
    first, second = await _read_exact(conn, 2)
    opcode = first & 0x0F
    try:
        frame_type = FrameType(opcode)
    except ValueError:
        raise WebSocketError(f"unknown opcode {opcode:#x}") from None
    masked = bool(second & 0x80)
    length = second & 0x7F
    if length == 126:
        length = int.from_bytes(await _read_exact(conn, 2), "big")
    elif length == 127:
        length = int.from_bytes(await _read_exact(conn, 8), "big")
    mask_key = int.from_bytes(await _read_exact(conn, 4), "big") if masked else None
    if length > max_len:
        raise WebSocketError(f"frame payload of {length} bytes exceeds limit {max_len}")
    payload = await _read_exact(conn, length)
    if mask_key is not None:
        payload = mask_payload(payload, mask_key)
    return frame_type, payload