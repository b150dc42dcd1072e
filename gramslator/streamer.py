"""Streaming microphone audio to Deepgram and handling what comes back."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional, Protocol

from .app_state import AppState, ServiceStatus, Signal
from .connection import ConnectionFailure, SlotPool
from .deepgram import DeepgramConfig, UpgradeError, create_listen_socket
from .messages import TranscriptMessage, extract_transcript
from .websocket import (
    FrameType,
    WebSocketError,
    mask_payload,
    read_frame,
    send_binary_premasked,
    send_frame,
)

log = logging.getLogger(__name__)

RECONNECT_DELAY = 3.0
"""Seconds to wait before reconnecting after a failure or end of stream."""
RECV_POLL = 0.005
"""Seconds to wait for a server frame between audio chunks."""
MASK_KEY = 0xDEADBEEF
MIC_CHUNK_SIZE = 8000
RECV_BUF_SIZE = 4096


class Stream(Protocol):
    async def read(self, size: int) -> bytes: ...

    async def write_all(self, data: bytes) -> None: ...

    async def flush(self) -> None: ...

    async def close(self) -> None: ...


class AudioSource(Protocol):
    """Captured PCM audio; an empty read means no more audio."""

    async def read(self, size: int) -> bytes: ...


def drop_duplicate_channel(data: bytes) -> bytes:
    """Keep every other 16-bit sample: ``[S0,S0,S1,S1,...]`` becomes ``[S0,S1,...]``.

    The result is half as long as ``data`` (rounded down).
    """
    data = bytes(data)
    kept = b"".join(data[i : i + 2] for i in range(0, len(data) - 1, 4))
    return kept[: len(data) // 2]


async def handle_ws_frame(
    frame_type: FrameType,
    payload: bytes,
    conn: Stream,
    mask_key: int,
    state: AppState,
    translate_signal: Signal,
    display_signal: Signal,
) -> bool:
    """Act on one incoming frame; return ``True`` when the stream should end."""
    if frame_type is FrameType.TEXT:
        try:
            json_text = bytes(payload).decode("utf-8")
        except UnicodeDecodeError:
            json_text = "<invalid UTF-8>"
        log.info("received: %s", json_text)
        transcript = extract_transcript(json_text)
        if transcript is not None:
            changed = state.update_transcript(transcript)
            display_signal.signal()
            if changed:
                translate_signal.signal(TranscriptMessage.dg_json(json_text))
        return False
    if frame_type is FrameType.BINARY:
        log.info("received binary frame (%d bytes)", len(payload))
        return False
    if frame_type is FrameType.CLOSE:
        log.info("WebSocket closed by server")
        return True
    if frame_type is FrameType.PING:
        log.info("ping received, sending pong")
        try:
            await send_frame(conn, FrameType.PONG, payload, mask_key)
            await conn.flush()
        except OSError as exc:
            log.info("pong failed: %r", exc)
        return False
    log.info("received %s frame (%d bytes)", frame_type.name, len(payload))
    return False


class DeepgramStreamer:
    """Keeps a Deepgram connection alive and streams microphone audio into it.

    Audio chunks and server frames are interleaved: after each chunk is
    sent, frames that are already waiting are read and handled.
    """

    def __init__(
        self,
        config: DeepgramConfig,
        state: AppState,
        mic: AudioSource,
        translate_signal: Signal,
        display_signal: Signal,
        *,
        connect: Optional[Callable[[], Awaitable[Stream]]] = None,
        pool: Optional[SlotPool] = None,
        reconnect_delay: float = RECONNECT_DELAY,
        recv_poll: float = RECV_POLL,
        mask_key: int = MASK_KEY,
        chunk_size: int = MIC_CHUNK_SIZE,
        recv_max: int = RECV_BUF_SIZE,
    ) -> None:
        self.config = config
        self.state = state
        self.mic = mic
        self.translate_signal = translate_signal
        self.display_signal = display_signal
        self.pool = pool
        self.reconnect_delay = reconnect_delay
        self.recv_poll = recv_poll
        self.mask_key = mask_key
        self.chunk_size = chunk_size
        self.recv_max = recv_max
        self._connect = connect if connect is not None else self._open

    async def _open(self) -> Stream:
        return await create_listen_socket(self.config, self.pool)

    def _set_status(self, status: ServiceStatus) -> None:
        if self.state.update_deepgram_status(status):
            self.display_signal.signal()

    async def _drain(self, conn: Stream) -> bool:
        """Handle waiting frames; return ``True`` when the stream should end."""
        while True:
            try:
                frame_type, payload = await asyncio.wait_for(
                    read_frame(conn, self.recv_max), self.recv_poll
                )
            except asyncio.TimeoutError:
                return False
            except (WebSocketError, OSError) as exc:
                log.info("WebSocket recv error: %r", exc)
                return True
            done = await handle_ws_frame(
                frame_type,
                payload,
                conn,
                self.mask_key,
                self.state,
                self.translate_signal,
                self.display_signal,
            )
            if done:
                return True

    async def stream_once(self, conn: Stream) -> None:
        """Stream audio over ``conn`` until it fails, closes or the audio ends."""
        log.info("starting microphone streaming...")
        while True:
            data = await self.mic.read(self.chunk_size)
            if not data:
                log.info("audio source ended")
                return
            mono = drop_duplicate_channel(data)
            masked = mask_payload(mono, self.mask_key)
            try:
                await send_binary_premasked(conn, self.mask_key, masked)
                await conn.flush()
            except OSError as exc:
                log.info("failed to send audio chunk: %r", exc)
                return
            if await self._drain(conn):
                return

    async def run(self) -> None:
        """Connect, stream and reconnect forever."""
        while True:
            self._set_status(ServiceStatus.CONNECTING)
            try:
                conn = await self._connect()
            except (ConnectionFailure, UpgradeError, OSError) as exc:
                log.info("Deepgram connect failed: %r, retrying...", exc)
                self._set_status(ServiceStatus.ERROR)
                await asyncio.sleep(self.reconnect_delay)
                continue
            self._set_status(ServiceStatus.CONNECTED)

            try:
                await self.stream_once(conn)
            finally:
                self.translate_signal.signal(TranscriptMessage.flush())
                await conn.close()
            self._set_status(ServiceStatus.ERROR)
            log.info("Deepgram connection lost; reconnecting in %s s", self.reconnect_delay)
            await asyncio.sleep(self.reconnect_delay)