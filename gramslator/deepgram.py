"""Opening a Deepgram live-transcription WebSocket."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional, Protocol

from .app_state import SAMPLE_RATE
from .client import find_header_end
from .connection import Connection, SlotPool

log = logging.getLogger(__name__)

HTTP_BUF_SIZE = 1024
"""Largest HTTP upgrade response accepted, in bytes."""
DEFAULT_PORT = 443


class Stream(Protocol):
    async def read(self, size: int) -> bytes: ...

    async def write_all(self, data: bytes) -> None: ...

    async def flush(self) -> None: ...


class UpgradeError(Exception):
    """The HTTP to WebSocket upgrade did not succeed."""


def _parse_bool(name: str, value: str) -> bool:
    if value == "true":
        return True
    if value == "false":
        return False
    raise ValueError(f"{name} must be 'true' or 'false', not {value!r}")


def _parse_port(name: str, value: str) -> int:
    if not (value.isascii() and value.isdigit()) or int(value) > 0xFFFF:
        raise ValueError(f"{name} must be a port number, not {value!r}")
    return int(value)


@dataclass(frozen=True)
class DeepgramConfig:
    """Where and how to reach the Deepgram listen endpoint."""

    host: str
    token: str
    use_tls: bool = True
    port: int = DEFAULT_PORT
    sample_rate: int = SAMPLE_RATE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DeepgramConfig":
        """Read DEEPGRAM_HOST, DEEPGRAM_TOKEN, DEEPGRAM_USE_TLS and DEEPGRAM_PORT."""
        env = os.environ if environ is None else environ
        missing = [key for key in ("DEEPGRAM_HOST", "DEEPGRAM_TOKEN") if key not in env]
        if missing:
            raise ValueError(f"missing environment variables: {', '.join(missing)}")
        return cls(
            host=env["DEEPGRAM_HOST"],
            token=env["DEEPGRAM_TOKEN"],
            use_tls=_parse_bool("DEEPGRAM_USE_TLS", env.get("DEEPGRAM_USE_TLS", "true")),
            port=_parse_port("DEEPGRAM_PORT", env.get("DEEPGRAM_PORT", str(DEFAULT_PORT))),
        )


def build_listen_request(host: str, token: str, sample_rate: int = SAMPLE_RATE) -> bytes:
    """The HTTP request that upgrades to a Deepgram listen WebSocket."""
    return (
        "GET /v2/listen?eot_threshold=0.7&eot_timeout_ms=5000&model=flux-general-en"
        f"&encoding=linear16&sample_rate={sample_rate} HTTP/1.1\r\n"
        f"Host: {host}\r\n"
        "Upgrade: websocket\r\n"
        "Connection: Upgrade\r\n"
        "Sec-WebSocket-Key: dGhlIHNhbXBsZSBub25jZQ==\r\n"
        "Sec-WebSocket-Version: 13\r\n"
        f"Authorization: Token {token}\r\n"
        "\r\n"
    ).encode("utf-8")


async def listen_socket_upgrade(conn: Stream, request: bytes) -> str:
    """Send ``request`` and wait for a 101 response; return its status line."""
    log.info("WebSocket upgrade...")
    try:
        await conn.write_all(request)
        await conn.flush()
    except OSError as exc:
        raise UpgradeError(f"failed to send upgrade request: {exc}") from exc

    response = bytearray()
    while True:
        try:
            chunk = await conn.read(HTTP_BUF_SIZE - len(response))
        except OSError as exc:
            raise UpgradeError(f"failed reading HTTP response: {exc}") from exc
        if not chunk:
            raise UpgradeError("connection closed during WebSocket upgrade")
        response += chunk[: HTTP_BUF_SIZE - len(response)]

        end = find_header_end(response)
        if end is not None:
            line_end = response.find(b"\r\n", 0, end)
            if line_end < 0:
                line_end = end
            try:
                status_line = response[:line_end].decode("utf-8")
            except UnicodeDecodeError:
                status_line = "<invalid UTF-8>"
            log.info("HTTP response: %s", status_line)
            if "101" not in status_line:
                raise UpgradeError(f"WebSocket upgrade failed: {status_line}")
            log.info("WebSocket connected")
            return status_line

        if len(response) >= HTTP_BUF_SIZE:
            raise UpgradeError("HTTP response headers too large")


async def create_listen_socket(
    config: DeepgramConfig, pool: Optional[SlotPool] = None
) -> Connection:
    """Connect to Deepgram and upgrade to a WebSocket ready for audio."""
    scheme = "HTTPS" if config.use_tls else "HTTP"
    log.info("connecting to Deepgram over %s (port %d)...", scheme, config.port)
    conn = await Connection.open(config.host, config.port, config.use_tls, pool)
    request = build_listen_request(config.host, config.token, config.sample_rate)
    try:
        await listen_socket_upgrade(conn, request)
    except BaseException:
        await conn.close()
        raise
    return conn