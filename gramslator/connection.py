"""Pooled TCP and TLS client connections with DNS resolution and connect retries."""

from __future__ import annotations

import asyncio
import logging
import socket
import ssl
import threading
from typing import Optional

log = logging.getLogger(__name__)

MAX_CONNECTIONS = 4
"""Number of connections that may be open at the same time."""
MAX_TCP_RETRIES = 5
"""Attempts made to establish a TCP connection before giving up."""
CONNECT_TIMEOUT = 30.0
"""Seconds allowed for one TCP connect or TLS handshake."""
RETRY_DELAY = 1.0
"""Seconds to wait after a failed TCP connect attempt."""


class ConnectionFailure(Exception):
    """Base class for failures while opening a connection."""


class NoFreeBuffersError(ConnectionFailure):
    """Every connection slot in the pool is already taken."""


class DnsResolutionError(ConnectionFailure):
    """The host name could not be resolved."""


class TcpConnectError(ConnectionFailure):
    """The TCP connection failed after all attempts."""


class TlsHandshakeError(ConnectionFailure):
    """The TLS handshake did not complete."""


class SlotPool:
    """A fixed number of connection slots, claimed and released by index."""

    def __init__(self, size: int = MAX_CONNECTIONS) -> None:
        if size < 0:
            raise ValueError("pool size must not be negative")
        self.size = size
        self._lock = threading.Lock()
        self._claimed: set[int] = set()

    def claim(self) -> int:
        """Take the lowest free slot and return its index."""
        with self._lock:
            for index in range(self.size):
                if index not in self._claimed:
                    self._claimed.add(index)
                    return index
        raise NoFreeBuffersError(f"all {self.size} connection slots are in use")

    def release(self, index: int) -> None:
        """Give a slot back to the pool; releasing a free slot does nothing."""
        with self._lock:
            self._claimed.discard(index)

    def in_use(self) -> frozenset[int]:
        """Indices of the slots currently claimed."""
        with self._lock:
            return frozenset(self._claimed)


_SHARED_POOL = SlotPool()


async def resolve_dns(host: str) -> str:
    """Resolve ``host`` to its first IPv4 address."""
    log.info("resolving %s...", host)
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(
            host, None, family=socket.AF_INET, type=socket.SOCK_STREAM
        )
    except (socket.gaierror, UnicodeError) as exc:
        raise DnsResolutionError(f"could not resolve {host!r}: {exc}") from exc
    if not infos:
        raise DnsResolutionError(f"no IPv4 address for {host!r}")
    address = infos[0][4][0]
    log.info("resolved %s -> %s", host, address)
    return address


def _client_tls_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    return context


async def _tcp_connect(address: str, port: int, retries: int) -> socket.socket:
    loop = asyncio.get_running_loop()
    last_error: Optional[BaseException] = None
    log.info("TCP connecting to %s:%d...", address, port)
    for attempt in range(1, retries + 1):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setblocking(False)
        try:
            await asyncio.wait_for(loop.sock_connect(sock, (address, port)), CONNECT_TIMEOUT)
        except (OSError, asyncio.TimeoutError) as exc:
            sock.close()
            log.info(
                "TCP connect to %s:%d attempt %d/%d failed: %r",
                address, port, attempt, retries, exc,
            )
            last_error = exc
            await asyncio.sleep(RETRY_DELAY)
            continue
        log.info("TCP connected")
        return sock
    raise TcpConnectError(
        f"could not connect to {address}:{port} after {retries} attempts"
    ) from last_error


class Connection:
    """An open TCP or TLS stream that holds one pool slot until closed."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        pool: SlotPool,
        slot: int,
        tls: bool = False,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._pool = pool
        self.slot = slot
        self.is_tls = tls
        self._closed = False

    @classmethod
    async def open(
        cls,
        host: str,
        port: int,
        use_tls: bool = True,
        pool: Optional[SlotPool] = None,
        retries: int = MAX_TCP_RETRIES,
    ) -> "Connection":
        """Resolve ``host``, claim a slot, connect, and optionally start TLS."""
        if retries < 1:
            raise ValueError("at least one connect attempt is required")
        pool = _SHARED_POOL if pool is None else pool
        address = await resolve_dns(host)
        slot = pool.claim()
        try:
            sock = await _tcp_connect(address, port, retries)
            context = _client_tls_context() if use_tls else None
            try:
                if use_tls:
                    log.info("TLS handshake...")
                reader, writer = await asyncio.open_connection(
                    sock=sock,
                    ssl=context,
                    server_hostname=host if use_tls else None,
                    ssl_handshake_timeout=CONNECT_TIMEOUT if use_tls else None,
                )
            except (OSError, EOFError, asyncio.TimeoutError) as exc:
                sock.close()
                if use_tls:
                    raise TlsHandshakeError(f"TLS handshake with {host} failed: {exc!r}") from exc
                raise TcpConnectError(f"could not open stream to {host}: {exc!r}") from exc
        except BaseException:
            pool.release(slot)
            raise
        if use_tls:
            log.info("TLS established")
        return cls(reader, writer, pool, slot, use_tls)

    @property
    def closed(self) -> bool:
        """Whether :meth:`close` has been called."""
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ConnectionError("connection is closed")

    async def read(self, size: int = 4096) -> bytes:
        """Read up to ``size`` bytes; an empty result means the peer closed."""
        self._check_open()
        return await self._reader.read(size)

    async def write_all(self, data: bytes) -> None:
        """Write all of ``data``."""
        self._check_open()
        self._writer.write(bytes(data))
        await self._writer.drain()

    async def flush(self) -> None:
        """Wait until buffered output has been handed to the transport."""
        self._check_open()
        await self._writer.drain()

    async def close(self) -> None:
        """Close the stream and release the pool slot; safe to call twice."""
        if self._closed:
            return
        self._closed = True
        try:
            self._writer.close()
            await self._writer.wait_closed()
        except OSError as exc:
            log.info("close error (non-fatal): %r", exc)
        finally:
            self._pool.release(self.slot)

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()