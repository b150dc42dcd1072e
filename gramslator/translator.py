"""Background translation of transcripts, debounced and cached."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

from .app_state import AppState, ServiceStatus, Signal
from .client import Stream, TranslateError, translate_text
from .connection import Connection, ConnectionFailure, SlotPool
from .messages import MessageKind, TranslationCache, extract_transcript

log = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.5
"""Longest time partial transcripts are buffered before translating."""
TRANSLATE_PORT = 443
SOURCE_LANG = "en"
MAX_TRANSLATION_BYTES = 512
"""Translations longer than this many UTF-8 bytes are cut short."""
INVALID_UTF8 = "<invalid UTF-8>"


class Translator:
    """Turns transcript messages into translations shown on the screen.

    Partial transcripts arriving in quick succession are debounced so only
    the latest is translated.  A repeat of the most recent request is served
    from the cache without a network round trip.
    """

    def __init__(
        self,
        signal: Signal,
        state: AppState,
        display_signal: Signal,
        *,
        api_key: str,
        host: str = "translation.googleapis.com",
        port: int = TRANSLATE_PORT,
        cache: Optional[TranslationCache] = None,
        connect: Optional[Callable[[], Awaitable[Stream]]] = None,
        debounce: float = DEBOUNCE_SECONDS,
        pool: Optional[SlotPool] = None,
    ) -> None:
        self.signal = signal
        self.state = state
        self.display_signal = display_signal
        self.api_key = api_key
        self.host = host
        self.port = port
        self.cache = TranslationCache() if cache is None else cache
        self.debounce = debounce
        self.pool = pool
        self.last_json: Optional[str] = None
        self._connect = connect if connect is not None else self._open_connection

    async def _open_connection(self) -> Connection:
        return await Connection.open(self.host, self.port, True, self.pool)

    def _set_status(self, status: ServiceStatus) -> None:
        if self.state.update_translate_status(status):
            self.display_signal.signal()

    async def translate_response(
        self, conn: Stream, transcript: str, target_lang: str
    ) -> Optional[str]:
        """Translate ``transcript`` over ``conn`` and publish the result.

        On success the cache and the shared state are updated and the
        display is woken; the translation is returned.  On failure the
        error is logged and ``None`` is returned.
        """
        log.info('translating "%s" (%s -> %s)...', transcript, SOURCE_LANG, target_lang)
        try:
            result = await translate_text(conn, transcript, SOURCE_LANG, target_lang, self.api_key)
        except TranslateError as exc:
            log.error("translation failed: %r", exc)
            return None
        raw = result.encode("utf-8")[:MAX_TRANSLATION_BYTES]
        try:
            translated = raw.decode("utf-8")
        except UnicodeDecodeError:
            translated = INVALID_UTF8
        log.info("translation result: %s", translated)
        self.cache.store(transcript, target_lang, translated)
        if self.state.update_translation(translated):
            self.display_signal.signal()
        return translated

    async def next_request(self) -> str:
        """Wait for work and return the Deepgram JSON to translate next.

        The first transcript opens a debounce window; newer transcripts
        replace it until the window closes or a flush or retranslate
        message arrives.  A retranslate with nothing translated yet, and a
        flush with nothing pending, are ignored.
        """
        loop = asyncio.get_running_loop()
        while True:
            message = await self.signal.wait()
            if message.kind is MessageKind.DG_JSON:
                pending = message.json_text
                break
            if message.kind is MessageKind.RETRANSLATE and self.last_json is not None:
                pending = self.last_json
                break

        deadline = loop.time() + self.debounce
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                log.info("debounce deadline reached; translating buffered transcript")
                break
            try:
                message = await asyncio.wait_for(self.signal.wait(), remaining)
            except asyncio.TimeoutError:
                log.info("debounce deadline reached; translating buffered transcript")
                break
            if message.kind is MessageKind.DG_JSON:
                pending = message.json_text
            elif message.kind is MessageKind.FLUSH:
                log.info("final transcript received; translating immediately")
                break
            else:
                log.info("language changed; translating immediately")
                break

        self.last_json = pending
        return pending

    async def run(self) -> None:
        """Translate requests forever."""
        while True:
            json_text = await self.next_request()
            transcript = extract_transcript(json_text)
            if transcript is None:
                log.info("no transcript field found in response")
                continue

            target_lang = self.state.target_lang()
            cached = self.cache.lookup(transcript, target_lang)
            if cached is not None:
                log.info('translation cache hit: "%s"', cached)
                if self.state.update_translation(cached):
                    self.display_signal.signal()
                continue

            self._set_status(ServiceStatus.CONNECTING)
            try:
                conn = await self._connect()
            except (ConnectionFailure, OSError) as exc:
                log.info("failed to connect to the translation service: %r", exc)
                self._set_status(ServiceStatus.ERROR)
                continue
            self._set_status(ServiceStatus.CONNECTED)

            try:
                await self.translate_response(conn, transcript, target_lang)
            finally:
                await conn.close()
            self._set_status(ServiceStatus.IDLE)