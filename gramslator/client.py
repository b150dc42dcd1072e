"""HTTP client for the Google Translate v2 API over an established stream."""

from __future__ import annotations

import logging
import string
from typing import Optional, Protocol

log = logging.getLogger(__name__)

MAX_BODY_LEN = 512
"""Largest JSON request body, in bytes."""
MAX_REQUEST_LEN = 1024
"""Largest HTTP request head, in bytes."""
MAX_RESPONSE_LEN = 2048
"""Largest HTTP response accepted, in bytes."""
DEFAULT_HOST = "translation.googleapis.com"

_TRANSLATED_KEY = '"translatedText"'
_HEX_DIGITS = frozenset(string.hexdigits)


class TranslateError(Exception):
    """Base class for translation failures."""


class BodyTooLongError(TranslateError):
    """The JSON request body does not fit in the request buffer."""


class RequestFailedError(TranslateError):
    """The HTTP request could not be built or sent."""


class ResponseReadError(TranslateError):
    """The HTTP response could not be read or is malformed."""


class ParseError(TranslateError):
    """The response holds no usable ``translatedText``."""


class Stream(Protocol):
    """The byte stream a request is sent over."""

    async def read(self, size: int) -> bytes: ...

    async def write_all(self, data: bytes) -> None: ...

    async def flush(self) -> None: ...


def find_header_end(buf: bytes) -> Optional[int]:
    """Index of the first ``\\r`` of ``\\r\\n\\r\\n`` in ``buf``, or ``None``."""
    index = bytes(buf).find(b"\r\n\r\n")
    return None if index < 0 else index


_ESCAPES = {'"': '\\"', "\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t"}


def json_escape(text: str) -> str:
    """Escape quotes, backslashes, newlines, carriage returns and tabs."""
    return "".join(_ESCAPES.get(ch, ch) for ch in text)


def build_request_body(text: str, source_lang: str, target_lang: str) -> bytes:
    """JSON body of a translation request; raises if longer than allowed."""
    body = (
        f'{{"q":"{json_escape(text)}","source":"{source_lang}",'
        f'"target":"{target_lang}","format":"text"}}'
    ).encode("utf-8")
    if len(body) > MAX_BODY_LEN:
        raise BodyTooLongError(f"request body is {len(body)} bytes, limit {MAX_BODY_LEN}")
    return body


def build_request_head(api_key: str, host: str, body_len: int) -> bytes:
    """HTTP request line and headers for a body of ``body_len`` bytes."""
    head = (
        f"POST /language/translate/v2?key={api_key} HTTP/1.1\r\n"
        f"Host: {host}\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {body_len}\r\n"
        "Connection: close\r\n"
        "\r\n"
    ).encode("utf-8")
    if len(head) > MAX_REQUEST_LEN:
        raise RequestFailedError(f"request head is {len(head)} bytes, limit {MAX_REQUEST_LEN}")
    return head


def strip_chunked_framing(body: str) -> str:
    """Remove chunked transfer-encoding framing from a response body, if any."""
    trimmed = body.lstrip()
    first_crlf = trimmed.find("\r\n")
    if first_crlf >= 0:
        size_str = trimmed[:first_crlf].strip()
        if size_str and all(c in _HEX_DIGITS for c in size_str):
            rest = trimmed[first_crlf + 2 :]
            chunk_end = rest.rfind("\r\n0\r\n")
            if chunk_end >= 0:
                return rest[:chunk_end]
            return rest.rstrip()
    return body


def parse_translate_response(data: bytes) -> str:
    """Extract the translated text from a complete HTTP response."""
    try:
        text = bytes(data).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError("response is not valid UTF-8") from exc

    header_end = text.find("\r\n\r\n")
    if header_end < 0:
        raise ResponseReadError("could not find end of HTTP headers")

    status_end = text.find("\r\n", 0, header_end)
    status_line = text[: status_end if status_end >= 0 else header_end]
    log.info("HTTP response: %s", status_line)

    body = strip_chunked_framing(text[header_end + 4 :])
    log.debug("response body (%d chars): %s", len(body), body)

    key_start = body.find(_TRANSLATED_KEY)
    if key_start >= 0:
        after_key = key_start + len(_TRANSLATED_KEY)
        quote = body.find('"', after_key)
        if quote >= 0:
            value_start = quote + 1
            end = body.find('"', value_start)
            if end >= 0:
                translated = body[value_start:end]
                log.info('translated text: "%s"', translated)
                return translated
    raise ParseError("could not find translatedText in response")


async def translate_text(
    conn: Stream,
    text: str,
    source_lang: str,
    target_lang: str,
    api_key: str,
    host: str = DEFAULT_HOST,
) -> str:
    """Translate ``text`` from ``source_lang`` to ``target_lang`` over ``conn``."""
    body = build_request_body(text, source_lang, target_lang)
    head = build_request_head(api_key, host, len(body))
    log.info('translating "%s" (%s -> %s)', text, source_lang, target_lang)

    try:
        await conn.write_all(head)
        await conn.write_all(body)
        await conn.flush()
    except OSError as exc:
        raise RequestFailedError(f"sending request failed: {exc}") from exc

    response = bytearray()
    while True:
        remaining = MAX_RESPONSE_LEN - len(response)
        if remaining <= 0:
            raise ResponseReadError("response too large for buffer")
        try:
            chunk = await conn.read(remaining)
        except OSError as exc:
            if response:
                break
            raise ResponseReadError(f"reading response failed: {exc}") from exc
        if not chunk:
            break
        response += chunk[:remaining]

    return parse_translate_response(bytes(response))