"""Messages to the translation task, transcript extraction and the result cache."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MessageKind(Enum):
    """What a :class:`TranscriptMessage` asks the translation task to do."""

    DG_JSON = "dg_json"
    FLUSH = "flush"
    RETRANSLATE = "retranslate"


@dataclass(frozen=True)
class TranscriptMessage:
    """A request for the translation task.

    ``DG_JSON`` carries a Deepgram JSON frame; ``FLUSH`` asks for the buffered
    transcript to be translated at once; ``RETRANSLATE`` asks for the latest
    transcript to be translated again into the new target language.
    """

    kind: MessageKind
    json_text: Optional[str] = None

    @classmethod
    def dg_json(cls, json_text: str) -> "TranscriptMessage":
        return cls(MessageKind.DG_JSON, json_text)

    @classmethod
    def flush(cls) -> "TranscriptMessage":
        return cls(MessageKind.FLUSH)

    @classmethod
    def retranslate(cls) -> "TranscriptMessage":
        return cls(MessageKind.RETRANSLATE)


_NEEDLE = '"transcript":"'


def extract_transcript(json_text: str) -> Optional[str]:
    """Return the ``"transcript"`` value of a Deepgram frame, or ``None``.

    ``None`` is returned when the field is missing, unterminated or empty.
    """
    start = json_text.find(_NEEDLE)
    if start < 0:
        return None
    value_start = start + len(_NEEDLE)
    end = json_text.find('"', value_start)
    if end < 0:
        return None
    transcript = json_text[value_start:end]
    return transcript or None


class TranslationCache:
    """Single-entry cache of the most recent translation."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entry: Optional[tuple[str, str, str]] = None

    def lookup(self, transcript: str, target_lang: str) -> Optional[str]:
        """Cached translation if both transcript and language match."""
        with self._lock:
            if self._entry is None:
                return None
            prev_input, prev_lang, result = self._entry
            if prev_input == transcript and prev_lang == target_lang:
                return result
            return None

    def store(self, transcript: str, target_lang: str, translated: str) -> None:
        """Replace the cached entry."""
        with self._lock:
            self._entry = (transcript, target_lang, translated)