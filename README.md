# gramslator

Building blocks for a live speech translator. Microphone audio is streamed
to the Deepgram speech-to-text service over a WebSocket, each new transcript
is sent to Google Translate after a short debounce, and the latest
transcript and translation are laid out on a 480×320 screen with word wrap
and automatic scrolling. The pieces run as asyncio tasks that talk through a
shared `AppState` and latest-wins `Signal`s.

## What is inside

| Module | Purpose |
| --- | --- |
| `gramslator.app_state` | `AppState`, `ServiceStatus`, `StateSnapshot`, the latest-wins `Signal`, `LANGUAGES` and `SAMPLE_RATE`. |
| `gramslator.framebuffer` | `Framebuffer` in 6-bit-per-channel colour (`Rgb666`) with clipping and dirty-region tracking, and `Rect`. |
| `gramslator.font` | `FontRenderer`: glyphs rasterised on first use, kept in an LRU cache, blended into a target by coverage. `TrueTypeFace` reads TrueType/OpenType bytes through Pillow. |
| `gramslator.layout` | Screen layout constants, `word_wrap`, scrolling `Section`s, `render_section` and `draw_separator`. |
| `gramslator.status` | `primary_status_text`, `translate_status_text` and the functions that draw them. |
| `gramslator.display` | `DisplayRenderer`, which redraws the screen when the state changes, and `render_lang_overlay`. |
| `gramslator.panel` | `encode_region`, `iter_wire_chunks` and `PanelLink` for streaming framebuffer regions to an ILI9488-style panel. |
| `gramslator.messages` | `TranscriptMessage`, `MessageKind`, `extract_transcript` and the single-entry `TranslationCache`. |
| `gramslator.client` | Translation request building and response parsing; `translate_text`. |
| `gramslator.connection` | `Connection` (TCP or TLS) with DNS resolution, connect retries and a `SlotPool` limiting open connections. |
| `gramslator.websocket` | `FrameType`, `mask_payload`, `encode_frame_header`, `send_frame`, `send_binary_premasked`, `read_frame`. |
| `gramslator.deepgram` | `DeepgramConfig`, `build_listen_request`, `listen_socket_upgrade`, `create_listen_socket`. |
| `gramslator.translator` | `Translator`: debounces transcripts, consults the cache and translates. |
| `gramslator.streamer` | `DeepgramStreamer`: streams audio, handles incoming frames, reconnects; `drop_duplicate_channel`, `handle_ws_frame`. |
| `gramslator.touch` | `to_display_coords`, `classify_zone`, `Zone` and `TouchHandler` for cycling languages. |

## Shared state

```python
from gramslator.app_state import AppState

state = AppState()
state.update_transcript("hello there")    # True: the value changed
state.update_transcript("hello there")    # False: nothing new
state.target_lang()                       # "es"
state.cycle_target_lang(True)             # "fr"
state.cycle_target_lang(False)            # back to "es"
snapshot = state.snapshot()
```

Target languages cycle through `es`, `fr`, `de`, `ja`, `ga`, `hi` and `uk`.
Every `update_*` method returns whether the stored value changed, so callers
only wake the display or start a translation when something new arrived.

`Signal` holds at most one pending value: signalling again before anyone
waits replaces it, and `await signal.wait()` takes it.

## Transcripts and translation

```python
from gramslator.messages import extract_transcript, TranslationCache

extract_transcript('{"transcript":"good morning"}')   # "good morning"
extract_transcript('{"transcript":""}')               # None

cache = TranslationCache()
cache.store("good morning", "es", "buenos días")
cache.lookup("good morning", "es")                    # "buenos días"
cache.lookup("good morning", "fr")                    # None
```

`gramslator.client.translate_text(conn, text, source_lang, target_lang, api_key)`
posts a JSON body to the translation endpoint over an open stream and returns
the translated text. It raises a `TranslateError` subclass
(`BodyTooLongError`, `RequestFailedError`, `ResponseReadError`, `ParseError`)
when something goes wrong. Request bodies are limited to 512 bytes and
responses to 2048 bytes; chunked transfer framing is stripped.

`Translator(signal, state, display_signal, api_key="placeholder")` waits for
`TranscriptMessage`s, keeps only the latest transcript within a 0.5 s window
(ended early by a flush or retranslate message), serves repeats from the
cache and otherwise opens a TLS connection on port 443 to translate.

## Speech-to-text

`DeepgramConfig.from_env()` reads its settings from `os.environ`, or from a
mapping passed in:

* `DEEPGRAM_HOST` – the service host name (required)
* `DEEPGRAM_TOKEN` – the access token (required)
* `DEEPGRAM_USE_TLS` – `true` (default) or `false`
* `DEEPGRAM_PORT` – defaults to `443`

`DeepgramStreamer` connects, upgrades to a WebSocket and then alternates
between sending audio and handling frames already waiting from the server.
Audio is 16-bit linear PCM at 8000 Hz; duplicated stereo samples are reduced
to mono with `drop_duplicate_channel`, the payload is masked once and each
frame goes out as a header write and a payload write. On failure or end of
stream it sends a flush to the translator, marks the service as errored and
reconnects after 3 seconds.

## Display

`DisplayRenderer` splits the screen into a large translation area at the top
and a smaller transcript strip below a thin separator. Text that does not
fit scrolls up; a centred overlay shows the newly selected language for one
second after it changes. While WiFi or Deepgram is not connected, a status
message replaces the translation. Only the changed region of the
`Framebuffer` is pushed to the panel object, which needs a
`fill_contiguous(area, colors)` method.

```python
from gramslator.font import FontRenderer

with open("SomeFont.ttf", "rb") as f:
    renderer = FontRenderer.from_bytes(f.read())
```

`TouchHandler.handle(point)` maps a touch in native panel coordinates to the
rotated display: the left half selects the previous language, the right half
the next, once per finger-down per half.

## What the package does not do

There is no command or program entry point that starts everything; the
tasks must be created and wired together by the caller. The package does
not capture audio from a microphone (`DeepgramStreamer` takes any object
with an async `read`), does not drive display, touch or WiFi hardware itself
(`PanelLink` and `TouchHandler.run` take bus, pin and poll objects supplied
by the caller), and keeps no state on disk.

## Running the tests

Install the `test` extra and run `pytest` from the project root.