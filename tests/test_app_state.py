import asyncio

import pytest

from gramslator.app_state import (
    LANGUAGES,
    SAMPLE_RATE,
    AppState,
    ServiceStatus,
    Signal,
    StateSnapshot,
)


def test_initial_snapshot_defaults():
    snap = AppState().snapshot()
    assert snap == StateSnapshot()
    assert snap.transcript == ""
    assert snap.translation == ""
    assert snap.wifi_status is ServiceStatus.IDLE
    assert snap.deepgram_status is ServiceStatus.IDLE
    assert snap.translate_status is ServiceStatus.IDLE
    assert snap.target_lang == "es"


def test_update_transcript_reports_change():
    state = AppState()
    assert state.update_transcript("hello") is True
    assert state.update_transcript("hello") is False
    assert state.update_transcript("world") is True
    assert state.snapshot().transcript == "world"


def test_update_translation_reports_change():
    state = AppState()
    assert state.update_translation("hola") is True
    assert state.update_translation("hola") is False
    assert state.snapshot().translation == "hola"


def test_empty_update_on_fresh_state_is_unchanged():
    state = AppState()
    assert state.update_transcript("") is False
    assert state.update_translation("") is False


@pytest.mark.parametrize(
    "method, field",
    [
        ("update_wifi_status", "wifi_status"),
        ("update_deepgram_status", "deepgram_status"),
        ("update_translate_status", "translate_status"),
    ],
)
def test_status_updates(method, field):
    state = AppState()
    update = getattr(state, method)
    assert update(ServiceStatus.IDLE) is False
    assert update(ServiceStatus.CONNECTING) is True
    assert update(ServiceStatus.CONNECTING) is False
    assert update(ServiceStatus.ERROR) is True
    assert getattr(state.snapshot(), field) is ServiceStatus.ERROR


def test_statuses_are_independent():
    state = AppState()
    state.update_wifi_status(ServiceStatus.CONNECTED)
    snap = state.snapshot()
    assert snap.wifi_status is ServiceStatus.CONNECTED
    assert snap.deepgram_status is ServiceStatus.IDLE
    assert snap.translate_status is ServiceStatus.IDLE


def test_cycle_forward_and_backward():
    state = AppState()
    assert state.cycle_target_lang(True) == "fr"
    assert state.target_lang() == "fr"
    assert state.cycle_target_lang(False) == "es"
    assert state.cycle_target_lang(False) == "uk"
    assert state.snapshot().target_lang == "uk"


def test_cycle_full_round_returns_to_start():
    state = AppState()
    seen = [state.cycle_target_lang(True) for _ in LANGUAGES]
    assert seen[-1] == state.target_lang() == LANGUAGES[0]
    assert sorted(seen) == sorted(LANGUAGES)


def test_sample_rate_and_languages_match_protocol_defaults():
    assert SAMPLE_RATE == 8000
    assert LANGUAGES[0] == AppState().target_lang()


def test_signal_starts_empty_and_reset_clears():
    sig = Signal()
    assert sig.signaled() is False
    sig.signal("x")
    assert sig.signaled() is True
    sig.reset()
    assert sig.signaled() is False


@pytest.mark.asyncio
async def test_signal_latest_wins():
    sig = Signal()
    sig.signal(1)
    sig.signal(2)
    assert await sig.wait() == 2
    assert sig.signaled() is False


@pytest.mark.asyncio
async def test_signal_wakes_waiter():
    sig = Signal()
    waiter = asyncio.create_task(sig.wait())
    await asyncio.sleep(0)
    assert waiter.done() is False
    sig.signal("wake")
    assert await asyncio.wait_for(waiter, 1.0) == "wake"


@pytest.mark.asyncio
async def test_signal_wait_times_out_when_not_signalled():
    sig = Signal()
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(sig.wait(), 0.01)