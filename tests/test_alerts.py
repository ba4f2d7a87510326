import io
import sys
import wave
from types import SimpleNamespace

import pytest

from mediconnect.features.reminders import alerts
from mediconnect.features.reminders.alerts import (
    AcknowledgmentQueue,
    DesktopAlerts,
    build_alert_samples,
    build_alert_tone,
    notification_body,
    prompt_text,
)
from mediconnect.schemas import Reminder


@pytest.fixture()
def aspirin():
    return Reminder(id=1, medicine="Aspirin", time="08:00")


def test_messages(aspirin):
    assert notification_body(aspirin) == "Time to take Aspirin"
    assert prompt_text(aspirin) == "⏰ Medicine Reminder: Aspirin at 08:00"


def test_envelope_decays_to_floor():
    assert alerts._envelope(0.0) == pytest.approx(0.28)
    assert alerts._envelope(0.16) == pytest.approx(0.01)
    assert alerts._envelope(0.19) == pytest.approx(0.01)
    assert alerts._envelope(0.05) < 0.28


def test_alert_tone_is_four_bursts_of_880hz():
    rate = 8000
    samples = build_alert_samples(rate)
    # 3 gaps of 200 ms plus a final 200 ms burst
    assert len(samples) == int(0.8 * rate)

    burst = int(0.2 * rate)
    for b in range(4):
        chunk = samples[b * burst:(b + 1) * burst]
        head = max(abs(s) for s in chunk[: rate // 100])
        tail = max(abs(s) for s in chunk[-rate // 100:])
        assert 0.2 < head <= 0.28
        assert tail <= 0.011

    # 880 Hz → 176 rising zero crossings per 200 ms burst
    first = samples[:burst]
    crossings = sum(1 for a, b in zip(first, first[1:]) if a <= 0 < b)
    assert 170 <= crossings <= 180


def test_alert_tone_wav_header():
    data = build_alert_tone(8000)
    with wave.open(io.BytesIO(data), "rb") as wav:
        assert wav.getnchannels() == 1
        assert wav.getsampwidth() == 2
        assert wav.getframerate() == 8000
        assert wav.getnframes() == 6400


def test_acknowledgment_queue_drains():
    queue = AcknowledgmentQueue(maxlen=2)
    queue.push("a")
    queue.push("b")
    queue.push("c")
    assert len(queue) == 2
    assert queue.drain() == ["b", "c"]
    assert queue.drain() == []


def test_prompt_is_queued(aspirin):
    desktop = DesktopAlerts(notifications_enabled=False, sound_enabled=False)
    desktop.prompt(aspirin)
    assert desktop.prompts.drain() == ["⏰ Medicine Reminder: Aspirin at 08:00"]


def test_notify_uses_plyer(aspirin, monkeypatch):
    sent = []
    fake_plyer = SimpleNamespace(notification=SimpleNamespace(notify=lambda **kw: sent.append(kw)))
    monkeypatch.setitem(sys.modules, "plyer", fake_plyer)

    DesktopAlerts(sound_enabled=False).notify(aspirin)
    assert sent and sent[0]["title"] == "MediConnect Reminder"
    assert sent[0]["message"] == "Time to take Aspirin"


def test_notify_disabled_is_silent(aspirin, monkeypatch):
    monkeypatch.setitem(sys.modules, "plyer", None)
    # Would raise ImportError if it tried to notify
    DesktopAlerts(notifications_enabled=False).notify(aspirin)


def test_sound_skipped_without_audio_backend(monkeypatch):
    monkeypatch.setitem(sys.modules, "sounddevice", None)
    DesktopAlerts(notifications_enabled=False).play_sound()


class FakeCallbackStop(Exception):
    pass


class FakeOutputStream:
    """Records stream setup; audio only moves when a test drives the callback."""

    created = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.started = False
        self.closed = False
        FakeOutputStream.created.append(self)

    def start(self):
        self.started = True

    def close(self):
        self.closed = True

    def pump(self, block_bytes=1024):
        """Run the callback like the audio thread would, until playback stops."""
        out = bytearray()
        while True:
            block = bytearray(b"\xff" * block_bytes)
            try:
                self.kwargs["callback"](block, block_bytes // 2, None, None)
            except FakeCallbackStop:
                out += block
                self.kwargs["finished_callback"]()
                return out
            out += block


@pytest.fixture()
def fake_sounddevice(monkeypatch):
    FakeOutputStream.created = []
    module = SimpleNamespace(RawOutputStream=FakeOutputStream, CallbackStop=FakeCallbackStop)
    monkeypatch.setitem(sys.modules, "sounddevice", module)
    return module


def test_sound_starts_without_waiting_for_playback(fake_sounddevice):
    desktop = DesktopAlerts(notifications_enabled=False)
    desktop.play_sound()

    (stream,) = FakeOutputStream.created
    assert stream.started
    assert stream.kwargs["samplerate"] == alerts.TONE_SAMPLE_RATE
    assert stream.kwargs["channels"] == 1
    assert stream.kwargs["dtype"] == "int16"
    # Returned before a single frame was consumed
    (playback,) = desktop._playbacks
    assert playback.position == 0
    assert not playback.finished.is_set()


def test_callback_streams_whole_tone_then_stops(fake_sounddevice):
    desktop = DesktopAlerts(notifications_enabled=False)
    desktop.play_sound()
    (stream,) = FakeOutputStream.created

    out = stream.pump()
    pcm = alerts.build_alert_pcm()
    assert bytes(out[:len(pcm)]) == pcm
    # Tail of the last block is silence, not leftover buffer contents
    assert set(out[len(pcm):]) <= {0}
    assert desktop._playbacks[0].finished.is_set()


def test_finished_streams_closed_on_next_play(fake_sounddevice):
    desktop = DesktopAlerts(notifications_enabled=False)
    desktop.play_sound()
    first = FakeOutputStream.created[0]
    first.pump()

    desktop.play_sound()
    assert first.closed
    assert len(desktop._playbacks) == 1
    assert desktop._playbacks[0].stream is FakeOutputStream.created[1]


def test_check_returns_while_tone_still_playing(fake_sounddevice, store, clock):
    from mediconnect.features.reminders.service import ReminderScheduler

    desktop = DesktopAlerts(notifications_enabled=False)
    store.add("Aspirin", "08:00")
    assert ReminderScheduler(store, desktop, clock=clock).check() == 1

    (stream,) = FakeOutputStream.created
    assert stream.started and not stream.closed
    assert not desktop._playbacks[0].finished.is_set()
    assert desktop.prompts.drain() == ["⏰ Medicine Reminder: Aspirin at 08:00"]
