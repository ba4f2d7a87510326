"""
Reminder alerts: system notification, alert tone and acknowledgment prompt
"""
import io
import logging
import math
import struct
import threading
import wave
from collections import deque
from typing import Any, Deque, List, Optional, Protocol

from mediconnect.schemas import Reminder

logger = logging.getLogger("reminder_alerts")

NOTIFICATION_TITLE = "MediConnect Reminder"
NOTIFICATION_APP_NAME = "MediConnect"

# Alert tone: 4 sine bursts at 880 Hz, one every 200 ms. Each burst starts at
# gain 0.28 and decays exponentially to 0.01 over 160 ms.
TONE_SAMPLE_RATE = 22050
TONE_FREQUENCY_HZ = 880.0
TONE_BURSTS = 4
TONE_SPACING_S = 0.2
TONE_BURST_S = 0.2
TONE_START_GAIN = 0.28
TONE_END_GAIN = 0.01
TONE_DECAY_S = 0.16


def notification_body(reminder: Reminder) -> str:
    return f"Time to take {reminder.medicine}"


def prompt_text(reminder: Reminder) -> str:
    return f"⏰ Medicine Reminder: {reminder.medicine} at {reminder.time}"


def _envelope(t: float) -> float:
    """Gain at ``t`` seconds into a burst."""
    if t >= TONE_DECAY_S:
        return TONE_END_GAIN
    ratio = TONE_END_GAIN / TONE_START_GAIN
    return TONE_START_GAIN * ratio ** (t / TONE_DECAY_S)


def build_alert_samples(sample_rate: int = TONE_SAMPLE_RATE) -> List[float]:
    """Float samples in [-1, 1] for the whole alert sequence."""
    total_s = TONE_SPACING_S * (TONE_BURSTS - 1) + TONE_BURST_S
    samples = [0.0] * int(round(total_s * sample_rate))
    burst_len = int(round(TONE_BURST_S * sample_rate))
    for burst in range(TONE_BURSTS):
        offset = int(round(burst * TONE_SPACING_S * sample_rate))
        for i in range(burst_len):
            if offset + i >= len(samples):
                break
            t = i / sample_rate
            samples[offset + i] += _envelope(t) * math.sin(2 * math.pi * TONE_FREQUENCY_HZ * t)
    return samples


def build_alert_pcm(sample_rate: int = TONE_SAMPLE_RATE) -> bytes:
    """16-bit little-endian mono PCM frames of the alert sequence."""
    samples = build_alert_samples(sample_rate)
    clipped = (max(-1.0, min(1.0, s)) for s in samples)
    return b"".join(struct.pack("<h", int(s * 32767)) for s in clipped)


def build_alert_tone(sample_rate: int = TONE_SAMPLE_RATE) -> bytes:
    """The alert sequence as a complete WAV file."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(build_alert_pcm(sample_rate))
    return buf.getvalue()


class ReminderAlerts(Protocol):
    def notify(self, reminder: Reminder) -> None: ...

    def play_sound(self) -> None: ...

    def prompt(self, reminder: Reminder) -> None: ...


class AcknowledgmentQueue:
    """Prompts raised by firing reminders, drained by the UI surface."""

    def __init__(self, maxlen: int = 100):
        self._pending: Deque[str] = deque(maxlen=maxlen)

    def push(self, message: str) -> None:
        self._pending.append(message)

    def drain(self) -> List[str]:
        items = list(self._pending)
        self._pending.clear()
        return items

    def __len__(self) -> int:
        return len(self._pending)


class TonePlayback:
    """Feeds PCM frames to a callback output stream on the audio thread."""

    def __init__(self, pcm: bytes, stop_exc: type):
        self.pcm = pcm
        self.position = 0
        self.finished = threading.Event()
        self._stop_exc = stop_exc
        self.stream: Any = None

    def callback(self, outdata, frames, time, status) -> None:
        if status:
            logger.debug("Alert tone output status: %s", status)
        size = len(outdata)
        chunk = self.pcm[self.position:self.position + size]
        outdata[:len(chunk)] = chunk
        if len(chunk) < size:
            outdata[len(chunk):] = b"\x00" * (size - len(chunk))
        self.position += len(chunk)
        if self.position >= len(self.pcm):
            raise self._stop_exc()

    def on_finished(self) -> None:
        self.finished.set()


class DesktopAlerts:
    """Default alert surface: plyer notification, sounddevice tone, queued prompt."""

    def __init__(
        self,
        *,
        notifications_enabled: bool = True,
        sound_enabled: bool = True,
        prompts: Optional[AcknowledgmentQueue] = None,
    ):
        self.notifications_enabled = notifications_enabled
        self.sound_enabled = sound_enabled
        self.prompts = prompts if prompts is not None else AcknowledgmentQueue()
        self._pcm: Optional[bytes] = None
        self._playbacks: List[TonePlayback] = []

    def notify(self, reminder: Reminder) -> None:
        if not self.notifications_enabled:
            return
        from plyer import notification

        notification.notify(
            title=NOTIFICATION_TITLE,
            message=notification_body(reminder),
            app_name=NOTIFICATION_APP_NAME,
            timeout=10,
        )

    def play_sound(self) -> None:
        """Start the alert tone and return; playback continues in the background."""
        if not self.sound_enabled:
            return
        try:
            # Optional "audio" extra; needs the PortAudio system library too
            import sounddevice  # type: ignore
        except (ImportError, OSError) as e:
            logger.debug("Alert tone skipped, no audio output available: %s", e)
            return
        self._reap_playbacks()
        if self._pcm is None:
            self._pcm = build_alert_pcm()

        playback = TonePlayback(self._pcm, sounddevice.CallbackStop)
        playback.stream = sounddevice.RawOutputStream(
            samplerate=TONE_SAMPLE_RATE,
            channels=1,
            dtype="int16",
            callback=playback.callback,
            finished_callback=playback.on_finished,
        )
        playback.stream.start()
        self._playbacks.append(playback)

    def _reap_playbacks(self) -> None:
        # Streams are closed from the caller's thread, never from their own callback
        active = []
        for playback in self._playbacks:
            if playback.finished.is_set():
                playback.stream.close()
            else:
                active.append(playback)
        self._playbacks = active

    def prompt(self, reminder: Reminder) -> None:
        message = prompt_text(reminder)
        self.prompts.push(message)
        logger.warning(message)
