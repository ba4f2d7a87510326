import os
from datetime import datetime

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient

# Ensure .env is loaded, then FORCE test-safe settings regardless of .env
load_dotenv()
# The background checker and desktop alerts never run under tests
os.environ["REMINDER_SCHEDULER_ENABLED"] = "false"
os.environ["REMINDER_NOTIFICATIONS_ENABLED"] = "false"
os.environ["REMINDER_SOUND_ENABLED"] = "false"
os.environ["CONSULT_LOG_ENABLED"] = "false"
os.environ["REMINDER_STORAGE_PATH"] = "./test_local_storage.json"


class FakeClock:
    """Callable clock frozen at a settable instant."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingAlerts:
    """Alert surface that records every side effect in order."""

    def __init__(self):
        self.events = []

    def notify(self, reminder):
        self.events.append(("notify", reminder.medicine))

    def play_sound(self):
        self.events.append(("sound", None))

    def prompt(self, reminder):
        self.events.append(("prompt", reminder.medicine))


@pytest.fixture()
def clock():
    return FakeClock(datetime(2024, 1, 1, 8, 0, 5))


@pytest.fixture()
def alerts():
    return RecordingAlerts()


@pytest.fixture()
def storage():
    from mediconnect.features.reminders.storage import MemoryStorage
    return MemoryStorage()


@pytest.fixture()
def store(storage, clock):
    from mediconnect.features.reminders.store import ReminderStore
    s = ReminderStore(storage, clock=clock)
    s.load()
    return s


@pytest.fixture()
def scheduler(store, alerts, clock):
    from mediconnect.features.reminders.service import ReminderScheduler
    return ReminderScheduler(store, alerts, clock=clock)


# Shared TestClient for convenience
@pytest.fixture()
def client():
    from mediconnect.main import app
    with TestClient(app) as c:
        yield c
