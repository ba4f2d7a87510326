"""
Reminder store: in-memory reminder list mirrored to local key-value storage
"""
import json
import logging
import re
import time as _time
from datetime import date, datetime
from typing import Any, Callable, List, Optional

from mediconnect.schemas import Reminder

logger = logging.getLogger("reminder_store")

STORAGE_KEY = "medReminders"
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class InvalidReminderError(ValueError):
    """Raised when a reminder cannot be added; the message is user-facing."""


def today_key(now: Optional[datetime] = None) -> str:
    """Calendar-day identifier (YYYY-MM-DD) in local time."""
    d: date = (now or datetime.now()).date()
    return d.isoformat()


def _coerce_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class ReminderStore:
    """Owns the reminder list. Every mutation rewrites storage in full."""

    def __init__(
        self,
        storage,
        *,
        key: str = STORAGE_KEY,
        on_change: Optional[Callable[[List[Reminder]], None]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.storage = storage
        self.key = key
        self.on_change = on_change
        self.clock = clock
        self._reminders: List[Reminder] = []

    @property
    def reminders(self) -> List[Reminder]:
        return list(self._reminders)

    def get(self, reminder_id: int) -> Optional[Reminder]:
        return next((r for r in self._reminders if r.id == reminder_id), None)

    def _new_id(self) -> int:
        taken_ids = {r.id for r in self._reminders}
        candidate = int(_time.time() * 1000)
        while candidate in taken_ids:
            candidate += 1
        return candidate

    # -----------------------------------------------------------------------
    # Persistence
    # -----------------------------------------------------------------------
    def load(self) -> List[Reminder]:
        """Read the stored list; anything unreadable means no reminders."""
        try:
            raw = self.storage.get_item(self.key)
            parsed = json.loads(raw) if raw else []
            if not isinstance(parsed, list):
                raise ValueError("stored reminders are not a list")
        except Exception as e:
            logger.warning("Could not read stored reminders, starting empty: %s", e)
            self._reminders = []
            return self.reminders

        self._reminders = []
        for record in parsed:
            if not isinstance(record, dict):
                logger.debug("Skipping malformed reminder record: %r", record)
                continue
            rid = _coerce_id(record.get("id"))
            if rid is None or self.get(rid) is not None:
                rid = self._new_id()
            last = record.get("lastNotifiedDate")
            self._reminders.append(
                Reminder(
                    id=rid,
                    medicine=str(record.get("medicine") or ""),
                    time=str(record.get("time") or ""),
                    taken=bool(record.get("taken")),
                    last_notified_date=str(last) if last else None,
                )
            )
        logger.info("Loaded %d reminder(s)", len(self._reminders))
        return self.reminders

    def save(self) -> None:
        records = [r.to_record() for r in self._reminders]
        self.storage.set_item(self.key, json.dumps(records, ensure_ascii=False))
        self.refresh()

    def refresh(self) -> None:
        # No display surface attached: nothing to refresh
        if self.on_change is None:
            return
        self.on_change(self.reminders)

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------
    def add(self, medicine: str, time: str) -> Reminder:
        medicine = (medicine or "").strip()
        time = (time or "").strip()
        if not medicine or not time:
            raise InvalidReminderError("Enter medicine and time")
        if not TIME_PATTERN.match(time):
            raise InvalidReminderError("Time must be in HH:MM format")

        reminder = Reminder(
            id=self._new_id(),
            medicine=medicine,
            time=time,
            taken=False,
            last_notified_date=None,
        )
        self._reminders.append(reminder)
        self.save()
        logger.info("Added reminder %d: %s at %s", reminder.id, medicine, time)
        return reminder

    def mark_taken(self, reminder_id: int) -> Optional[Reminder]:
        reminder = self.get(reminder_id)
        if reminder is None:
            return None
        reminder.taken = True
        reminder.last_notified_date = today_key(self.clock())
        self.save()
        return reminder

    def delete(self, reminder_id: int) -> bool:
        before = len(self._reminders)
        self._reminders = [r for r in self._reminders if r.id != reminder_id]
        self.save()
        return len(self._reminders) < before
