"""
Reminder Service: periodic check that fires each medication reminder once per day
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from mediconnect.config import get_settings
from mediconnect.schemas import Reminder
from mediconnect.features.reminders.alerts import AcknowledgmentQueue, DesktopAlerts, ReminderAlerts
from mediconnect.features.reminders.display import ReminderDisplay
from mediconnect.features.reminders.storage import LocalStorage
from mediconnect.features.reminders.store import ReminderStore, today_key

logger = logging.getLogger("reminder_service")

DEFAULT_CHECK_INTERVAL_SECONDS = 15
CHECK_JOB_ID = "medication_reminder_checker"


def current_time_key(now: datetime) -> str:
    """Wall-clock time of day as zero-padded 24-hour HH:MM."""
    return f"{now.hour:02d}:{now.minute:02d}"


def is_due(reminder: Reminder, current_time: str, date_key: str) -> bool:
    """Check if a reminder should fire now (matching minute, not yet fired today)."""
    if not reminder.medicine or not reminder.time:
        return False
    return reminder.time == current_time and reminder.last_notified_date != date_key


class ReminderScheduler:
    """Owns the reminder store and the single interval timer that scans it."""

    def __init__(
        self,
        store: ReminderStore,
        alerts: ReminderAlerts,
        *,
        clock: Callable[[], datetime] = datetime.now,
        interval_seconds: int = DEFAULT_CHECK_INTERVAL_SECONDS,
        display: Optional[ReminderDisplay] = None,
    ):
        self.store = store
        self.alerts = alerts
        self.display = display
        self.clock = clock
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def is_running(self) -> bool:
        return (
            self._scheduler is not None
            and self._scheduler.running
            and self._scheduler.get_job(CHECK_JOB_ID) is not None
        )

    # -----------------------------------------------------------------------
    # Checking
    # -----------------------------------------------------------------------
    def _fire(self, reminder: Reminder) -> None:
        # Each side effect is independent: one failing must not stop the rest
        for name, effect in (
            ("notification", lambda: self.alerts.notify(reminder)),
            ("sound", self.alerts.play_sound),
            ("prompt", lambda: self.alerts.prompt(reminder)),
        ):
            try:
                effect()
            except Exception as e:
                logger.error("Reminder %d: %s failed: %s", reminder.id, name, e)

    def check(self) -> int:
        """Fire every due reminder once; persist once if anything fired."""
        now = self.clock()
        current_time = current_time_key(now)
        date_key = today_key(now)
        fired = 0

        for reminder in self.store.reminders:
            if not is_due(reminder, current_time, date_key):
                continue
            self._fire(reminder)
            reminder.last_notified_date = date_key
            reminder.taken = True
            fired += 1
            logger.info("Fired reminder %d: %s at %s", reminder.id, reminder.medicine, reminder.time)

        if fired:
            self.store.save()
        return fired

    async def _tick(self) -> None:
        # Coroutine job: runs on the event loop rather than a worker thread
        try:
            self.check()
        except Exception as e:
            logger.error("Error in reminder check cycle: %s", e)

    # -----------------------------------------------------------------------
    # Timer lifecycle
    # -----------------------------------------------------------------------
    def start(self) -> None:
        """(Re)start the timer. Runs one check immediately."""
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler()
        # Job removal is immediate, unlike shutdown() which is queued on the loop
        self._scheduler.remove_all_jobs()
        self.check()

        self._scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=CHECK_JOB_ID,
            name="Check medication reminders",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping runs
        )
        if not self._scheduler.running:
            self._scheduler.start()
        logger.info("Reminder checker started (checking every %d seconds)", self.interval_seconds)

    def stop(self) -> None:
        """Dispose of the timer. Safe to call when not running."""
        if self._scheduler is None:
            return
        self._scheduler.remove_all_jobs()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Reminder checker stopped")

    # -----------------------------------------------------------------------
    # User actions
    # -----------------------------------------------------------------------
    def add_reminder(self, medicine: str, time: str) -> Reminder:
        reminder = self.store.add(medicine, time)
        # A reminder set for the current minute fires right away
        self.check()
        return reminder

    def mark_taken(self, reminder_id: int) -> Optional[Reminder]:
        return self.store.mark_taken(reminder_id)

    def delete_reminder(self, reminder_id: int) -> bool:
        return self.store.delete(reminder_id)


# ---------------------------------------------------------------------------
# Process-wide instance used by the FastAPI app
# ---------------------------------------------------------------------------
_reminder_scheduler: Optional[ReminderScheduler] = None


def build_reminder_scheduler(settings=None) -> ReminderScheduler:
    """Construct a scheduler from settings with a loaded store and display."""
    settings = settings or get_settings()
    display = ReminderDisplay()
    store = ReminderStore(
        LocalStorage(settings.reminder_storage_path),
        key=settings.reminder_storage_key,
        on_change=display.refresh,
    )
    store.load()
    store.refresh()
    alerts = DesktopAlerts(
        notifications_enabled=settings.reminder_notifications_enabled,
        sound_enabled=settings.reminder_sound_enabled,
        prompts=AcknowledgmentQueue(),
    )
    scheduler = ReminderScheduler(
        store,
        alerts,
        interval_seconds=settings.reminder_check_interval_seconds,
        display=display,
    )
    return scheduler


def get_reminder_scheduler() -> ReminderScheduler:
    global _reminder_scheduler
    if _reminder_scheduler is None:
        _reminder_scheduler = build_reminder_scheduler()
    return _reminder_scheduler


async def start_reminder_scheduler():
    """Start the background reminder checker."""
    scheduler = get_reminder_scheduler()
    if scheduler.is_running:
        logger.warning("Scheduler already running")
        return
    scheduler.start()


async def stop_reminder_scheduler():
    """Stop the background reminder checker."""
    if _reminder_scheduler is None or not _reminder_scheduler.is_running:
        logger.warning("Scheduler not running")
        return
    _reminder_scheduler.stop()


def is_scheduler_running() -> bool:
    """Check if scheduler is running."""
    return _reminder_scheduler is not None and _reminder_scheduler.is_running
