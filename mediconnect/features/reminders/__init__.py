"""
Reminder feature module: medication reminders fired once per day at a set time
"""
from .service import (
    ReminderScheduler,
    get_reminder_scheduler,
    start_reminder_scheduler,
    stop_reminder_scheduler,
    is_scheduler_running,
)
from .store import InvalidReminderError, ReminderStore

__all__ = [
    "ReminderScheduler",
    "ReminderStore",
    "InvalidReminderError",
    "get_reminder_scheduler",
    "start_reminder_scheduler",
    "stop_reminder_scheduler",
    "is_scheduler_running",
]
