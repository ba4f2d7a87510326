"""
Reminder display: renders the reminder list as an HTML fragment
"""
from html import escape
from typing import List

from mediconnect.schemas import Reminder

EMPTY_HTML = '<p class="reminder-empty">No reminders yet.</p>'


def render_reminder(reminder: Reminder) -> str:
    marker = "✅" if reminder.taken else "⏳"
    rid = escape(str(reminder.id))
    return (
        f'<div class="reminder-item" data-id="{rid}">'
        f"<div><strong>{escape(reminder.medicine)}</strong> at {escape(reminder.time)} {marker}</div>"
        "<div>"
        f'<button type="button" class="reminder-taken" data-action="taken" data-id="{rid}">Taken</button>'
        f'<button type="button" class="reminder-delete" data-action="delete" data-id="{rid}">Delete</button>'
        "</div>"
        "</div>"
    )


def render_reminders(reminders: List[Reminder]) -> str:
    if not reminders:
        return EMPTY_HTML
    return "\n".join(render_reminder(r) for r in reminders)


class ReminderDisplay:
    """Keeps the latest rendering; the store calls refresh() after each save."""

    def __init__(self):
        self.html = EMPTY_HTML

    def refresh(self, reminders: List[Reminder]) -> None:
        self.html = render_reminders(reminders)
