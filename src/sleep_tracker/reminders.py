"""Next-fire computation for daily reminders."""

from datetime import datetime, timedelta

from sleep_tracker.analytics import parse_time
from sleep_tracker.storage import Reminder

REMINDER_MESSAGES = {
    "bedtime": "Time to start winding down for bed!",
    "winddown": "Time to begin your relaxation routine!",
}


def next_occurrence(time: str, now: datetime) -> datetime:
    """Next datetime at the given HH:MM: later today, otherwise tomorrow."""
    minutes = parse_time(time)
    scheduled = now.replace(hour=minutes // 60, minute=minutes % 60, second=0, microsecond=0)
    if scheduled <= now:
        scheduled += timedelta(days=1)
    return scheduled


def describe_reminder(reminder: Reminder, now: datetime) -> dict:
    """Reminder dict with its notification message and next fire time.

    Disabled reminders have no next fire time.
    """
    upcoming = next_occurrence(reminder.time, now) if reminder.enabled else None
    return {
        **reminder.to_dict(),
        "message": REMINDER_MESSAGES[reminder.type],
        "next": upcoming.isoformat() if upcoming else None,
    }
