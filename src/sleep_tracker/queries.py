"""Query and command implementations for the sleep tracker.

Every function takes an explicit storage handle and returns a plain dict,
so the CLI and the MCP server share one code path.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sleep_tracker.analytics import format_duration, get_analytics, quality_label
from sleep_tracker.insights import MIN_LOGS_FOR_INSIGHTS, generate_insights
from sleep_tracker.reminders import describe_reminder
from sleep_tracker.storage import NewSleepLog, NotFoundError, SleepLog, Storage

logger = logging.getLogger("sleep-tracker")


def _log_to_dict(log: SleepLog) -> dict:
    """Wire dict for a log plus display fields."""
    return {
        **log.to_dict(),
        "durationText": format_duration(log.duration),
        "qualityLabel": quality_label(log.quality),
    }


def query_sleep_logs(storage: Storage, limit: int | None = None) -> dict:
    """List sleep logs, newest first.

    Args:
        storage: Storage instance
        limit: Optional maximum number of logs to return

    Returns:
        Dict with total count and the (possibly truncated) logs
    """
    logs = storage.list_sleep_logs()
    shown = logs if limit is None else logs[:limit]
    return {
        "count": len(logs),
        "logs": [_log_to_dict(log) for log in shown],
    }


def log_sleep(
    storage: Storage,
    bedtime: str,
    wake_time: str,
    date: str,
    quality: int,
    notes: str | None = None,
) -> dict:
    """Validate and store one night. Raises ValueError on malformed input."""
    new_log = NewSleepLog(
        bedtime=bedtime,
        wake_time=wake_time,
        date=date,
        quality=quality,
        notes=notes,
    )
    log = storage.add_sleep_log(new_log)
    logger.info(f"Logged sleep {log.id} for {log.date}: {log.duration:.2f}h")
    return _log_to_dict(log)


def delete_sleep_log(storage: Storage, log_id: int) -> dict:
    """Delete one sleep log. Deleting an unknown id is not an error."""
    if storage.delete_sleep_log(log_id):
        return {"deleted": 1, "message": "Sleep log deleted successfully"}
    return {"deleted": 0, "message": f"No sleep log with id {log_id}"}


def clear_sleep_logs(storage: Storage) -> dict:
    """Delete every sleep log."""
    count = storage.delete_all_sleep_logs()
    logger.info(f"Deleted {count} sleep logs")
    return {"deleted": count, "message": "All sleep logs deleted successfully"}


def query_analytics(storage: Storage) -> dict:
    """Analytics payload (weeklyData, qualityData, averages, insights)."""
    return get_analytics(storage).to_dict()


def query_insights(storage: Storage) -> dict:
    """Insights only, with a flag for the not-enough-data state."""
    logs = storage.list_sleep_logs()
    insights = generate_insights(logs)
    return {
        "log_count": len(logs),
        "needs_more_data": len(logs) < MIN_LOGS_FOR_INSIGHTS,
        "insights": [insight.to_dict() for insight in insights],
    }


def query_reminders(storage: Storage, now: datetime | None = None) -> dict:
    """Reminders with their next fire time relative to now."""
    now = now or datetime.now()
    return {
        "reminders": [describe_reminder(r, now) for r in storage.list_reminders()],
    }


def set_reminder(
    storage: Storage,
    reminder_id: int,
    time: str | None = None,
    enabled: bool | None = None,
) -> dict:
    """Change a reminder's time and/or enabled flag.

    Raises:
        NotFoundError: No reminder with that id
        ValueError: Malformed time
    """
    changes: dict = {}
    if time is not None:
        changes["time"] = time
    if enabled is not None:
        changes["enabled"] = enabled
    reminder = storage.update_reminder(reminder_id, **changes)
    return reminder.to_dict()


def query_alarm_settings(storage: Storage) -> dict:
    settings = storage.get_alarm_settings()
    if settings is None:
        raise NotFoundError("Alarm settings not found")
    return settings.to_dict()


def set_alarm_settings(
    storage: Storage,
    enabled: bool | None = None,
    window_start: str | None = None,
    window_end: str | None = None,
    tone: str | None = None,
) -> dict:
    """Partially update the smart alarm. Unset arguments are left unchanged."""
    changes = {
        key: value
        for key, value in (
            ("enabled", enabled),
            ("window_start", window_start),
            ("window_end", window_end),
            ("tone", tone),
        )
        if value is not None
    }
    return storage.update_alarm_settings(**changes).to_dict()


def get_status(storage: Storage) -> dict:
    """Backend info and record counts."""
    return {"status": "ok", **storage.get_stats()}
