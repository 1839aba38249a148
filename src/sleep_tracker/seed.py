"""Sample sleep history for demos and local development."""

import logging
import random
from datetime import date, timedelta

from sleep_tracker.analytics import compute_duration
from sleep_tracker.storage import NewSleepLog, Storage

logger = logging.getLogger("sleep-tracker")

SAMPLE_NOTES = [
    None,
    "Woke up feeling refreshed",
    "Had trouble falling asleep",
    "Woke up several times during the night",
    "Great night's sleep",
    "Felt a bit tired in the morning",
    "Dream about flying",
    "Room was too warm",
    "Perfect temperature",
    "Had a late dinner",
]


def _sample_quality(duration: float, rng: random.Random) -> int:
    """Quality biased towards 7-8.5 hour nights."""
    if 7 <= duration <= 8.5:
        if rng.random() < 0.7:
            return rng.randint(4, 5)
        return rng.randint(3, 4)
    if 6 <= duration < 7:
        return rng.randint(3, 4)
    return rng.randint(1, 3)


def generate_sample_logs(
    days: int = 10,
    today: date | None = None,
    rng: random.Random | None = None,
) -> list[NewSleepLog]:
    """Generate one plausible night per day ending today, oldest first.

    Args:
        days: Number of nights to generate
        today: Date of the last night (default: today)
        rng: Random source (default: a fresh unseeded Random)

    Returns:
        List of validated NewSleepLog payloads
    """
    today = today or date.today()
    rng = rng or random.Random()

    logs = []
    for offset in range(days - 1, -1, -1):
        night = today - timedelta(days=offset)

        bed_hour = rng.randint(21, 22)
        bed_minute = 30 if rng.random() < 0.5 else rng.randint(0, 59)
        wake_hour = rng.randint(6, 7)
        wake_minute = rng.randint(0, 59)

        bedtime = f"{bed_hour:02d}:{bed_minute:02d}"
        wake_time = f"{wake_hour:02d}:{wake_minute:02d}"
        duration = compute_duration(bedtime, wake_time)

        logs.append(
            NewSleepLog(
                bedtime=bedtime,
                wake_time=wake_time,
                date=night.isoformat(),
                quality=_sample_quality(duration, rng),
                notes=rng.choice(SAMPLE_NOTES),
            )
        )
    return logs


def seed_sample_data(
    storage: Storage,
    days: int = 10,
    today: date | None = None,
    rng: random.Random | None = None,
) -> int:
    """Insert sample logs into an empty store. Returns count inserted."""
    if storage.list_sleep_logs():
        logger.info("Sample data already exists, skipping")
        return 0

    logs = generate_sample_logs(days=days, today=today, rng=rng)
    for new_log in logs:
        storage.add_sleep_log(new_log)
    logger.info(f"Added {len(logs)} sample sleep logs")
    return len(logs)
