"""Pytest configuration and shared fixtures."""

import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

from sleep_tracker.analytics import compute_duration
from sleep_tracker.storage import MemoryStorage, NewSleepLog, SleepLog, SQLiteStorage

# A Monday, so MONDAY + timedelta(days=5) and +6 fall on the weekend
MONDAY = date(2025, 1, 6)

BASE_CREATED = datetime(2025, 1, 1, 8, 0, 0)


def make_log(
    log_id: int,
    night: date | str | None = None,
    bedtime: str = "23:00",
    wake_time: str = "07:00",
    quality: int = 3,
    duration: float | None = None,
    notes: str | None = None,
) -> SleepLog:
    """Build a stored-looking SleepLog without going through a backend.

    created_at increases with log_id, so higher ids are newer.
    """
    if night is None:
        night = MONDAY + timedelta(days=log_id - 1)
    return SleepLog(
        id=log_id,
        bedtime=bedtime,
        wake_time=wake_time,
        date=night if isinstance(night, str) else night.isoformat(),
        quality=quality,
        duration=compute_duration(bedtime, wake_time) if duration is None else duration,
        created_at=BASE_CREATED + timedelta(hours=log_id),
        notes=notes,
    )


def newest_first(logs: list[SleepLog]) -> list[SleepLog]:
    """Order logs the way storage returns them."""
    return sorted(logs, key=lambda log: (log.created_at, log.id), reverse=True)


@pytest.fixture
def storage():
    """Create a temporary SQLite storage instance for testing.

    This is the base fixture for storage-dependent tests.
    Use this when you need an empty sleep log table.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        yield SQLiteStorage(db_path)


@pytest.fixture
def memory_storage():
    """In-memory storage with default reminders and alarm."""
    return MemoryStorage()


@pytest.fixture(params=["memory", "sqlite"])
def any_storage(request):
    """Run a test against every storage backend."""
    if request.param == "memory":
        yield MemoryStorage()
        return
    with tempfile.TemporaryDirectory() as tmpdir:
        yield SQLiteStorage(Path(tmpdir) / "test.db")


@pytest.fixture
def week_of_logs():
    """Seven nights Monday-Sunday, newest first.

    Weekdays: 7.0h each. Weekend: 8.5h each. Qualities mix 2-5.
    """
    qualities = [3, 4, 2, 3, 5, 4, 3]
    logs = []
    for i, quality in enumerate(qualities):
        weekend = i >= 5
        logs.append(
            make_log(
                i + 1,
                MONDAY + timedelta(days=i),
                bedtime="23:00",
                wake_time="07:30" if weekend else "06:00",
                quality=quality,
            )
        )
    return newest_first(logs)


@pytest.fixture
def populated_storage(storage):
    """SQLite storage with ten logged nights (one per day from MONDAY)."""
    for i in range(10):
        storage.add_sleep_log(
            NewSleepLog(
                bedtime="22:30" if i % 2 else "23:00",
                wake_time="06:45",
                date=(MONDAY + timedelta(days=i)).isoformat(),
                quality=(i % 5) + 1,
                notes=f"night {i}" if i % 3 == 0 else None,
            )
        )
    return storage
