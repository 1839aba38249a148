"""Storage backends for sleep tracker records."""

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date as date_type
from datetime import datetime
from pathlib import Path

from sleep_tracker.analytics import compute_duration

logger = logging.getLogger("sleep-tracker")

# Register datetime adapters/converters (required for Python 3.12+)


def _adapt_datetime(dt: datetime) -> str:
    """Convert datetime to ISO format string for SQLite storage."""
    return dt.isoformat()


def _convert_datetime(data: bytes) -> datetime:
    """Convert ISO format string from SQLite to datetime."""
    return datetime.fromisoformat(data.decode())


sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_converter("TIMESTAMP", _convert_datetime)


REMINDER_TYPES = ("bedtime", "winddown")
ALARM_TONES = ("Gentle Chimes", "Forest Sounds", "Ocean Waves", "Bird Songs")


class StorageError(Exception):
    """The backing store could not complete a read or write."""


class NotFoundError(StorageError, LookupError):
    """A record addressed by id does not exist."""


def _check_time(name: str, value: str) -> None:
    """Raise ValueError unless value is a 24-hour HH:MM string."""
    if (
        not isinstance(value, str)
        or len(value) != 5
        or value[2] != ":"
        or not (value[:2].isdigit() and value[3:].isdigit())
    ):
        raise ValueError(f"{name} must be HH:MM, got {value!r}")
    if int(value[:2]) > 23 or int(value[3:]) > 59:
        raise ValueError(f"{name} out of range: {value!r}")


@dataclass(frozen=True)
class SleepLog:
    """One logged night. Immutable once stored."""

    id: int
    bedtime: str  # HH:MM
    wake_time: str  # HH:MM
    date: str  # YYYY-MM-DD
    quality: int  # 1-5
    duration: float  # hours, computed at creation
    created_at: datetime
    notes: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bedtime": self.bedtime,
            "wakeTime": self.wake_time,
            "date": self.date,
            "quality": self.quality,
            "notes": self.notes,
            "duration": self.duration,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class NewSleepLog:
    """Validated payload for creating a sleep log.

    Raises ValueError on construction if any field is malformed, so a
    SleepLog built from it always satisfies the analytics preconditions.
    """

    bedtime: str
    wake_time: str
    date: str
    quality: int
    notes: str | None = None

    def __post_init__(self):
        _check_time("bedtime", self.bedtime)
        _check_time("wake_time", self.wake_time)
        try:
            date_type.fromisoformat(self.date)
        except (TypeError, ValueError):
            raise ValueError(f"date must be YYYY-MM-DD, got {self.date!r}") from None
        if isinstance(self.quality, bool) or not isinstance(self.quality, int):
            raise ValueError(f"quality must be an integer, got {self.quality!r}")
        if not 1 <= self.quality <= 5:
            raise ValueError(f"quality must be between 1 and 5, got {self.quality}")


@dataclass
class Reminder:
    """A daily bedtime or wind-down reminder."""

    id: int | None
    type: str  # 'bedtime' or 'winddown'
    time: str  # HH:MM
    enabled: bool = True

    def __post_init__(self):
        if self.type not in REMINDER_TYPES:
            raise ValueError(f"reminder type must be one of {REMINDER_TYPES}, got {self.type!r}")
        _check_time("time", self.time)

    def to_dict(self) -> dict:
        return {"id": self.id, "type": self.type, "time": self.time, "enabled": self.enabled}


@dataclass
class AlarmSettings:
    """Smart alarm wake window and tone."""

    id: int | None
    window_start: str
    window_end: str
    enabled: bool = True
    tone: str = ALARM_TONES[0]

    def __post_init__(self):
        _check_time("window_start", self.window_start)
        _check_time("window_end", self.window_end)
        if self.tone not in ALARM_TONES:
            raise ValueError(f"tone must be one of {ALARM_TONES}, got {self.tone!r}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "enabled": self.enabled,
            "windowStart": self.window_start,
            "windowEnd": self.window_end,
            "tone": self.tone,
        }


DEFAULT_REMINDERS = (("bedtime", "22:00"), ("winddown", "21:30"))
DEFAULT_ALARM = {
    "window_start": "06:30",
    "window_end": "07:00",
    "enabled": True,
    "tone": "Gentle Chimes",
}


class Storage:
    """Record store capability shared by every backend.

    Sleep logs are returned newest-created first. Backends raise
    StorageError when the underlying store is unavailable rather than
    returning partial results.
    """

    backend = "abstract"

    def list_sleep_logs(self) -> list[SleepLog]:
        raise NotImplementedError

    def get_sleep_log(self, log_id: int) -> SleepLog | None:
        raise NotImplementedError

    def add_sleep_log(self, new_log: NewSleepLog) -> SleepLog:
        raise NotImplementedError

    def delete_sleep_log(self, log_id: int) -> bool:
        raise NotImplementedError

    def delete_all_sleep_logs(self) -> int:
        raise NotImplementedError

    def list_reminders(self) -> list[Reminder]:
        raise NotImplementedError

    def add_reminder(self, type: str, time: str, enabled: bool = True) -> Reminder:
        raise NotImplementedError

    def update_reminder(self, reminder_id: int, **changes) -> Reminder:
        raise NotImplementedError

    def get_alarm_settings(self) -> AlarmSettings | None:
        raise NotImplementedError

    def save_alarm_settings(self, settings: AlarmSettings) -> AlarmSettings:
        raise NotImplementedError

    def update_alarm_settings(self, **changes) -> AlarmSettings:
        """Apply a partial update to the stored alarm settings."""
        current = self.get_alarm_settings()
        if current is None:
            raise NotFoundError("Alarm settings not found")
        return self.save_alarm_settings(replace(current, **changes))

    def get_stats(self) -> dict:
        return {
            "backend": self.backend,
            "sleep_log_count": len(self.list_sleep_logs()),
            "reminder_count": len(self.list_reminders()),
            "has_alarm_settings": self.get_alarm_settings() is not None,
        }


class MemoryStorage(Storage):
    """Process-local storage keyed by auto-incrementing ids."""

    backend = "memory"

    def __init__(self, with_defaults: bool = True):
        self._logs: dict[int, SleepLog] = {}
        self._reminders: dict[int, Reminder] = {}
        self._alarm: AlarmSettings | None = None
        self._next_log_id = 1
        self._next_reminder_id = 1

        if with_defaults:
            for reminder_type, time in DEFAULT_REMINDERS:
                self.add_reminder(reminder_type, time)
            self.save_alarm_settings(AlarmSettings(id=None, **DEFAULT_ALARM))

    def list_sleep_logs(self) -> list[SleepLog]:
        return sorted(self._logs.values(), key=lambda log: (log.created_at, log.id), reverse=True)

    def get_sleep_log(self, log_id: int) -> SleepLog | None:
        return self._logs.get(log_id)

    def add_sleep_log(self, new_log: NewSleepLog) -> SleepLog:
        log = SleepLog(
            id=self._next_log_id,
            bedtime=new_log.bedtime,
            wake_time=new_log.wake_time,
            date=new_log.date,
            quality=new_log.quality,
            notes=new_log.notes or None,
            duration=compute_duration(new_log.bedtime, new_log.wake_time),
            created_at=datetime.now(),
        )
        self._logs[log.id] = log
        self._next_log_id += 1
        return log

    def delete_sleep_log(self, log_id: int) -> bool:
        return self._logs.pop(log_id, None) is not None

    def delete_all_sleep_logs(self) -> int:
        count = len(self._logs)
        self._logs.clear()
        return count

    def list_reminders(self) -> list[Reminder]:
        return [replace(r) for _, r in sorted(self._reminders.items())]

    def add_reminder(self, type: str, time: str, enabled: bool = True) -> Reminder:
        reminder = Reminder(id=self._next_reminder_id, type=type, time=time, enabled=enabled)
        self._reminders[reminder.id] = reminder
        self._next_reminder_id += 1
        return replace(reminder)

    def update_reminder(self, reminder_id: int, **changes) -> Reminder:
        existing = self._reminders.get(reminder_id)
        if existing is None:
            raise NotFoundError(f"Reminder with id {reminder_id} not found")
        updated = replace(existing, **changes)
        self._reminders[reminder_id] = updated
        return replace(updated)

    def get_alarm_settings(self) -> AlarmSettings | None:
        return replace(self._alarm) if self._alarm else None

    def save_alarm_settings(self, settings: AlarmSettings) -> AlarmSettings:
        self._alarm = replace(settings, id=1)
        return replace(self._alarm)


# Default database path
DEFAULT_DB_PATH = Path.home() / ".sleep-tracker" / "data.db"

# Schema version for migrations
SCHEMA_VERSION = 2

# Migration functions: dict of version -> (migration_name, migration_func)
# Each migration upgrades FROM version-1 TO version
MIGRATIONS: dict[int, tuple[str, callable]] = {}


def migration(version: int, name: str):
    """Decorator to register a schema migration."""

    def decorator(func: callable):
        MIGRATIONS[version] = (name, func)
        return func

    return decorator


@migration(2, "add_sleep_log_indexes")
def migrate_v2(conn):
    """Index sleep logs by creation order and attributed date."""
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_sleep_logs_created ON sleep_logs(created_at, id)"
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_sleep_logs_date ON sleep_logs(date)")


class SQLiteStorage(Storage):
    """SQLite-backed durable storage."""

    backend = "sqlite"

    def __init__(self, db_path: str | Path | None = None):
        """Initialize storage with optional custom DB path."""
        if db_path is None:
            db_path = os.environ.get("SLEEP_TRACKER_DB", str(DEFAULT_DB_PATH))

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_db()

    @contextmanager
    def _connect(self):
        """Context manager for database connections.

        Any sqlite3.Error raised inside the block surfaces as StorageError.
        """
        try:
            conn = sqlite3.connect(
                self.db_path,
                detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
            )
        except sqlite3.Error as e:
            logger.error("Cannot open database %s: %s", self.db_path, e)
            raise StorageError(f"Cannot open database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            logger.error("Database operation failed on %s: %s", self.db_path, e)
            raise StorageError(f"Database operation failed: {e}") from e
        finally:
            conn.close()

    def _get_schema_version(self, conn: sqlite3.Connection) -> int:
        """Get current schema version from database."""
        try:
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            return row[0] if row else 0
        except sqlite3.OperationalError:
            # Table doesn't exist yet
            return 0

    def _run_migrations(self, conn: sqlite3.Connection, current_version: int):
        """Run all pending migrations."""
        for version in range(current_version + 1, SCHEMA_VERSION + 1):
            if version in MIGRATIONS:
                name, migration_func = MIGRATIONS[version]
                logger.info(f"Running migration {version}: {name}")
                migration_func(conn)
        conn.execute("DELETE FROM schema_version")
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))

    def _init_db(self):
        """Create tables and default rows if they don't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS sleep_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    bedtime TEXT NOT NULL,
                    wake_time TEXT NOT NULL,
                    date TEXT NOT NULL,
                    quality INTEGER NOT NULL,
                    notes TEXT,
                    duration REAL NOT NULL,
                    created_at TIMESTAMP NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS reminders (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    type TEXT NOT NULL,
                    time TEXT NOT NULL,
                    enabled INTEGER NOT NULL DEFAULT 1
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS alarm_settings (
                    id INTEGER PRIMARY KEY,
                    enabled INTEGER NOT NULL DEFAULT 1,
                    window_start TEXT NOT NULL,
                    window_end TEXT NOT NULL,
                    tone TEXT NOT NULL DEFAULT 'Gentle Chimes'
                )
            """)

            current_version = self._get_schema_version(conn)
            if current_version < SCHEMA_VERSION:
                self._run_migrations(conn, current_version)

            # Defaults only on a fresh database
            if conn.execute("SELECT COUNT(*) FROM reminders").fetchone()[0] == 0:
                conn.executemany(
                    "INSERT INTO reminders (type, time, enabled) VALUES (?, ?, 1)",
                    DEFAULT_REMINDERS,
                )
                logger.info("Created default reminders")
            if conn.execute("SELECT COUNT(*) FROM alarm_settings").fetchone()[0] == 0:
                conn.execute(
                    """
                    INSERT INTO alarm_settings (id, enabled, window_start, window_end, tone)
                    VALUES (1, ?, ?, ?, ?)
                    """,
                    (
                        1 if DEFAULT_ALARM["enabled"] else 0,
                        DEFAULT_ALARM["window_start"],
                        DEFAULT_ALARM["window_end"],
                        DEFAULT_ALARM["tone"],
                    ),
                )
                logger.info("Created default alarm settings")

    # Sleep log operations

    def list_sleep_logs(self) -> list[SleepLog]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM sleep_logs ORDER BY created_at DESC, id DESC"
            ).fetchall()
            return [self._row_to_sleep_log(row) for row in rows]

    def get_sleep_log(self, log_id: int) -> SleepLog | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM sleep_logs WHERE id = ?", (log_id,)).fetchone()
            if row:
                return self._row_to_sleep_log(row)
            return None

    def add_sleep_log(self, new_log: NewSleepLog) -> SleepLog:
        duration = compute_duration(new_log.bedtime, new_log.wake_time)
        created_at = datetime.now()
        notes = new_log.notes or None
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO sleep_logs (
                    bedtime, wake_time, date, quality, notes, duration, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    new_log.bedtime,
                    new_log.wake_time,
                    new_log.date,
                    new_log.quality,
                    notes,
                    duration,
                    created_at,
                ),
            )
            return SleepLog(
                id=cursor.lastrowid,
                bedtime=new_log.bedtime,
                wake_time=new_log.wake_time,
                date=new_log.date,
                quality=new_log.quality,
                notes=notes,
                duration=duration,
                created_at=created_at,
            )

    def delete_sleep_log(self, log_id: int) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM sleep_logs WHERE id = ?", (log_id,))
            return cursor.rowcount > 0

    def delete_all_sleep_logs(self) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM sleep_logs")
            return cursor.rowcount

    def _row_to_sleep_log(self, row: sqlite3.Row) -> SleepLog:
        """Convert a database row to a SleepLog object."""
        return SleepLog(
            id=row["id"],
            bedtime=row["bedtime"],
            wake_time=row["wake_time"],
            date=row["date"],
            quality=row["quality"],
            notes=row["notes"],
            duration=row["duration"],
            created_at=row["created_at"],
        )

    # Reminder operations

    def list_reminders(self) -> list[Reminder]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM reminders ORDER BY id").fetchall()
            return [self._row_to_reminder(row) for row in rows]

    def add_reminder(self, type: str, time: str, enabled: bool = True) -> Reminder:
        reminder = Reminder(id=None, type=type, time=time, enabled=enabled)
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO reminders (type, time, enabled) VALUES (?, ?, ?)",
                (reminder.type, reminder.time, 1 if reminder.enabled else 0),
            )
            reminder.id = cursor.lastrowid
            return reminder

    def update_reminder(self, reminder_id: int, **changes) -> Reminder:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM reminders WHERE id = ?", (reminder_id,)).fetchone()
            if row is None:
                raise NotFoundError(f"Reminder with id {reminder_id} not found")
            updated = replace(self._row_to_reminder(row), **changes)
            conn.execute(
                "UPDATE reminders SET type = ?, time = ?, enabled = ? WHERE id = ?",
                (updated.type, updated.time, 1 if updated.enabled else 0, reminder_id),
            )
            return updated

    def _row_to_reminder(self, row: sqlite3.Row) -> Reminder:
        return Reminder(
            id=row["id"],
            type=row["type"],
            time=row["time"],
            enabled=bool(row["enabled"]),
        )

    # Alarm settings operations

    def get_alarm_settings(self) -> AlarmSettings | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM alarm_settings WHERE id = 1").fetchone()
            if row is None:
                return None
            return AlarmSettings(
                id=row["id"],
                enabled=bool(row["enabled"]),
                window_start=row["window_start"],
                window_end=row["window_end"],
                tone=row["tone"],
            )

    def save_alarm_settings(self, settings: AlarmSettings) -> AlarmSettings:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO alarm_settings (
                    id, enabled, window_start, window_end, tone
                ) VALUES (1, ?, ?, ?, ?)
                """,
                (
                    1 if settings.enabled else 0,
                    settings.window_start,
                    settings.window_end,
                    settings.tone,
                ),
            )
        return replace(settings, id=1)

    # Utility operations

    def get_stats(self) -> dict:
        """Get database statistics."""
        with self._connect() as conn:
            log_count = conn.execute("SELECT COUNT(*) FROM sleep_logs").fetchone()[0]
            reminder_count = conn.execute("SELECT COUNT(*) FROM reminders").fetchone()[0]
            has_alarm = conn.execute("SELECT COUNT(*) FROM alarm_settings").fetchone()[0] > 0
            date_range = conn.execute(
                "SELECT MIN(date) as first_date, MAX(date) as last_date FROM sleep_logs"
            ).fetchone()

        db_size = self.db_path.stat().st_size if self.db_path.exists() else 0

        return {
            "backend": self.backend,
            "sleep_log_count": log_count,
            "reminder_count": reminder_count,
            "has_alarm_settings": has_alarm,
            "earliest_date": date_range["first_date"],
            "latest_date": date_range["last_date"],
            "db_size_bytes": db_size,
            "db_path": str(self.db_path),
        }


def create_storage(backend: str | None = None, db_path: str | Path | None = None) -> Storage:
    """Build a storage backend.

    Args:
        backend: 'sqlite' or 'memory' (default: $SLEEP_TRACKER_STORAGE or 'sqlite')
        db_path: SQLite file path (default: $SLEEP_TRACKER_DB)

    Returns:
        A ready-to-use Storage instance
    """
    backend = backend or os.environ.get("SLEEP_TRACKER_STORAGE", "sqlite")
    if backend == "memory":
        return MemoryStorage()
    if backend == "sqlite":
        return SQLiteStorage(db_path)
    raise ValueError(f"Unknown storage backend: {backend!r}")
