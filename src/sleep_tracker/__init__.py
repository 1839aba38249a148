"""Sleep Tracker - sleep logging with analytics and rule-based insights."""

from importlib.metadata import version

try:
    __version__ = version("sleep-tracker")
except Exception:
    __version__ = "0.1.0"  # Fallback for development

# Re-export public API
from sleep_tracker.analytics import (
    AnalyticsResult,
    aggregate,
    build_analytics,
    compute_duration,
    get_analytics,
)
from sleep_tracker.insights import Insight, generate_insights
from sleep_tracker.storage import (
    AlarmSettings,
    MemoryStorage,
    NewSleepLog,
    NotFoundError,
    Reminder,
    SleepLog,
    SQLiteStorage,
    Storage,
    StorageError,
    create_storage,
)

__all__ = [
    # Version
    "__version__",
    # Analytics
    "AnalyticsResult",
    "Insight",
    "aggregate",
    "build_analytics",
    "compute_duration",
    "generate_insights",
    "get_analytics",
    # Storage
    "Storage",
    "MemoryStorage",
    "SQLiteStorage",
    "create_storage",
    "SleepLog",
    "NewSleepLog",
    "Reminder",
    "AlarmSettings",
    "StorageError",
    "NotFoundError",
]
