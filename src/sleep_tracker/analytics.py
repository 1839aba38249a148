"""Sleep analytics: durations, aggregates, and the assembled analytics payload."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sleep_tracker.insights import Insight
    from sleep_tracker.storage import SleepLog, Storage

logger = logging.getLogger("sleep-tracker")

MINUTES_PER_DAY = 24 * 60

# Number of most recent logs shown in the trend charts
WINDOW_SIZE = 7

QUALITY_LABELS = {1: "Poor", 2: "Fair", 3: "Good", 4: "Great", 5: "Excellent"}


def parse_time(value: str) -> int:
    """Convert an HH:MM string to minutes since midnight."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def round_half_up(value: float, places: int = 0) -> Decimal:
    """Round the exact binary value of a float, with ties going up.

    round() and format specs send ties to the even digit, so 7.25 would
    print as 7.2 rather than 7.3.
    """
    return Decimal(value).quantize(Decimal(10) ** -places, rounding=ROUND_HALF_UP)


def format_clock(minutes: float) -> str:
    """Format minutes since midnight as zero-padded HH:MM.

    Minutes are rounded half-up; a rounded value of 60 carries into the
    hour and the hour wraps at midnight.
    """
    total = int(minutes // 60) * 60 + int(round_half_up(minutes % 60))
    total %= MINUTES_PER_DAY
    return f"{total // 60:02d}:{total % 60:02d}"


def compute_duration(bedtime: str, wake_time: str) -> float:
    """Hours slept between bedtime and wake time.

    A wake time earlier on the clock than bedtime is taken to be on the
    following day, so the result is always in [0, 24).
    """
    delta = parse_time(wake_time) - parse_time(bedtime)
    if delta < 0:
        delta += MINUTES_PER_DAY
    return delta / 60


def format_duration(hours: float) -> str:
    """Human-readable duration, e.g. '7h 30m'."""
    if hours == 0:
        return "0h 0m"

    whole_hours = int(hours)
    minutes = int(round_half_up((hours - whole_hours) * 60))
    if minutes == 60:
        whole_hours, minutes = whole_hours + 1, 0

    if whole_hours == 0:
        return f"{minutes}m"
    if minutes == 0:
        return f"{whole_hours}h"
    return f"{whole_hours}h {minutes}m"


def quality_label(quality: int) -> str:
    return QUALITY_LABELS.get(quality, "Unknown")


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for an empty sequence."""
    return sum(values) / len(values) if values else 0


def aggregate(records: Sequence[SleepLog]) -> dict:
    """Summary statistics and the recent chart window.

    Args:
        records: Sleep logs ordered newest-first

    Returns:
        Dict with weekly_data (oldest-first, at most WINDOW_SIZE entries),
        quality_data for the same window, and average_duration /
        average_quality over the whole history
    """
    if not records:
        return {
            "weekly_data": [],
            "quality_data": [],
            "average_duration": 0,
            "average_quality": 0,
        }

    window = list(records[:WINDOW_SIZE])
    window.reverse()

    return {
        "weekly_data": [
            {"date": log.date, "duration": log.duration, "quality": log.quality}
            for log in window
        ],
        "quality_data": [log.quality for log in window],
        "average_duration": mean([log.duration for log in records]),
        "average_quality": mean([log.quality for log in records]),
    }


@dataclass
class AnalyticsResult:
    """Analytics payload for one request. Never persisted."""

    weekly_data: list[dict] = field(default_factory=list)
    quality_data: list[int] = field(default_factory=list)
    average_duration: float = 0
    average_quality: float = 0
    insights: list[Insight] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "weeklyData": [dict(point) for point in self.weekly_data],
            "qualityData": list(self.quality_data),
            "averageDuration": self.average_duration,
            "averageQuality": self.average_quality,
            "insights": [insight.to_dict() for insight in self.insights],
        }


def build_analytics(records: Sequence[SleepLog]) -> AnalyticsResult:
    """Combine aggregates and insights for the given history.

    Both parts read the same unmodified records; neither depends on the other.
    """
    # Import here to avoid circular import (insights uses the helpers above)
    from sleep_tracker.insights import generate_insights

    summary = aggregate(records)
    insights = generate_insights(records)
    logger.debug(
        "Built analytics over %d logs: %d in window, %d insights",
        len(records),
        len(summary["weekly_data"]),
        len(insights),
    )
    return AnalyticsResult(insights=insights, **summary)


def get_analytics(storage: Storage) -> AnalyticsResult:
    """Fetch the full history once and build analytics from it.

    StorageError from the fetch propagates unchanged.
    """
    return build_analytics(storage.list_sleep_logs())
