"""Rule-based insight generation over a sleep history.

Each rule is a (gate, emit) pair registered in evaluation order. A rule
contributes an insight only when its gate passes; the whole engine stays
silent until the history reaches MIN_LOGS_FOR_INSIGHTS entries.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date

from sleep_tracker.analytics import format_clock, mean, parse_time, round_half_up
from sleep_tracker.storage import SleepLog

logger = logging.getLogger("sleep-tracker")

MIN_LOGS_FOR_INSIGHTS = 7

# Weekend sleep must exceed weekday sleep by more than this many hours
WEEKEND_GAP_THRESHOLD = 0.5

HIGH_QUALITY_MIN = 4

INSIGHT_TYPES = ("pattern", "quality", "consistency")


@dataclass(frozen=True)
class Insight:
    """A natural-language observation about sleep habits."""

    title: str
    description: str
    type: str  # one of INSIGHT_TYPES

    def to_dict(self) -> dict:
        return {"title": self.title, "description": self.description, "type": self.type}


@dataclass(frozen=True)
class InsightRule:
    name: str
    gate: Callable[[Sequence[SleepLog]], bool]
    emit: Callable[[Sequence[SleepLog]], Insight]


# Rule registry, evaluated in registration order
INSIGHT_RULES: list[InsightRule] = []


def _register_rule(name: str, gate: Callable[[Sequence[SleepLog]], bool]):
    """Decorator to register an insight emitter with its gate."""

    def decorator(emit: Callable[[Sequence[SleepLog]], Insight]):
        INSIGHT_RULES.append(InsightRule(name=name, gate=gate, emit=emit))
        return emit

    return decorator


def is_weekend(log: SleepLog) -> bool:
    """Saturday or Sunday by the log's attributed date."""
    return date.fromisoformat(log.date).weekday() >= 5


def weekday_weekend_averages(records: Sequence[SleepLog]) -> tuple[float, float] | None:
    """Mean duration for weekday and weekend nights, or None if either is missing."""
    weekday = [log.duration for log in records if not is_weekend(log)]
    weekend = [log.duration for log in records if is_weekend(log)]
    if not weekday or not weekend:
        return None
    return mean(weekday), mean(weekend)


def _weekend_gap(records: Sequence[SleepLog]) -> float | None:
    averages = weekday_weekend_averages(records)
    if averages is None:
        return None
    weekday_avg, weekend_avg = averages
    return weekend_avg - weekday_avg


def _has_weekend_oversleep(records: Sequence[SleepLog]) -> bool:
    gap = _weekend_gap(records)
    return gap is not None and gap > WEEKEND_GAP_THRESHOLD


@_register_rule("weekend_pattern", _has_weekend_oversleep)
def weekend_pattern(records: Sequence[SleepLog]) -> Insight:
    gap = _weekend_gap(records)
    return Insight(
        title="Weekend Sleep Pattern",
        description=(
            f"You sleep {round_half_up(gap, 1)} hours longer on weekends compared to weekdays. "
            "Consider adjusting your weekday bedtime for more consistent sleep."
        ),
        type="pattern",
    )


def _high_quality(records: Sequence[SleepLog]) -> list[SleepLog]:
    return [log for log in records if log.quality >= HIGH_QUALITY_MIN]


def _has_high_quality_nights(records: Sequence[SleepLog]) -> bool:
    # Any single qualifying night is enough; there is no sample-size gate.
    return bool(_high_quality(records))


@_register_rule("optimal_duration", _has_high_quality_nights)
def optimal_duration(records: Sequence[SleepLog]) -> Insight:
    """Mean duration of well-rated nights, quoted with the all-time quality average."""
    optimal = mean([log.duration for log in _high_quality(records)])
    average_quality = mean([log.quality for log in records])
    return Insight(
        title="Optimal Sleep Duration",
        description=(
            f"Your sleep quality peaks at {round_half_up(optimal, 1)} hours. "
            f"You rate nights with this duration "
            f"{round_half_up(average_quality, 1)}/5 on average."
        ),
        type="quality",
    )


def average_bedtime(records: Sequence[SleepLog]) -> str:
    """Arithmetic mean of bedtimes as HH:MM (no wrap-around at midnight)."""
    return format_clock(mean([parse_time(log.bedtime) for log in records]))


@_register_rule("bedtime_consistency", lambda records: True)
def bedtime_consistency(records: Sequence[SleepLog]) -> Insight:
    return Insight(
        title="Bedtime Consistency",
        description=(
            f"Your most consistent bedtime is {average_bedtime(records)}. "
            "Sticking to this schedule could improve your sleep quality."
        ),
        type="consistency",
    )


def generate_insights(
    records: Sequence[SleepLog],
    rules: Sequence[InsightRule] | None = None,
) -> list[Insight]:
    """Evaluate insight rules against a sleep history.

    Args:
        records: Sleep logs (any order; rules only use whole-history statistics)
        rules: Rules to evaluate, in order (default: INSIGHT_RULES)

    Returns:
        Insights from every rule whose gate passed, in rule order. Empty when
        the history has fewer than MIN_LOGS_FOR_INSIGHTS logs.
    """
    if len(records) < MIN_LOGS_FOR_INSIGHTS:
        return []

    insights = []
    for rule in INSIGHT_RULES if rules is None else rules:
        if rule.gate(records):
            insights.append(rule.emit(records))
        else:
            logger.debug("Insight rule %s skipped", rule.name)
    return insights
