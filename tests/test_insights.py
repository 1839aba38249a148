"""Tests for the insight rule engine."""

from datetime import timedelta

import pytest
from conftest import MONDAY, make_log, newest_first

from sleep_tracker.insights import (
    INSIGHT_RULES,
    MIN_LOGS_FOR_INSIGHTS,
    Insight,
    InsightRule,
    average_bedtime,
    generate_insights,
    is_weekend,
    weekday_weekend_averages,
)


def _week(weekday_wake="06:00", weekend_wake="06:00", qualities=None, bedtimes=None):
    """Seven nights Monday-Sunday with configurable wake times."""
    qualities = qualities or [3] * 7
    bedtimes = bedtimes or ["23:00"] * 7
    return newest_first(
        [
            make_log(
                i + 1,
                MONDAY + timedelta(days=i),
                bedtime=bedtimes[i],
                wake_time=weekend_wake if i >= 5 else weekday_wake,
                quality=qualities[i],
            )
            for i in range(7)
        ]
    )


class TestLengthGate:
    """Tests for the minimum history gate."""

    @pytest.mark.parametrize("count", [0, 1, 6])
    def test_fewer_than_seven_logs_gives_nothing(self, count):
        """Test that short histories never produce insights."""
        logs = newest_first([make_log(i + 1, quality=5) for i in range(count)])
        assert generate_insights(logs) == []

    def test_six_logs_even_with_strong_signals(self):
        """Test that the gate wins over any individual rule."""
        logs = _week(weekend_wake="09:00", qualities=[5] * 7)[:6]
        assert generate_insights(logs) == []

    def test_threshold_constant(self):
        """Test the gate value."""
        assert MIN_LOGS_FOR_INSIGHTS == 7


class TestWeekendPattern:
    """Tests for the weekend oversleep rule."""

    def test_fires_when_weekend_exceeds_weekday(self, week_of_logs):
        """Test a 1.5h weekend gap is reported with one decimal."""
        insights = generate_insights(week_of_logs)
        pattern = [i for i in insights if i.type == "pattern"]
        assert len(pattern) == 1
        assert pattern[0].title == "Weekend Sleep Pattern"
        assert "1.5 hours longer on weekends" in pattern[0].description

    def test_quarter_hour_gap_rounds_half_up(self):
        """Test a 1.25h gap is reported as 1.3, not the round-half-even 1.2."""
        logs = _week(weekday_wake="07:00", weekend_wake="08:15")
        pattern = [i for i in generate_insights(logs) if i.type == "pattern"][0]
        assert "1.3 hours longer on weekends" in pattern.description

    def test_exactly_half_hour_does_not_fire(self):
        """Test that the 0.5h threshold is strict."""
        logs = _week(weekday_wake="06:00", weekend_wake="06:30")
        assert "pattern" not in [i.type for i in generate_insights(logs)]

    def test_weekday_longer_does_not_fire(self):
        """Test that only weekend oversleep is reported."""
        logs = _week(weekday_wake="08:00", weekend_wake="06:00")
        assert "pattern" not in [i.type for i in generate_insights(logs)]

    def test_skipped_without_weekend_nights(self):
        """Test that a weekday-only history skips the rule."""
        logs = newest_first([make_log(i + 1, MONDAY + timedelta(days=7 * i)) for i in range(7)])
        assert weekday_weekend_averages(logs) is None
        assert "pattern" not in [i.type for i in generate_insights(logs)]

    def test_weekday_from_date_field(self):
        """Test that day-of-week comes from the attributed date."""
        assert not is_weekend(make_log(1, "2025-01-10"))  # Friday
        assert is_weekend(make_log(1, "2025-01-11"))  # Saturday
        assert is_weekend(make_log(1, "2025-01-12"))  # Sunday

    def test_averages(self, week_of_logs):
        """Test the weekday and weekend means."""
        weekday_avg, weekend_avg = weekday_weekend_averages(week_of_logs)
        assert weekday_avg == pytest.approx(7.0)
        assert weekend_avg == pytest.approx(8.5)


class TestOptimalDuration:
    """Tests for the optimal duration rule."""

    def test_absent_without_high_quality_nights(self):
        """Test that no night rated 4+ means no quality insight."""
        logs = _week(qualities=[1, 2, 3, 3, 2, 1, 3])
        assert "quality" not in [i.type for i in generate_insights(logs)]

    def test_reports_high_quality_mean_and_overall_quality(self):
        """Test the description numbers."""
        # Weekday 7h, weekend 8h; only the weekend nights are rated 4+
        logs = _week(
            weekday_wake="06:00", weekend_wake="07:00", qualities=[2, 2, 2, 2, 2, 4, 5]
        )
        quality = [i for i in generate_insights(logs) if i.type == "quality"][0]
        assert quality.title == "Optimal Sleep Duration"
        assert "peaks at 8.0 hours" in quality.description
        # All-time quality average: (5*2 + 4 + 5) / 7 = 2.714...
        assert "2.7/5 on average" in quality.description

    def test_quarter_hour_duration_rounds_half_up(self):
        """Test a 7.25h optimum is reported as 7.3 hours."""
        logs = _week(
            weekday_wake="07:00", weekend_wake="07:00", qualities=[4] * 7, bedtimes=["23:45"] * 7
        )
        quality = [i for i in generate_insights(logs) if i.type == "quality"][0]
        assert "peaks at 7.3 hours" in quality.description
        assert "4.0/5 on average" in quality.description

    def test_single_high_quality_night_is_enough(self):
        """Test that one 4+ night fires the rule; there is no sample-size gate."""
        logs = _week(qualities=[1, 1, 1, 1, 1, 1, 4])
        assert "quality" in [i.type for i in generate_insights(logs)]


class TestBedtimeConsistency:
    """Tests for the bedtime consistency rule."""

    def test_always_present_with_seven_logs(self):
        """Test the rule fires for any history meeting the gate."""
        logs = _week(qualities=[1] * 7)
        insights = generate_insights(logs)
        assert [i.type for i in insights] == ["consistency"]
        assert "23:00" in insights[0].description

    def test_mean_of_2200_is_zero_padded(self):
        """Test a 1320-minute mean formats as 22:00."""
        logs = _week(bedtimes=["22:00"] * 7)
        assert average_bedtime(logs) == "22:00"

    def test_mean_rounds_minutes(self):
        """Test a fractional mean bedtime."""
        # (6 * 1320 + 1410) / 7 = 1332.86 minutes
        logs = _week(bedtimes=["22:00"] * 6 + ["23:30"])
        assert average_bedtime(logs) == "22:13"

    def test_mean_is_plain_arithmetic_across_midnight(self):
        """Test that bedtimes either side of midnight average on the clock face."""
        logs = _week(bedtimes=["23:30", "00:30"] * 3 + ["00:00"])
        # (3 * 1410 + 3 * 30 + 0) / 7 = 617.14 minutes
        assert average_bedtime(logs) == "10:17"

    def test_early_morning_bedtime_padding(self):
        """Test single-digit hours are padded."""
        logs = _week(bedtimes=["01:05"] * 7)
        assert "01:05" in generate_insights(logs)[-1].description


class TestRuleOrdering:
    """Tests for rule evaluation order and extensibility."""

    def test_fixed_order(self, week_of_logs):
        """Test that insights come out pattern, quality, consistency."""
        insights = generate_insights(week_of_logs)
        assert [i.type for i in insights] == ["pattern", "quality", "consistency"]

    def test_registered_rules(self):
        """Test the default registry."""
        assert [r.name for r in INSIGHT_RULES] == [
            "weekend_pattern",
            "optimal_duration",
            "bedtime_consistency",
        ]

    def test_custom_rules(self, week_of_logs):
        """Test evaluating a caller-supplied rule list."""
        always = InsightRule(
            name="always",
            gate=lambda records: True,
            emit=lambda records: Insight("Logged", f"{len(records)} nights", "pattern"),
        )
        never = InsightRule(
            name="never",
            gate=lambda records: False,
            emit=lambda records: Insight("Nope", "", "quality"),
        )
        insights = generate_insights(week_of_logs, rules=[never, always])
        assert insights == [Insight("Logged", "7 nights", "pattern")]

    def test_records_not_mutated(self, week_of_logs):
        """Test that rule evaluation leaves input untouched."""
        snapshot = list(week_of_logs)
        generate_insights(week_of_logs)
        assert week_of_logs == snapshot
