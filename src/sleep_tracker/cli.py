"""Command-line interface for the sleep tracker."""

import argparse
import json
import sys
from datetime import date

from sleep_tracker.analytics import format_duration
from sleep_tracker.queries import (
    clear_sleep_logs,
    delete_sleep_log,
    get_status,
    log_sleep,
    query_alarm_settings,
    query_analytics,
    query_insights,
    query_reminders,
    query_sleep_logs,
    set_alarm_settings,
    set_reminder,
)
from sleep_tracker.seed import seed_sample_data
from sleep_tracker.storage import ALARM_TONES, StorageError, create_storage

# Formatter registry: list of (predicate, formatter) tuples
# Each predicate checks if this formatter can handle the data
# Order matters - first match wins
_FORMATTERS: list[tuple[callable, callable]] = []


def _register_formatter(predicate: callable):
    """Decorator to register a formatter with its predicate."""

    def decorator(formatter: callable):
        _FORMATTERS.append((predicate, formatter))
        return formatter

    return decorator


def _format_insight_lines(insights: list[dict]) -> list[str]:
    lines = []
    for insight in insights:
        lines.append(f"  [{insight['type']}] {insight['title']}")
        lines.append(f"    {insight['description']}")
    return lines


@_register_formatter(lambda d: "weeklyData" in d)
def _format_analytics(data: dict) -> list[str]:
    lines = [
        f"Average duration: {format_duration(data['averageDuration'])}",
        f"Average quality: {data['averageQuality']:.1f}/5",
        "",
        "Last 7 nights:",
    ]
    for point in data["weeklyData"]:
        bar = "#" * round(point["duration"])
        duration = format_duration(point["duration"])
        lines.append(f"  {point['date']}  {duration:>7}  q{point['quality']}  {bar}")
    if not data["weeklyData"]:
        lines.append("  (no sleep logged yet)")
    lines.append("")
    if data["insights"]:
        lines.append("Insights:")
        lines.extend(_format_insight_lines(data["insights"]))
    else:
        lines.append("Insights: log at least 7 nights to see insights")
    return lines


@_register_formatter(lambda d: "needs_more_data" in d)
def _format_insights(data: dict) -> list[str]:
    if data["needs_more_data"]:
        return [f"Need more data: {data['log_count']} nights logged, insights start at 7"]
    return ["Insights:", *_format_insight_lines(data["insights"])]


@_register_formatter(lambda d: "logs" in d and "count" in d)
def _format_logs(data: dict) -> list[str]:
    lines = [f"Sleep logs: {data['count']}", ""]
    for log in data["logs"]:
        line = (
            f"  #{log['id']} {log['date']}  {log['bedtime']} -> {log['wakeTime']}"
            f"  {log['durationText']}  {log['quality']}/5 ({log['qualityLabel']})"
        )
        if log.get("notes"):
            line += f"  {log['notes']}"
        lines.append(line)
    return lines


@_register_formatter(lambda d: "wakeTime" in d and "durationText" in d)
def _format_logged(data: dict) -> list[str]:
    return [
        f"Logged #{data['id']} for {data['date']}: {data['durationText']}, "
        f"quality {data['quality']}/5 ({data['qualityLabel']})"
    ]


@_register_formatter(lambda d: "reminders" in d)
def _format_reminders(data: dict) -> list[str]:
    lines = ["Reminders:"]
    for r in data["reminders"]:
        state = f"next {r['next'][:16]}" if r["next"] else "disabled"
        lines.append(f"  #{r['id']} {r['type']:<9} {r['time']}  ({state})")
    return lines


@_register_formatter(lambda d: "type" in d and "time" in d)
def _format_reminder(data: dict) -> list[str]:
    state = "enabled" if data["enabled"] else "disabled"
    return [f"Reminder #{data['id']} {data['type']} at {data['time']} ({state})"]


@_register_formatter(lambda d: "windowStart" in d)
def _format_alarm(data: dict) -> list[str]:
    return [
        f"Smart alarm: {'on' if data['enabled'] else 'off'}",
        f"  Window: {data['windowStart']} - {data['windowEnd']}",
        f"  Tone: {data['tone']}",
    ]


@_register_formatter(lambda d: "backend" in d)
def _format_status(data: dict) -> list[str]:
    lines = [
        f"Backend: {data['backend']}",
        f"Sleep logs: {data['sleep_log_count']}",
        f"Reminders: {data['reminder_count']}",
    ]
    if data.get("db_path"):
        lines.append(f"Database: {data['db_path']} ({data.get('db_size_bytes', 0)} bytes)")
    if data.get("earliest_date"):
        lines.append(f"Date range: {data['earliest_date']} to {data['latest_date']}")
    return lines


@_register_formatter(lambda d: "message" in d)
def _format_message(data: dict) -> list[str]:
    return [data["message"]]


def format_output(data: dict, json_output: bool = False) -> str:
    """Format output as JSON or human-readable."""
    if json_output:
        return json.dumps(data, indent=2, default=str)

    # Find matching formatter from registry
    for predicate, formatter in _FORMATTERS:
        if predicate(data):
            return "\n".join(formatter(data))

    # Fallback to JSON if no formatter matches
    return json.dumps(data, indent=2, default=str)


def _enabled_flag(args) -> bool | None:
    if args.enable:
        return True
    if args.disable:
        return False
    return None


def cmd_status(args):
    """Show storage status."""
    storage = create_storage()
    print(format_output(get_status(storage), args.json))


def cmd_log(args):
    """Log one night of sleep."""
    storage = create_storage()
    result = log_sleep(
        storage,
        bedtime=args.bedtime,
        wake_time=args.wake_time,
        date=args.date or date.today().isoformat(),
        quality=args.quality,
        notes=args.notes,
    )
    print(format_output(result, args.json))


def cmd_list(args):
    """List sleep logs."""
    storage = create_storage()
    print(format_output(query_sleep_logs(storage, limit=args.limit), args.json))


def cmd_delete(args):
    """Delete one sleep log."""
    storage = create_storage()
    print(format_output(delete_sleep_log(storage, args.log_id), args.json))


def cmd_clear(args):
    """Delete all sleep logs."""
    if not args.yes:
        print("Refusing to delete all sleep logs without --yes", file=sys.stderr)
        sys.exit(1)
    storage = create_storage()
    print(format_output(clear_sleep_logs(storage), args.json))


def cmd_analytics(args):
    """Show analytics."""
    storage = create_storage()
    print(format_output(query_analytics(storage), args.json))


def cmd_insights(args):
    """Show insights."""
    storage = create_storage()
    print(format_output(query_insights(storage), args.json))


def cmd_reminders(args):
    """Show reminders."""
    storage = create_storage()
    print(format_output(query_reminders(storage), args.json))


def cmd_reminder_set(args):
    """Update a reminder."""
    storage = create_storage()
    result = set_reminder(storage, args.reminder_id, time=args.time, enabled=_enabled_flag(args))
    print(format_output(result, args.json))


def cmd_alarm(args):
    """Show smart alarm settings."""
    storage = create_storage()
    print(format_output(query_alarm_settings(storage), args.json))


def cmd_alarm_set(args):
    """Update smart alarm settings."""
    storage = create_storage()
    result = set_alarm_settings(
        storage,
        enabled=_enabled_flag(args),
        window_start=args.window_start,
        window_end=args.window_end,
        tone=args.tone,
    )
    print(format_output(result, args.json))


def cmd_seed(args):
    """Insert sample data into an empty store."""
    storage = create_storage()
    count = seed_sample_data(storage, days=args.days)
    message = f"Added {count} sample sleep logs" if count else "Sample data already exists"
    print(format_output({"added": count, "message": message}, args.json))


def _add_toggle(sub):
    group = sub.add_mutually_exclusive_group()
    group.add_argument("--enable", action="store_true", help="Turn on")
    group.add_argument("--disable", action="store_true", help="Turn off")


def main(argv: list[str] | None = None):
    """CLI entry point."""
    epilog = """
Examples:
  sleep-tracker-cli log 23:00 07:00 --quality 4     # Log last night
  sleep-tracker-cli analytics                       # Averages, chart, insights
  sleep-tracker-cli reminder-set 1 --time 22:30     # Move bedtime reminder
  sleep-tracker-cli alarm-set --tone "Ocean Waves"  # Change alarm tone

All commands support --json for machine-readable output.
Data location: ~/.sleep-tracker/data.db (override with SLEEP_TRACKER_DB)
"""
    parser = argparse.ArgumentParser(
        description="Sleep Tracker CLI - Log sleep and review your patterns",
        prog="sleep-tracker-cli",
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # status
    sub = subparsers.add_parser("status", help="Show storage status")
    sub.set_defaults(func=cmd_status)

    # log
    sub = subparsers.add_parser("log", help="Log one night of sleep")
    sub.add_argument("bedtime", help="Bedtime, HH:MM")
    sub.add_argument("wake_time", help="Wake time, HH:MM")
    sub.add_argument("--date", help="Night the sleep belongs to, YYYY-MM-DD (default: today)")
    sub.add_argument("--quality", type=int, required=True, help="Quality rating 1-5")
    sub.add_argument("--notes", help="Optional notes")
    sub.set_defaults(func=cmd_log)

    # list
    sub = subparsers.add_parser("list", help="List sleep logs")
    sub.add_argument("--limit", type=int, help="Max logs to show")
    sub.set_defaults(func=cmd_list)

    # delete
    sub = subparsers.add_parser("delete", help="Delete a sleep log")
    sub.add_argument("log_id", type=int, help="Sleep log id")
    sub.set_defaults(func=cmd_delete)

    # clear
    sub = subparsers.add_parser("clear", help="Delete all sleep logs")
    sub.add_argument("--yes", action="store_true", help="Confirm deletion")
    sub.set_defaults(func=cmd_clear)

    # analytics
    sub = subparsers.add_parser("analytics", help="Show averages, weekly chart and insights")
    sub.set_defaults(func=cmd_analytics)

    # insights
    sub = subparsers.add_parser("insights", help="Show sleep insights")
    sub.set_defaults(func=cmd_insights)

    # reminders
    sub = subparsers.add_parser("reminders", help="Show reminders")
    sub.set_defaults(func=cmd_reminders)

    # reminder-set
    sub = subparsers.add_parser("reminder-set", help="Update a reminder")
    sub.add_argument("reminder_id", type=int, help="Reminder id")
    sub.add_argument("--time", help="New time, HH:MM")
    _add_toggle(sub)
    sub.set_defaults(func=cmd_reminder_set)

    # alarm
    sub = subparsers.add_parser("alarm", help="Show smart alarm settings")
    sub.set_defaults(func=cmd_alarm)

    # alarm-set
    sub = subparsers.add_parser("alarm-set", help="Update smart alarm settings")
    sub.add_argument("--window-start", help="Earliest wake time, HH:MM")
    sub.add_argument("--window-end", help="Latest wake time, HH:MM")
    sub.add_argument("--tone", choices=ALARM_TONES, help="Alarm tone")
    _add_toggle(sub)
    sub.set_defaults(func=cmd_alarm_set)

    # seed
    sub = subparsers.add_parser("seed", help="Insert sample data into an empty store")
    sub.add_argument("--days", type=int, default=10, help="Nights to generate (default: 10)")
    sub.set_defaults(func=cmd_seed)

    args = parser.parse_args(argv)
    try:
        args.func(args)
    except (ValueError, StorageError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
