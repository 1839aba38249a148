"""MCP Sleep Tracker Server.

Provides tools for logging sleep and reading analytics:
- log_sleep: Record one night (bedtime, wake time, date, quality, notes)
- list_sleep_logs: Logged nights, newest first
- delete_sleep_log / clear_sleep_logs: Remove logs
- get_analytics: Weekly chart data, averages and insights
- get_insights: Insights only
- get_reminders / update_reminder: Bedtime and wind-down reminders
- get_alarm_settings / update_alarm_settings: Smart alarm window and tone
- get_status: Backend and record counts
"""

import logging
import os
from collections.abc import Callable

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from sleep_tracker import queries
from sleep_tracker.storage import NotFoundError, Storage, StorageError, create_storage

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("sleep-tracker")
if os.environ.get("DEV_MODE"):
    logger.setLevel(logging.DEBUG)


def run_tool(action: str, func: Callable[..., dict], *args, **kwargs) -> dict:
    """Call a query function, mapping domain errors to ToolError.

    Invalid input and unknown ids become "Invalid <action> data"; store
    failures become "Failed to <action>".
    """
    try:
        return func(*args, **kwargs)
    except (ValueError, NotFoundError) as e:
        logger.warning("Rejected %s: %s", action, e)
        raise ToolError(f"Invalid {action} data: {e}") from e
    except StorageError as e:
        logger.error("Failed to %s: %s", action, e)
        raise ToolError(f"Failed to {action}") from e


def create_server(storage: Storage) -> FastMCP:
    """Build the MCP server with every tool bound to the given storage."""
    mcp = FastMCP("sleep-tracker")

    @mcp.tool()
    def get_status() -> dict:
        """Get storage backend info and record counts."""
        return run_tool("fetch status", queries.get_status, storage)

    @mcp.tool()
    def log_sleep(
        bedtime: str,
        wake_time: str,
        date: str,
        quality: int,
        notes: str | None = None,
    ) -> dict:
        """Log one night of sleep.

        Args:
            bedtime: Time you went to bed, HH:MM (24-hour)
            wake_time: Time you woke up, HH:MM; earlier than bedtime means next day
            date: Night the sleep is attributed to, YYYY-MM-DD
            quality: Self-rated quality from 1 (poor) to 5 (excellent)
            notes: Optional free text

        Returns:
            The stored log including computed duration
        """
        return run_tool(
            "sleep log",
            queries.log_sleep,
            storage,
            bedtime=bedtime,
            wake_time=wake_time,
            date=date,
            quality=quality,
            notes=notes,
        )

    @mcp.tool()
    def list_sleep_logs(limit: int | None = None) -> dict:
        """List logged nights, newest first.

        Args:
            limit: Optional maximum number of logs to return
        """
        return run_tool("fetch sleep logs", queries.query_sleep_logs, storage, limit=limit)

    @mcp.tool()
    def delete_sleep_log(log_id: int) -> dict:
        """Delete one sleep log by id."""
        return run_tool("delete sleep log", queries.delete_sleep_log, storage, log_id)

    @mcp.tool()
    def clear_sleep_logs() -> dict:
        """Delete all sleep logs."""
        return run_tool("delete all sleep logs", queries.clear_sleep_logs, storage)

    @mcp.tool()
    def get_analytics() -> dict:
        """Get sleep analytics.

        Returns:
            weeklyData (last 7 logs, oldest first), qualityData, averageDuration
            and averageQuality over all logs, and insights (needs 7+ logs)
        """
        return run_tool("fetch analytics data", queries.query_analytics, storage)

    @mcp.tool()
    def get_insights() -> dict:
        """Get generated sleep insights only."""
        return run_tool("fetch insights", queries.query_insights, storage)

    @mcp.tool()
    def get_reminders() -> dict:
        """Get reminders with their next scheduled time."""
        return run_tool("fetch reminders", queries.query_reminders, storage)

    @mcp.tool()
    def update_reminder(
        reminder_id: int, time: str | None = None, enabled: bool | None = None
    ) -> dict:
        """Change a reminder's time (HH:MM) and/or enabled flag."""
        return run_tool(
            "reminder", queries.set_reminder, storage, reminder_id, time=time, enabled=enabled
        )

    @mcp.tool()
    def get_alarm_settings() -> dict:
        """Get smart alarm settings."""
        return run_tool("fetch alarm settings", queries.query_alarm_settings, storage)

    @mcp.tool()
    def update_alarm_settings(
        enabled: bool | None = None,
        window_start: str | None = None,
        window_end: str | None = None,
        tone: str | None = None,
    ) -> dict:
        """Update the smart alarm.

        Args:
            enabled: Turn the alarm on or off
            window_start: Earliest wake time, HH:MM
            window_end: Latest wake time, HH:MM
            tone: Gentle Chimes, Forest Sounds, Ocean Waves or Bird Songs
        """
        return run_tool(
            "alarm settings",
            queries.set_alarm_settings,
            storage,
            enabled=enabled,
            window_start=window_start,
            window_end=window_end,
            tone=tone,
        )

    return mcp


def create_app(storage: Storage | None = None):
    """Create the ASGI app for uvicorn."""
    mcp = create_server(storage or create_storage())
    # stateless_http=True allows resilience to server restarts
    return mcp.http_app(stateless_http=True)


def main():
    """Run the MCP server."""
    import uvicorn

    port = int(os.environ.get("PORT", 8082))
    host = os.environ.get("HOST", "127.0.0.1")

    print(f"Starting Sleep Tracker on {host}:{port}")
    print(f"MCP endpoint: http://{host}:{port}/mcp")

    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    main()
