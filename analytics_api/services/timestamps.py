"""
Timestamp normalization for the event store.

ClickHouse `DateTime64(3)` columns are fed strings of the exact form
`YYYY-MM-DD HH:MM:SS.mmm` in server local time: space separator, no
timezone suffix, three millisecond digits.
"""

from datetime import date, datetime, timedelta
from typing import Any, Optional

CH_DATETIME64_FORMAT = "{:%Y-%m-%d %H:%M:%S}.{:03d}"


def _to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value.astimezone() if value.tzinfo else value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool):
        # bool is an int subclass; True is not a timestamp
        return None
    if isinstance(value, (int, float)):
        # Epoch milliseconds, the unit browsers send (Date.now())
        try:
            ms = int(round(value))
            return datetime.fromtimestamp(ms // 1000) + timedelta(milliseconds=ms % 1000)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
        return parsed.astimezone() if parsed.tzinfo else parsed
    return None


def to_event_timestamp(value: Any) -> Optional[str]:
    """
    Render a date-like value in the event store's wire format.

    Args:
        value: None, ISO-8601 string, epoch milliseconds, date or datetime

    Returns:
        "YYYY-MM-DD HH:MM:SS.mmm" in local time, or None when the value is
        empty or cannot be parsed. Never raises.

    Example:
        >>> to_event_timestamp(datetime(2024, 1, 2, 3, 4, 5, 6000))
        '2024-01-02 03:04:05.006'
    """
    if not value:
        return None

    parsed = _to_datetime(value)
    if parsed is None:
        return None

    return CH_DATETIME64_FORMAT.format(parsed, parsed.microsecond // 1000)


def now_event_timestamp() -> str:
    """Current server time in the event store's wire format."""
    return to_event_timestamp(datetime.now())
