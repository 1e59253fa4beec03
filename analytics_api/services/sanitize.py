"""
Null sanitizer for rows bound for the event store.

Rows are assembled with every declared column present; columns nobody
filled in hold the `MISSING` marker. ClickHouse's JSONEachRow input needs
every row of a table to carry the same keys, so before insert each
`MISSING` becomes an explicit `None` (JSON null).
"""

from typing import Any


class _Missing:
    """Marker for a column that was never assigned a value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def replace_missing_with_null(value: Any) -> Any:
    """
    Recursively replace `MISSING` with None.

    Lists and tuples keep their type, order and length; dicts keep their key
    set; every other value is returned unchanged. Applying it twice gives the
    same result as applying it once.
    """
    if value is MISSING:
        return None
    if isinstance(value, list):
        return [replace_missing_with_null(item) for item in value]
    if isinstance(value, tuple):
        return tuple(replace_missing_with_null(item) for item in value)
    if isinstance(value, dict):
        return {
            key: None if item is MISSING else replace_missing_with_null(item)
            for key, item in value.items()
        }
    return value
