"""Timestamp helpers for the `images` table.

Timestamps are stored as fixed-width UTC text so that ordering by the text
column is the same as ordering by time.
"""

from datetime import datetime, timezone

DB_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_db_text(value: datetime) -> str:
    """Render `value` as UTC text for storage. Naive datetimes are taken as UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(DB_FORMAT)


def from_db_text(value: str) -> datetime:
    return datetime.strptime(value, DB_FORMAT).replace(tzinfo=timezone.utc)


def format_display(value: datetime) -> str:
    return value.strftime(DISPLAY_FORMAT)
