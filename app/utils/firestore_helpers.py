"""
Firestore query and value helpers.

NOTE: For firebase_admin SDK, we use positional arguments for where() which still work.
The deprecation warning is just a warning - the functionality is still supported.
"""

from datetime import datetime, timezone
from typing import Any, Optional


def where_filter(query, field_path: str, op_string: str, value):
    """
    Helper function for Firestore queries.

    Usage:
        query = where_filter(collection, "status", "==", "reported")
        query = where_filter(query, "created_at", "<=", cutoff)
    """
    return query.where(field_path, op_string, value)


def to_utc_datetime(value: Any) -> Optional[datetime]:
    """
    Normalize a stored timestamp to a timezone-aware UTC datetime.

    Accepts Firestore timestamps (datetime subclasses), naive datetimes
    (interpreted as UTC) and ISO-8601 strings. Returns None for None.
    """
    if value is None:
        return None

    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))

    if not isinstance(value, datetime):
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
