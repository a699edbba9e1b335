"""Timestamp helpers shared by the gate, scorer and admin operations."""

from datetime import UTC, datetime
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored timestamp into an aware UTC datetime.

    Accepts datetimes and ISO-8601 strings (with ``Z`` or an offset). Naive
    values are assumed to be UTC.

    Returns:
        Parsed datetime, or None for empty/unparseable input
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
