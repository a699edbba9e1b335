"""Database operations for the append-only admission attempt log."""

from datetime import datetime
from typing import Any

from app.core.config import get_settings
from app.db.supabase_client import get_supabase


def _table():
    return get_supabase().table(get_settings().RATE_LIMITS_TABLE)


def log_attempt(
    email: str,
    ip_address: str,
    user_agent: str,
    timestamp: datetime,
) -> dict[str, Any]:
    """Append one admission attempt to the log."""
    record = {
        "email": email.strip().lower(),
        "ipAddress": ip_address,
        "userAgent": user_agent,
        "timestamp": timestamp.isoformat(),
    }
    result = _table().insert(record).execute()
    return result.data[0] if result.data else record


def _list_since(field: str, value: str, since: datetime) -> list[dict[str, Any]]:
    result = (
        _table()
        .select("*")
        .eq(field, value)
        .gte("timestamp", since.isoformat())
        .order("timestamp")
        .execute()
    )
    return result.data or []


def list_attempts_by_ip(ip_address: str, since: datetime) -> list[dict[str, Any]]:
    """Attempts from an IP at or after ``since``, oldest first."""
    return _list_since("ipAddress", ip_address, since)


def list_attempts_by_email(email: str, since: datetime) -> list[dict[str, Any]]:
    """Attempts for an email at or after ``since``, oldest first."""
    return _list_since("email", email.strip().lower(), since)
