"""Database operations for GDPR deletion and export requests."""

from datetime import datetime
from typing import Any, Optional

from app.core.config import get_settings
from app.db.supabase_client import get_supabase


def create_deletion_request(data: dict[str, Any]) -> dict[str, Any]:
    """Store a deletion request (with a snapshot of the registrant)."""
    client = get_supabase()
    result = client.table(get_settings().DELETION_REQUESTS_TABLE).insert(data).execute()
    return result.data[0]


def get_deletion_request(request_id: str) -> Optional[dict[str, Any]]:
    """Get a deletion request by id."""
    client = get_supabase()
    result = (
        client.table(get_settings().DELETION_REQUESTS_TABLE)
        .select("*")
        .eq("id", str(request_id))
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def mark_deletion_request_completed(request_id: str, processed_at: datetime) -> Optional[dict[str, Any]]:
    """Mark a deletion request as processed."""
    client = get_supabase()
    result = (
        client.table(get_settings().DELETION_REQUESTS_TABLE)
        .update({"status": "completed", "processedAt": processed_at.isoformat()})
        .eq("id", str(request_id))
        .execute()
    )
    return result.data[0] if result.data else None


def create_export_request(data: dict[str, Any]) -> dict[str, Any]:
    """Log a data export request."""
    client = get_supabase()
    result = client.table(get_settings().EXPORT_REQUESTS_TABLE).insert(data).execute()
    return result.data[0]
