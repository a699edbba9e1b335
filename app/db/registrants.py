"""Database operations for waitlist registrants."""

from typing import Any, Optional

from app.core.config import get_settings
from app.db.supabase_client import get_supabase


def _table():
    return get_supabase().table(get_settings().REGISTRANTS_TABLE)


def get_registrant_by_email(email: str) -> Optional[dict[str, Any]]:
    """Get a registrant by (normalized) email."""
    result = _table().select("*").eq("email", email.strip().lower()).limit(1).execute()
    return result.data[0] if result.data else None


def get_registrant_by_id(registrant_id: str) -> Optional[dict[str, Any]]:
    """Get a registrant by document id."""
    result = _table().select("*").eq("id", str(registrant_id)).limit(1).execute()
    return result.data[0] if result.data else None


def get_registrant_by_access_id(access_id: str) -> Optional[dict[str, Any]]:
    """Get a registrant by the access id handed to their client."""
    result = _table().select("*").eq("accessId", access_id).limit(1).execute()
    return result.data[0] if result.data else None


def get_registrant_by_referral_code(referral_code: str) -> Optional[dict[str, Any]]:
    """Get the registrant who owns a referral code."""
    result = _table().select("*").eq("referralCode", referral_code).limit(1).execute()
    return result.data[0] if result.data else None


def count_registrants(status: Optional[str] = None) -> int:
    """
    Count registrants server-side, optionally filtered by status.

    Args:
        status: Status value to filter on

    Returns:
        Exact number of matching registrants
    """
    query = _table().select("id", count="exact")
    if status:
        query = query.eq("status", status)
    result = query.execute()
    return result.count or 0


def count_referrals(referral_code: str) -> int:
    """Count registrants whose referredBy is this referral code."""
    result = (
        _table()
        .select("id", count="exact")
        .eq("referredBy", referral_code)
        .execute()
    )
    return result.count or 0


def list_registrants_by_status(status: str, limit: Optional[int] = None) -> list[dict[str, Any]]:
    """List registrants with a status, oldest registration first."""
    query = _table().select("*").eq("status", status).order("createdAt")
    if limit is not None:
        query = query.limit(limit)
    return query.execute().data or []


def list_referred_by_codes() -> list[str]:
    """Return the referredBy value of every referred registrant."""
    result = (
        _table()
        .select("referredBy")
        .not_.is_("referredBy", "null")
        .execute()
    )
    return [row["referredBy"] for row in result.data or [] if row.get("referredBy")]


def list_registrants_by_referral_codes(codes: list[str]) -> list[dict[str, Any]]:
    """Fetch the registrants owning any of the given referral codes."""
    if not codes:
        return []
    result = _table().select("*").in_("referralCode", codes).execute()
    return result.data or []


def next_waitlist_position() -> int:
    """
    Compute the position for the next registrant.

    The count strategy reads the current count and adds one; concurrent
    registrations can receive the same position. The sequence strategy calls a
    database function backed by a sequence, which is atomic and never reuses a
    value.
    """
    settings = get_settings()
    if settings.WAITLIST_POSITION_STRATEGY == "sequence":
        result = get_supabase().rpc(settings.WAITLIST_POSITION_RPC, {}).execute()
        return int(result.data)
    return count_registrants() + 1


def insert_registrant(data: dict[str, Any]) -> dict[str, Any]:
    """Insert a registrant document and return the stored row."""
    result = _table().insert(data).execute()
    if not result.data:
        raise RuntimeError("Registrant insert returned no data")
    return result.data[0]


def update_registrant(registrant_id: str, updates: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Update fields of a registrant by id."""
    result = _table().update(updates).eq("id", str(registrant_id)).execute()
    return result.data[0] if result.data else None


def delete_registrant(registrant_id: str) -> bool:
    """Delete a registrant by id."""
    result = _table().delete().eq("id", str(registrant_id)).execute()
    return bool(result.data)
