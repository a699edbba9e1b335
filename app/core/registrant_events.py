"""Notification dispatch for registrant document lifecycle events.

The store calls our webhook when a registrant row is inserted or updated.
Registration itself never sends email directly.
"""

from typing import Any, Optional

from app.core import email_service
from app.core.logging import get_logger

logger = get_logger(__name__)

APPROVED = "approved"


def is_approval_transition(record: dict[str, Any], old_record: Optional[dict[str, Any]]) -> bool:
    """True when an update moved the registrant into ``approved``."""
    before = (old_record or {}).get("status")
    return before != APPROVED and record.get("status") == APPROVED


async def handle_registrant_event(
    event_type: str,
    record: Optional[dict[str, Any]],
    old_record: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """
    Send the email that matches a registrant lifecycle event.

    Args:
        event_type: INSERT, UPDATE or DELETE
        record: Row after the change
        old_record: Row before the change (updates only)

    Returns:
        Dict with status: sent, ignored or failed
    """
    if not record or not record.get("email"):
        return {"status": "ignored", "reason": "no_record"}

    event_type = event_type.upper()
    name = record.get("name") or "there"

    if event_type == "INSERT":
        notification = "welcome"
        send = email_service.send_welcome_email(
            name, record["email"], record.get("waitlistPosition")
        )
    elif event_type == "UPDATE" and is_approval_transition(record, old_record):
        notification = "access_granted"
        send = email_service.send_access_granted_email(
            name, record["email"], record.get("accessId")
        )
    else:
        return {"status": "ignored", "reason": "no_notification"}

    try:
        result = await send
    except Exception as e:
        logger.error(f"Failed to send {notification} email to {record['email']}: {e}")
        return {"status": "failed", "notification": notification}

    logger.info(f"Sent {notification} email to {record['email']}")
    return {"status": "sent", "notification": notification, **result}
