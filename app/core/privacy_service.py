"""GDPR operations for registrants: data export, deletion and consent."""

from datetime import datetime
from typing import Any, Optional

from app.core.logging import get_logger
from app.core.registration_validators import normalize_email
from app.core.schemas_registrants import DeletionResponse
from app.core.timestamps import utc_now
from app.core.waitlist_service import CLIENT_CACHE_KEYS, RegistrantNotFoundError
from app.db import privacy_requests as privacy_db
from app.db import registrants as registrants_db

logger = get_logger(__name__)

DATA_RETENTION_NOTE = (
    "Data is retained for the duration of your account. "
    "You may request deletion at any time."
)


class DeletionRequestNotFoundError(Exception):
    """Raised when a deletion request id is unknown."""


def _require_registrant(email: str) -> dict[str, Any]:
    row = registrants_db.get_registrant_by_email(normalize_email(email))
    if not row:
        raise RegistrantNotFoundError("No account found with this email address")
    return row


def export_registrant_data(email: str, now: Optional[datetime] = None) -> dict[str, Any]:
    """
    Build a portable copy of a registrant's data.

    The export is logged but the registrant record itself is not modified.
    Internal audit fields (IP address, user agent) are not included.

    Raises:
        RegistrantNotFoundError: If no registrant has this email
    """
    now = now or utc_now()
    row = _require_registrant(email)

    request = privacy_db.create_export_request(
        {
            "userId": row.get("id"),
            "email": row["email"],
            "requestedAt": now.isoformat(),
            "status": "completed",
        }
    )

    logger.info(f"Data export generated for registrant {row.get('id')}")
    return {
        "personalInformation": {
            "name": row.get("name"),
            "email": row.get("email"),
            "dateOfBirth": row.get("dateOfBirth"),
            "organization": row.get("organization"),
            "role": row.get("role"),
        },
        "professionalInformation": {
            "studentLevel": row.get("studentLevel"),
            "degree": row.get("degree"),
            "experienceLevel": row.get("experienceLevel"),
            "interestAreas": row.get("interestAreas", []),
        },
        "accountInformation": {
            "accessId": row.get("accessId"),
            "referralCode": row.get("referralCode"),
            "referredBy": row.get("referredBy"),
            "waitlistPosition": row.get("waitlistPosition"),
            "status": row.get("status"),
            "createdAt": row.get("createdAt"),
            "lastActiveAt": row.get("lastActiveAt"),
        },
        "preferences": {
            "newsletter": row.get("newsletter"),
            "analytics": row.get("analytics", False),
        },
        "metadata": {
            "exportDate": now.isoformat(),
            "exportRequestId": request.get("id"),
            "dataRetentionPolicy": DATA_RETENTION_NOTE,
        },
    }


def request_account_deletion(
    email: str,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DeletionResponse:
    """
    File a deletion request and flag the registrant.

    A snapshot of the record is kept on the request for the audit trail.

    Raises:
        RegistrantNotFoundError: If no registrant has this email
    """
    now = now or utc_now()
    row = _require_registrant(email)

    request = privacy_db.create_deletion_request(
        {
            "userId": row["id"],
            "email": row["email"],
            "reason": reason or "User requested account deletion",
            "requestedAt": now.isoformat(),
            "status": "pending",
            "processedAt": None,
            "userData": row,
        }
    )
    registrants_db.update_registrant(
        row["id"],
        {
            "gdprStatus": "deletion_requested",
            "deletionRequestedAt": now.isoformat(),
            "updatedAt": now.isoformat(),
        },
    )

    logger.info(f"Deletion requested for registrant {row['id']}")
    return DeletionResponse(
        request_id=str(request["id"]),
        status="pending",
        clear_client_cache=list(CLIENT_CACHE_KEYS),
    )


def process_account_deletion(request_id: str, now: Optional[datetime] = None) -> DeletionResponse:
    """
    Delete the registrant named by a deletion request (admin action).

    Raises:
        DeletionRequestNotFoundError: If the request id is unknown
    """
    now = now or utc_now()
    request = privacy_db.get_deletion_request(request_id)
    if not request:
        raise DeletionRequestNotFoundError(f"Deletion request {request_id} not found")

    if request.get("status") != "completed":
        deleted = registrants_db.delete_registrant(request["userId"])
        if not deleted:
            # Already gone; still close the request
            logger.warning(f"Registrant {request['userId']} was already deleted")
        privacy_db.mark_deletion_request_completed(request_id, now)
        logger.info(f"Processed deletion request {request_id}")

    return DeletionResponse(
        request_id=str(request_id),
        status="completed",
        clear_client_cache=list(CLIENT_CACHE_KEYS),
    )


def update_consent(
    email: str,
    newsletter: Optional[bool] = None,
    privacy: Optional[bool] = None,
    analytics: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Update consent flags; omitted flags are left as they are.

    Raises:
        RegistrantNotFoundError: If no registrant has this email
    """
    now = now or utc_now()
    row = _require_registrant(email)

    updates: dict[str, Any] = {
        "consentUpdatedAt": now.isoformat(),
        "updatedAt": now.isoformat(),
    }
    if newsletter is not None:
        updates["newsletter"] = newsletter
    if privacy is not None:
        updates["privacy"] = privacy
    if analytics is not None:
        updates["analytics"] = analytics

    updated = registrants_db.update_registrant(row["id"], updates)
    return {
        "email": row["email"],
        "newsletter": (updated or row).get("newsletter"),
        "privacy": (updated or row).get("privacy"),
        "analytics": (updated or row).get("analytics", False),
    }
