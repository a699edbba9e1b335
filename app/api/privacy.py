"""Self-service privacy endpoints: data export, deletion requests, consent."""

from typing import Any

from fastapi import APIRouter, HTTPException, status

from app.core.logging import get_logger
from app.core.privacy_service import (
    export_registrant_data,
    request_account_deletion,
    update_consent,
)
from app.core.schemas_registrants import (
    ConsentUpdateRequest,
    DeletionRequestCreate,
    DeletionResponse,
    PrivacyEmailRequest,
)
from app.core.waitlist_service import RegistrantNotFoundError

logger = get_logger(__name__)

router = APIRouter(prefix="/privacy", tags=["privacy"])


@router.post("/export")
async def export_data(body: PrivacyEmailRequest) -> dict[str, Any]:
    """Return a portable copy of the registrant's data."""
    try:
        return export_registrant_data(body.email)
    except RegistrantNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception("Data export failed")
        raise HTTPException(status_code=500, detail="Failed to export data")


@router.post(
    "/deletion-requests",
    response_model=DeletionResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def create_deletion_request(body: DeletionRequestCreate):
    """
    File an account deletion request.

    The account is removed when an admin processes the request. The response
    lists the client cache keys to clear.
    """
    try:
        return request_account_deletion(body.email, body.reason)
    except RegistrantNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception("Deletion request failed")
        raise HTTPException(status_code=500, detail="Failed to create deletion request")


@router.patch("/consent")
async def change_consent(body: ConsentUpdateRequest) -> dict[str, Any]:
    """Update newsletter, privacy and analytics consent flags."""
    try:
        return update_consent(
            body.email,
            newsletter=body.newsletter,
            privacy=body.privacy,
            analytics=body.analytics,
        )
    except RegistrantNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception("Consent update failed")
        raise HTTPException(status_code=500, detail="Failed to update consent")
