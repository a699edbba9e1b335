"""Admin API endpoints for managing the waitlist."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.core.auth_middleware import AdminContext, require_admin
from app.core.privacy_service import DeletionRequestNotFoundError, process_account_deletion
from app.core.schemas_registrants import (
    BulkApproveRequest,
    BulkApproveResult,
    DeletionResponse,
    PriorityScore,
    ReferrerStats,
    Registrant,
    RegistrantStatus,
    StatusUpdateRequest,
    WaitlistStats,
)
from app.core.waitlist_service import (
    InvalidStatusTransitionError,
    RegistrantNotFoundError,
    bulk_approve,
    export_waitlist_csv,
    get_top_referrers,
    get_waitlist_stats,
    list_waitlist,
    score_registrant,
    update_registrant_status,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# ============================================================================
# Waitlist
# ============================================================================


@router.get("/waitlist/stats", response_model=WaitlistStats)
async def waitlist_stats(auth: AdminContext = Depends(require_admin)):
    """Counts per status plus the average approval wait in hours."""
    try:
        return get_waitlist_stats()
    except Exception:
        logger.exception("Failed to load waitlist stats")
        raise HTTPException(status_code=500, detail="Failed to load waitlist stats")


@router.get("/waitlist", response_model=list[Registrant])
async def waitlist(
    status: RegistrantStatus = RegistrantStatus.PENDING,
    auth: AdminContext = Depends(require_admin),
):
    """List registrants in a status bucket, oldest first."""
    try:
        return list_waitlist(status)
    except Exception:
        logger.exception(f"Failed to list {status.value} registrants")
        raise HTTPException(status_code=500, detail="Failed to list registrants")


@router.get("/waitlist/export")
async def export_waitlist(
    status: RegistrantStatus = RegistrantStatus.PENDING,
    auth: AdminContext = Depends(require_admin),
) -> Response:
    """Download a status bucket as CSV."""
    try:
        content = export_waitlist_csv(status)
    except Exception:
        logger.exception(f"Failed to export {status.value} registrants")
        raise HTTPException(status_code=500, detail="Failed to export registrants")

    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="waitlist-{status.value}.csv"'},
    )


@router.post("/waitlist/bulk-approve", response_model=BulkApproveResult)
async def bulk_approve_registrants(
    body: BulkApproveRequest,
    auth: AdminContext = Depends(require_admin),
):
    """
    Approve the N oldest pending registrants.

    A partial run returns ``completed: false``; call again to finish.
    """
    try:
        result = bulk_approve(body.count)
    except Exception:
        logger.exception("Bulk approval failed")
        raise HTTPException(status_code=500, detail="Bulk approval failed")

    logger.info(f"{auth.email} bulk approved {result.approved_count} registrants")
    return result


# ============================================================================
# Registrants
# ============================================================================


@router.patch("/registrants/{email}/status", response_model=Registrant)
async def change_registrant_status(
    email: str,
    body: StatusUpdateRequest,
    auth: AdminContext = Depends(require_admin),
):
    """
    Move a registrant to a new status.

    Raises:
        HTTPException 404: Unknown email
        HTTPException 409: Transition not allowed from the current status
    """
    try:
        return update_registrant_status(email, body.status)
    except RegistrantNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception:
        logger.exception(f"Failed to update status for {email}")
        raise HTTPException(status_code=500, detail="Failed to update registrant status")


@router.get("/registrants/{registrant_id}/priority", response_model=PriorityScore)
async def registrant_priority(
    registrant_id: str,
    auth: AdminContext = Depends(require_admin),
):
    """Advisory priority score; nothing is written back."""
    try:
        return score_registrant(registrant_id)
    except RegistrantNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception(f"Failed to score registrant {registrant_id}")
        raise HTTPException(status_code=500, detail="Failed to calculate priority score")


@router.get("/referrers/top", response_model=list[ReferrerStats])
async def top_referrers(
    limit: int = Query(10, ge=1, le=100),
    auth: AdminContext = Depends(require_admin),
):
    """Referral leaderboard."""
    try:
        return get_top_referrers(limit)
    except Exception:
        logger.exception("Failed to load top referrers")
        raise HTTPException(status_code=500, detail="Failed to load top referrers")


# ============================================================================
# Privacy
# ============================================================================


@router.post(
    "/privacy/deletion-requests/{request_id}/process",
    response_model=DeletionResponse,
)
async def process_deletion_request(
    request_id: str,
    auth: AdminContext = Depends(require_admin),
):
    """Delete the registrant behind a pending deletion request."""
    try:
        result = process_account_deletion(request_id)
    except DeletionRequestNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception(f"Failed to process deletion request {request_id}")
        raise HTTPException(status_code=500, detail="Failed to process deletion request")

    logger.info(f"{auth.email} processed deletion request {request_id}")
    return result
