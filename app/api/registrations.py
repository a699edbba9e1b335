"""API endpoints for waitlist registration (public, no auth)."""

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.schemas_registrants import (
    RegistrationLookup,
    RegistrationRequest,
    RegistrationResponse,
)
from app.core.waitlist_service import (
    CONNECTION_FAILED_MESSAGE,
    RegistrantNotFoundError,
    RegistrationWriteError,
    client_cache_for,
    lookup_registration,
    register_applicant,
)

logger = get_logger(__name__)

router = APIRouter()


def client_ip(request: Request) -> str:
    """
    Requester IP for rate limiting.

    X-Forwarded-For is client-controlled, so it is only read when
    TRUST_FORWARDED_FOR is set for a deployment behind a trusted proxy.
    """
    if get_settings().TRUST_FORWARDED_FOR:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.post("", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def submit_registration(payload: RegistrationRequest, request: Request):
    """
    Submit an early-access registration.

    Returns 201 with the access id, referral code and waitlist position when
    admitted, 200 when the cached access id shows the user already registered,
    400/429 with the accumulated admission errors when rejected, and 503 if
    the final write fails.
    """
    try:
        outcome = register_applicant(
            payload,
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except RegistrationWriteError:
        raise HTTPException(status_code=503, detail=CONNECTION_FAILED_MESSAGE)

    if not outcome.accepted:
        admission = outcome.admission
        body = admission.model_dump(by_alias=True)
        if admission.retry_after_seconds is not None:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=body,
                headers={"Retry-After": str(admission.retry_after_seconds)},
            )
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)

    registrant = outcome.registrant
    response = RegistrationResponse(
        already_registered=outcome.already_registered,
        access_id=registrant.access_id,
        referral_code=registrant.referral_code,
        waitlist_position=registrant.waitlist_position,
        status=registrant.status,
        warnings=outcome.warnings,
        client_cache=client_cache_for(registrant),
    )
    if outcome.already_registered:
        return JSONResponse(status_code=status.HTTP_200_OK, content=response.model_dump(by_alias=True, mode="json"))
    return response


@router.get("/{access_id}", response_model=RegistrationLookup)
async def get_registration(access_id: str):
    """
    Look up a registration by the access id cached on the client.

    Raises:
        HTTPException 404: If the access id is unknown
    """
    try:
        registrant = lookup_registration(access_id)
    except RegistrantNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception(f"Failed to look up registration {access_id}")
        raise HTTPException(status_code=500, detail="Failed to retrieve registration")

    return RegistrationLookup(
        access_id=registrant.access_id,
        name=registrant.name,
        referral_code=registrant.referral_code,
        waitlist_position=registrant.waitlist_position,
        status=registrant.status,
    )
