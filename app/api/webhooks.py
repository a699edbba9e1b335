"""Webhook handlers for store events.

Registered WITHOUT admin auth; uses shared-secret verification.
Handles: registrant insert/update notifications from Supabase database webhooks.
"""

import hmac
import logging

from fastapi import APIRouter, HTTPException, Request

from app.core.config import get_settings
from app.core.registrant_events import handle_registrant_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks")


@router.post("/registrants")
async def registrant_events(request: Request):
    """
    Handle registrant row changes and send the matching email.

    Payload (Supabase database webhook):
        {"type": "INSERT" | "UPDATE" | "DELETE", "table": ..., "record": {...},
         "old_record": {...}}
    """
    settings = get_settings()
    if settings.WEBHOOK_SECRET:
        provided = request.headers.get("x-webhook-secret", "")
        if not hmac.compare_digest(provided, settings.WEBHOOK_SECRET):
            raise HTTPException(status_code=401, detail="Invalid webhook secret")

    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    event_type = body.get("type")
    if not event_type:
        return {"status": "ignored", "reason": "no_event_type"}

    logger.info(f"Registrant webhook: type={event_type}")
    return await handle_registrant_event(
        event_type,
        body.get("record"),
        body.get("old_record"),
    )
