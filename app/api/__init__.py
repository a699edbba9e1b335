"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import admin, privacy, registrations, webhooks

router = APIRouter()

# Public registration routes
router.include_router(registrations.router, prefix="/registrations", tags=["registrations"])

# Admin dashboard routes (admin API key or admin bearer token)
router.include_router(admin.router)

# Self-service GDPR routes
router.include_router(privacy.router)

# Store webhooks (shared-secret verified)
router.include_router(webhooks.router, tags=["webhooks"])
