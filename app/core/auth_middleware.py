"""Admin authentication for the waitlist dashboard endpoints."""

import hmac
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)


class AdminContext:
    """Context object describing the authenticated admin."""

    def __init__(self, email: str, method: str):
        self.email = email
        self.method = method


def _email_from_identity_provider(token: str) -> Optional[str]:
    """Verify a Supabase Auth JWT and return the user's email."""
    from app.db.supabase_client import get_supabase

    try:
        auth_response = get_supabase().auth.get_user(token)
    except Exception as e:
        logger.warning(f"Token verification failed: {e}")
        return None
    if not auth_response or not auth_response.user or not auth_response.user.email:
        return None
    return auth_response.user.email.lower()


async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> AdminContext:
    """
    Require an admin caller.

    Supports two authentication methods:
    1. Admin API key (X-API-Key header) - for internal tools
    2. Supabase JWT (Bearer auth) whose email is on ADMIN_EMAILS

    Raises:
        HTTPException 401: No valid credentials
        HTTPException 403: Authenticated but not an admin
    """
    settings = get_settings()

    if x_api_key and settings.ADMIN_API_KEY and hmac.compare_digest(
        x_api_key, settings.ADMIN_API_KEY
    ):
        logger.debug("Authenticated via admin API key")
        return AdminContext(email="system", method="api-key")

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    email = _email_from_identity_provider(credentials.credentials)
    if not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    allowed = {e.lower() for e in settings.ADMIN_EMAILS}
    if email not in allowed:
        logger.warning(f"Non-admin {email} attempted an admin operation")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )

    return AdminContext(email=email, method="bearer")
