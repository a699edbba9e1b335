"""Configuration management for the waitlist service."""

from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # Environment
    WAITLIST_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Collections
    REGISTRANTS_TABLE: str = Field(
        default="waitlist_registrants", description="Registrant documents"
    )
    RATE_LIMITS_TABLE: str = Field(
        default="rate_limits", description="Append-only admission attempt log"
    )
    DELETION_REQUESTS_TABLE: str = Field(
        default="gdpr_deletion_requests", description="Account deletion requests"
    )
    EXPORT_REQUESTS_TABLE: str = Field(
        default="gdpr_export_requests", description="Data export request log"
    )

    # Admission gate
    IP_RATE_LIMIT: int = Field(default=3, description="Max attempts per IP within the IP window")
    IP_RATE_WINDOW_MINUTES: int = Field(default=60, description="Per-IP sliding window")
    EMAIL_RATE_LIMIT: int = Field(
        default=5, description="Max attempts per email within the email window"
    )
    EMAIL_RATE_WINDOW_MINUTES: int = Field(default=24 * 60, description="Per-email sliding window")
    ADMISSION_FAIL_OPEN: bool = Field(
        default=True,
        description="Skip duplicate/rate-limit checks when the store is unreachable",
    )
    MIN_USER_AGENT_LENGTH: int = Field(
        default=10, description="User agents shorter than this are flagged"
    )
    TRUST_FORWARDED_FOR: bool = Field(
        default=False,
        description="Take the client IP from X-Forwarded-For (only behind a trusted proxy)",
    )

    # Waitlist position assignment
    WAITLIST_POSITION_STRATEGY: Literal["count", "sequence"] = Field(
        default="count",
        description="count: existing registrants + 1; sequence: atomic database function",
    )
    WAITLIST_POSITION_RPC: str = Field(
        default="next_waitlist_position",
        description="Database function used by the sequence strategy",
    )

    # Admin access
    ADMIN_API_KEY: str | None = Field(default=None, description="Admin key for internal tooling")
    ADMIN_EMAILS: list[str] = Field(
        default_factory=list, description="Emails allowed to use the admin dashboard"
    )

    # Webhooks
    WEBHOOK_SECRET: str | None = Field(
        default=None, description="Shared secret sent by database webhooks"
    )

    # Email (Resend)
    RESEND_API_KEY: str | None = Field(default=None, description="Resend API key")
    RESEND_FROM_EMAIL: str = Field(
        default="noreply@mfourlabs.dev", description="Sender address"
    )
    RESEND_FROM_NAME: str = Field(default="MFOUR LABS", description="Sender display name")
    SITE_URL: str = Field(default="https://mfourlabs.dev", description="Public site URL")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
