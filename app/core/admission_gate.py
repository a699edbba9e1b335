"""Admission gate for waitlist registrations.

Runs the bot, format, duplicate, rate-limit and user-agent checks in a fixed
order and accumulates every failure into one AdmissionResult. Only the
honeypot check short-circuits, so bots learn nothing about the other checks.
"""

import logging
from datetime import datetime
from typing import Optional

from app.core.config import Settings, get_settings
from app.core.logging import get_logger, log_with_context
from app.core.rate_limiter import check_rate_limit, limits_from_settings
from app.core.registration_validators import (
    BOT_DETECTED_MESSAGE,
    check_user_agent,
    normalize_email,
    validate_email_format,
    validate_honeypot,
)
from app.core.schemas_registrants import AdmissionResult
from app.core.timestamps import parse_timestamp, utc_now
from app.db import registrants as registrants_db
from app.db import registration_attempts as attempts_db

logger = get_logger(__name__)

VERIFICATION_UNAVAILABLE_MESSAGE = (
    "We could not verify your registration right now. Please try again shortly."
)


def duplicate_email_message(existing: dict) -> str:
    """Rejection text that lets a returning registrant recognise their entry."""
    created_at = parse_timestamp(existing.get("createdAt"))
    registered_on = created_at.date().isoformat() if created_at else "Unknown"
    position = existing.get("waitlistPosition", "?")
    return (
        f"This email is already registered. You joined on {registered_on}. "
        f"Your waitlist position is #{position}."
    )


def _store_check_failed(
    check: str,
    error: Exception,
    email: str,
    errors: list[str],
    settings: Settings,
) -> None:
    """Apply the fail-open / fail-closed policy to a store failure."""
    if settings.ADMISSION_FAIL_OPEN:
        log_with_context(
            logger,
            logging.WARNING,
            f"Admission check '{check}' failed open",
            event="admission_fail_open",
            email=email,
            check=check,
            error=repr(error),
        )
        return

    log_with_context(
        logger,
        logging.ERROR,
        f"Admission check '{check}' failed closed",
        event="admission_fail_closed",
        email=email,
        check=check,
        error=repr(error),
    )
    if VERIFICATION_UNAVAILABLE_MESSAGE not in errors:
        errors.append(VERIFICATION_UNAVAILABLE_MESSAGE)


def _record_attempt(email: str, ip_address: str, user_agent: str, now: datetime) -> None:
    try:
        attempts_db.log_attempt(email, ip_address, user_agent, now)
    except Exception as e:
        log_with_context(
            logger,
            logging.WARNING,
            "Failed to record admission attempt",
            event="attempt_log_failed",
            email=email,
            error=repr(e),
        )


def run_admission_gate(
    email: str,
    ip_address: str,
    user_agent: Optional[str],
    honeypot: Optional[str],
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> AdmissionResult:
    """
    Decide whether a registration may be persisted.

    Args:
        email: Email as submitted
        ip_address: Requester IP
        user_agent: Requester user agent (may be missing)
        honeypot: Value of the hidden form field
        now: Evaluation time (defaults to the current UTC time)
        settings: Settings override (defaults to cached settings)

    Returns:
        AdmissionResult; ``passed`` is True iff ``errors`` is empty
    """
    settings = settings or get_settings()
    now = now or utc_now()
    normalized = normalize_email(email)
    user_agent = user_agent or ""
    errors: list[str] = []
    warnings: list[str] = []
    retry_after: Optional[int] = None

    # 1. Honeypot - short-circuit with one generic error
    if validate_honeypot(honeypot):
        log_with_context(
            logger,
            logging.WARNING,
            "Honeypot triggered",
            event="admission_bot_detected",
            email=normalized,
            ip_address=ip_address,
        )
        _record_attempt(normalized, ip_address, user_agent, now)
        return AdmissionResult(passed=False, errors=[BOT_DETECTED_MESSAGE])

    # 2. Email format
    format_error = validate_email_format(normalized)
    if format_error:
        errors.append(format_error)

    # 3. Duplicate
    try:
        existing = registrants_db.get_registrant_by_email(normalized)
        if existing:
            errors.append(duplicate_email_message(existing))
    except Exception as e:
        _store_check_failed("duplicate", e, normalized, errors, settings)

    # 4. Rate limits
    try:
        decision = check_rate_limit(normalized, ip_address, now, limits_from_settings(settings))
        if not decision.allowed:
            errors.extend(decision.reasons)
            retry_after = decision.retry_after_seconds
    except Exception as e:
        _store_check_failed("rate_limit", e, normalized, errors, settings)

    # 5. User agent - warning only
    ua_warning = check_user_agent(user_agent, settings.MIN_USER_AGENT_LENGTH)
    if ua_warning:
        warnings.append(ua_warning)

    _record_attempt(normalized, ip_address, user_agent, now)

    passed = not errors
    log_with_context(
        logger,
        logging.INFO,
        "Admission gate evaluated",
        event="admission_passed" if passed else "admission_rejected",
        email=normalized,
        ip_address=ip_address,
        error_count=len(errors),
        warning_count=len(warnings),
    )
    return AdmissionResult(
        passed=passed,
        errors=errors,
        warnings=warnings,
        retry_after_seconds=retry_after,
    )
