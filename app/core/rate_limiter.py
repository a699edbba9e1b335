"""Sliding-window rate limiting over the admission attempt log."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from app.core.config import Settings
from app.core.logging import get_logger
from app.core.timestamps import parse_timestamp
from app.db import registration_attempts as attempts_db

logger = get_logger(__name__)


@dataclass(frozen=True)
class SlidingWindowLimit:
    """At most ``max_attempts`` within the trailing ``window``."""

    name: str
    max_attempts: int
    window: timedelta
    reason: str


@dataclass
class RateLimitDecision:
    """Result of evaluating every configured limit."""

    allowed: bool = True
    reasons: list[str] = field(default_factory=list)
    retry_after_seconds: Optional[int] = None


def limits_from_settings(settings: Settings) -> tuple[SlidingWindowLimit, SlidingWindowLimit]:
    """Build the per-IP and per-email limits from configuration."""
    ip_limit = SlidingWindowLimit(
        name="ip",
        max_attempts=settings.IP_RATE_LIMIT,
        window=timedelta(minutes=settings.IP_RATE_WINDOW_MINUTES),
        reason="Too many registration attempts from this IP address.",
    )
    email_limit = SlidingWindowLimit(
        name="email",
        max_attempts=settings.EMAIL_RATE_LIMIT,
        window=timedelta(minutes=settings.EMAIL_RATE_WINDOW_MINUTES),
        reason="Too many registration attempts with this email.",
    )
    return ip_limit, email_limit


def format_retry_message(retry_after_seconds: int) -> str:
    """Human-readable retry hint, rounded up to whole minutes."""
    minutes = max(1, math.ceil(retry_after_seconds / 60))
    return f"Please try again in {minutes} minute{'s' if minutes > 1 else ''}."


def evaluate_window(
    limit: SlidingWindowLimit,
    attempts: list[dict[str, Any]],
    now: datetime,
) -> Optional[int]:
    """
    Check one window against the attempts recorded inside it.

    Args:
        limit: The limit to enforce
        attempts: Attempts already logged within the window
        now: Current time

    Returns:
        None if another attempt is allowed, otherwise seconds (at least 1) until the oldest
        attempt leaves the window
    """
    timestamps = sorted(
        ts for ts in (parse_timestamp(a.get("timestamp")) for a in attempts) if ts is not None
    )
    window_start = now - limit.window
    in_window = [ts for ts in timestamps if ts >= window_start]

    if len(in_window) < limit.max_attempts:
        return None

    oldest = in_window[0]
    return max(1, math.ceil((oldest + limit.window - now).total_seconds()))


def check_rate_limit(
    email: str,
    ip_address: str,
    now: datetime,
    limits: tuple[SlidingWindowLimit, SlidingWindowLimit],
) -> RateLimitDecision:
    """
    Evaluate the per-IP and per-email windows for an admission attempt.

    Both limits are always evaluated so the submitter sees every reason.
    Store errors propagate to the caller, which owns the fail-open policy.
    """
    ip_limit, email_limit = limits
    lookups: list[tuple[SlidingWindowLimit, Callable[[str, datetime], list[dict[str, Any]]], str]] = [
        (ip_limit, attempts_db.list_attempts_by_ip, ip_address),
        (email_limit, attempts_db.list_attempts_by_email, email),
    ]

    decision = RateLimitDecision()
    for limit, lookup, key in lookups:
        attempts = lookup(key, now - limit.window)
        retry_after = evaluate_window(limit, attempts, now)
        if retry_after is None:
            continue

        decision.allowed = False
        decision.reasons.append(f"{limit.reason} {format_retry_message(retry_after)}")
        decision.retry_after_seconds = max(decision.retry_after_seconds or 0, retry_after)
        logger.info(
            f"Rate limit '{limit.name}' exceeded",
            extra={"extra_data": {"limit": limit.name, "attempts": len(attempts)}},
        )

    return decision
