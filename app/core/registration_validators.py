"""Field-level checks used by the admission gate.

All functions here are pure and never touch the store.
"""

import re
from typing import Optional

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Known throwaway-email providers
DISPOSABLE_EMAIL_DOMAINS = frozenset(
    {
        "tempmail.com",
        "throwaway.email",
        "10minutemail.com",
        "guerrillamail.com",
        "mailinator.com",
        "trashmail.com",
        "temp-mail.org",
        "fakeinbox.com",
        "yopmail.com",
        "sharklasers.com",
        "getnada.com",
        "maildrop.cc",
        "dispostable.com",
    }
)

BOT_DETECTED_MESSAGE = "Automated submission detected. Please try again."
INVALID_EMAIL_MESSAGE = "Invalid email format"
DISPOSABLE_EMAIL_MESSAGE = "Disposable email addresses are not allowed"
UNUSUAL_BROWSER_WARNING = "Unusual browser detected"


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookups."""
    return email.strip().lower()


def validate_honeypot(value: Optional[str]) -> bool:
    """Return True when the hidden field was filled in, i.e. a bot."""
    return bool(value and value.strip())


def _has_bad_dots(part: str) -> bool:
    return ".." in part or part.startswith(".") or part.endswith(".")


def is_disposable_domain(domain: str) -> bool:
    """Match blocklisted domains and any of their subdomains."""
    domain = domain.lower()
    return any(
        domain == blocked or domain.endswith(f".{blocked}") for blocked in DISPOSABLE_EMAIL_DOMAINS
    )


def validate_email_format(email: str) -> Optional[str]:
    """
    Check an email address for shape, dot placement and disposable domains.

    Args:
        email: Address as submitted (normalized here)

    Returns:
        None when valid, otherwise the rejection reason
    """
    email = normalize_email(email)

    if not _EMAIL_RE.match(email):
        return INVALID_EMAIL_MESSAGE

    local, domain = email.rsplit("@", 1)
    if _has_bad_dots(local) or _has_bad_dots(domain):
        return INVALID_EMAIL_MESSAGE

    if is_disposable_domain(domain):
        return DISPOSABLE_EMAIL_MESSAGE

    return None


def check_user_agent(user_agent: Optional[str], min_length: int = 10) -> Optional[str]:
    """Return a warning for missing or suspiciously short user agents."""
    if not user_agent or len(user_agent) < min_length:
        return UNUSUAL_BROWSER_WARNING
    return None
