"""Tests for the field-level registration checks."""

import pytest

from app.core.registration_validators import (
    DISPOSABLE_EMAIL_MESSAGE,
    INVALID_EMAIL_MESSAGE,
    UNUSUAL_BROWSER_WARNING,
    check_user_agent,
    is_disposable_domain,
    normalize_email,
    validate_email_format,
    validate_honeypot,
)


def test_normalize_email_trims_and_lowercases():
    assert normalize_email("  Alice@Example.COM ") == "alice@example.com"


@pytest.mark.parametrize("value,expected", [("", False), (None, False), ("   ", False), ("x", True)])
def test_validate_honeypot(value, expected):
    assert validate_honeypot(value) is expected


@pytest.mark.parametrize(
    "email",
    ["alice@example.com", "first.last@sub.example.org", "a+tag@example.io"],
)
def test_valid_emails_pass(email):
    assert validate_email_format(email) is None


@pytest.mark.parametrize(
    "email",
    [
        "not-an-email",
        "alice@example",
        "alice@@example.com",
        "a lice@example.com",
        "alice..b@example.com",
        ".alice@example.com",
        "alice.@example.com",
        "alice@.example.com",
        "alice@example..com",
    ],
)
def test_malformed_emails_rejected(email):
    assert validate_email_format(email) == INVALID_EMAIL_MESSAGE


def test_disposable_domain_rejected():
    assert validate_email_format("bot@mailinator.com") == DISPOSABLE_EMAIL_MESSAGE


def test_disposable_subdomain_rejected():
    assert is_disposable_domain("inbox.mailinator.com")
    assert validate_email_format("bot@inbox.MAILINATOR.com") == DISPOSABLE_EMAIL_MESSAGE


def test_lookalike_domain_not_disposable():
    assert not is_disposable_domain("notmailinator.com")


def test_user_agent_checks():
    assert check_user_agent(None) == UNUSUAL_BROWSER_WARNING
    assert check_user_agent("curl/8") == UNUSUAL_BROWSER_WARNING
    assert check_user_agent("Mozilla/5.0 (Macintosh)") is None
    assert check_user_agent("0123456789", min_length=10) is None
