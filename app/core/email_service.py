"""Outbound transactional email.

Sends the registration-confirmed and access-granted emails through the
Resend API.
"""

import logging
from datetime import UTC, datetime
from html import escape
from typing import Any

import httpx

from app.core.config import get_settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


async def send_email(
    to: str | list[str],
    subject: str,
    html_body: str,
    text_body: str | None = None,
) -> dict[str, Any]:
    """
    Send a transactional email via Resend.

    Args:
        to: Single email or list of emails
        subject: Email subject
        html_body: HTML content
        text_body: Optional plain text fallback

    Returns:
        Dict with message_id and status

    Raises:
        ValueError: If RESEND_API_KEY is not configured
        httpx.HTTPStatusError: If Resend rejects the request
    """
    settings = get_settings()
    if not settings.RESEND_API_KEY:
        raise ValueError("RESEND_API_KEY not configured")

    to_emails = [to] if isinstance(to, str) else to
    payload: dict[str, Any] = {
        "from": f"{settings.RESEND_FROM_NAME} <{settings.RESEND_FROM_EMAIL}>",
        "to": to_emails,
        "subject": subject,
        "html": html_body,
    }
    if text_body:
        payload["text"] = text_body

    async with httpx.AsyncClient(timeout=15) as client:
        response = await client.post(
            RESEND_API_URL,
            headers={
                "Authorization": f"Bearer {settings.RESEND_API_KEY}",
                "Content-Type": "application/json",
            },
            json=payload,
        )
        response.raise_for_status()

        data = response.json()
        message_id = data.get("id", "")
        logger.info(
            f"Resend email sent to {len(to_emails)} recipients, "
            f"subject='{subject}', message_id={message_id}"
        )

        return {"message_id": message_id, "status": "sent"}


def _wrap(title: str, body_html: str) -> str:
    settings = get_settings()
    year = datetime.now(UTC).year
    return f"""
    <div style="font-family: monospace; max-width: 600px; margin: 0 auto;
                background: #0f0f0f; color: #d4d4d8; border: 1px solid #27272a;">
        <div style="padding: 32px 40px; border-bottom: 1px solid #27272a; text-align: center;">
            <h1 style="margin: 0; color: #ffffff; font-size: 22px;">{title}</h1>
        </div>
        <div style="padding: 32px 40px;">
            {body_html}
            <p style="margin-top: 32px; color: #ffffff;">
                Best regards,<br><strong>The MFOUR LABS Team</strong>
            </p>
        </div>
        <div style="padding: 24px 40px; border-top: 1px solid #27272a;
                    text-align: center; font-size: 11px; color: #52525b;">
            <a href="{settings.SITE_URL}" style="color: #71717a;">{settings.SITE_URL}</a><br>
            &copy; {year} MFOUR LABS. All rights reserved.
        </div>
    </div>
    """


async def send_welcome_email(name: str, email: str, waitlist_position: int | None) -> dict[str, Any]:
    """Registration confirmed: the registrant is in the priority queue."""
    subject = "Irongrade Early Access – Registration Confirmed"
    position_line = (
        f"<p>Your current waitlist position is <strong>#{waitlist_position}</strong>.</p>"
        if waitlist_position
        else ""
    )
    html_body = _wrap(
        "Irongrade Access Request",
        f"""
        <p>Hi <strong>{escape(name)}</strong>,</p>
        <p>Thank you for registering for early access to
        <strong style="color: #22c55e;">Irongrade</strong>. Your request has been
        received and is in the priority queue.</p>
        {position_line}
        <p>Selected users will be notified via email.</p>
        """,
    )
    text_body = (
        f"Hi {name},\n\n"
        "Thank you for registering for early access to Irongrade. "
        "Your request has been received and is in the priority queue.\n"
        + (f"Your current waitlist position is #{waitlist_position}.\n" if waitlist_position else "")
        + "\nSelected users will be notified via email."
    )
    return await send_email(email, subject, html_body, text_body)


async def send_access_granted_email(name: str, email: str, access_id: str | None) -> dict[str, Any]:
    """Access approved by an admin."""
    settings = get_settings()
    subject = "Access Granted: Irongrade Platform"
    access_line = (
        f"<p>Your access ID: <strong>{escape(access_id)}</strong></p>" if access_id else ""
    )
    html_body = _wrap(
        "Access Granted",
        f"""
        <p>Hi <strong>{escape(name)}</strong>,</p>
        <p>Your early access request has been <strong style="color: #22c55e;">approved</strong>.</p>
        {access_line}
        <p><a href="{settings.SITE_URL}" style="color: #22c55e;">Sign in to get started</a></p>
        """,
    )
    text_body = (
        f"Hi {name},\n\n"
        "Your early access request has been approved.\n"
        + (f"Your access ID: {access_id}\n" if access_id else "")
        + f"\nSign in at {settings.SITE_URL}"
    )
    return await send_email(email, subject, html_body, text_body)
