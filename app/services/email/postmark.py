"""Postmark delivery for magic-link emails.

Talks to Postmark's REST API over httpx. Each send is one POST; the
caller decides what a failed send means (the link itself stays valid).
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from app.config import settings
from app.core.security import mask_email

logger = logging.getLogger(__name__)

POSTMARK_API_URL = "https://api.postmarkapp.com/email"
POSTMARK_TIMEOUT_SECONDS = 10.0
MESSAGE_STREAM = "outbound"


@dataclass(frozen=True)
class OutboundEmail:
    to: str
    subject: str
    html_body: str
    text_body: str
    tag: str | None = None
    # Postmark echoes metadata back in webhooks and the activity feed
    metadata: dict[str, str] = field(default_factory=dict)

    def to_payload(self, from_email: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "From": from_email,
            "To": self.to,
            "Subject": self.subject,
            "HtmlBody": self.html_body,
            "TextBody": self.text_body,
            "MessageStream": MESSAGE_STREAM,
        }
        if self.tag:
            payload["Tag"] = self.tag
        if self.metadata:
            payload["Metadata"] = self.metadata
        return payload


def _describe_rejection(response: httpx.Response) -> str:
    """Postmark reports failures as {ErrorCode, Message}; fall back to raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    return f"ErrorCode {body.get('ErrorCode')}: {body.get('Message')}"


class PostmarkService:
    """Send one email at a time through Postmark."""

    async def send(self, email: OutboundEmail) -> bool:
        """
        Deliver ``email``.

        Returns True once Postmark accepts the message. Any rejection or
        transport error is logged and returns False.
        """
        if not settings.postmark_enabled:
            logger.warning("[postmark] Skipped (POSTMARK_API_KEY not configured)")
            return False

        headers = {
            "Accept": "application/json",
            "X-Postmark-Server-Token": settings.postmark_api_key,
        }
        recipient = mask_email(email.to)

        try:
            async with httpx.AsyncClient(timeout=POSTMARK_TIMEOUT_SECONDS) as client:
                response = await client.post(
                    POSTMARK_API_URL,
                    json=email.to_payload(settings.postmark_from_email),
                    headers=headers,
                )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"[postmark] HTTP {e.response.status_code} for {recipient}: "
                f"{_describe_rejection(e.response)}"
            )
            return False
        except httpx.RequestError as e:
            logger.error(f"[postmark] Request failed for {recipient}: {e}")
            return False

        logger.info(f"[postmark] Sent '{email.tag or 'untagged'}' email to {recipient}")
        return True


postmark_service = PostmarkService()
