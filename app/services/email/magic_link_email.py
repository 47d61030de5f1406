"""Magic-link email.

Delivery is fire-and-forget: it runs after the issuing transaction has
committed, and a failure is logged without touching the issued link, which
stays redeemable. The usual recovery is for the respondent to request a new
link.
"""

import logging
from html import escape as html_escape

from app.core.exceptions import EmailDeliveryFailed
from app.core.security import mask_email
from app.services.email import postmark
from app.services.magic_link.types import IssuedMagicLink

logger = logging.getLogger(__name__)

SUBJECT_TEMPLATE = "Your access link for {title}"


def _build_html(survey_title: str, url: str, expires_label: str) -> str:
    """Build the HTML email body."""
    safe_title = html_escape(survey_title)
    safe_url = html_escape(url, quote=True)
    return f"""\
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="margin: 0; padding: 0; background-color: #f4f4f5;
             font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif;">
  <table role="presentation" width="100%" cellpadding="0" cellspacing="0"
         style="background-color: #f4f4f5;">
    <tr>
      <td align="center" style="padding: 40px 16px;">
        <table role="presentation" width="100%" cellpadding="0" cellspacing="0"
               style="max-width: 520px; background-color: #ffffff; border-radius: 8px;">
          <tr>
            <td style="padding: 36px 32px 32px;">
              <h1 style="margin: 0 0 16px; font-size: 20px; color: #18181b;">{safe_title}</h1>
              <p style="margin: 0 0 24px; font-size: 15px; line-height: 1.6; color: #3f3f46;">
                You were invited to answer this survey. The button below works once
                and expires {expires_label}.
              </p>
              <a href="{safe_url}"
                 style="display: inline-block; padding: 12px 24px; background-color: #18181b;
                        color: #fafafa; border-radius: 6px; text-decoration: none;
                        font-size: 15px; font-weight: 600;">
                Open survey
              </a>
              <p style="margin: 24px 0 0; font-size: 13px; color: #71717a;">
                If you did not request this link you can ignore this email.
              </p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>"""


def _build_text(survey_title: str, url: str, expires_label: str) -> str:
    """Build the plain-text email body."""
    return (
        f"{survey_title}\n\n"
        f"You were invited to answer this survey. This link works once and "
        f"expires {expires_label}:\n\n"
        f"{url}\n\n"
        "If you did not request this link you can ignore this email.\n"
    )


def _expires_label(issued: IssuedMagicLink) -> str:
    return f"on {issued.expires_at.strftime('%Y-%m-%d %H:%M UTC')}"


async def send_magic_link_email(issued: IssuedMagicLink) -> None:
    """Send the link. Raises EmailDeliveryFailed if the provider rejects it."""
    label = _expires_label(issued)
    sent = await postmark.postmark_service.send(
        postmark.OutboundEmail(
            to=issued.email,
            subject=SUBJECT_TEMPLATE.format(title=issued.survey_title),
            html_body=_build_html(issued.survey_title, issued.url, label),
            text_body=_build_text(issued.survey_title, issued.url, label),
            tag="magic-link",
            metadata={"survey_id": str(issued.survey_id)},
        )
    )
    if not sent:
        raise EmailDeliveryFailed()


async def deliver_magic_link(issued: IssuedMagicLink) -> bool:
    """Background delivery entry point. Never raises; returns whether the email went out."""
    try:
        await send_magic_link_email(issued)
    except EmailDeliveryFailed:
        logger.warning(
            f"[magic-link] Email delivery failed for {mask_email(issued.email)} "
            f"(survey {issued.survey_id}); link remains valid"
        )
        return False
    return True
