"""Magic-link validator - read-only pre-flight check of a link."""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import TokenInvalid
from app.domain.audit_log_operations import audit_log_ops
from app.domain.magic_link_operations import magic_link_ops
from app.models.magic_link import MagicLink
from app.models.survey import Survey
from app.services.magic_link.types import (
    Clock,
    RequestContext,
    ValidatedMagicLink,
    utc_now,
)

logger = logging.getLogger(__name__)


def _rejection_reason(found: tuple[MagicLink, Survey] | None, now: datetime) -> str | None:
    """Why a link is unusable, for the audit trail only. None when usable."""
    if found is None:
        return "not_found"
    link, survey = found
    if not link.is_valid_at(now):
        return "used" if link.used_at is not None else "expired"
    if not survey.accepts_responses:
        return "survey_not_eligible"
    return None


class MagicLinkValidator:
    """Report what a link grants without consuming it.

    Unknown, expired and used links (and links whose survey stopped
    accepting responses) all fail with the same TokenInvalid.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self.clock = clock

    async def validate(
        self,
        db: AsyncSession,
        token: str,
        context: RequestContext | None = None,
    ) -> ValidatedMagicLink:
        context = context or RequestContext()
        token = (token or "").strip()
        if not token:
            raise TokenInvalid()

        found = await magic_link_ops.get_with_survey(db, token)
        now = self.clock()

        reason = _rejection_reason(found, now)
        if reason is not None:
            await audit_log_ops.record(
                db,
                "MAGIC_LINK_VALIDATE_INVALID",
                "magic_links",
                details=context.audit_details(token_prefix=token[:8], reason=reason),
            )
            raise TokenInvalid()

        link, survey = found
        await audit_log_ops.record(
            db,
            "MAGIC_LINK_VALIDATE_SUCCESS",
            "magic_links",
            record_id=link.id,
            details=context.audit_details(survey_id=str(survey.id)),
        )

        return ValidatedMagicLink(
            email=link.email,
            survey_id=survey.id,
            survey_title=survey.title,
            expires_at=link.expires_at,
        )
