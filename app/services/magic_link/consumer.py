"""Magic-link consumer - redeems a link exactly once for a survey session."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import TokenInvalid
from app.core.security import mask_email
from app.domain.audit_log_operations import audit_log_ops
from app.domain.magic_link_operations import magic_link_ops
from app.domain.survey_operations import survey_ops
from app.services.magic_link.types import (
    Clock,
    ConsumedMagicLink,
    RequestContext,
    utc_now,
)
from app.services.session_issuer import SurveySessionIssuer, survey_session_issuer

logger = logging.getLogger(__name__)


class MagicLinkConsumer:
    """Consume a link and mint a survey-scoped session.

    The test-and-set on ``used_at`` is one conditional UPDATE in the store;
    the session is only minted after that update has returned a row.
    """

    def __init__(
        self,
        clock: Clock = utc_now,
        session_issuer: SurveySessionIssuer = survey_session_issuer,
    ) -> None:
        self.clock = clock
        self.session_issuer = session_issuer

    async def consume(
        self,
        db: AsyncSession,
        token: str,
        context: RequestContext | None = None,
    ) -> ConsumedMagicLink:
        context = context or RequestContext()
        token = (token or "").strip()
        if not token:
            raise TokenInvalid()

        now = self.clock()
        consumed = await magic_link_ops.consume(db, token, now)
        if consumed is None:
            await audit_log_ops.record(
                db,
                "MAGIC_LINK_USE_INVALID",
                "magic_links",
                details=context.audit_details(token_prefix=token[:8]),
            )
            raise TokenInvalid()

        survey = await survey_ops.get(db, consumed.survey_id)
        session = self.session_issuer.issue(consumed.email, consumed.survey_id, now=now)

        await audit_log_ops.record(
            db,
            "MAGIC_LINK_USE_AUTH_SUCCESS",
            "magic_links",
            record_id=consumed.id,
            details=context.audit_details(
                survey_id=str(consumed.survey_id),
                email_mask=mask_email(consumed.email),
            ),
        )
        logger.info(f"[magic-link] Link {consumed.id} consumed by {mask_email(consumed.email)}")

        return ConsumedMagicLink(
            session=session,
            email=consumed.email,
            survey_id=consumed.survey_id,
            survey_title=survey.title if survey else "",
        )
