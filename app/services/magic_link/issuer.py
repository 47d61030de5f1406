"""Magic-link issuer - creates a single-use link for an (email, survey) pair."""

import logging
import uuid as uuid_pkg
from datetime import timedelta
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import InvalidRequest, SurveyNotEligible
from app.core.rate_limit import RateLimiter, magic_link_issue_limit, rate_limiter
from app.core.security import (
    generate_magic_link_token,
    is_valid_email,
    mask_email,
    normalize_email,
)
from app.domain.audit_log_operations import audit_log_ops
from app.domain.magic_link_operations import magic_link_ops
from app.domain.survey_operations import survey_ops
from app.services.magic_link.types import Clock, IssuedMagicLink, RequestContext, utc_now

logger = logging.getLogger(__name__)

ISSUE_RATE_LIMIT_BUCKET = "magic-link-issue"


def build_magic_link_url(token: str, survey_id: uuid_pkg.UUID) -> str:
    """Build the respondent-facing URL that carries the token."""
    query = urlencode({"token": token, "surveyId": str(survey_id)})
    return f"{settings.frontend_url.rstrip('/')}/auth/magic-link?{query}"


class MagicLinkIssuer:
    """Issue magic links for eligible surveys.

    Issuance only persists the link. Sending the email is the caller's
    follow-up step, run after commit, and its failure never undoes issuance.
    """

    def __init__(
        self,
        clock: Clock = utc_now,
        limiter: RateLimiter = rate_limiter,
        ttl: timedelta | None = None,
    ) -> None:
        self.clock = clock
        self.limiter = limiter
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl or timedelta(hours=settings.magic_link_ttl_hours)

    async def issue(
        self,
        db: AsyncSession,
        email: str,
        survey_id: uuid_pkg.UUID,
        context: RequestContext | None = None,
    ) -> IssuedMagicLink:
        """
        Create a new magic link.

        Raises:
            InvalidRequest: email is not a syntactically valid address
            SurveyNotEligible: survey missing, not active, or without a unique link
            RateLimitExceeded: too many links requested for this email/survey
        """
        context = context or RequestContext()
        email = normalize_email(email or "")

        await audit_log_ops.record(
            db,
            "MAGIC_LINK_GENERATE_ATTEMPT",
            "magic_links",
            details=context.audit_details(email_mask=mask_email(email), survey_id=str(survey_id)),
        )

        if not is_valid_email(email):
            await audit_log_ops.record(
                db,
                "MAGIC_LINK_GENERATE_INVALID_EMAIL",
                "magic_links",
                details=context.audit_details(reason="invalid_email"),
            )
            raise InvalidRequest("Invalid email address")

        survey = await survey_ops.get(db, survey_id)
        if survey is None or not survey.accepts_responses:
            logger.info(f"[magic-link] Survey {survey_id} not eligible for issuance")
            await audit_log_ops.record(
                db,
                "MAGIC_LINK_GENERATE_SURVEY_NOT_ELIGIBLE",
                "magic_links",
                details=context.audit_details(survey_id=str(survey_id)),
            )
            raise SurveyNotEligible()

        self.limiter.check_rate_limit(
            ISSUE_RATE_LIMIT_BUCKET,
            f"{email}:{survey_id}",
            magic_link_issue_limit(),
        )

        now = self.clock()
        if settings.magic_link_revoke_previous:
            revoked = await magic_link_ops.revoke_outstanding(db, email, survey.id, now)
            if revoked:
                logger.info(
                    f"[magic-link] Revoked {revoked} outstanding link(s) for "
                    f"{mask_email(email)} on survey {survey.id}"
                )

        token = generate_magic_link_token()
        link = await magic_link_ops.create(
            db,
            token=token,
            email=email,
            survey_id=survey.id,
            expires_at=now + self.ttl,
            created_at=now,
        )

        await audit_log_ops.record(
            db,
            "MAGIC_LINK_GENERATE_SUCCESS",
            "magic_links",
            record_id=link.id,
            details=context.audit_details(
                survey_id=str(survey.id),
                expires_at=link.expires_at.isoformat(),
            ),
        )
        logger.info(f"[magic-link] Issued link {link.id} for {mask_email(email)}")

        return IssuedMagicLink(
            token=token,
            email=email,
            survey_id=survey.id,
            survey_title=survey.title,
            expires_at=link.expires_at,
            url=build_magic_link_url(token, survey.id),
        )
