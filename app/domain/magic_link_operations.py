"""Domain operations for MagicLink model - the token store."""

import uuid as uuid_pkg
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.magic_link import MagicLink
from app.models.survey import Survey, SurveyStatus


@dataclass(frozen=True)
class ConsumedLinkRow:
    """Columns returned by a successful conditional consume."""

    id: uuid_pkg.UUID
    email: str
    survey_id: uuid_pkg.UUID


class MagicLinkOperations:
    """Storage operations for magic links.

    ``consume`` is the only mutation of an existing valid link and is a
    single conditional UPDATE, so the validity check and the write cannot
    be interleaved by a concurrent caller.
    """

    async def get_with_survey(
        self,
        db: AsyncSession,
        token: str,
    ) -> tuple[MagicLink, Survey] | None:
        """Get a link and its survey in one round-trip."""
        statement = (
            select(MagicLink, Survey)
            .join(Survey, Survey.id == MagicLink.survey_id)  # type: ignore[arg-type]
            .where(MagicLink.token == token)  # type: ignore[arg-type]
        )
        result = await db.execute(statement)
        row = result.one_or_none()
        if row is None:
            return None
        return row[0], row[1]

    async def create(
        self,
        db: AsyncSession,
        *,
        token: str,
        email: str,
        survey_id: uuid_pkg.UUID,
        expires_at: datetime,
        created_at: datetime,
    ) -> MagicLink:
        link = MagicLink(
            token=token,
            email=email,
            survey_id=survey_id,
            expires_at=expires_at,
            created_at=created_at,
        )
        db.add(link)
        await db.flush()
        await db.refresh(link)
        return link

    async def revoke_outstanding(
        self,
        db: AsyncSession,
        email: str,
        survey_id: uuid_pkg.UUID,
        now: datetime,
    ) -> int:
        """Mark every still-valid link for this email/survey as used.

        Returns the number of links revoked.
        """
        statement = (
            update(MagicLink)
            .where(
                MagicLink.email == email,  # type: ignore[arg-type]
                MagicLink.survey_id == survey_id,  # type: ignore[arg-type]
                MagicLink.used_at.is_(None),  # type: ignore[union-attr]
                MagicLink.expires_at > now,  # type: ignore[arg-type]
            )
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(statement)
        return result.rowcount or 0

    async def consume(
        self,
        db: AsyncSession,
        token: str,
        now: datetime,
    ) -> ConsumedLinkRow | None:
        """Atomically mark a link used if it is still valid.

        The predicate (unused, unexpired, survey still accepting responses)
        and the write happen in one UPDATE ... RETURNING. Under concurrent
        calls Postgres row locking lets exactly one caller see a row come
        back; every other caller gets None.
        """
        eligible_surveys = select(Survey.id).where(
            Survey.status == SurveyStatus.ACTIVE.value,  # type: ignore[arg-type]
            Survey.unique_link.is_not(None),  # type: ignore[union-attr]
        )
        statement = (
            update(MagicLink)
            .where(
                MagicLink.token == token,  # type: ignore[arg-type]
                MagicLink.used_at.is_(None),  # type: ignore[union-attr]
                MagicLink.expires_at > now,  # type: ignore[arg-type]
                MagicLink.survey_id.in_(eligible_surveys),  # type: ignore[attr-defined]
            )
            .values(used_at=now)
            .returning(MagicLink.id, MagicLink.email, MagicLink.survey_id)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(statement)
        row = result.one_or_none()
        if row is None:
            return None
        return ConsumedLinkRow(id=row.id, email=row.email, survey_id=row.survey_id)


# Singleton instance
magic_link_ops = MagicLinkOperations()
