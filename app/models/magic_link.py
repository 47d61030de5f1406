"""Magic link model - single-use passwordless access tokens for one survey."""

import uuid as uuid_pkg
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlmodel import Field, SQLModel

from app.models.base import CreatedAtMixin, UUIDMixin


class MagicLink(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    """
    An issued magic link.

    A link is valid while ``used_at`` is null and the clock is before
    ``expires_at``. ``used_at`` is written once and never cleared, so
    consumed links stay terminal. Rows are never deleted by the service.
    """

    __tablename__ = "magic_links"
    __table_args__ = (
        Index("ix_magic_links_email_survey", "email", "survey_id"),
    )

    token: str = Field(
        sa_column=Column(String(128), nullable=False, unique=True, index=True),
    )
    email: str = Field(max_length=255, nullable=False)
    survey_id: uuid_pkg.UUID = Field(
        sa_column=Column(
            PG_UUID(as_uuid=True),
            ForeignKey("surveys.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    expires_at: datetime = Field(  # type: ignore[call-overload]
        nullable=False,
        sa_type=DateTime(timezone=True),
    )
    used_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        nullable=True,
        sa_type=DateTime(timezone=True),
    )

    def is_valid_at(self, now: datetime) -> bool:
        return self.used_at is None and now < self.expires_at
