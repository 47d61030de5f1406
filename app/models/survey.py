"""Survey model - owned by exactly one account."""

import uuid as uuid_pkg
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, ForeignKey, String, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, UUIDMixin


class SurveyStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"


DEFAULT_MAX_RESPONSES = 1000


class Survey(UUIDMixin, TimestampMixin, SQLModel, table=True):
    """
    A survey and its response counters.

    Only ``active`` surveys with a ``unique_link`` accept magic links and
    anonymous responses. Ownership never changes once created.
    """

    __tablename__ = "surveys"

    owner_account_id: uuid_pkg.UUID = Field(
        sa_column=Column(
            PG_UUID(as_uuid=True),
            ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    title: str = Field(max_length=200, nullable=False)
    description: str | None = Field(default=None)
    status: str = Field(
        default=SurveyStatus.DRAFT.value,
        sa_column=Column(String(20), nullable=False, server_default="draft"),
    )
    unique_link: str | None = Field(
        default=None,
        sa_column=Column(String(64), nullable=True, unique=True),
    )
    current_responses: int = Field(
        default=0,
        nullable=False,
        sa_column_kwargs={"server_default": text("0")},
    )
    max_responses: int = Field(
        default=DEFAULT_MAX_RESPONSES,
        nullable=False,
        sa_column_kwargs={"server_default": text(str(DEFAULT_MAX_RESPONSES))},
    )

    @property
    def accepts_responses(self) -> bool:
        return self.status == SurveyStatus.ACTIVE.value and self.unique_link is not None


# Request/Response schemas
class SurveyCreate(SQLModel):
    title: str = Field(max_length=200)
    description: str | None = None
    max_responses: int = Field(default=DEFAULT_MAX_RESPONSES, ge=1)


class SurveyUpdate(SQLModel):
    title: str | None = Field(default=None, max_length=200)
    description: str | None = None
    status: SurveyStatus | None = None
    max_responses: int | None = Field(default=None, ge=1)


class SurveyRead(SQLModel):
    id: uuid_pkg.UUID
    owner_account_id: uuid_pkg.UUID
    title: str
    description: str | None
    status: str
    unique_link: str | None
    current_responses: int
    max_responses: int
    created_at: datetime
    updated_at: datetime


class SurveyPublicRead(SQLModel):
    """What a respondent holding a survey session may see."""

    id: uuid_pkg.UUID
    title: str
    description: str | None
