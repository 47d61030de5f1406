"""Survey response model - append-only."""

import uuid as uuid_pkg
from datetime import datetime
from typing import Any

from sqlalchemy import Column, ForeignKey
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlmodel import Field, SQLModel

from app.models.base import CreatedAtMixin, UUIDMixin


class Response(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    """
    One submitted set of answers.

    ``respondent_id`` is opaque and never an account id. Responses are never
    updated; they are removed only by the survey owner or a service caller.
    """

    __tablename__ = "responses"

    survey_id: uuid_pkg.UUID = Field(
        sa_column=Column(
            PG_UUID(as_uuid=True),
            ForeignKey("surveys.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    respondent_id: uuid_pkg.UUID = Field(
        default_factory=uuid_pkg.uuid4,
        nullable=False,
        index=True,
    )
    payload: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSONB, nullable=False, server_default="{}"),
    )


class ResponseCreate(SQLModel):
    payload: dict[str, Any]
    respondent_id: uuid_pkg.UUID | None = None


class ResponseRead(SQLModel):
    id: uuid_pkg.UUID
    survey_id: uuid_pkg.UUID
    respondent_id: uuid_pkg.UUID
    payload: dict[str, Any]
    created_at: datetime


class ResponseReceipt(SQLModel):
    """Acknowledgement returned to whoever submitted a response."""

    id: uuid_pkg.UUID
    survey_id: uuid_pkg.UUID
    created_at: datetime
