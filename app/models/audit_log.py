"""Audit log model - privacy-masked trail of magic-link activity."""

import uuid as uuid_pkg
from typing import Any

from sqlalchemy import Column
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from app.models.base import CreatedAtMixin, UUIDMixin


class AuditLog(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    """
    One audited event, e.g. ``MAGIC_LINK_GENERATE_SUCCESS``.

    ``details`` holds masked IPs, truncated user agents and masked emails
    only; raw tokens and full addresses are never written here.
    """

    __tablename__ = "audit_logs"

    action: str = Field(max_length=64, nullable=False, index=True)
    table_name: str = Field(max_length=64, nullable=False)
    record_id: uuid_pkg.UUID | None = Field(default=None, nullable=True)
    details: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSONB, nullable=True),
    )
