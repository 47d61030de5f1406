"""Profile model - one row per account, mirrors Supabase auth.users."""

import uuid as uuid_pkg

from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin


class Profile(TimestampMixin, SQLModel, table=True):
    """
    Account profile.

    The id comes from Supabase Auth and is the account id every survey's
    ``owner_account_id`` points at. Plan and subscription fields are written
    by the billing integration; this service only reads them.
    """

    __tablename__ = "profiles"

    id: uuid_pkg.UUID = Field(
        primary_key=True,
        index=True,
        nullable=False,
        description="UUID from Supabase auth.users",
    )
    email: str | None = Field(default=None, max_length=255)
    full_name: str | None = Field(default=None, max_length=200)
    plan_name: str | None = Field(default=None, max_length=50)
    subscription_status: str | None = Field(default=None, max_length=50)


class ProfileRead(SQLModel):
    id: uuid_pkg.UUID
    email: str | None
    full_name: str | None
    plan_name: str | None
    subscription_status: str | None


class ProfileUpdate(SQLModel):
    full_name: str | None = None
