"""
Magic-link data types.

Data classes passed between the issuer, validator, consumer and the action
dispatcher. All timestamps are timezone-aware UTC.
"""

import uuid as uuid_pkg
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from app.core.exceptions import AppError
from app.core.security import mask_ip, truncate_user_agent

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def isoformat(value: datetime) -> str:
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class RequestContext:
    """Who asked, for the audit trail. Values are masked before storage."""

    client_ip: str | None = None
    user_agent: str | None = None

    def audit_details(self, **extra: Any) -> dict[str, Any]:
        return {
            "ip": mask_ip(self.client_ip),
            "user_agent": truncate_user_agent(self.user_agent),
            **extra,
        }


@dataclass(frozen=True)
class IssuedMagicLink:
    """Result of a successful issuance."""

    token: str
    email: str
    survey_id: uuid_pkg.UUID
    survey_title: str
    expires_at: datetime
    url: str


@dataclass(frozen=True)
class ValidatedMagicLink:
    """What a link grants access to, returned without consuming it."""

    email: str
    survey_id: uuid_pkg.UUID
    survey_title: str
    expires_at: datetime


@dataclass(frozen=True)
class SurveySession:
    """Bearer credential scoped to one survey, minted on consumption."""

    access_token: str
    token_type: str
    expires_in: int
    expires_at: datetime
    email: str
    survey_id: uuid_pkg.UUID
    respondent_id: uuid_pkg.UUID

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
            "expires_at": isoformat(self.expires_at),
            "user": {
                "id": str(self.respondent_id),
                "email": self.email,
                "role": "survey_respondent",
            },
        }


@dataclass(frozen=True)
class ConsumedMagicLink:
    """Result of a successful consumption."""

    session: SurveySession
    email: str
    survey_id: uuid_pkg.UUID
    survey_title: str


@dataclass
class ActionResult:
    """Discriminated outcome of one magic-link action.

    Either ``success`` with ``data`` or a failure with a user-facing
    ``error``; ``status_code`` is the HTTP-equivalent status.
    """

    success: bool
    status_code: int
    message: str | None = None
    data: dict[str, Any] | None = None
    error: str | None = None
    error_code: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, data: dict[str, Any]) -> "ActionResult":
        return cls(success=True, status_code=200, message=message, data=data)

    @classmethod
    def failure(cls, error: AppError) -> "ActionResult":
        headers = {}
        retry_after = getattr(error, "retry_after", None)
        if retry_after is not None:
            headers["Retry-After"] = str(retry_after)
        return cls(
            success=False,
            status_code=error.status_code,
            error=error.message,
            error_code=error.code,
            headers=headers,
        )

    def to_body(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "message": self.message, "data": self.data}
        return {"success": False, "error": self.error, "code": self.error_code}
