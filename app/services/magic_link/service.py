"""Magic-link action dispatcher.

Exposes the three actions callers use (``generate``, ``validate``, ``use``)
and turns every outcome into an ``ActionResult`` so the HTTP route and the
CLI share one response shape:

    {"success": true, "message": ..., "data": {...}}
    {"success": false, "error": "...", "code": "..."}

Transactions are owned here: each action commits on success, commits the
audit trail on a domain failure, and rolls back on storage errors, which
are reported as StorageUnavailable without the driver's message.
"""

import asyncio
import logging
import uuid as uuid_pkg
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppError, InvalidRequest, StorageUnavailable
from app.services.email.magic_link_email import deliver_magic_link
from app.services.magic_link.consumer import MagicLinkConsumer
from app.services.magic_link.issuer import MagicLinkIssuer
from app.services.magic_link.types import (
    ActionResult,
    ConsumedMagicLink,
    IssuedMagicLink,
    RequestContext,
    ValidatedMagicLink,
    isoformat,
)
from app.services.magic_link.validator import MagicLinkValidator

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACTIONS = ("generate", "validate", "use")

# Called as schedule(func, *args); FastAPI's BackgroundTasks.add_task fits
DeliveryScheduler = Callable[..., Any]

_background_tasks: set[asyncio.Task] = set()


def spawn_delivery(func: Callable[..., Awaitable[Any]], *args: Any) -> None:
    """Fire-and-forget on the running loop, keeping a reference until done."""
    task = asyncio.create_task(func(*args))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


def _parse_uuid(value: Any, field: str) -> uuid_pkg.UUID:
    try:
        return uuid_pkg.UUID(str(value))
    except (TypeError, ValueError):
        raise InvalidRequest(f"Invalid {field}") from None


def _require_text(value: Any, field: str) -> str | None:
    """JSON callers can send numbers or objects; only strings reach the components."""
    if value is not None and not isinstance(value, str):
        raise InvalidRequest(f"Invalid {field}")
    return value


class MagicLinkService:
    """Facade over issuer, validator and consumer."""

    def __init__(
        self,
        issuer: MagicLinkIssuer | None = None,
        validator: MagicLinkValidator | None = None,
        consumer: MagicLinkConsumer | None = None,
    ) -> None:
        self.issuer = issuer or MagicLinkIssuer()
        self.validator = validator or MagicLinkValidator()
        self.consumer = consumer or MagicLinkConsumer()

    async def handle(
        self,
        db: AsyncSession,
        action: str | None,
        payload: dict[str, Any],
        context: RequestContext | None = None,
        schedule_delivery: DeliveryScheduler = spawn_delivery,
        include_link: bool = False,
    ) -> ActionResult:
        """Dispatch one action. Never raises."""
        try:
            if action == "generate":
                return await self.generate(
                    db,
                    payload.get("email"),
                    payload.get("surveyId"),
                    context=context,
                    schedule_delivery=schedule_delivery,
                    include_link=include_link,
                )
            if action == "validate":
                return await self.validate(db, payload.get("token"), context=context)
            if action == "use":
                return await self.use(db, payload.get("token"), context=context)
            logger.info(f"[magic-link] Invalid action: {action!r}")
            return ActionResult.failure(InvalidRequest("Invalid action"))
        except Exception:
            logger.exception(f"[magic-link] Unexpected failure during {action!r}")
            await db.rollback()
            return ActionResult(
                success=False,
                status_code=500,
                error="Internal server error",
                error_code="internal_error",
            )

    async def generate(
        self,
        db: AsyncSession,
        email: str | None,
        survey_id: Any,
        context: RequestContext | None = None,
        schedule_delivery: DeliveryScheduler = spawn_delivery,
        include_link: bool = False,
    ) -> ActionResult:
        async def operation() -> IssuedMagicLink:
            address = _require_text(email, "email")
            if not address or not survey_id:
                raise InvalidRequest("email and surveyId are required")
            return await self.issuer.issue(
                db, address, _parse_uuid(survey_id, "surveyId"), context
            )

        try:
            issued = await self._execute(db, "generate", operation)
        except AppError as e:
            return ActionResult.failure(e)

        # Only after commit: delivery can never roll back an issued link
        schedule_delivery(deliver_magic_link, issued)

        data: dict[str, Any] = {
            "email": issued.email,
            "surveyId": str(issued.survey_id),
            "surveyTitle": issued.survey_title,
            "expiresAt": isoformat(issued.expires_at),
        }
        if include_link:
            data["token"] = issued.token
            data["magicLinkUrl"] = issued.url
        return ActionResult.ok("Magic link generated", data)

    async def validate(
        self,
        db: AsyncSession,
        token: str | None,
        context: RequestContext | None = None,
    ) -> ActionResult:
        async def operation() -> ValidatedMagicLink:
            return await self.validator.validate(db, _require_text(token, "token") or "", context)

        try:
            validated = await self._execute(db, "validate", operation)
        except AppError as e:
            return ActionResult.failure(e)

        return ActionResult.ok(
            "Token is valid",
            {
                "email": validated.email,
                "surveyId": str(validated.survey_id),
                "surveyTitle": validated.survey_title,
                "expiresAt": isoformat(validated.expires_at),
            },
        )

    async def use(
        self,
        db: AsyncSession,
        token: str | None,
        context: RequestContext | None = None,
    ) -> ActionResult:
        async def operation() -> ConsumedMagicLink:
            return await self.consumer.consume(db, _require_text(token, "token") or "", context)

        try:
            consumed = await self._execute(db, "use", operation)
        except AppError as e:
            return ActionResult.failure(e)

        return ActionResult.ok(
            "Authenticated",
            {
                "session": consumed.session.to_dict(),
                "email": consumed.email,
                "surveyId": str(consumed.survey_id),
                "surveyTitle": consumed.survey_title,
            },
        )

    async def _execute(
        self,
        db: AsyncSession,
        action: str,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        try:
            value = await operation()
            await db.commit()
            return value
        except AppError:
            # Domain failures wrote nothing but audit entries; keep those
            await self._commit_audit_trail(db, action)
            raise
        except SQLAlchemyError as e:
            logger.error(f"[magic-link] Storage failure during {action}: {e}")
            await db.rollback()
            raise StorageUnavailable() from e

    async def _commit_audit_trail(self, db: AsyncSession, action: str) -> None:
        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.warning(f"[magic-link] Could not persist audit trail for {action}: {e}")
            await db.rollback()


magic_link_service = MagicLinkService()
