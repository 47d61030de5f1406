"""Domain operations for AuditLog model."""

import logging
import uuid as uuid_pkg
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditLogOperations:
    """Append-only audit trail.

    Writing an entry is best-effort: it runs in a SAVEPOINT so a failed
    insert neither aborts the caller's transaction nor changes its result.
    """

    async def record(
        self,
        db: AsyncSession,
        action: str,
        table_name: str,
        record_id: uuid_pkg.UUID | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        entry = AuditLog(
            action=action,
            table_name=table_name,
            record_id=record_id,
            details=details,
        )
        try:
            async with db.begin_nested():
                db.add(entry)
                await db.flush()
        except SQLAlchemyError as e:
            logger.warning(f"[audit] Failed to record {action}: {e}")
            return None
        return entry


# Singleton instance
audit_log_ops = AuditLogOperations()
