"""Row-Level Security (RLS) context management.

This module sets the PostgreSQL session context read by the RLS policies
that mirror ``app.core.access_policy`` at the storage layer.

Key concepts:
- Uses SET LOCAL for transaction-scoped settings (works with PgBouncer pooling)
- app.current_account_id is read by policies via app_account_id()
- app.current_survey_id is read via app_session_survey_id() for magic-link sessions
- Service-level callers use the service role, which bypasses RLS

Usage:
    await set_rls_context(session, principal)
    # All subsequent queries in this transaction are filtered by RLS
"""

import uuid as uuid_pkg

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access_policy import Principal, PrincipalKind


async def set_rls_account_context(session: AsyncSession, account_id: uuid_pkg.UUID) -> None:
    """Set the current account for RLS policies (transaction-scoped)."""
    await session.execute(
        text("SELECT set_config('app.current_account_id', :account_id, true)"),
        {"account_id": str(account_id)},
    )


async def set_rls_survey_session_context(
    session: AsyncSession, survey_id: uuid_pkg.UUID
) -> None:
    """Set the survey a magic-link session is scoped to (transaction-scoped)."""
    await session.execute(
        text("SELECT set_config('app.current_survey_id', :survey_id, true)"),
        {"survey_id": str(survey_id)},
    )


async def set_rls_context(session: AsyncSession, principal: Principal) -> None:
    """Apply the RLS settings matching ``principal``.

    Anonymous and service principals set nothing: anonymous requests see
    only what the anon policies allow, and the service role bypasses RLS.
    """
    if principal.kind == PrincipalKind.ACCOUNT and principal.account_id:
        await set_rls_account_context(session, principal.account_id)
    elif principal.kind == PrincipalKind.SURVEY_SESSION and principal.survey_id:
        await set_rls_survey_session_context(session, principal.survey_id)

