"""Root conftest — test infrastructure for all backend tests.

Provides:
- Safety guard: integration tests only run with SURVEY_API_TESTS_ENABLED=1
- Transaction-rollback db_session fixture
- Autouse mock for external services (Postmark) and rate limiter reset
"""

from __future__ import annotations

import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from app.config.settings import settings

INTEGRATION_FLAG = "SURVEY_API_TESTS_ENABLED"

# ─────────────────────────────────────────────────────────────────────────────
# Safety Guard
# ─────────────────────────────────────────────────────────────────────────────


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "integration: DB integration tests (transaction rollback)")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip DB integration tests unless explicitly enabled.

    Unit and API tests (pure mocks) always run.
    """
    if os.getenv(INTEGRATION_FLAG) == "1":
        return
    skip = pytest.mark.skip(reason=f"set {INTEGRATION_FLAG}=1 to run DB integration tests")
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(skip)


# ─────────────────────────────────────────────────────────────────────────────
# Transaction-Rollback Engine (uses DIRECT connection, not pooler)
# ─────────────────────────────────────────────────────────────────────────────

# PgBouncer transaction pooling (port 6543) breaks SAVEPOINTs because it
# may multiplex connections across transactions. Use direct (port 5432).
TEST_ENGINE = create_async_engine(
    settings.database_url_direct,
    echo=False,
    pool_pre_ping=True,
    pool_size=3,
    max_overflow=2,
    connect_args={
        "command_timeout": 30,
    },
)


@pytest.fixture
async def db_session():
    """Database session wrapped in a transaction that is ALWAYS rolled back.

    Uses SAVEPOINT so tests can call commit() internally without
    actually committing — the outer transaction absorbs it.
    """
    async with TEST_ENGINE.connect() as conn:
        trans = await conn.begin()
        session = AsyncSession(bind=conn, expire_on_commit=False)
        await conn.begin_nested()

        @event.listens_for(session.sync_session, "after_transaction_end")
        def restart_savepoint(session_sync, transaction):
            """Restart SAVEPOINT after each nested transaction ends.

            This lets application code call session.commit() freely —
            each commit hits a savepoint, not the real transaction.
            """
            if transaction.nested and not transaction._parent.nested:
                session_sync.begin_nested()

        try:
            yield session
        finally:
            await session.close()
            await trans.rollback()


# ─────────────────────────────────────────────────────────────────────────────
# External Service Mocks
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def mock_external_services():
    """SAFETY: Always mock Postmark so no test can send a real email."""
    with patch("app.services.email.postmark.postmark_service", new_callable=MagicMock) as mock_pm:
        mock_pm.send = AsyncMock(return_value=True)
        yield {"postmark": mock_pm}


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """The issuance limiter is process-wide; start every test with it empty."""
    from app.core.rate_limit import rate_limiter

    rate_limiter.reset()
    yield
    rate_limiter.reset()
