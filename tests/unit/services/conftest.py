"""Service test fixtures — in-memory token store, clock and session issuer."""

from __future__ import annotations

from contextlib import ExitStack
from unittest.mock import AsyncMock

import pytest

from app.core.rate_limit import RateLimiter
from app.services.session_issuer import SurveySessionIssuer

from tests.helpers.fakes import FakeClock, FakeMagicLinkStore, make_survey


@pytest.fixture
def store():
    """Token store, survey lookup and audit log, all in memory."""
    fake = FakeMagicLinkStore()
    with ExitStack() as stack:
        for patcher in fake.patch():
            stack.enter_context(patcher)
        yield fake


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter():
    return RateLimiter()


@pytest.fixture
def session_issuer():
    return SurveySessionIssuer(
        secret="test-session-secret",
        ttl_seconds=3600,
        issuer="survey-access-api",
    )


@pytest.fixture
def active_survey(store):
    return store.add_survey(make_survey(title="Customer Pulse"))


@pytest.fixture
def db():
    """The services only pass the session through to the (patched) store."""
    return AsyncMock()
