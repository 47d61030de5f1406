"""API test fixtures — in-memory rows + principal variant clients.

Each client overrides get_principal, get_current_account, get_db and
get_db_with_rls, so requests run the real routers, domain operations and
access policy against in-memory rows instead of Postgres.
"""

from __future__ import annotations

import uuid
from contextlib import ExitStack, asynccontextmanager
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException, status
from httpx import ASGITransport, AsyncClient

from app.core.access_policy import Principal, PrincipalKind
from app.domain import profile_ops, response_ops, survey_ops
from app.models.profile import Profile
from app.models.response import Response

from tests.helpers.fakes import FakeMagicLinkStore, make_survey
from tests.helpers.mock_factories import make_mock_db


# ─────────────────────────────────────────────────────────────────────────────
# In-memory rows
# ─────────────────────────────────────────────────────────────────────────────


class InMemoryRows:
    """Profiles, surveys and responses keyed by id, served to the domain ops."""

    def __init__(self) -> None:
        self.profiles: dict[uuid.UUID, Profile] = {}
        self.surveys = {}
        self.responses: dict[uuid.UUID, Response] = {}

    def add_profile(self, email: str) -> Profile:
        profile = Profile(id=uuid.uuid4(), email=email, full_name=email.split("@")[0].title())
        self.profiles[profile.id] = profile
        return profile

    def add_survey(self, owner: Profile, **kwargs):
        survey = make_survey(owner_account_id=owner.id, **kwargs)
        self.surveys[survey.id] = survey
        return survey

    def add_response(self, survey) -> Response:
        response = Response(survey_id=survey.id, respondent_id=uuid.uuid4(), payload={"score": 7})
        self.responses[response.id] = response
        return response

    async def get_profile(self, _db, id):
        return self.profiles.get(id)

    async def get_survey(self, _db, id):
        return self.surveys.get(id)

    async def get_response(self, _db, id):
        return self.responses.get(id)

    async def reserve_slot(self, _db, survey_id):
        survey = self.surveys.get(survey_id)
        if survey is None or not survey.accepts_responses:
            return False
        if survey.current_responses >= survey.max_responses:
            return False
        survey.current_responses += 1
        return True

    def patch(self):
        return [
            patch.object(profile_ops, "get", self.get_profile),
            patch.object(survey_ops, "get", self.get_survey),
            patch.object(response_ops, "get", self.get_response),
            patch.object(survey_ops, "reserve_response_slot", self.reserve_slot),
        ]


@pytest.fixture
def rows():
    fake = InMemoryRows()
    with ExitStack() as stack:
        for patcher in fake.patch():
            stack.enter_context(patcher)
        yield fake


@pytest.fixture
def mock_db():
    db = make_mock_db()
    db.delete = AsyncMock()
    return db


@pytest.fixture
def owner(rows):
    return rows.add_profile("olive@example.com")


@pytest.fixture
def other_owner(rows):
    return rows.add_profile("oscar@example.com")


@pytest.fixture
def owner_survey(rows, owner):
    return rows.add_survey(owner, title="Olive's Pulse", unique_link="olive-pulse")


@pytest.fixture
def other_survey(rows, other_owner):
    return rows.add_survey(other_owner, title="Oscar's Pulse", unique_link="oscar-pulse")


@pytest.fixture
def magic_link_store():
    """Token store for the magic-link endpoint (shares nothing with ``rows``)."""
    fake = FakeMagicLinkStore()
    with ExitStack() as stack:
        for patcher in fake.patch():
            stack.enter_context(patcher)
        yield fake


# ─────────────────────────────────────────────────────────────────────────────
# Principal Variant Clients
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def client_as(mock_db, rows):
    """Factory: ``async with client_as(principal) as client: ...``"""
    from app.api.deps.auth import get_current_account, get_db_with_rls, get_principal
    from app.core.database import get_db
    from app.main import app

    @asynccontextmanager
    async def _client(principal: Principal):
        def override_current_account():
            if principal.kind != PrincipalKind.ACCOUNT:
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
            return rows.profiles[principal.account_id]

        async def override_db():
            yield mock_db

        app.dependency_overrides[get_principal] = lambda: principal
        app.dependency_overrides[get_current_account] = override_current_account
        app.dependency_overrides[get_db] = override_db
        app.dependency_overrides[get_db_with_rls] = override_db

        transport = ASGITransport(app=app)
        try:
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                yield client
        finally:
            app.dependency_overrides.clear()

    return _client


@pytest.fixture
async def anon_client(client_as):
    async with client_as(Principal.anonymous()) as client:
        yield client


@pytest.fixture
async def owner_client(client_as, owner):
    async with client_as(Principal.account(owner.id)) as client:
        yield client


@pytest.fixture
async def other_owner_client(client_as, other_owner):
    async with client_as(Principal.account(other_owner.id)) as client:
        yield client


@pytest.fixture
async def service_client(client_as):
    async with client_as(Principal.service()) as client:
        yield client
