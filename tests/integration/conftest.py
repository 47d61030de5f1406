"""Integration test conftest — DB rollback fixtures.

Inherits the root conftest.py fixtures (db_session, etc.) and adds the
profiles and surveys most integration tests need.

All tests in this directory use the transaction-rollback pattern:
real SQL executes, but nothing persists.
"""

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.profile import Profile
from app.models.survey import Survey, SurveyStatus


@pytest.fixture(autouse=True)
def _mark_integration(request):
    """Auto-mark all tests in this directory as integration."""
    request.node.add_marker(pytest.mark.integration)


async def _make_profile(db: AsyncSession, label: str) -> Profile:
    profile = Profile(
        id=uuid.uuid4(),
        email=f"__test_{label}_{uuid.uuid4().hex[:8]}@example.com",
        full_name=label.title(),
    )
    db.add(profile)
    await db.flush()
    await db.refresh(profile)
    return profile


async def _make_survey(db: AsyncSession, owner: Profile, **overrides) -> Survey:
    survey = Survey(
        owner_account_id=owner.id,
        title=overrides.get("title", f"Test Survey {uuid.uuid4().hex[:8]}"),
        status=overrides.get("status", SurveyStatus.ACTIVE.value),
        unique_link=overrides.get("unique_link", f"test-{uuid.uuid4().hex[:12]}"),
        max_responses=overrides.get("max_responses", 1000),
    )
    db.add(survey)
    await db.flush()
    await db.refresh(survey)
    return survey


@pytest.fixture
async def test_owner(db_session: AsyncSession):
    """Account that owns ``test_survey``."""
    return await _make_profile(db_session, "owner")


@pytest.fixture
async def second_owner(db_session: AsyncSession):
    """A second account with its own survey. For isolation tests."""
    return await _make_profile(db_session, "second")


@pytest.fixture
async def test_survey(db_session: AsyncSession, test_owner):
    """Active survey with a unique link (eligible for links and responses)."""
    return await _make_survey(db_session, test_owner)


@pytest.fixture
async def second_survey(db_session: AsyncSession, second_owner):
    return await _make_survey(db_session, second_owner)


@pytest.fixture
async def draft_survey(db_session: AsyncSession, test_owner):
    return await _make_survey(db_session, test_owner, status=SurveyStatus.DRAFT.value)
