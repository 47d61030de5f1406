"""Integration tests for survey and response operations — capacity and isolation."""

import pytest

from app.core.access_policy import Principal
from app.core.exceptions import SurveyNotEligible, Unauthorized
from app.domain.response_operations import response_ops
from app.domain.survey_operations import survey_ops
from app.models.response import ResponseCreate
from app.models.survey import SurveyCreate


class TestSurveyOwnership:
    @pytest.mark.asyncio
    async def test_create_for_owner_starts_as_draft(self, db_session, test_owner):
        survey = await survey_ops.create_for_owner(
            db_session, Principal.account(test_owner.id), test_owner.id, SurveyCreate(title="Onboarding")
        )
        assert survey.status == "draft"
        assert survey.unique_link
        assert survey.current_responses == 0

    @pytest.mark.asyncio
    async def test_cannot_create_for_someone_else(self, db_session, test_owner, second_owner):
        with pytest.raises(Unauthorized):
            await survey_ops.create_for_owner(
                db_session, Principal.account(test_owner.id), second_owner.id, SurveyCreate(title="Sneaky")
            )

    @pytest.mark.asyncio
    async def test_list_for_owner_is_isolated(self, db_session, test_owner, test_survey, second_survey):
        surveys = await survey_ops.list_for_owner(db_session, test_owner.id)
        ids = {s.id for s in surveys}
        assert test_survey.id in ids
        assert second_survey.id not in ids

    @pytest.mark.asyncio
    async def test_other_owner_cannot_read(self, db_session, second_owner, test_survey):
        with pytest.raises(Unauthorized):
            await survey_ops.get_for_principal(db_session, Principal.account(second_owner.id), test_survey.id)


class TestResponseCapacity:
    @pytest.mark.asyncio
    async def test_anonymous_submit_counts_response(self, db_session, test_survey):
        response = await response_ops.submit(
            db_session, Principal.anonymous(), test_survey.id, ResponseCreate(payload={"score": 8})
        )

        await db_session.refresh(test_survey)
        assert response.survey_id == test_survey.id
        assert test_survey.current_responses == 1

    @pytest.mark.asyncio
    async def test_cap_is_enforced(self, db_session, test_survey):
        test_survey.max_responses = 1
        db_session.add(test_survey)
        await db_session.flush()

        await response_ops.submit(db_session, Principal.anonymous(), test_survey.id, ResponseCreate(payload={}))
        with pytest.raises(SurveyNotEligible):
            await response_ops.submit(db_session, Principal.anonymous(), test_survey.id, ResponseCreate(payload={}))

    @pytest.mark.asyncio
    async def test_draft_rejects_anonymous(self, db_session, draft_survey):
        with pytest.raises(Unauthorized):
            await response_ops.submit(db_session, Principal.anonymous(), draft_survey.id, ResponseCreate(payload={}))

    @pytest.mark.asyncio
    async def test_owner_lists_and_other_owner_cannot(self, db_session, test_owner, second_owner, test_survey):
        await response_ops.submit(db_session, Principal.anonymous(), test_survey.id, ResponseCreate(payload={"a": 1}))

        mine = await response_ops.list_for_survey(db_session, Principal.account(test_owner.id), test_survey.id)
        assert len(mine) == 1

        with pytest.raises(Unauthorized):
            await response_ops.list_for_survey(db_session, Principal.account(second_owner.id), test_survey.id)
