"""Unit tests for MagicLinkIssuer — issuance preconditions and persistence."""

import uuid
from datetime import timedelta
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest

from app.core.exceptions import InvalidRequest, RateLimitExceeded, SurveyNotEligible
from app.services.magic_link.issuer import MagicLinkIssuer, build_magic_link_url
from app.services.magic_link.types import RequestContext

from tests.helpers.fakes import make_survey


def _audit_actions(store) -> list[str]:
    return [call.args[1] for call in store.audit.await_args_list]


class TestIssue:
    @pytest.fixture(autouse=True)
    def _issuer(self, clock, limiter):
        self.issuer = MagicLinkIssuer(clock=clock, limiter=limiter, ttl=timedelta(hours=24))

    @pytest.mark.asyncio
    async def test_issues_link_for_active_survey(self, db, store, clock, active_survey):
        issued = await self.issuer.issue(db, "alice@example.com", active_survey.id)

        assert issued.email == "alice@example.com"
        assert issued.survey_title == "Customer Pulse"
        assert issued.expires_at == clock.now + timedelta(hours=24)
        assert len(issued.token) >= 43

        link = store.links[issued.token]
        assert link.used_at is None
        assert link.survey_id == active_survey.id
        assert link.created_at == clock.now

    @pytest.mark.asyncio
    async def test_normalizes_email(self, db, store, active_survey):
        issued = await self.issuer.issue(db, "  Alice@Example.COM ", active_survey.id)
        assert store.links[issued.token].email == "alice@example.com"

    @pytest.mark.asyncio
    async def test_url_carries_token_and_survey(self, db, store, active_survey):
        issued = await self.issuer.issue(db, "alice@example.com", active_survey.id)

        parsed = urlparse(issued.url)
        query = parse_qs(parsed.query)
        assert parsed.path.endswith("/auth/magic-link")
        assert query["token"] == [issued.token]
        assert query["surveyId"] == [str(active_survey.id)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,unique_link",
        [("draft", "pulse-abc123"), ("closed", "pulse-abc123"), ("active", None)],
    )
    async def test_ineligible_survey_rejected_and_nothing_stored(
        self, db, store, status, unique_link
    ):
        survey = store.add_survey(make_survey(status=status, unique_link=unique_link))

        with pytest.raises(SurveyNotEligible):
            await self.issuer.issue(db, "alice@example.com", survey.id)
        assert store.links == {}
        assert "MAGIC_LINK_GENERATE_SURVEY_NOT_ELIGIBLE" in _audit_actions(store)

    @pytest.mark.asyncio
    async def test_missing_survey_rejected(self, db, store):
        with pytest.raises(SurveyNotEligible):
            await self.issuer.issue(db, "alice@example.com", uuid.uuid4())
        assert store.links == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", ["", "alice", "alice@example", "not an@email.com"])
    async def test_invalid_email_rejected(self, db, store, active_survey, email):
        with pytest.raises(InvalidRequest, match="Invalid email address"):
            await self.issuer.issue(db, email, active_survey.id)
        assert store.links == {}

    @pytest.mark.asyncio
    async def test_new_link_revokes_outstanding_ones(self, db, store, active_survey):
        first = await self.issuer.issue(db, "alice@example.com", active_survey.id)
        second = await self.issuer.issue(db, "alice@example.com", active_survey.id)

        assert store.links[first.token].used_at is not None
        assert store.links[second.token].used_at is None

    @pytest.mark.asyncio
    async def test_revocation_can_be_disabled(self, db, store, active_survey):
        with patch("app.services.magic_link.issuer.settings.magic_link_revoke_previous", False):
            first = await self.issuer.issue(db, "alice@example.com", active_survey.id)
            await self.issuer.issue(db, "alice@example.com", active_survey.id)

        assert store.links[first.token].used_at is None

    @pytest.mark.asyncio
    async def test_other_recipients_keep_their_links(self, db, store, active_survey):
        bob = await self.issuer.issue(db, "bob@example.com", active_survey.id)
        await self.issuer.issue(db, "alice@example.com", active_survey.id)

        assert store.links[bob.token].used_at is None

    @pytest.mark.asyncio
    async def test_rate_limited_per_email_and_survey(self, db, store, active_survey):
        with (
            patch("app.core.rate_limit.settings.magic_link_issue_limit", 2),
            patch("app.core.rate_limit.settings.magic_link_issue_window_seconds", 900),
        ):
            await self.issuer.issue(db, "alice@example.com", active_survey.id)
            await self.issuer.issue(db, "alice@example.com", active_survey.id)

            with pytest.raises(RateLimitExceeded) as exc_info:
                await self.issuer.issue(db, "alice@example.com", active_survey.id)

            assert exc_info.value.retry_after > 0
            # A different recipient is unaffected
            await self.issuer.issue(db, "bob@example.com", active_survey.id)

        assert len(store.links) == 3

    @pytest.mark.asyncio
    async def test_ineligible_requests_do_not_spend_quota(self, db, store, limiter):
        survey = store.add_survey(make_survey(status="draft"))
        with (
            patch("app.core.rate_limit.settings.magic_link_issue_limit", 2),
            patch("app.core.rate_limit.settings.magic_link_issue_window_seconds", 900),
        ):
            for _ in range(5):
                with pytest.raises(SurveyNotEligible):
                    await self.issuer.issue(db, "alice@example.com", survey.id)
            assert limiter._requests == {}

            survey.status = "active"
            await self.issuer.issue(db, "alice@example.com", survey.id)
            await self.issuer.issue(db, "alice@example.com", survey.id)

        assert len(store.links) == 2

    @pytest.mark.asyncio
    async def test_audit_trail_is_masked(self, db, store, active_survey):
        context = RequestContext(client_ip="203.0.113.57", user_agent="Mozilla/5.0")
        await self.issuer.issue(db, "alice@example.com", active_survey.id, context)

        assert _audit_actions(store) == [
            "MAGIC_LINK_GENERATE_ATTEMPT",
            "MAGIC_LINK_GENERATE_SUCCESS",
        ]
        attempt_details = store.audit.await_args_list[0].kwargs["details"]
        assert attempt_details["ip"] == "203.0.113.0/24"
        assert attempt_details["email_mask"] == "ali***"
        assert "alice@example.com" not in str(store.audit.await_args_list)

    @pytest.mark.asyncio
    async def test_ttl_defaults_from_settings(self, clock, limiter):
        with patch("app.services.magic_link.issuer.settings.magic_link_ttl_hours", 2.0):
            issuer = MagicLinkIssuer(clock=clock, limiter=limiter)
            assert issuer.ttl == timedelta(hours=2)


def test_build_url_uses_frontend_url():
    survey_id = uuid.uuid4()
    with patch("app.services.magic_link.issuer.settings.frontend_url", "https://app.example.com/"):
        url = build_magic_link_url("tok-123", survey_id)
    assert url == f"https://app.example.com/auth/magic-link?token=tok-123&surveyId={survey_id}"
