"""Unit tests for auth dependencies — principal resolution and JWT validation."""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi import HTTPException
from jose import JWTError, jwt

from app.api.deps.auth import (
    get_current_account,
    get_principal,
    get_signing_key,
    verify_supabase_token,
)
from app.core.access_policy import Principal, PrincipalKind
from app.models.profile import Profile
from app.services.session_issuer import survey_session_issuer

from tests.helpers.mock_factories import make_mock_db, make_mock_profile


def _bearer(token: str) -> MagicMock:
    credentials = MagicMock()
    credentials.credentials = token
    return credentials


# ---------------------------------------------------------------------------
# get_signing_key
# ---------------------------------------------------------------------------


class TestGetSigningKey:
    """Tests for JWKS key matching by kid."""

    def test_returns_key_when_kid_matches(self):
        jwks = {
            "keys": [
                {"kid": "key-1", "kty": "EC", "crv": "P-256", "x": "a", "y": "b"},
                {"kid": "key-2", "kty": "EC", "crv": "P-256", "x": "c", "y": "d"},
            ]
        }

        with patch("app.api.deps.auth.jwt") as mock_jwt:
            mock_jwt.get_unverified_header.return_value = {"kid": "key-2"}

            with patch("app.api.deps.auth.ECKey") as mock_eckey:
                expected_key = MagicMock()
                mock_eckey.return_value = expected_key
                assert get_signing_key(jwks, "dummy") == expected_key

    def test_raises_when_no_matching_kid(self):
        jwks = {"keys": [{"kid": "key-1", "kty": "EC", "crv": "P-256"}]}

        with patch("app.api.deps.auth.jwt") as mock_jwt:
            mock_jwt.get_unverified_header.return_value = {"kid": "missing-kid"}

            with pytest.raises(ValueError, match="Unable to find matching key"):
                get_signing_key(jwks, "dummy")


# ---------------------------------------------------------------------------
# verify_supabase_token
# ---------------------------------------------------------------------------


class TestVerifySupabaseToken:
    def setup_method(self):
        self.account_id = uuid.uuid4()

    @pytest.mark.asyncio
    async def test_returns_account_id(self):
        with (
            patch("app.api.deps.auth.get_jwks", new_callable=AsyncMock) as mock_jwks,
            patch("app.api.deps.auth.get_signing_key"),
            patch("app.api.deps.auth.jwt") as mock_jwt,
        ):
            mock_jwks.return_value = {"keys": [{"kid": "k1"}]}
            mock_jwt.decode.return_value = {"sub": str(self.account_id)}

            account_id, claims = await verify_supabase_token("token")

        assert account_id == self.account_id
        assert claims["sub"] == str(self.account_id)

    @pytest.mark.asyncio
    async def test_refreshes_jwks_once_on_failure(self):
        with (
            patch("app.api.deps.auth.get_jwks", new_callable=AsyncMock) as mock_jwks,
            patch("app.api.deps.auth.get_signing_key"),
            patch("app.api.deps.auth.jwt.decode") as mock_decode,
        ):
            mock_jwks.return_value = {"keys": []}
            mock_decode.side_effect = [JWTError("stale key"), {"sub": str(self.account_id)}]

            account_id, _ = await verify_supabase_token("token")

        assert account_id == self.account_id
        assert mock_jwks.await_args_list[-1].kwargs == {"force_refresh": True}

    @pytest.mark.asyncio
    async def test_401_when_sub_missing(self):
        with (
            patch("app.api.deps.auth.get_jwks", new_callable=AsyncMock),
            patch("app.api.deps.auth.get_signing_key"),
            patch("app.api.deps.auth.jwt.decode", return_value={"email": "x@example.com"}),
        ):
            with pytest.raises(HTTPException) as exc_info:
                await verify_supabase_token("token")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_401_when_jwks_unreachable(self):
        with patch("app.api.deps.auth.get_jwks", new_callable=AsyncMock) as mock_jwks:
            mock_jwks.side_effect = httpx.ConnectError("down")
            with pytest.raises(HTTPException) as exc_info:
                await verify_supabase_token("token")
        assert exc_info.value.status_code == 401


# ---------------------------------------------------------------------------
# get_principal
# ---------------------------------------------------------------------------


class TestGetPrincipal:
    @pytest.mark.asyncio
    async def test_anonymous_without_credentials(self):
        principal = await get_principal(credentials=None, service_key=None)
        assert principal == Principal.anonymous()

    @pytest.mark.asyncio
    async def test_service_key(self):
        with patch("app.api.deps.auth.settings.service_role_key", "svc-secret"):
            principal = await get_principal(credentials=None, service_key="svc-secret")
        assert principal.kind == PrincipalKind.SERVICE

    @pytest.mark.asyncio
    async def test_wrong_service_key_is_401_not_anonymous(self):
        with patch("app.api.deps.auth.settings.service_role_key", "svc-secret"):
            with pytest.raises(HTTPException) as exc_info:
                await get_principal(credentials=None, service_key="guess")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_service_key_rejected_when_disabled(self):
        with patch("app.api.deps.auth.settings.service_role_key", ""):
            with pytest.raises(HTTPException):
                await get_principal(credentials=None, service_key="")

    @pytest.mark.asyncio
    async def test_survey_session_token(self):
        survey_id = uuid.uuid4()
        session = survey_session_issuer.issue("alice@example.com", survey_id)

        principal = await get_principal(credentials=_bearer(session.access_token), service_key=None)

        assert principal.kind == PrincipalKind.SURVEY_SESSION
        assert principal.survey_id == survey_id

    @pytest.mark.asyncio
    async def test_tampered_session_token_is_401(self):
        session = survey_session_issuer.issue("alice@example.com", uuid.uuid4())
        claims = jwt.get_unverified_claims(session.access_token)
        forged = jwt.encode(claims, "wrong-secret", algorithm="HS256")

        with pytest.raises(HTTPException) as exc_info:
            await get_principal(credentials=_bearer(forged), service_key=None)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_supabase_token_is_account(self):
        account_id = uuid.uuid4()
        with patch(
            "app.api.deps.auth.verify_supabase_token",
            new=AsyncMock(return_value=(account_id, {"sub": str(account_id)})),
        ):
            principal = await get_principal(credentials=_bearer("supabase.jwt"), service_key=None)

        assert principal == Principal.account(account_id)


# ---------------------------------------------------------------------------
# get_current_account
# ---------------------------------------------------------------------------


class TestGetCurrentAccount:
    def setup_method(self):
        self.db = make_mock_db()
        self.account_id = uuid.uuid4()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "principal",
        [
            Principal.anonymous(),
            Principal.service(),
            Principal.survey_session("alice@example.com", uuid.uuid4(), uuid.uuid4()),
        ],
    )
    async def test_requires_account(self, principal):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_account(principal=principal, credentials=None, db=self.db)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_returns_existing_profile(self):
        profile = make_mock_profile(id=self.account_id)
        with patch("app.api.deps.auth.profile_ops.get", new=AsyncMock(return_value=profile)):
            result = await get_current_account(
                principal=Principal.account(self.account_id), credentials=None, db=self.db
            )
        assert result == profile
        self.db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_creates_profile_on_first_call(self):
        token = jwt.encode(
            {
                "sub": str(self.account_id),
                "email": "owner@example.com",
                "user_metadata": {"full_name": "Olive Owner"},
            },
            "irrelevant",
            algorithm="HS256",
        )
        with patch("app.api.deps.auth.profile_ops.get", new=AsyncMock(return_value=None)):
            result = await get_current_account(
                principal=Principal.account(self.account_id),
                credentials=_bearer(token),
                db=self.db,
            )

        assert isinstance(result, Profile)
        assert result.id == self.account_id
        assert result.email == "owner@example.com"
        assert result.full_name == "Olive Owner"
        self.db.add.assert_called_once_with(result)
