"""Survey-scoped session tokens.

When a magic link is consumed the respondent receives a short-lived bearer
JWT (HS256) bound to their email and one survey. It is not an account login:
the access policy only lets it read that survey and submit responses to it.

Account logins are Supabase JWTs (ES256, verified against JWKS in
``app.api.deps.auth``); the two are told apart by the ``iss`` claim.
"""

import logging
import uuid as uuid_pkg
from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from app.config import settings
from app.core.access_policy import Principal
from app.core.exceptions import NotAuthenticated
from app.core.security import respondent_id_for_email
from app.services.magic_link.types import SurveySession, utc_now

logger = logging.getLogger(__name__)

SESSION_ALGORITHM = "HS256"
SESSION_AUDIENCE = "magic-link"
SESSION_SCOPE = "survey"


class SurveySessionIssuer:
    """Mint and verify survey-scoped session tokens."""

    def __init__(
        self,
        secret: str | None = None,
        ttl_seconds: int | None = None,
        issuer: str | None = None,
    ) -> None:
        self._secret = secret
        self._ttl_seconds = ttl_seconds
        self._issuer = issuer

    @property
    def secret(self) -> str:
        return self._secret or settings.magic_link_session_secret

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds or settings.magic_link_session_ttl_seconds

    @property
    def issuer(self) -> str:
        return self._issuer or settings.magic_link_session_issuer

    def issue(
        self,
        email: str,
        survey_id: uuid_pkg.UUID,
        now: datetime | None = None,
    ) -> SurveySession:
        issued_at = now or utc_now()
        expires_at = issued_at + timedelta(seconds=self.ttl_seconds)
        respondent_id = respondent_id_for_email(email)

        claims: dict[str, Any] = {
            "iss": self.issuer,
            "aud": SESSION_AUDIENCE,
            "sub": str(respondent_id),
            "email": email,
            "survey_id": str(survey_id),
            "scope": SESSION_SCOPE,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(claims, self.secret, algorithm=SESSION_ALGORITHM)

        return SurveySession(
            access_token=token,
            token_type="bearer",
            expires_in=self.ttl_seconds,
            expires_at=expires_at,
            email=email,
            survey_id=survey_id,
            respondent_id=respondent_id,
        )

    def is_session_token(self, token: str) -> bool:
        """Cheap check (no signature verification) for routing a bearer token."""
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError:
            return False
        return claims.get("iss") == self.issuer and claims.get("scope") == SESSION_SCOPE

    def verify(self, token: str) -> Principal:
        """Verify a session token and return its survey-session principal.

        Raises:
            NotAuthenticated: bad signature, wrong audience/issuer, expired, or malformed
        """
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[SESSION_ALGORITHM],
                audience=SESSION_AUDIENCE,
                issuer=self.issuer,
            )
            return Principal.survey_session(
                email=claims["email"],
                survey_id=uuid_pkg.UUID(claims["survey_id"]),
                respondent_id=uuid_pkg.UUID(claims["sub"]),
            )
        except (JWTError, KeyError, ValueError) as e:
            logger.info(f"[session] Rejected survey session token: {type(e).__name__}")
            raise NotAuthenticated() from e


survey_session_issuer = SurveySessionIssuer()
