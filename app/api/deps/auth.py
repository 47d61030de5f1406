"""Principal resolution and authentication dependencies.

This module provides:
- JWT validation against Supabase JWKS (account logins)
- Survey-session token verification (consumed magic links)
- Service-level access via the X-Service-Key header
- RLS-aware database session dependency
"""

import logging
import secrets
import time
import uuid as uuid_pkg
from collections.abc import AsyncGenerator
from typing import Annotated, Any

import httpx
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from jose.backends import ECKey
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.access_policy import Principal, PrincipalKind
from app.core.database import get_db
from app.core.exceptions import NotAuthenticated
from app.core.rls import set_rls_context
from app.domain import profile_ops
from app.models.profile import Profile
from app.services.session_issuer import survey_session_issuer

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

SERVICE_KEY_HEADER = "X-Service-Key"

# Cache for JWKS with TTL to handle key rotation
_jwks_cache: dict[str, Any] = {}
_jwks_cache_timestamp: float = 0.0
_JWKS_CACHE_TTL_SECONDS: float = 3600.0  # 1 hour


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _fetch_jwks() -> dict[str, Any]:
    """Fetch JWKS from Supabase and update the cache."""
    global _jwks_cache_timestamp
    async with httpx.AsyncClient() as client:
        response = await client.get(settings.supabase_jwks_url)
        response.raise_for_status()
        jwks = response.json()
        _jwks_cache.clear()
        _jwks_cache.update(jwks)
        _jwks_cache_timestamp = time.monotonic()
        return jwks


async def get_jwks(force_refresh: bool = False) -> dict[str, Any]:
    """Fetch and cache JWKS from Supabase with a 1-hour TTL."""
    cache_age = time.monotonic() - _jwks_cache_timestamp
    if _jwks_cache and not force_refresh and cache_age < _JWKS_CACHE_TTL_SECONDS:
        return _jwks_cache

    return await _fetch_jwks()


def get_signing_key(jwks: dict[str, Any], token: str) -> ECKey:
    """Get the signing key from JWKS that matches the token's kid."""
    unverified_header = jwt.get_unverified_header(token)
    kid = unverified_header.get("kid")

    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return ECKey(key, algorithm="ES256")

    raise ValueError("Unable to find matching key in JWKS")


def _decode_with_jwks(jwks: dict[str, Any], token: str) -> tuple[uuid_pkg.UUID, dict[str, Any]]:
    signing_key = get_signing_key(jwks, token)
    payload = jwt.decode(token, signing_key, algorithms=["ES256"], audience="authenticated")
    account_id_str: str | None = payload.get("sub")
    if account_id_str is None:
        raise ValueError("Token has no subject")
    return uuid_pkg.UUID(account_id_str), payload


async def verify_supabase_token(token: str) -> tuple[uuid_pkg.UUID, dict[str, Any]]:
    """Validate a Supabase access token, returning the account id and claims.

    Raises:
        HTTPException: 401 when the token cannot be validated
    """
    try:
        jwks = await get_jwks()
        return _decode_with_jwks(jwks, token)
    except (JWTError, ValueError) as first_error:
        # Key rotation may have occurred - force a JWKS refresh and retry once
        try:
            logger.info("JWT validation failed with cached JWKS, forcing refresh")
            jwks = await get_jwks(force_refresh=True)
            return _decode_with_jwks(jwks, token)
        except (JWTError, ValueError, httpx.HTTPError):
            raise _credentials_error() from first_error
    except httpx.HTTPError:
        raise _credentials_error() from None


def _is_service_key(value: str) -> bool:
    if not settings.service_access_enabled:
        return False
    return secrets.compare_digest(value.encode(), settings.service_role_key.encode())


async def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    service_key: str | None = Header(default=None, alias=SERVICE_KEY_HEADER),
) -> Principal:
    """
    Resolve the acting principal for this request.

    - X-Service-Key matching SERVICE_ROLE_KEY -> service level
    - Bearer token minted by this service -> survey session
    - Bearer Supabase JWT -> account
    - Nothing -> anonymous

    A credential that is present but invalid is a 401, never a silent
    downgrade to anonymous.
    """
    if service_key is not None:
        if _is_service_key(service_key):
            return Principal.service()
        logger.warning("[auth] Rejected invalid service key")
        raise _credentials_error("Invalid service key")

    if not credentials:
        return Principal.anonymous()

    token = credentials.credentials

    if survey_session_issuer.is_session_token(token):
        try:
            return survey_session_issuer.verify(token)
        except NotAuthenticated:
            raise _credentials_error() from None

    account_id, _payload = await verify_supabase_token(token)
    return Principal.account(account_id)


CurrentPrincipal = Annotated[Principal, Depends(get_principal)]


async def get_current_account(
    principal: CurrentPrincipal,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """
    Require an account login and return its profile.

    Creates the profile record on first API call if not exists.
    """
    if principal.kind != PrincipalKind.ACCOUNT or principal.account_id is None:
        raise _credentials_error("Not authenticated")

    # The profile lookup and first-login insert run under the account's RLS context
    await set_rls_context(db, principal)
    profile = await profile_ops.get(db, principal.account_id)
    if profile is None:
        # Fallback if the signup trigger didn't run
        claims = jwt.get_unverified_claims(credentials.credentials) if credentials else {}
        user_metadata = claims.get("user_metadata", {})
        profile = Profile(
            id=principal.account_id,
            email=claims.get("email"),
            full_name=user_metadata.get("full_name"),
        )
        db.add(profile)
        await db.flush()
        await db.refresh(profile)

    return profile


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentAccount = Annotated[Profile, Depends(get_current_account)]


async def get_db_with_rls(
    db: DbSession,
    principal: CurrentPrincipal,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Database session with the principal's RLS context set.

    Accounts get app.current_account_id, survey sessions get
    app.current_survey_id; anonymous and service callers set nothing.

    The RLS context uses SET LOCAL, which is transaction-scoped and
    automatically cleared when the transaction ends. This works correctly
    with connection poolers like PgBouncer.
    """
    await set_rls_context(db, principal)
    yield db


RlsSession = Annotated[AsyncSession, Depends(get_db_with_rls)]
