"""API dependencies - re-exports from submodules."""

from .auth import (
    SERVICE_KEY_HEADER,
    CurrentAccount,
    CurrentPrincipal,
    DbSession,
    RlsSession,
    get_current_account,
    get_db_with_rls,
    get_jwks,
    get_principal,
    get_signing_key,
    security,
    verify_supabase_token,
)
from .context import get_request_context

__all__ = [
    # Auth
    "security",
    "SERVICE_KEY_HEADER",
    "get_jwks",
    "get_signing_key",
    "verify_supabase_token",
    "get_principal",
    "get_current_account",
    "get_db_with_rls",
    "DbSession",
    "RlsSession",
    "CurrentPrincipal",
    "CurrentAccount",
    # Request metadata
    "get_request_context",
]
