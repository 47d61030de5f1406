"""Request metadata for the audit trail."""

from fastapi import Request

from app.services.magic_link.types import RequestContext


def get_request_context(request: Request) -> RequestContext:
    """Client IP and user agent of the caller.

    The client address is already the forwarded one: ProxyHeadersMiddleware
    rewrites it from X-Forwarded-For.
    """
    return RequestContext(
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
