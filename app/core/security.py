"""Security utilities for token generation and privacy-safe logging."""

import re
import secrets
import uuid as uuid_pkg

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Namespace for deriving opaque respondent ids from magic-link emails
RESPONDENT_NAMESPACE = uuid_pkg.UUID("6f1c2a4e-8b7d-4f3a-9c5e-2d1b0a9e8f7c")

USER_AGENT_MAX_LENGTH = 160


def generate_magic_link_token() -> str:
    """Generate a cryptographically secure URL-safe token for magic links.

    Returns a 43-character URL-safe string with 256 bits of entropy.
    """
    return secrets.token_urlsafe(32)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def mask_email(email: str) -> str:
    """Keep the first three characters only, e.g. ``ali***``."""
    return f"{email[:3]}***"


def mask_ip(ip: str | None) -> str | None:
    """Reduce an IP to its network: /24 for IPv4, /64 for IPv6."""
    if not ip or ip == "unknown":
        return ip
    if ":" in ip:
        return ":".join(ip.split(":")[:4]) + "::/64"
    parts = ip.split(".")
    if len(parts) == 4:
        return f"{parts[0]}.{parts[1]}.{parts[2]}.0/24"
    return ip


def truncate_user_agent(user_agent: str | None) -> str | None:
    if not user_agent or user_agent == "unknown":
        return user_agent
    if len(user_agent) > USER_AGENT_MAX_LENGTH:
        return user_agent[:USER_AGENT_MAX_LENGTH] + "…"
    return user_agent


def respondent_id_for_email(email: str) -> uuid_pkg.UUID:
    """Derive a stable, opaque respondent id for a magic-link email.

    The id is never an account id. It is a name-based UUID, so anyone who
    already knows the email can recompute it.
    """
    return uuid_pkg.uuid5(RESPONDENT_NAMESPACE, normalize_email(email))
