"""Magic-link passwordless access: issue, validate and consume single-use links."""

from app.services.magic_link.consumer import MagicLinkConsumer
from app.services.magic_link.issuer import MagicLinkIssuer, build_magic_link_url
from app.services.magic_link.service import (
    ACTIONS,
    MagicLinkService,
    magic_link_service,
    spawn_delivery,
)
from app.services.magic_link.types import (
    ActionResult,
    ConsumedMagicLink,
    IssuedMagicLink,
    RequestContext,
    SurveySession,
    ValidatedMagicLink,
)
from app.services.magic_link.validator import MagicLinkValidator

__all__ = [
    "ACTIONS",
    "ActionResult",
    "ConsumedMagicLink",
    "IssuedMagicLink",
    "MagicLinkConsumer",
    "MagicLinkIssuer",
    "MagicLinkService",
    "MagicLinkValidator",
    "RequestContext",
    "SurveySession",
    "ValidatedMagicLink",
    "build_magic_link_url",
    "magic_link_service",
    "spawn_delivery",
]
