# Services package

from app.services.magic_link import MagicLinkService, magic_link_service
from app.services.session_issuer import SurveySessionIssuer, survey_session_issuer

__all__ = [
    "MagicLinkService",
    "magic_link_service",
    "SurveySessionIssuer",
    "survey_session_issuer",
]
