from app.models.audit_log import AuditLog
from app.models.magic_link import MagicLink
from app.models.profile import Profile, ProfileRead, ProfileUpdate
from app.models.response import Response, ResponseCreate, ResponseRead, ResponseReceipt
from app.models.survey import (
    Survey,
    SurveyCreate,
    SurveyPublicRead,
    SurveyRead,
    SurveyStatus,
    SurveyUpdate,
)

__all__ = [
    "AuditLog",
    "MagicLink",
    "Profile",
    "ProfileRead",
    "ProfileUpdate",
    "Response",
    "ResponseCreate",
    "ResponseRead",
    "ResponseReceipt",
    "Survey",
    "SurveyCreate",
    "SurveyPublicRead",
    "SurveyRead",
    "SurveyStatus",
    "SurveyUpdate",
]
