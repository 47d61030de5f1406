from app.domain.audit_log_operations import audit_log_ops
from app.domain.magic_link_operations import magic_link_ops
from app.domain.profile_operations import profile_ops
from app.domain.response_operations import response_ops
from app.domain.survey_operations import survey_ops

__all__ = [
    "audit_log_ops",
    "magic_link_ops",
    "profile_ops",
    "response_ops",
    "survey_ops",
]
