"""Access policy evaluator - who may do what to surveys, responses and profiles.

This is the application-side rule set for tenant isolation. The same rules
are mirrored in Postgres RLS policies (see the ``rls_survey_tables``
migration), but every data access in the app goes through ``require()``
first so the rules are testable without a database.

Precedence:
1. Service-level callers may do anything.
2. Anonymous callers may only insert a response into an active survey
   that has a unique link.
3. Accounts may read/update/delete rows they own, insert surveys for
   themselves, read/update their own profile, and insert responses
   wherever anonymous callers could.
4. Survey sessions (from a consumed magic link) may read their one survey
   and insert responses into it while it accepts responses.
5. Everything else is denied.

Decisions are never cached: ownership and survey status can change
between calls.
"""

import uuid as uuid_pkg
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from app.core.exceptions import Unauthorized

if TYPE_CHECKING:
    from app.models.profile import Profile
    from app.models.response import Response
    from app.models.survey import Survey


class Operation(str, Enum):
    READ = "read"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ResourceKind(str, Enum):
    SURVEY = "survey"
    RESPONSE = "response"
    PROFILE = "profile"


class PrincipalKind(str, Enum):
    ANONYMOUS = "anonymous"
    ACCOUNT = "account"
    SURVEY_SESSION = "survey_session"
    SERVICE = "service"


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class Principal:
    """The acting identity for one request."""

    kind: PrincipalKind
    account_id: uuid_pkg.UUID | None = None
    # Survey-session fields
    email: str | None = None
    survey_id: uuid_pkg.UUID | None = None
    respondent_id: uuid_pkg.UUID | None = None

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(kind=PrincipalKind.ANONYMOUS)

    @classmethod
    def account(cls, account_id: uuid_pkg.UUID) -> "Principal":
        return cls(kind=PrincipalKind.ACCOUNT, account_id=account_id)

    @classmethod
    def survey_session(
        cls,
        email: str,
        survey_id: uuid_pkg.UUID,
        respondent_id: uuid_pkg.UUID,
    ) -> "Principal":
        return cls(
            kind=PrincipalKind.SURVEY_SESSION,
            email=email,
            survey_id=survey_id,
            respondent_id=respondent_id,
        )

    @classmethod
    def service(cls) -> "Principal":
        return cls(kind=PrincipalKind.SERVICE)


@dataclass(frozen=True)
class Resource:
    """The row (or prospective row) an operation targets.

    For responses, the survey fields describe the parent survey, since a
    response's ownership and eligibility are inherited from it.
    """

    kind: ResourceKind
    owner_account_id: uuid_pkg.UUID | None
    survey_id: uuid_pkg.UUID | None = None
    survey_status: str | None = None
    unique_link: str | None = None

    @property
    def accepts_responses(self) -> bool:
        return self.survey_status == "active" and self.unique_link is not None

    @classmethod
    def for_survey(cls, survey: "Survey") -> "Resource":
        return cls(
            kind=ResourceKind.SURVEY,
            owner_account_id=survey.owner_account_id,
            survey_id=survey.id,
            survey_status=survey.status,
            unique_link=survey.unique_link,
        )

    @classmethod
    def for_response(cls, survey: "Survey") -> "Resource":
        """A response (new or existing) belonging to ``survey``."""
        return cls(
            kind=ResourceKind.RESPONSE,
            owner_account_id=survey.owner_account_id,
            survey_id=survey.id,
            survey_status=survey.status,
            unique_link=survey.unique_link,
        )

    @classmethod
    def for_profile(cls, profile: "Profile") -> "Resource":
        return cls(kind=ResourceKind.PROFILE, owner_account_id=profile.id)


def _authorize_anonymous(resource: Resource, operation: Operation) -> Decision:
    if (
        resource.kind == ResourceKind.RESPONSE
        and operation == Operation.INSERT
        and resource.accepts_responses
    ):
        return Decision.ALLOW
    return Decision.DENY


def _authorize_account(
    account_id: uuid_pkg.UUID | None,
    resource: Resource,
    operation: Operation,
) -> Decision:
    if account_id is None:
        return Decision.DENY

    # Submitting to an open survey needs no ownership, same as anonymous
    if resource.kind == ResourceKind.RESPONSE and operation == Operation.INSERT:
        return Decision.ALLOW if resource.accepts_responses else Decision.DENY

    if resource.owner_account_id != account_id:
        return Decision.DENY

    if resource.kind == ResourceKind.PROFILE:
        if operation in (Operation.READ, Operation.UPDATE):
            return Decision.ALLOW
        return Decision.DENY

    if resource.kind == ResourceKind.SURVEY:
        return Decision.ALLOW

    # Responses in the account's own surveys
    return Decision.ALLOW


def _authorize_survey_session(
    principal: Principal,
    resource: Resource,
    operation: Operation,
) -> Decision:
    if principal.survey_id is None or resource.survey_id != principal.survey_id:
        return Decision.DENY
    if not resource.accepts_responses:
        return Decision.DENY
    if resource.kind == ResourceKind.SURVEY and operation == Operation.READ:
        return Decision.ALLOW
    if resource.kind == ResourceKind.RESPONSE and operation == Operation.INSERT:
        return Decision.ALLOW
    return Decision.DENY


def authorize(principal: Principal, resource: Resource, operation: Operation) -> Decision:
    """Decide whether ``principal`` may perform ``operation`` on ``resource``."""
    if principal.kind == PrincipalKind.SERVICE:
        return Decision.ALLOW
    if principal.kind == PrincipalKind.ANONYMOUS:
        return _authorize_anonymous(resource, operation)
    if principal.kind == PrincipalKind.ACCOUNT:
        return _authorize_account(principal.account_id, resource, operation)
    if principal.kind == PrincipalKind.SURVEY_SESSION:
        return _authorize_survey_session(principal, resource, operation)
    return Decision.DENY


def require(principal: Principal, resource: Resource, operation: Operation) -> None:
    """Raise ``Unauthorized`` unless the policy allows the operation."""
    if authorize(principal, resource, operation) != Decision.ALLOW:
        raise Unauthorized()
