import logging
import uuid as uuid_pkg

from fastapi import APIRouter, Query, status

from app.api.deps import CurrentAccount, CurrentPrincipal, RlsSession
from app.core.access_policy import Principal, PrincipalKind
from app.core.exceptions import Unauthorized
from app.domain import response_ops, survey_ops
from app.models.response import ResponseCreate, ResponseRead, ResponseReceipt
from app.models.survey import (
    SurveyCreate,
    SurveyPublicRead,
    SurveyRead,
    SurveyUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/surveys", tags=["surveys"])


def _require_manager(principal: Principal) -> None:
    """Owner-facing views are for accounts and service callers only."""
    if principal.kind not in (PrincipalKind.ACCOUNT, PrincipalKind.SERVICE):
        raise Unauthorized()


@router.get("", response_model=list[SurveyRead])
async def list_surveys(
    current_account: CurrentAccount,
    db: RlsSession,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
):
    """List surveys owned by the current account."""
    return await survey_ops.list_for_owner(db, current_account.id, skip=skip, limit=limit)


@router.post("", response_model=SurveyRead, status_code=status.HTTP_201_CREATED)
async def create_survey(
    data: SurveyCreate,
    current_account: CurrentAccount,
    principal: CurrentPrincipal,
    db: RlsSession,
):
    """Create a draft survey owned by the current account."""
    survey = await survey_ops.create_for_owner(db, principal, current_account.id, data)
    logger.info(f"[surveys] Created survey {survey.id}")
    return survey


@router.get("/{survey_id}", response_model=SurveyRead)
async def get_survey(survey_id: uuid_pkg.UUID, principal: CurrentPrincipal, db: RlsSession):
    """Get a survey with its counters and public link."""
    _require_manager(principal)
    return await survey_ops.get_for_principal(db, principal, survey_id)


@router.get("/{survey_id}/public", response_model=SurveyPublicRead)
async def get_public_survey(
    survey_id: uuid_pkg.UUID, principal: CurrentPrincipal, db: RlsSession
):
    """Respondent view of a survey, for a magic-link session scoped to it."""
    return await survey_ops.get_for_principal(db, principal, survey_id)


@router.patch("/{survey_id}", response_model=SurveyRead)
async def update_survey(
    survey_id: uuid_pkg.UUID,
    data: SurveyUpdate,
    principal: CurrentPrincipal,
    db: RlsSession,
):
    """Update a survey. Activating it opens it to magic links and responses."""
    _require_manager(principal)
    survey = await survey_ops.update_for_principal(db, principal, survey_id, data)
    logger.info(f"[surveys] Updated survey {survey.id} (status={survey.status})")
    return survey


@router.delete("/{survey_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_survey(survey_id: uuid_pkg.UUID, principal: CurrentPrincipal, db: RlsSession):
    """Delete a survey along with its responses and magic links."""
    _require_manager(principal)
    await survey_ops.delete_for_principal(db, principal, survey_id)
    logger.info(f"[surveys] Deleted survey {survey_id}")


@router.get("/{survey_id}/responses", response_model=list[ResponseRead])
async def list_responses(
    survey_id: uuid_pkg.UUID,
    principal: CurrentPrincipal,
    db: RlsSession,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List a survey's responses (owner or service only)."""
    _require_manager(principal)
    return await response_ops.list_for_survey(db, principal, survey_id, skip=skip, limit=limit)


@router.post(
    "/{survey_id}/responses",
    response_model=ResponseReceipt,
    status_code=status.HTTP_201_CREATED,
)
async def submit_response(
    survey_id: uuid_pkg.UUID,
    data: ResponseCreate,
    principal: CurrentPrincipal,
    db: RlsSession,
):
    """
    Submit a response.

    Open to anonymous callers and magic-link sessions as long as the survey
    is active, has a public link and is below its response cap.
    """
    return await response_ops.submit(db, principal, survey_id, data)
