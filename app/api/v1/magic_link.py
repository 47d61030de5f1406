"""Magic-link endpoint: one POST route dispatching generate / validate / use."""

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import DbSession, get_request_context
from app.config import settings
from app.services.magic_link import RequestContext, magic_link_service

router = APIRouter(prefix="/magic-link", tags=["magic-link"])


class MagicLinkRequest(BaseModel):
    """Request body. Which fields are required depends on ``action``."""

    model_config = ConfigDict(populate_by_name=True)

    action: str | None = None
    email: str | None = None
    survey_id: str | None = Field(default=None, alias="surveyId")
    token: str | None = None


@router.post("")
async def magic_link_action(
    body: MagicLinkRequest,
    background_tasks: BackgroundTasks,
    db: DbSession,
    context: RequestContext = Depends(get_request_context),
) -> JSONResponse:
    """
    Run a magic-link action.

    - generate: {email, surveyId} -> emails a single-use link
    - validate: {token} -> what the link grants, without consuming it
    - use: {token} -> consumes the link and returns a survey session

    The raw token and URL are only echoed back in debug mode.
    """
    result = await magic_link_service.handle(
        db,
        body.action,
        body.model_dump(by_alias=True),
        context=context,
        schedule_delivery=background_tasks.add_task,
        include_link=settings.debug,
    )
    return JSONResponse(
        status_code=result.status_code,
        content=result.to_body(),
        headers=result.headers or None,
    )
