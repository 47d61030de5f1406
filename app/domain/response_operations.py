"""Domain operations for Response model."""

import uuid as uuid_pkg

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access_policy import Operation, Principal, PrincipalKind, Resource, require
from app.core.exceptions import SurveyNotEligible, Unauthorized
from app.domain.base_operations import BaseOperations
from app.domain.survey_operations import survey_ops
from app.models.response import Response, ResponseCreate


class ResponseOperations(BaseOperations[Response]):
    """Operations for survey responses."""

    def __init__(self) -> None:
        super().__init__(Response)

    async def submit(
        self,
        db: AsyncSession,
        principal: Principal,
        survey_id: uuid_pkg.UUID,
        data: ResponseCreate,
    ) -> Response:
        """
        Record a response.

        The policy decides whether this principal may insert into the survey
        at all; the capacity check then reserves a slot atomically so
        concurrent submissions can never exceed ``max_responses``.

        Raises:
            Unauthorized: survey missing or insert denied
            SurveyNotEligible: survey is full or stopped accepting responses
        """
        survey = await survey_ops.get(db, survey_id)
        if survey is None:
            raise Unauthorized()
        require(principal, Resource.for_response(survey), Operation.INSERT)

        if not await survey_ops.reserve_response_slot(db, survey.id):
            raise SurveyNotEligible()

        # Session respondents keep a stable id; everyone else stays opaque
        if principal.kind == PrincipalKind.SURVEY_SESSION and principal.respondent_id:
            respondent_id = principal.respondent_id
        else:
            respondent_id = data.respondent_id or uuid_pkg.uuid4()

        return await self.create(
            db,
            {
                "survey_id": survey.id,
                "respondent_id": respondent_id,
                "payload": data.payload,
            },
        )

    async def list_for_survey(
        self,
        db: AsyncSession,
        principal: Principal,
        survey_id: uuid_pkg.UUID,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Response]:
        """Responses of one survey, for principals allowed to read them."""
        survey = await survey_ops.get(db, survey_id)
        if survey is None:
            raise Unauthorized()
        require(principal, Resource.for_response(survey), Operation.READ)

        statement = (
            select(Response)
            .where(Response.survey_id == survey.id)  # type: ignore[arg-type]
            .order_by(Response.created_at.desc())  # type: ignore[attr-defined]
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def delete_for_principal(
        self,
        db: AsyncSession,
        principal: Principal,
        response_id: uuid_pkg.UUID,
    ) -> None:
        response = await self.get(db, response_id)
        if response is None:
            raise Unauthorized()
        survey = await survey_ops.get(db, response.survey_id)
        if survey is None:
            raise Unauthorized()
        require(principal, Resource.for_response(survey), Operation.DELETE)
        await self.remove(db, response)


# Singleton instance
response_ops = ResponseOperations()
