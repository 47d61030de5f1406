"""Domain operations for Survey model, gated by the access policy."""

import secrets
import uuid as uuid_pkg

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access_policy import Operation, Principal, Resource, ResourceKind, require
from app.core.exceptions import Unauthorized
from app.domain.base_operations import BaseOperations
from app.models.survey import Survey, SurveyCreate, SurveyStatus, SurveyUpdate


def generate_unique_link() -> str:
    """Short public slug used in respondent-facing survey URLs."""
    return secrets.token_urlsafe(12)


class SurveyOperations(BaseOperations[Survey]):
    """Operations for surveys."""

    def __init__(self) -> None:
        super().__init__(Survey)

    async def get_for_principal(
        self,
        db: AsyncSession,
        principal: Principal,
        survey_id: uuid_pkg.UUID,
        operation: Operation = Operation.READ,
    ) -> Survey:
        """Load a survey and check ``principal`` may perform ``operation`` on it.

        A missing survey raises the same Unauthorized as a denied one, so
        callers cannot probe for other tenants' survey ids.
        """
        survey = await self.get(db, survey_id)
        if survey is None:
            raise Unauthorized()
        require(principal, Resource.for_survey(survey), operation)
        return survey

    async def list_for_owner(
        self,
        db: AsyncSession,
        account_id: uuid_pkg.UUID,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Survey]:
        """Surveys owned by one account, newest first."""
        statement = (
            select(Survey)
            .where(Survey.owner_account_id == account_id)  # type: ignore[arg-type]
            .order_by(Survey.created_at.desc())  # type: ignore[attr-defined]
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def create_for_owner(
        self,
        db: AsyncSession,
        principal: Principal,
        owner_account_id: uuid_pkg.UUID,
        data: SurveyCreate,
    ) -> Survey:
        """Create a draft survey owned by ``owner_account_id``."""
        require(
            principal,
            Resource(kind=ResourceKind.SURVEY, owner_account_id=owner_account_id),
            Operation.INSERT,
        )
        return await self.create(
            db,
            {
                **data.model_dump(),
                "owner_account_id": owner_account_id,
                "status": SurveyStatus.DRAFT.value,
                "unique_link": generate_unique_link(),
            },
        )

    async def update_for_principal(
        self,
        db: AsyncSession,
        principal: Principal,
        survey_id: uuid_pkg.UUID,
        data: SurveyUpdate,
    ) -> Survey:
        survey = await self.get_for_principal(db, principal, survey_id, Operation.UPDATE)
        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field == "description"
        }
        if "status" in changes:
            changes["status"] = SurveyStatus(changes["status"]).value
        # Activating a legacy survey without a public slug gives it one
        if changes.get("status") == SurveyStatus.ACTIVE.value and survey.unique_link is None:
            changes["unique_link"] = generate_unique_link()
        return await self.update(db, survey, changes)

    async def delete_for_principal(
        self,
        db: AsyncSession,
        principal: Principal,
        survey_id: uuid_pkg.UUID,
    ) -> None:
        survey = await self.get_for_principal(db, principal, survey_id, Operation.DELETE)
        await self.remove(db, survey)

    async def reserve_response_slot(self, db: AsyncSession, survey_id: uuid_pkg.UUID) -> bool:
        """Atomically count one more response if the survey still has room.

        Returns False when the survey is no longer accepting responses or
        has reached ``max_responses``.
        """
        statement = (
            update(Survey)
            .where(
                Survey.id == survey_id,  # type: ignore[arg-type]
                Survey.status == SurveyStatus.ACTIVE.value,  # type: ignore[arg-type]
                Survey.unique_link.is_not(None),  # type: ignore[union-attr]
                Survey.current_responses < Survey.max_responses,  # type: ignore[operator]
            )
            .values(current_responses=Survey.current_responses + 1)
            .returning(Survey.id)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none() is not None


# Singleton instance
survey_ops = SurveyOperations()
