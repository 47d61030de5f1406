"""Domain operations for Profile model."""

import uuid as uuid_pkg

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.access_policy import Operation, Principal, Resource, require
from app.core.exceptions import Unauthorized
from app.domain.base_operations import BaseOperations
from app.models.profile import Profile, ProfileUpdate


class ProfileOperations(BaseOperations[Profile]):
    """Operations for account profiles."""

    def __init__(self) -> None:
        super().__init__(Profile)

    async def get_for_principal(
        self,
        db: AsyncSession,
        principal: Principal,
        profile_id: uuid_pkg.UUID,
        operation: Operation = Operation.READ,
    ) -> Profile:
        profile = await self.get(db, profile_id)
        if profile is None:
            raise Unauthorized()
        require(principal, Resource.for_profile(profile), operation)
        return profile

    async def update_for_principal(
        self,
        db: AsyncSession,
        principal: Principal,
        profile_id: uuid_pkg.UUID,
        data: ProfileUpdate,
    ) -> Profile:
        profile = await self.get_for_principal(db, principal, profile_id, Operation.UPDATE)
        return await self.update(db, profile, data.model_dump(exclude_unset=True))


# Singleton instance
profile_ops = ProfileOperations()
