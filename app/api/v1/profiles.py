from fastapi import APIRouter

from app.api.deps import CurrentAccount, CurrentPrincipal, RlsSession
from app.domain import profile_ops
from app.models.profile import ProfileRead, ProfileUpdate

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileRead)
async def get_my_profile(current_account: CurrentAccount):
    """Get the current account's profile."""
    return current_account


@router.patch("/me", response_model=ProfileRead)
async def update_my_profile(
    data: ProfileUpdate,
    current_account: CurrentAccount,
    principal: CurrentPrincipal,
    db: RlsSession,
):
    """Update the current account's profile."""
    return await profile_ops.update_for_principal(db, principal, current_account.id, data)
