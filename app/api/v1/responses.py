import logging
import uuid as uuid_pkg

from fastapi import APIRouter, status

from app.api.deps import CurrentPrincipal, RlsSession
from app.domain import response_ops

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/responses", tags=["responses"])


@router.delete("/{response_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_response(
    response_id: uuid_pkg.UUID, principal: CurrentPrincipal, db: RlsSession
):
    """Delete one response. Only the survey owner or a service caller may."""
    await response_ops.delete_for_principal(db, principal, response_id)
    logger.info(f"[responses] Deleted response {response_id}")
