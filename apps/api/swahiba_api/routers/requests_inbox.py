"""Peer inbox: open requests assigned to the calling swahiba."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.core.auth import VerifiedIdentity
from swahiba_api.core.errors import Forbidden
from swahiba_api.database import get_db
from swahiba_api.logging_config import get_logger
from swahiba_api.models.identity import IdentityRole
from swahiba_api.schemas.chat import InboxResponse, RequestOut
from swahiba_api.services.identity import get_identity
from swahiba_api.services.support_requests import list_inbox

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["inbox"])


@router.post("/requests-inbox", response_model=None)
async def requests_inbox(
    identity: VerifiedIdentity,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """List the caller's assigned, non-closed requests, newest first.

    The role comes from the identities table; the token's own role claim is
    not trusted for this check.
    """
    record = await get_identity(db, identity.identity_id)
    if record is None or record.role != IdentityRole.SWAHIBA:
        logger.info("Inbox denied", identity_id=str(identity.identity_id))
        raise Forbidden("Forbidden")

    requests = await list_inbox(db, identity.identity_id)
    return InboxResponse(
        requests=[RequestOut.model_validate(r) for r in requests]
    ).model_dump(mode="json")
