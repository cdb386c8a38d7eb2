"""Support request creation and the peer inbox."""

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.logging_config import get_logger
from swahiba_api.models.support_request import RequestStatus, SupportRequest

logger = get_logger(__name__)

REQUEST_FIELDS = ("swahiba_id", "nickname", "location", "need", "description", "channel")


async def create_support_request(
    db: AsyncSession,
    created_by: uuid.UUID,
    phone: str,
    fields: dict[str, Any],
) -> SupportRequest:
    """Insert a pending request owned by ``created_by``.

    ``fields`` may carry any of ``REQUEST_FIELDS``; others are ignored.
    """
    values = {key: fields[key] for key in REQUEST_FIELDS if fields.get(key) is not None}
    request = SupportRequest(
        created_by=created_by,
        phone=phone,
        status=RequestStatus.PENDING,
        **values,
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)

    logger.info(
        "Support request created",
        request_id=str(request.id),
        phone=phone,
        assigned=request.swahiba_id is not None,
    )
    return request


async def list_inbox(db: AsyncSession, swahiba_id: uuid.UUID) -> list[SupportRequest]:
    """Requests assigned to a peer that are still open, newest first."""
    result = await db.execute(
        select(SupportRequest)
        .where(
            SupportRequest.swahiba_id == swahiba_id,
            SupportRequest.status != RequestStatus.CLOSED,
        )
        .order_by(SupportRequest.created_at.desc())
    )
    return list(result.scalars().all())
