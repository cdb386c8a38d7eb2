"""Conversation bridge: turn a support request into exactly one conversation.

Find-or-create is guarded by the partial unique index
``uq_conversations_active_pair`` on (guest_phone, assigned_to) for active
conversations. A caller that loses the insert race rolls back, re-reads
the winner's conversation and links the request to it, so concurrent
first messages for the same request, or for sibling requests sharing a
phone and peer, converge on a single row.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.core.errors import Conflict, NotFound
from swahiba_api.logging_config import get_logger
from swahiba_api.models.conversation import (
    Conversation,
    ConversationParticipant,
    ConversationStatus,
    ParticipantRole,
)
from swahiba_api.models.support_request import RequestStatus, SupportRequest

logger = get_logger(__name__)


async def _lock_request(db: AsyncSession, request_id: uuid.UUID) -> SupportRequest:
    result = await db.execute(
        select(SupportRequest)
        .where(SupportRequest.id == request_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFound("Request not found")
    return request


async def _find_reusable_conversation(
    db: AsyncSession, request: SupportRequest
) -> uuid.UUID | None:
    """Active conversation already bridging this phone and peer, if any."""
    if request.phone is None:
        return None

    result = await db.execute(
        select(Conversation.id).where(
            Conversation.guest_phone == request.phone,
            Conversation.assigned_to == request.swahiba_id,
            Conversation.status == ConversationStatus.ACTIVE,
        )
    )
    conversation_id = result.scalar_one_or_none()
    if conversation_id is not None:
        return conversation_id

    # Sibling requests linked before guest_phone was recorded on conversations
    result = await db.execute(
        select(SupportRequest.conversation_id)
        .join(Conversation, Conversation.id == SupportRequest.conversation_id)
        .where(
            SupportRequest.phone == request.phone,
            SupportRequest.swahiba_id == request.swahiba_id,
            SupportRequest.id != request.id,
            Conversation.status == ConversationStatus.ACTIVE,
        )
        .order_by(SupportRequest.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _create_conversation(db: AsyncSession, request: SupportRequest) -> uuid.UUID:
    conversation = Conversation(
        created_by=request.created_by,
        assigned_to=request.swahiba_id,
        guest_phone=request.phone,
        status=ConversationStatus.ACTIVE,
        topic=request.need or "request",
    )
    db.add(conversation)
    await db.flush()

    db.add_all(
        [
            ConversationParticipant(
                conversation_id=conversation.id,
                user_id=request.created_by,
                role=ParticipantRole.GUEST,
            ),
            ConversationParticipant(
                conversation_id=conversation.id,
                user_id=request.swahiba_id,
                role=ParticipantRole.PEER,
            ),
        ]
    )
    await db.flush()
    return conversation.id


def _link(request: SupportRequest, conversation_id: uuid.UUID) -> None:
    request.conversation_id = conversation_id
    request.status = RequestStatus.ACCEPTED


async def ensure_conversation(db: AsyncSession, request: SupportRequest) -> uuid.UUID:
    """Return the request's conversation id, creating the conversation if needed.

    Conversation, participants and the request link are committed
    together. Calling it again on a linked request returns the same id
    without touching the store.

    Raises:
        Conflict: Request has no creator or no assigned peer
        NotFound: Request row vanished
    """
    if request.conversation_id is not None:
        return request.conversation_id

    if request.created_by is None:
        raise Conflict("Request has no user to chat with")
    if request.swahiba_id is None:
        raise Conflict("Request has no assigned Swahiba")

    request_id = request.id
    request = await _lock_request(db, request_id)
    if request.conversation_id is not None:
        return request.conversation_id

    conversation_id = await _find_reusable_conversation(db, request)
    created = conversation_id is None
    try:
        if created:
            conversation_id = await _create_conversation(db, request)
        _link(request, conversation_id)
        await db.commit()
    except IntegrityError:
        # Lost the race for the (phone, peer) pair; adopt the winner's row
        await db.rollback()
        request = await _lock_request(db, request_id)
        if request.conversation_id is not None:
            return request.conversation_id
        conversation_id = await _find_reusable_conversation(db, request)
        if conversation_id is None:
            raise
        created = False
        _link(request, conversation_id)
        await db.commit()

    logger.info(
        "Conversation created" if created else "Conversation reused",
        request_id=str(request_id),
        conversation_id=str(conversation_id),
    )
    return conversation_id
