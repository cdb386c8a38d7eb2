"""Message relay: authorize a chat party, append messages, read history."""

import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.core.errors import Forbidden, NotFound, ValidationFailed
from swahiba_api.logging_config import get_logger
from swahiba_api.models.conversation import Message
from swahiba_api.models.support_request import SupportRequest
from swahiba_api.services.conversation_bridge import ensure_conversation
from swahiba_api.services.notifications import enqueue_peer_reply

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChatCaller:
    """Who is speaking: a verified identity, plus the phone it proved (guests)."""

    identity_id: uuid.UUID
    phone: str | None = None


@dataclass(frozen=True)
class ChatParty:
    caller: ChatCaller
    is_peer: bool


async def get_request(db: AsyncSession, request_id: uuid.UUID) -> SupportRequest:
    result = await db.execute(select(SupportRequest).where(SupportRequest.id == request_id))
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFound("Request not found")
    return request


async def get_latest_request_for_phone(db: AsyncSession, phone: str) -> SupportRequest:
    result = await db.execute(
        select(SupportRequest)
        .where(SupportRequest.phone == phone)
        .order_by(SupportRequest.created_at.desc())
        .limit(1)
    )
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFound("No request found for access code")
    return request


def authorize(request: SupportRequest, caller: ChatCaller) -> ChatParty:
    """Admit the assigned peer or the requesting guest.

    A guest matches either as the request's creator or by the phone they
    proved, so a re-provisioned guest can still reach their request.

    Raises:
        Forbidden: Caller is neither party
    """
    if request.swahiba_id is not None and request.swahiba_id == caller.identity_id:
        return ChatParty(caller=caller, is_peer=True)
    if request.created_by is not None and request.created_by == caller.identity_id:
        return ChatParty(caller=caller, is_peer=False)
    if caller.phone and request.phone and caller.phone == request.phone:
        return ChatParty(caller=caller, is_peer=False)
    raise Forbidden("Forbidden")


async def history(db: AsyncSession, request: SupportRequest) -> list[Message]:
    """All messages of the request's conversation, oldest first."""
    if request.conversation_id is None:
        return []
    result = await db.execute(
        select(Message)
        .where(Message.conversation_id == request.conversation_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    return list(result.scalars().all())


async def send(
    db: AsyncSession,
    request: SupportRequest,
    party: ChatParty,
    body: str,
) -> tuple[uuid.UUID, Message]:
    """Append a message, bridging the request into a conversation first.

    A peer message also queues a notification to the guest's phone; that
    side-effect runs after the commit and cannot fail the send.

    Raises:
        ValidationFailed: Empty message
        Conflict: Request cannot be bridged (no creator / no peer)
    """
    text = (body or "").strip()
    if not text:
        raise ValidationFailed("Message is empty")

    request_id = request.id
    conversation_id = await ensure_conversation(db, request)

    message = Message(
        conversation_id=conversation_id,
        sender_id=party.caller.identity_id,
        body=text,
        type="text",
    )
    db.add(message)
    await db.commit()

    logger.info(
        "Message sent",
        request_id=str(request_id),
        conversation_id=str(conversation_id),
        sender_role="peer" if party.is_peer else "guest",
    )

    if party.is_peer and request.phone:
        await enqueue_peer_reply(request.phone, request_id, conversation_id)

    return conversation_id, message
