"""Bearer-authenticated chat for peers and signed-in requesters."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.core.auth import VerifiedIdentity
from swahiba_api.core.phone import normalize_phone
from swahiba_api.database import get_db
from swahiba_api.logging_config import get_logger
from swahiba_api.schemas.chat import (
    BearerChatRequest,
    ChatHistoryResponse,
    ChatSendResponse,
    MessageOut,
)
from swahiba_api.services import message_relay
from swahiba_api.services.message_relay import ChatCaller

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/request-chat", response_model=None)
async def request_chat(
    body: BearerChatRequest,
    identity: VerifiedIdentity,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Read (``history``) or post to (``send``) a request's conversation.

    Only the request's creator and its assigned peer may take part.
    """
    support_request = await message_relay.get_request(db, body.request_id)
    caller = ChatCaller(
        identity_id=identity.identity_id,
        phone=normalize_phone(identity.phone) if identity.phone else None,
    )
    party = message_relay.authorize(support_request, caller)

    if body.action == "history":
        messages = await message_relay.history(db, support_request)
        return ChatHistoryResponse(
            conversation_id=support_request.conversation_id,
            messages=[MessageOut.model_validate(m) for m in messages],
        ).model_dump(mode="json", exclude={"request"})

    conversation_id, message = await message_relay.send(
        db, support_request, party, body.message
    )
    return ChatSendResponse(
        conversation_id=conversation_id,
        message=MessageOut.model_validate(message),
    ).model_dump(mode="json", exclude={"request"})
