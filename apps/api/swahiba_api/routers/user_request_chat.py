"""Guest chat, authenticated on every call without an account.

The guest proves their phone with phone + access code, or with a session
token issued by an OTP/passkey ceremony.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.core.errors import ValidationFailed
from swahiba_api.core.security import is_valid_access_code
from swahiba_api.database import get_db
from swahiba_api.logging_config import get_logger
from swahiba_api.schemas.chat import (
    ChatHistoryResponse,
    ChatSendResponse,
    GuestChatRequest,
    MessageOut,
    RequestOut,
)
from swahiba_api.services import message_relay
from swahiba_api.services.access_code import verify_access_code
from swahiba_api.services.message_relay import ChatCaller
from swahiba_api.services.sessions import validate_session

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


async def _resolve_caller(db: AsyncSession, body: GuestChatRequest) -> ChatCaller:
    if body.session_token:
        principal = await validate_session(db, body.session_token)
        return ChatCaller(identity_id=principal.identity_id, phone=principal.phone)

    if not is_valid_access_code(body.access_code):
        raise ValidationFailed("Invalid access code")
    identity_id = await verify_access_code(db, body.phone, body.access_code)
    return ChatCaller(identity_id=identity_id, phone=body.phone)


@router.post("/user-request-chat", response_model=None)
async def user_request_chat(
    body: GuestChatRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Read (``history``) or post to (``send``) the guest's request chat.

    Without ``request_id`` the guest's most recent request is used.
    """
    caller = await _resolve_caller(db, body)

    if body.request_id is not None:
        support_request = await message_relay.get_request(db, body.request_id)
    else:
        support_request = await message_relay.get_latest_request_for_phone(db, caller.phone)
    party = message_relay.authorize(support_request, caller)

    if body.action == "history":
        messages = await message_relay.history(db, support_request)
        return ChatHistoryResponse(
            request=RequestOut.model_validate(support_request),
            conversation_id=support_request.conversation_id,
            messages=[MessageOut.model_validate(m) for m in messages],
        ).model_dump(mode="json")

    conversation_id, message = await message_relay.send(
        db, support_request, party, body.message
    )
    return ChatSendResponse(
        request=RequestOut.model_validate(support_request),
        conversation_id=conversation_id,
        message=MessageOut.model_validate(message),
    ).model_dump(mode="json")
