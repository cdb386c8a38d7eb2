"""Chat request bodies and the request/message response shapes."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from swahiba_api.core.phone import normalize_phone
from swahiba_api.models.support_request import RequestStatus
from swahiba_api.schemas.onboarding import canonical_phone

ChatActionName = Literal["history", "send"]


class BearerChatRequest(BaseModel):
    """Body of the bearer-authenticated chat endpoint (peer or signed-in guest)."""

    action: ChatActionName = "history"
    request_id: uuid.UUID | None = Field(default=None, validate_default=True)
    message: str = ""

    @field_validator("request_id")
    @classmethod
    def require_request_id(cls, v: uuid.UUID | None) -> uuid.UUID:
        if v is None:
            raise ValueError("Missing request_id")
        return v


class GuestChatRequest(BaseModel):
    """Body of the guest chat endpoint.

    The guest proves their phone on every call, either with phone +
    access code or with a session token. Without ``request_id`` the
    newest request for that phone is used.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    action: ChatActionName = "history"
    phone: str = ""
    access_code: str = ""
    session_token: str = ""
    request_id: uuid.UUID | None = None
    message: str = ""

    @model_validator(mode="after")
    def check_credentials(self) -> "GuestChatRequest":
        if self.session_token:
            return self
        if not normalize_phone(self.phone):
            raise ValueError("Missing phone")
        self.phone = canonical_phone(self.phone)
        return self


class RequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    swahiba_id: uuid.UUID | None
    created_by: uuid.UUID | None
    conversation_id: uuid.UUID | None
    status: RequestStatus
    phone: str | None
    nickname: str
    location: str | None
    need: str | None
    description: str | None
    channel: str | None
    created_at: datetime


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sender_id: uuid.UUID
    body: str
    type: str
    created_at: datetime


class RequestEnvelope(BaseModel):
    request: RequestOut


class ChatHistoryResponse(BaseModel):
    request: RequestOut | None = None
    conversation_id: uuid.UUID | None
    messages: list[MessageOut]


class ChatSendResponse(BaseModel):
    request: RequestOut | None = None
    conversation_id: uuid.UUID
    message: MessageOut


class InboxResponse(BaseModel):
    requests: list[RequestOut]
