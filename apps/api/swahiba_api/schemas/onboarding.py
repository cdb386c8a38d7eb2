"""Request-onboard action schemas.

One POST endpoint, one body model per ``action``. Phones are canonicalized
on the way in so every service sees the ``+<cc><subscriber>`` form.
"""

import uuid
from typing import Annotated, Literal, Union

from fastapi import Body
from pydantic import BaseModel, ConfigDict, Field, field_validator

from swahiba_api.core.phone import is_canonical_phone, normalize_phone


def canonical_phone(value: object) -> str:
    """Pydantic-facing phone check shared by every phone-bearing body."""
    phone = normalize_phone(str(value) if value is not None else "")
    if not phone:
        raise ValueError("Phone is required")
    if not is_canonical_phone(phone):
        raise ValueError("Invalid phone")
    return phone


class PhoneBody(BaseModel):
    """Base for bodies carrying a guest phone."""

    model_config = ConfigDict(str_strip_whitespace=True)

    phone: str = Field(default="", validate_default=True)

    @field_validator("phone", mode="before")
    @classmethod
    def validate_phone(cls, v: object) -> str:
        return canonical_phone(v)


class RequestFields(BaseModel):
    """Optional fields copied onto a new support request."""

    swahiba_id: uuid.UUID | None = None
    nickname: str | None = Field(default=None, max_length=100)
    location: str | None = Field(default=None, max_length=200)
    need: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=5000)
    channel: str | None = Field(default=None, max_length=50)


class StartOtpAction(PhoneBody):
    action: Literal["start_otp"]


class VerifyOtpAction(PhoneBody):
    action: Literal["verify_otp"]
    otp: str = Field(default="", validate_default=True)

    @field_validator("otp", mode="before")
    @classmethod
    def require_otp(cls, v: object) -> str:
        code = str(v).strip() if v is not None else ""
        if not code:
            raise ValueError("OTP is required")
        return code


class SetAccessCodeAction(PhoneBody):
    action: Literal["set_access_code", "set_access_code_no_otp"]
    access_code: str = ""

    @property
    def requires_otp(self) -> bool:
        return self.action == "set_access_code"


class CreateRequestWithPinAction(PhoneBody, RequestFields):
    action: Literal["create_request_with_pin"]
    access_code: str = ""


class CreateRequestWithSessionAction(RequestFields):
    model_config = ConfigDict(str_strip_whitespace=True)

    action: Literal["create_request_with_session"]
    session_token: str = Field(default="", validate_default=True)

    @field_validator("session_token", mode="before")
    @classmethod
    def require_token(cls, v: object) -> str:
        token = str(v).strip() if v is not None else ""
        if not token:
            raise ValueError("Missing session token")
        return token


OnboardAction = Annotated[
    Union[
        StartOtpAction,
        VerifyOtpAction,
        SetAccessCodeAction,
        CreateRequestWithPinAction,
        CreateRequestWithSessionAction,
    ],
    Body(discriminator="action"),
]
