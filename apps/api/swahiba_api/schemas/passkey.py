"""Passkey ceremony action schemas."""

from typing import Annotated, Any, Literal, Union

from fastapi import Body
from pydantic import BaseModel, Field

from swahiba_api.schemas.onboarding import PhoneBody


class PingAction(BaseModel):
    action: Literal["ping"]


class RegisterOptionsAction(PhoneBody):
    action: Literal["register_options"]


class RegisterVerifyAction(PhoneBody):
    action: Literal["register_verify"]
    credential: dict[str, Any] | None = Field(
        default=None,
        description="PublicKeyCredential JSON (id, rawId, response.*) from the browser",
    )


class LoginOptionsAction(BaseModel):
    action: Literal["login_options"]


class LoginVerifyAction(BaseModel):
    action: Literal["login_verify"]
    credential: dict[str, Any] | None = None


PasskeyAction = Annotated[
    Union[
        PingAction,
        RegisterOptionsAction,
        RegisterVerifyAction,
        LoginOptionsAction,
        LoginVerifyAction,
    ],
    Body(discriminator="action"),
]
