"""Passkey registration and login ceremonies."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.core.errors import ValidationFailed
from swahiba_api.database import get_db
from swahiba_api.logging_config import get_logger
from swahiba_api.middleware.rate_limit import limiter
from swahiba_api.schemas.passkey import (
    LoginOptionsAction,
    LoginVerifyAction,
    PasskeyAction,
    PingAction,
    RegisterOptionsAction,
    RegisterVerifyAction,
)
from swahiba_api.services import passkey as passkey_service

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["passkey"])


@router.post("/passkey", response_model=None)
@limiter.limit("20/minute")
async def passkey(
    request: Request,
    body: PasskeyAction,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Run one step of a passkey ceremony, selected by ``action``."""
    origin = request.headers.get("origin")

    if isinstance(body, PingAction):
        return {"ok": True}

    if isinstance(body, RegisterOptionsAction):
        options = await passkey_service.register_options(db, body.phone, origin)
        return {"options": options}

    if isinstance(body, RegisterVerifyAction):
        if not body.credential:
            raise ValidationFailed("Missing payload")
        token = await passkey_service.register_verify(db, body.phone, body.credential)
        return {"ok": True, "session_token": token}

    if isinstance(body, LoginOptionsAction):
        options = await passkey_service.login_options(db, origin)
        return {"options": options}

    if isinstance(body, LoginVerifyAction):
        if not body.credential:
            raise ValidationFailed("Missing payload")
        token = await passkey_service.login_verify(db, body.credential)
        return {"ok": True, "session_token": token}

    raise ValidationFailed("Invalid action")
