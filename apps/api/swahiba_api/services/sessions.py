"""Session issuer for guest chat.

Tokens are opaque random strings handed to the caller exactly once; only
their SHA-256 is persisted. Sessions are never renewed.
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.config import settings
from swahiba_api.core.errors import AuthenticationFailed, SessionExpired
from swahiba_api.core.security import generate_session_token, hash_session_token
from swahiba_api.logging_config import get_logger
from swahiba_api.models.chat_session import ChatSession
from swahiba_api.services.audit_service import log_event

logger = get_logger(__name__)


@dataclass(frozen=True)
class SessionPrincipal:
    """Identity and phone a valid session token resolves to."""

    identity_id: uuid.UUID
    phone: str


async def issue_session(db: AsyncSession, identity_id: uuid.UUID, phone: str) -> str:
    """Mint a session for ``identity_id`` and return the plaintext token."""
    token = generate_session_token()
    expires_at = datetime.now(UTC) + timedelta(hours=settings.session_ttl_hours)

    db.add(
        ChatSession(
            token_hash=hash_session_token(token),
            identity_id=identity_id,
            phone=phone,
            expires_at=expires_at,
        )
    )
    await db.commit()

    logger.info("Session issued", identity_id=str(identity_id), phone=phone)
    await log_event("session.issued", identity_id=identity_id)
    return token


async def validate_session(db: AsyncSession, token: str) -> SessionPrincipal:
    """Resolve a session token.

    Raises:
        AuthenticationFailed: Unknown token (NOT_FOUND)
        SessionExpired: Token past its TTL
    """
    if not token:
        raise AuthenticationFailed("Invalid session", code="NOT_FOUND")

    result = await db.execute(
        select(ChatSession).where(ChatSession.token_hash == hash_session_token(token))
    )
    session = result.scalar_one_or_none()
    if session is None:
        raise AuthenticationFailed("Invalid session", code="NOT_FOUND")

    if session.expires_at < datetime.now(UTC):
        raise SessionExpired("Session expired")

    return SessionPrincipal(identity_id=session.identity_id, phone=session.phone)
