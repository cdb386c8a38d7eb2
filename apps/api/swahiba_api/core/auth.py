"""Bearer-token authentication for peer and staff callers.

The dashboard signs in through the external identity provider; this
service only verifies the provider's JWT and trusts its subject. Guests
never reach these dependencies: they authenticate per call with an
access code or a chat session token.
"""

from typing import Annotated

from fastapi import Depends, Request

from swahiba_api.core.errors import AuthenticationFailed
from swahiba_api.core.security import IdentityClaims, decode_identity_token
from swahiba_api.logging_config import get_logger

logger = get_logger(__name__)


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_verified_identity(request: Request) -> IdentityClaims:
    """Extract and verify the caller's identity token.

    Raises:
        AuthenticationFailed: Missing header, bad signature, expired token or
            a subject that is not a UUID
    """
    token = _bearer_token(request)
    if token is None:
        raise AuthenticationFailed("Missing or invalid Authorization header")

    payload = decode_identity_token(token)
    if payload is None:
        logger.info("Rejected identity token", path=request.url.path)
        raise AuthenticationFailed("Not authenticated")

    try:
        return IdentityClaims(payload)
    except (KeyError, ValueError):
        raise AuthenticationFailed("Not authenticated")


VerifiedIdentity = Annotated[IdentityClaims, Depends(get_verified_identity)]
