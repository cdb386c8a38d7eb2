"""Hashing, secret generation and identity-token decoding.

Nothing secret is stored in plaintext: OTP codes, access codes and
session tokens are persisted as SHA-256 hex digests.
"""

import base64
import hashlib
import hmac
import re
import secrets
import uuid
from dataclasses import dataclass

from jose import JWTError, jwt

from swahiba_api.config import settings

ACCESS_CODE_PATTERN = re.compile(r"^[A-Za-z0-9]{4}$")
OTP_DIGITS = 6


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def digests_match(a: str | None, b: str | None) -> bool:
    """Constant-time comparison of two hex digests."""
    if a is None or b is None:
        return False
    return hmac.compare_digest(a, b)


def generate_otp_code() -> str:
    """Six random digits, never starting with 0."""
    low = 10 ** (OTP_DIGITS - 1)
    return str(low + secrets.randbelow(9 * low))


def hash_otp(code: str) -> str:
    return sha256_hex(code.strip())


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)


def hash_session_token(token: str) -> str:
    return sha256_hex(token)


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def generate_challenge() -> str:
    """32 random bytes, base64url without padding."""
    return b64url_encode(secrets.token_bytes(32))


# ============================================================================
# Access code hashing
# ============================================================================


@dataclass(frozen=True)
class AccessCodeScheme:
    """One way of deriving the stored hash of an access code.

    Codes are case-insensitive. The salted scheme binds the code to its
    phone so identical codes on two phones hash differently.
    """

    name: str
    salted: bool

    def digest(self, phone: str, access_code: str) -> str:
        code = access_code.lower()
        if self.salted:
            return sha256_hex(f"{phone}:{code}")
        return sha256_hex(code)


SALTED_SCHEME = AccessCodeScheme(name="salted", salted=True)
# Credentials created before per-phone salting. Remove once all are re-salted.
LEGACY_SCHEME = AccessCodeScheme(name="legacy", salted=False)

# Verification order: preferred scheme first
ACCESS_CODE_SCHEMES: tuple[AccessCodeScheme, ...] = (SALTED_SCHEME, LEGACY_SCHEME)


def hash_access_code(phone: str, access_code: str) -> str:
    """Hash used for newly stored access codes."""
    return SALTED_SCHEME.digest(phone, access_code)


def is_valid_access_code(access_code: str) -> bool:
    return bool(ACCESS_CODE_PATTERN.match(access_code))


# ============================================================================
# Externally issued identity tokens
# ============================================================================


def decode_identity_token(token: str) -> dict | None:
    """Verify and decode a JWT issued by the external identity provider.

    Returns:
        Token payload dict if valid, None if invalid or expired
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience or None,
            options={"verify_aud": bool(settings.jwt_audience)},
        )
    except JWTError:
        return None


class IdentityClaims:
    """Parsed identity token claims."""

    def __init__(self, payload: dict):
        self.identity_id: uuid.UUID = uuid.UUID(payload["sub"])
        self.phone: str | None = payload.get("phone") or None
        self.role: str | None = payload.get("role")
