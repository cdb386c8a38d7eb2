"""Access-code vault.

A 4-character alphanumeric code bound to a phone acts as a lightweight
password for anonymous guests. Setting a code normally requires a recent
OTP proof; verifying it tries each hashing scheme in
``ACCESS_CODE_SCHEMES`` so pre-salt credentials keep working.
"""

import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.config import settings
from swahiba_api.core.errors import AuthenticationFailed, Expired, ValidationFailed
from swahiba_api.core.security import (
    ACCESS_CODE_SCHEMES,
    SALTED_SCHEME,
    hash_access_code,
    is_valid_access_code,
)
from swahiba_api.logging_config import get_logger
from swahiba_api.models.access_credential import AccessCredential
from swahiba_api.services.audit_service import log_event
from swahiba_api.services.identity import resolve_or_create_identity
from swahiba_api.services.otp import get_latest_otp

logger = get_logger(__name__)


async def _require_recent_otp(db: AsyncSession, phone: str) -> None:
    """The newest challenge for the phone must be verified, and recently.

    A newer unverified challenge supersedes any earlier proof.
    """
    challenge = await get_latest_otp(db, phone)
    if challenge is None or challenge.verified_at is None:
        raise AuthenticationFailed("OTP not verified", code="NOT_VERIFIED")

    window = timedelta(minutes=settings.otp_verification_window_minutes)
    if challenge.verified_at < datetime.now(UTC) - window:
        raise Expired("OTP verification expired")


async def get_access_credential(db: AsyncSession, phone: str) -> AccessCredential | None:
    result = await db.execute(
        select(AccessCredential).where(AccessCredential.phone == phone)
    )
    return result.scalar_one_or_none()


async def upsert_access_credential(
    db: AsyncSession,
    phone: str,
    identity_id: uuid.UUID,
    access_code_hash: str | None,
) -> None:
    """Insert or overwrite the credential row for ``phone`` and commit.

    A ``None`` hash marks a passkey-only account and clears any previous
    access code.
    """
    credential = await get_access_credential(db, phone)
    if credential is None:
        db.add(
            AccessCredential(
                phone=phone,
                identity_id=identity_id,
                access_code_hash=access_code_hash,
            )
        )
        try:
            await db.commit()
            return
        except IntegrityError:
            # Another caller inserted the row first; overwrite it
            await db.rollback()
            credential = await get_access_credential(db, phone)
            if credential is None:
                raise

    credential.identity_id = identity_id
    credential.access_code_hash = access_code_hash
    await db.commit()


async def set_access_code(
    db: AsyncSession,
    phone: str,
    access_code: str,
    require_recent_otp: bool = True,
) -> uuid.UUID:
    """Bind ``access_code`` to ``phone``, provisioning the identity if needed.

    Raises:
        ValidationFailed: Code is not 4 letters/digits
        AuthenticationFailed: No verified OTP for the phone (NOT_VERIFIED)
        Expired: The OTP was verified more than the window ago
    """
    if not is_valid_access_code(access_code):
        raise ValidationFailed("Access code must be 4 letters/numbers")

    if require_recent_otp:
        await _require_recent_otp(db, phone)

    identity_id = await resolve_or_create_identity(db, phone)
    await upsert_access_credential(
        db, phone, identity_id, hash_access_code(phone, access_code)
    )

    logger.info(
        "Access code set",
        phone=phone,
        identity_id=str(identity_id),
        otp_checked=require_recent_otp,
    )
    return identity_id


async def verify_access_code(
    db: AsyncSession,
    phone: str,
    access_code: str,
) -> uuid.UUID:
    """Return the identity bound to ``phone`` + ``access_code``.

    Schemes are tried in preference order; a legacy match is logged so the
    remaining unsalted credentials can be tracked down and re-salted.

    Raises:
        AuthenticationFailed: No scheme matches (INVALID_CREDENTIAL)
    """
    if not is_valid_access_code(access_code):
        raise AuthenticationFailed("Invalid phone/PIN", code="INVALID_CREDENTIAL")

    for scheme in ACCESS_CODE_SCHEMES:
        result = await db.execute(
            select(AccessCredential).where(
                AccessCredential.phone == phone,
                AccessCredential.access_code_hash == scheme.digest(phone, access_code),
            )
        )
        credential = result.scalar_one_or_none()
        if credential is None:
            continue
        if scheme is not SALTED_SCHEME:
            logger.warning(
                "Access code matched legacy hash",
                phone=phone,
                scheme=scheme.name,
            )
        return credential.identity_id

    await log_event("access_code.verify_failed")
    raise AuthenticationFailed("Invalid phone/PIN", code="INVALID_CREDENTIAL")
