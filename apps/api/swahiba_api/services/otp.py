"""OTP service: issue and verify one-time codes bound to a phone.

The most recent challenge for a phone is the live one. A verified
challenge stays verified; the access-code vault reads ``verified_at`` to
decide whether a recent phone proof exists.
"""

from datetime import UTC, datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.config import settings
from swahiba_api.core.errors import AuthenticationFailed, Expired, NotFound
from swahiba_api.core.security import digests_match, generate_otp_code, hash_otp
from swahiba_api.logging_config import get_logger
from swahiba_api.models.otp_challenge import OtpChallenge
from swahiba_api.services import sms_gateway
from swahiba_api.services.audit_service import log_event

logger = get_logger(__name__)


async def start_otp(db: AsyncSession, phone: str) -> str:
    """Issue a fresh code for ``phone``.

    Stores only the code hash with a ``otp_expiry_minutes`` TTL and hands the
    code to the SMS gateway. The plaintext code is returned so the router
    can echo it when ``otp_dev_echo`` is on; it must not be returned to
    callers otherwise.
    """
    code = generate_otp_code()
    expires_at = datetime.now(UTC) + timedelta(minutes=settings.otp_expiry_minutes)

    db.add(
        OtpChallenge(
            phone=phone,
            code_hash=hash_otp(code),
            expires_at=expires_at,
        )
    )
    await db.commit()

    logger.info("OTP issued", phone=phone, expires_at=expires_at.isoformat())
    await sms_gateway.send_otp(phone, code)
    return code


async def get_latest_otp(db: AsyncSession, phone: str) -> OtpChallenge | None:
    result = await db.execute(
        select(OtpChallenge)
        .where(OtpChallenge.phone == phone)
        .order_by(OtpChallenge.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def verify_otp(db: AsyncSession, phone: str, code: str) -> None:
    """Verify ``code`` against the most recent challenge for ``phone``.

    Checks, in order: a challenge exists (404), it is within its TTL (410),
    the code matches (401). A correct code on an already-verified challenge
    succeeds again without touching the row.

    Raises:
        NotFound: No challenge was ever issued for the phone
        Expired: Challenge past its expiry, whatever the code
        AuthenticationFailed: Code does not match
    """
    challenge = await get_latest_otp(db, phone)
    if challenge is None:
        raise NotFound("OTP not found")

    now = datetime.now(UTC)
    if challenge.expires_at < now:
        raise Expired("OTP expired")

    if not digests_match(challenge.code_hash, hash_otp(code)):
        await log_event("otp.verify_failed", detail={"challenge_id": str(challenge.id)})
        raise AuthenticationFailed("Invalid OTP")

    if challenge.verified_at is not None:
        return

    # Compare-and-set: a concurrent verify of the same row is a no-op
    await db.execute(
        update(OtpChallenge)
        .where(OtpChallenge.id == challenge.id, OtpChallenge.verified_at.is_(None))
        .values(verified_at=now)
    )
    await db.commit()
    logger.info("OTP verified", phone=phone)
