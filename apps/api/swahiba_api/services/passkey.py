"""Passkey challenge broker.

Runs the shape of a WebAuthn registration/login ceremony without the
cryptography: ``register_verify`` and ``login_verify`` match the
credential id only and never check an attestation or assertion
signature. Replace both with real WebAuthn verification before relying
on passkeys as a strong factor.

Each challenge is consumed at most once. When the browser's
``clientDataJSON`` is present, the challenge it signed is matched
exactly; otherwise the newest unconsumed challenge of the right type is
used.
"""

import binascii
import json
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlparse

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.config import settings
from swahiba_api.core.errors import Expired, NotFound, ValidationFailed
from swahiba_api.core.security import b64url_decode, b64url_encode, generate_challenge
from swahiba_api.logging_config import get_logger
from swahiba_api.models.passkey import ChallengeType, PasskeyChallenge, PasskeyCredential
from swahiba_api.services.access_code import upsert_access_credential
from swahiba_api.services.audit_service import log_event
from swahiba_api.services.identity import resolve_or_create_identity
from swahiba_api.services.sessions import issue_session

logger = get_logger(__name__)

PUBLIC_KEY_ALGORITHMS = (-7, -257)  # ES256, RS256
CEREMONY_TIMEOUT_MS = 60000


def resolve_rp_id(origin: str | None) -> str:
    """Relying-party id for the calling origin (``localhost`` in development)."""
    if origin:
        host = urlparse(origin).hostname
        if host == "localhost":
            return "localhost"
    return settings.rp_id


def client_data_challenge(credential: dict[str, Any]) -> str | None:
    """Challenge embedded in the credential's ``clientDataJSON``, if readable."""
    response = credential.get("response")
    if not isinstance(response, dict):
        return None
    encoded = response.get("clientDataJSON")
    if not isinstance(encoded, str) or not encoded:
        return None
    try:
        client_data = json.loads(b64url_decode(encoded))
    except (binascii.Error, ValueError):
        return None
    if not isinstance(client_data, dict):
        return None
    challenge = client_data.get("challenge")
    return challenge if isinstance(challenge, str) else None


async def _store_challenge(
    db: AsyncSession,
    challenge_type: ChallengeType,
    phone: str | None = None,
    identity_id: uuid.UUID | None = None,
) -> str:
    challenge = generate_challenge()
    db.add(
        PasskeyChallenge(
            phone=phone,
            identity_id=identity_id,
            challenge=challenge,
            type=challenge_type,
            expires_at=datetime.now(UTC)
            + timedelta(minutes=settings.passkey_challenge_ttl_minutes),
        )
    )
    await db.commit()
    return challenge


async def _claim_challenge(
    db: AsyncSession,
    challenge_type: ChallengeType,
    phone: str | None = None,
    challenge_value: str | None = None,
) -> PasskeyChallenge:
    """Select an unconsumed challenge and atomically mark it consumed.

    Raises:
        NotFound: No unconsumed challenge (or it was claimed concurrently)
        Expired: Challenge past its TTL
    """
    query = select(PasskeyChallenge).where(
        PasskeyChallenge.type == challenge_type,
        PasskeyChallenge.consumed_at.is_(None),
    )
    if phone is not None:
        query = query.where(PasskeyChallenge.phone == phone)
    if challenge_value is not None:
        query = query.where(PasskeyChallenge.challenge == challenge_value)
    query = query.order_by(PasskeyChallenge.created_at.desc()).limit(1)

    challenge = (await db.execute(query)).scalar_one_or_none()
    if challenge is None:
        raise NotFound("Challenge not found")

    now = datetime.now(UTC)
    if challenge.expires_at < now:
        raise Expired("Challenge expired")

    result = await db.execute(
        update(PasskeyChallenge)
        .where(
            PasskeyChallenge.id == challenge.id,
            PasskeyChallenge.consumed_at.is_(None),
        )
        .values(consumed_at=now)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("Challenge not found")
    await db.commit()
    return challenge


async def register_options(
    db: AsyncSession, phone: str, origin: str | None = None
) -> dict[str, Any]:
    """Provision the identity and return WebAuthn creation options."""
    identity_id = await resolve_or_create_identity(db, phone)
    challenge = await _store_challenge(
        db, ChallengeType.REGISTER, phone=phone, identity_id=identity_id
    )

    return {
        "rp": {"name": settings.rp_name, "id": resolve_rp_id(origin)},
        "user": {
            "id": b64url_encode(str(identity_id).encode("utf-8")),
            "name": phone,
            "displayName": phone,
        },
        "challenge": challenge,
        "pubKeyCredParams": [
            {"type": "public-key", "alg": alg} for alg in PUBLIC_KEY_ALGORITHMS
        ],
        "timeout": CEREMONY_TIMEOUT_MS,
        "attestation": "none",
        "authenticatorSelection": {
            "residentKey": "preferred",
            "userVerification": "preferred",
        },
    }


async def register_verify(
    db: AsyncSession, phone: str, credential: dict[str, Any]
) -> str:
    """Store the new credential and issue a session token.

    The phone's access credential is reset to passkey-only (null hash).

    Raises:
        ValidationFailed: Credential without an id, or id already registered
        NotFound: No open register challenge for the phone
        Expired: Challenge past its TTL
    """
    credential_id = credential.get("id")
    if not isinstance(credential_id, str) or not credential_id:
        raise ValidationFailed("Missing payload")

    challenge = await _claim_challenge(
        db,
        ChallengeType.REGISTER,
        phone=phone,
        challenge_value=client_data_challenge(credential),
    )
    identity_id = challenge.identity_id or await resolve_or_create_identity(db, phone)

    response = credential.get("response")
    attestation = response.get("attestationObject") if isinstance(response, dict) else None
    db.add(
        PasskeyCredential(
            identity_id=identity_id,
            phone=phone,
            credential_id=credential_id,
            public_key=attestation if isinstance(attestation, str) else "",
            counter=0,
        )
    )
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValidationFailed("Passkey already registered")

    await upsert_access_credential(db, phone, identity_id, None)
    logger.info("Passkey registered", identity_id=str(identity_id), phone=phone)
    await log_event("passkey.registered", identity_id=identity_id)

    return await issue_session(db, identity_id, phone)


async def login_options(db: AsyncSession, origin: str | None = None) -> dict[str, Any]:
    """Return WebAuthn request options for a phone-less login."""
    challenge = await _store_challenge(db, ChallengeType.LOGIN)
    return {
        "rpId": resolve_rp_id(origin),
        "challenge": challenge,
        "timeout": CEREMONY_TIMEOUT_MS,
        "userVerification": "preferred",
    }


async def login_verify(db: AsyncSession, credential: dict[str, Any]) -> str:
    """Match the credential id and issue a session for its owner.

    Raises:
        ValidationFailed: Credential without an id
        NotFound: No open login challenge, or unknown credential id
        Expired: Challenge past its TTL
    """
    credential_id = credential.get("id")
    if not isinstance(credential_id, str) or not credential_id:
        raise ValidationFailed("Missing payload")

    await _claim_challenge(
        db,
        ChallengeType.LOGIN,
        challenge_value=client_data_challenge(credential),
    )

    result = await db.execute(
        select(PasskeyCredential).where(PasskeyCredential.credential_id == credential_id)
    )
    passkey = result.scalar_one_or_none()
    if passkey is None:
        raise NotFound("Passkey not found")

    # Credential id match only; no assertion signature is checked
    passkey.last_used_at = datetime.now(UTC)
    identity_id, phone = passkey.identity_id, passkey.phone
    await db.commit()

    logger.info("Passkey login", identity_id=str(identity_id), phone=phone)
    return await issue_session(db, identity_id, phone)
