"""Tests for the passkey challenge broker and its endpoint."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select

from helpers import GUEST_PHONE
from swahiba_api.core.errors import Expired, NotFound, ValidationFailed
from swahiba_api.core.security import b64url_decode, b64url_encode
from swahiba_api.models import (
    AccessCredential,
    ChallengeType,
    Identity,
    PasskeyChallenge,
    PasskeyCredential,
)
from swahiba_api.services import passkey as passkey_service
from swahiba_api.services.sessions import validate_session


def credential_for(challenge: str | None, credential_id: str = "cred-1") -> dict:
    """Browser-style PublicKeyCredential JSON."""
    response = {"attestationObject": "o2NmbXRkbm9uZQ"}
    if challenge is not None:
        client_data = {"type": "webauthn.create", "challenge": challenge}
        response["clientDataJSON"] = b64url_encode(json.dumps(client_data).encode())
    return {"id": credential_id, "rawId": credential_id, "type": "public-key", "response": response}


class TestResolveRpId:
    def test_localhost(self):
        assert passkey_service.resolve_rp_id("http://localhost:5173") == "localhost"

    def test_production_origin(self):
        assert passkey_service.resolve_rp_id("https://app.swahiba.org") == "swahiba.org"

    def test_missing_origin(self):
        assert passkey_service.resolve_rp_id(None) == "swahiba.org"


class TestRegistration:
    async def test_register_options_shape(self, db_session):
        options = await passkey_service.register_options(db_session, GUEST_PHONE)

        identity = (
            await db_session.execute(select(Identity).where(Identity.phone == GUEST_PHONE))
        ).scalar_one()
        assert options["rp"] == {"name": "Swahiba", "id": "swahiba.org"}
        assert options["user"]["name"] == GUEST_PHONE
        assert options["user"]["displayName"] == GUEST_PHONE
        assert b64url_decode(options["user"]["id"]).decode() == str(identity.id)
        assert [p["alg"] for p in options["pubKeyCredParams"]] == [-7, -257]
        assert options["timeout"] == 60000
        assert options["attestation"] == "none"
        assert len(b64url_decode(options["challenge"])) == 32

    async def test_register_challenge_lives_five_minutes(self, db_session):
        before = datetime.now(UTC)
        options = await passkey_service.register_options(db_session, GUEST_PHONE)

        challenge = (
            await db_session.execute(
                select(PasskeyChallenge).where(
                    PasskeyChallenge.challenge == options["challenge"]
                )
            )
        ).scalar_one()
        assert challenge.type == ChallengeType.REGISTER
        ttl = challenge.expires_at - before
        assert timedelta(minutes=4, seconds=55) < ttl <= timedelta(minutes=5, seconds=5)

    async def test_register_verify_stores_credential_and_issues_session(self, db_session):
        options = await passkey_service.register_options(db_session, GUEST_PHONE)

        token = await passkey_service.register_verify(
            db_session, GUEST_PHONE, credential_for(options["challenge"])
        )

        principal = await validate_session(db_session, token)
        assert principal.phone == GUEST_PHONE
        stored = (await db_session.execute(select(PasskeyCredential))).scalar_one()
        assert stored.credential_id == "cred-1"
        assert stored.public_key == "o2NmbXRkbm9uZQ"
        assert stored.counter == 0
        assert stored.identity_id == principal.identity_id
        access = (await db_session.execute(select(AccessCredential))).scalar_one()
        assert access.access_code_hash is None
        assert access.identity_id == principal.identity_id

    async def test_register_verify_without_client_data_uses_latest(self, db_session):
        await passkey_service.register_options(db_session, GUEST_PHONE)

        token = await passkey_service.register_verify(
            db_session, GUEST_PHONE, credential_for(None)
        )

        assert token

    async def test_challenge_is_single_use(self, db_session):
        options = await passkey_service.register_options(db_session, GUEST_PHONE)
        await passkey_service.register_verify(
            db_session, GUEST_PHONE, credential_for(options["challenge"], "cred-1")
        )

        with pytest.raises(NotFound) as exc_info:
            await passkey_service.register_verify(
                db_session, GUEST_PHONE, credential_for(options["challenge"], "cred-2")
            )
        assert exc_info.value.error == "Challenge not found"

    async def test_expired_challenge(self, db_session):
        options = await passkey_service.register_options(db_session, GUEST_PHONE)
        challenge = (
            await db_session.execute(
                select(PasskeyChallenge).where(
                    PasskeyChallenge.challenge == options["challenge"]
                )
            )
        ).scalar_one()
        challenge.expires_at = datetime.now(UTC) - timedelta(seconds=1)
        await db_session.commit()

        with pytest.raises(Expired) as exc_info:
            await passkey_service.register_verify(
                db_session, GUEST_PHONE, credential_for(options["challenge"])
            )
        assert exc_info.value.error == "Challenge expired"

    async def test_no_challenge_for_phone(self, db_session):
        with pytest.raises(NotFound):
            await passkey_service.register_verify(
                db_session, GUEST_PHONE, credential_for(None)
            )

    async def test_missing_credential_id(self, db_session):
        await passkey_service.register_options(db_session, GUEST_PHONE)

        with pytest.raises(ValidationFailed) as exc_info:
            await passkey_service.register_verify(db_session, GUEST_PHONE, {"response": {}})
        assert exc_info.value.error == "Missing payload"

    async def test_duplicate_credential_id(self, db_session):
        first = await passkey_service.register_options(db_session, GUEST_PHONE)
        await passkey_service.register_verify(
            db_session, GUEST_PHONE, credential_for(first["challenge"], "cred-1")
        )
        second = await passkey_service.register_options(db_session, GUEST_PHONE)

        with pytest.raises(ValidationFailed) as exc_info:
            await passkey_service.register_verify(
                db_session, GUEST_PHONE, credential_for(second["challenge"], "cred-1")
            )
        assert exc_info.value.error == "Passkey already registered"


class TestLogin:
    async def _register(self, db, credential_id: str = "cred-1") -> None:
        options = await passkey_service.register_options(db, GUEST_PHONE)
        await passkey_service.register_verify(
            db, GUEST_PHONE, credential_for(options["challenge"], credential_id)
        )

    async def test_login_options_shape(self, db_session):
        options = await passkey_service.login_options(db_session, "http://localhost:5173")

        assert options["rpId"] == "localhost"
        assert options["userVerification"] == "preferred"
        challenge = (
            await db_session.execute(
                select(PasskeyChallenge).where(
                    PasskeyChallenge.challenge == options["challenge"]
                )
            )
        ).scalar_one()
        assert challenge.type == ChallengeType.LOGIN
        assert challenge.phone is None

    async def test_login_verify_issues_session_for_credential_owner(self, db_session):
        await self._register(db_session)
        options = await passkey_service.login_options(db_session)

        token = await passkey_service.login_verify(
            db_session, credential_for(options["challenge"], "cred-1")
        )

        principal = await validate_session(db_session, token)
        assert principal.phone == GUEST_PHONE
        stored = (await db_session.execute(select(PasskeyCredential))).scalar_one()
        assert stored.last_used_at is not None

    async def test_unknown_credential(self, db_session):
        await self._register(db_session)
        options = await passkey_service.login_options(db_session)

        with pytest.raises(NotFound) as exc_info:
            await passkey_service.login_verify(
                db_session, credential_for(options["challenge"], "cred-unknown")
            )
        assert exc_info.value.error == "Passkey not found"

    async def test_login_without_challenge(self, db_session):
        await self._register(db_session)

        with pytest.raises(NotFound):
            await passkey_service.login_verify(db_session, credential_for(None))

    async def test_concurrent_logins_each_consume_their_own_challenge(self, db_session):
        await self._register(db_session)
        first = await passkey_service.login_options(db_session)
        second = await passkey_service.login_options(db_session)

        # Older challenge still usable: matched via clientDataJSON, not recency
        assert await passkey_service.login_verify(
            db_session, credential_for(first["challenge"])
        )
        assert await passkey_service.login_verify(
            db_session, credential_for(second["challenge"])
        )


class TestPasskeyEndpoint:
    async def test_ping(self, client):
        response = await client.post("/api/passkey", json={"action": "ping"})

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    async def test_register_round_trip(self, client):
        options_response = await client.post(
            "/api/passkey",
            json={"action": "register_options", "phone": "0780000001"},
            headers={"Origin": "http://localhost:5173"},
        )
        assert options_response.status_code == 200
        options = options_response.json()["options"]
        assert options["rp"]["id"] == "localhost"

        verify_response = await client.post(
            "/api/passkey",
            json={
                "action": "register_verify",
                "phone": GUEST_PHONE,
                "credential": credential_for(options["challenge"]),
            },
        )

        assert verify_response.status_code == 200
        body = verify_response.json()
        assert body["ok"] is True
        assert body["session_token"]

    async def test_register_verify_without_credential(self, client):
        response = await client.post(
            "/api/passkey",
            json={"action": "register_verify", "phone": GUEST_PHONE},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Missing payload"}

    async def test_register_options_requires_phone(self, client):
        response = await client.post("/api/passkey", json={"action": "register_options"})

        assert response.status_code == 400
        assert response.json()["error"] == "Phone is required"

    async def test_login_verify_expired(self, client, db_session):
        options = (
            await client.post("/api/passkey", json={"action": "login_options"})
        ).json()["options"]
        challenge = (
            await db_session.execute(
                select(PasskeyChallenge).where(
                    PasskeyChallenge.challenge == options["challenge"]
                )
            )
        ).scalar_one()
        challenge.expires_at = datetime.now(UTC) - timedelta(minutes=1)
        await db_session.commit()

        response = await client.post(
            "/api/passkey",
            json={"action": "login_verify", "credential": credential_for(options["challenge"])},
        )

        assert response.status_code == 410
        assert response.json() == {"error": "Challenge expired"}

    async def test_unknown_action(self, client):
        response = await client.post("/api/passkey", json={"action": "teleport"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid action"
