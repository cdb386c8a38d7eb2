"""Tests for POST /api/requests-inbox."""

import uuid

from helpers import bearer_headers, make_identity, make_request
from swahiba_api.models import IdentityRole, RequestStatus

INBOX = "/api/requests-inbox"


class TestRequestsInbox:
    async def test_lists_open_assigned_requests_newest_first(self, client, db_session):
        peer = await make_identity(db_session, "+255780000100", role=IdentityRole.SWAHIBA)
        other_peer = await make_identity(db_session, "+255780000200", role=IdentityRole.SWAHIBA)
        guest = await make_identity(db_session, "+255780000001")
        older = await make_request(db_session, guest.id, peer.id, need="older")
        newer = await make_request(
            db_session, guest.id, peer.id, need="newer", status=RequestStatus.ACCEPTED
        )
        await make_request(db_session, guest.id, peer.id, status=RequestStatus.CLOSED)
        await make_request(db_session, guest.id, other_peer.id)

        response = await client.post(INBOX, headers=bearer_headers(peer.id))

        assert response.status_code == 200
        ids = [r["id"] for r in response.json()["requests"]]
        assert ids == [str(newer.id), str(older.id)]

    async def test_guest_is_forbidden(self, client, db_session):
        guest = await make_identity(db_session, "+255780000001")

        response = await client.post(INBOX, headers=bearer_headers(guest.id))

        assert response.status_code == 403

    async def test_unknown_identity_is_forbidden(self, client):
        response = await client.post(INBOX, headers=bearer_headers(uuid.uuid4()))

        assert response.status_code == 403

    async def test_requires_token(self, client):
        response = await client.post(INBOX)

        assert response.status_code == 401
