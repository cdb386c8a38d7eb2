"""Tests for message relay: authorization, send, history, notifications."""

import uuid
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from helpers import GUEST_PHONE, make_identity, make_request
from swahiba_api.core.errors import Forbidden, ValidationFailed
from swahiba_api.models import (
    Conversation,
    ConversationParticipant,
    IdentityRole,
    Message,
    OutboundNotification,
)
from swahiba_api.services import message_relay
from swahiba_api.services.message_relay import ChatCaller


async def _count(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


@pytest.fixture
async def parties(db_session):
    guest = await make_identity(db_session, GUEST_PHONE)
    peer = await make_identity(db_session, "+255780000100", role=IdentityRole.SWAHIBA)
    return guest.id, peer.id


class TestAuthorize:
    async def test_peer(self, db_session, parties):
        guest_id, peer_id = parties
        request = await make_request(db_session, guest_id, peer_id)

        party = message_relay.authorize(request, ChatCaller(peer_id))

        assert party.is_peer is True

    async def test_creator(self, db_session, parties):
        guest_id, peer_id = parties
        request = await make_request(db_session, guest_id, peer_id)

        assert message_relay.authorize(request, ChatCaller(guest_id)).is_peer is False

    async def test_guest_matched_by_phone(self, db_session, parties):
        _, peer_id = parties
        request = await make_request(db_session, uuid.uuid4(), peer_id)

        party = message_relay.authorize(request, ChatCaller(uuid.uuid4(), GUEST_PHONE))

        assert party.is_peer is False

    async def test_stranger_forbidden(self, db_session, parties):
        request = await make_request(db_session, *parties)

        with pytest.raises(Forbidden):
            message_relay.authorize(request, ChatCaller(uuid.uuid4(), "+255780009999"))


class TestSend:
    async def test_first_guest_message_bridges_request(self, db_session, parties):
        guest_id, _ = parties
        request = await make_request(db_session, *parties)
        party = message_relay.authorize(request, ChatCaller(guest_id, GUEST_PHONE))

        conversation_id, message = await message_relay.send(
            db_session, request, party, "hello"
        )

        assert await _count(db_session, Conversation) == 1
        assert await _count(db_session, ConversationParticipant) == 2
        assert await _count(db_session, Message) == 1
        assert message.conversation_id == conversation_id
        assert message.sender_id == guest_id
        assert message.body == "hello"
        assert message.type == "text"

    async def test_guest_message_sends_no_notification(self, db_session, parties):
        guest_id, _ = parties
        request = await make_request(db_session, *parties)
        party = message_relay.authorize(request, ChatCaller(guest_id))

        await message_relay.send(db_session, request, party, "hello")

        assert await _count(db_session, OutboundNotification) == 0

    async def test_peer_message_queues_notification(self, db_session, parties):
        _, peer_id = parties
        request = await make_request(db_session, *parties)
        request_id = request.id
        party = message_relay.authorize(request, ChatCaller(peer_id))

        conversation_id, _ = await message_relay.send(db_session, request, party, "hi there")

        notification = (await db_session.execute(select(OutboundNotification))).scalar_one()
        assert notification.channel == "whatsapp"
        assert notification.to_phone == GUEST_PHONE
        assert notification.body == (
            "Swahiba has replied. Open your chat and use your access code to continue."
        )
        assert notification.link_url.endswith("/talk?chat=1")
        assert notification.details == {
            "request_id": str(request_id),
            "conversation_id": str(conversation_id),
        }
        assert notification.status == "queued"

    async def test_notification_failure_does_not_fail_send(self, db_session, parties):
        _, peer_id = parties
        request = await make_request(db_session, *parties)
        party = message_relay.authorize(request, ChatCaller(peer_id))

        with patch(
            "swahiba_api.services.notifications.get_db_session",
            side_effect=RuntimeError("queue unavailable"),
        ):
            conversation_id, message = await message_relay.send(
                db_session, request, party, "hi there"
            )

        assert message.conversation_id == conversation_id
        assert await _count(db_session, Message) == 1
        assert await _count(db_session, OutboundNotification) == 0

    @pytest.mark.parametrize("body", ["", "   "])
    async def test_empty_message(self, db_session, parties, body):
        guest_id, _ = parties
        request = await make_request(db_session, *parties)
        party = message_relay.authorize(request, ChatCaller(guest_id))

        with pytest.raises(ValidationFailed) as exc_info:
            await message_relay.send(db_session, request, party, body)

        assert exc_info.value.error == "Message is empty"
        assert await _count(db_session, Conversation) == 0


class TestHistory:
    async def test_empty_before_first_message(self, db_session, parties):
        request = await make_request(db_session, *parties)

        assert await message_relay.history(db_session, request) == []

    async def test_messages_in_creation_order(self, db_session, parties):
        guest_id, peer_id = parties
        request = await make_request(db_session, *parties)
        guest = message_relay.authorize(request, ChatCaller(guest_id))
        peer = message_relay.authorize(request, ChatCaller(peer_id))

        await message_relay.send(db_session, request, guest, "one")
        await message_relay.send(db_session, request, peer, "two")
        await message_relay.send(db_session, request, guest, "three")

        messages = await message_relay.history(db_session, request)
        assert [m.body for m in messages] == ["one", "two", "three"]
