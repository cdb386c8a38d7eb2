"""Tests for find-or-create of request conversations."""

from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from helpers import GUEST_PHONE, make_identity, make_request
from swahiba_api.core.errors import Conflict
from swahiba_api.models import (
    Conversation,
    ConversationParticipant,
    ConversationStatus,
    IdentityRole,
    ParticipantRole,
    RequestStatus,
    SupportRequest,
)
from swahiba_api.services import conversation_bridge
from swahiba_api.services.conversation_bridge import ensure_conversation


async def _count(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


@pytest.fixture
async def parties(db_session):
    guest = await make_identity(db_session, GUEST_PHONE)
    peer = await make_identity(db_session, "+255780000100", role=IdentityRole.SWAHIBA)
    return guest.id, peer.id


class TestEnsureConversation:
    async def test_creates_conversation_with_two_participants(self, db_session, parties):
        guest_id, peer_id = parties
        request = await make_request(db_session, guest_id, peer_id, need="housing")

        conversation_id = await ensure_conversation(db_session, request)

        conversation = await db_session.get(Conversation, conversation_id)
        assert conversation.created_by == guest_id
        assert conversation.assigned_to == peer_id
        assert conversation.guest_phone == GUEST_PHONE
        assert conversation.status == ConversationStatus.ACTIVE
        assert conversation.topic == "housing"
        participants = (
            await db_session.execute(
                select(ConversationParticipant).where(
                    ConversationParticipant.conversation_id == conversation_id
                )
            )
        ).scalars().all()
        assert {(p.user_id, p.role) for p in participants} == {
            (guest_id, ParticipantRole.GUEST),
            (peer_id, ParticipantRole.PEER),
        }

    async def test_links_request_and_accepts_it(self, db_session, parties):
        request = await make_request(db_session, *parties)

        conversation_id = await ensure_conversation(db_session, request)

        await db_session.refresh(request)
        assert request.conversation_id == conversation_id
        assert request.status == RequestStatus.ACCEPTED

    async def test_topic_defaults_to_request(self, db_session, parties):
        request = await make_request(db_session, *parties, need=None)

        conversation_id = await ensure_conversation(db_session, request)

        conversation = await db_session.get(Conversation, conversation_id)
        assert conversation.topic == "request"

    async def test_second_call_returns_same_id(self, db_session, parties):
        request = await make_request(db_session, *parties)

        first = await ensure_conversation(db_session, request)
        second = await ensure_conversation(db_session, request)

        assert first == second
        assert await _count(db_session, Conversation) == 1
        assert await _count(db_session, ConversationParticipant) == 2

    async def test_sibling_request_reuses_conversation(self, db_session, parties):
        first = await make_request(db_session, *parties)
        second = await make_request(db_session, *parties, need="legal")

        first_id = await ensure_conversation(db_session, first)
        second_id = await ensure_conversation(db_session, second)

        assert first_id == second_id
        assert await _count(db_session, Conversation) == 1
        await db_session.refresh(second)
        assert second.status == RequestStatus.ACCEPTED

    async def test_other_peer_gets_own_conversation(self, db_session, parties):
        guest_id, peer_id = parties
        other_peer = await make_identity(db_session, "+255780000200", role=IdentityRole.SWAHIBA)
        first = await make_request(db_session, guest_id, peer_id)
        second = await make_request(db_session, guest_id, other_peer.id)

        assert await ensure_conversation(db_session, first) != await ensure_conversation(
            db_session, second
        )

    async def test_closed_conversation_is_not_reused(self, db_session, parties):
        first = await make_request(db_session, *parties)
        first_id = await ensure_conversation(db_session, first)
        conversation = await db_session.get(Conversation, first_id)
        conversation.status = ConversationStatus.CLOSED
        await db_session.commit()

        second = await make_request(db_session, *parties)
        second_id = await ensure_conversation(db_session, second)

        assert second_id != first_id
        assert await _count(db_session, Conversation) == 2

    async def test_request_without_peer_is_conflict(self, db_session, parties):
        guest_id, _ = parties
        request = await make_request(db_session, guest_id, None)

        with pytest.raises(Conflict) as exc_info:
            await ensure_conversation(db_session, request)

        assert exc_info.value.status_code == 409
        assert await _count(db_session, Conversation) == 0

    async def test_request_without_creator_is_conflict(self, db_session, parties):
        _, peer_id = parties
        request = await make_request(db_session, None, peer_id)

        with pytest.raises(Conflict):
            await ensure_conversation(db_session, request)


class TestConcurrentCreation:
    """Two writers racing for the same (phone, peer) pair."""

    async def test_loser_adopts_winners_conversation(self, db_session, parties):
        first = await make_request(db_session, *parties)
        second = await make_request(db_session, *parties)
        second_id = second.id
        winner_id = await ensure_conversation(db_session, first)

        real_find = conversation_bridge._find_reusable_conversation
        calls = []

        async def find_before_winner_committed(db, request):
            # First lookup ran before the winner's insert became visible
            calls.append(request.id)
            if len(calls) == 1:
                return None
            return await real_find(db, request)

        with patch.object(
            conversation_bridge, "_find_reusable_conversation", find_before_winner_committed
        ):
            loser_id = await ensure_conversation(db_session, second)

        assert loser_id == winner_id
        assert len(calls) == 2
        assert await _count(db_session, Conversation) == 1
        assert await _count(db_session, ConversationParticipant) == 2
        linked = await db_session.get(SupportRequest, second_id)
        assert linked.conversation_id == winner_id
        assert linked.status == RequestStatus.ACCEPTED

    async def test_unique_index_rejects_second_active_pair(self, db_session, parties):
        guest_id, peer_id = parties
        db_session.add(
            Conversation(created_by=guest_id, assigned_to=peer_id, guest_phone=GUEST_PHONE)
        )
        await db_session.commit()
        db_session.add(
            Conversation(created_by=guest_id, assigned_to=peer_id, guest_phone=GUEST_PHONE)
        )

        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()
