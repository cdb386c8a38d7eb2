"""Conversation, participant and message models.

At most one *active* conversation may exist per (guest phone, assigned
peer) pair; the partial unique index below is what makes concurrent
find-or-create calls converge on a single row.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from swahiba_api.models.base import Base, TimestampMixin, UTCDateTime, utcnow


class ConversationStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class ParticipantRole(str, enum.Enum):
    GUEST = "guest"
    PEER = "peer"


class Conversation(Base, TimestampMixin):
    """Two-party chat between a guest and the assigned peer counselor."""

    __tablename__ = "conversations"
    __table_args__ = (
        Index(
            "uq_conversations_active_pair",
            "guest_phone",
            "assigned_to",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
    )

    assigned_to: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Copied from the request; the pairing key of the uniqueness guard
    guest_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)

    status: Mapped[ConversationStatus] = mapped_column(
        Enum(
            ConversationStatus,
            name="conversationstatus",
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=ConversationStatus.ACTIVE,
    )

    topic: Mapped[str] = mapped_column(String(100), nullable=False, default="request")

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id}, status={self.status.value})>"


class ConversationParticipant(Base):
    """Membership row; each conversation has one guest and one peer."""

    __tablename__ = "conversation_participants"
    __table_args__ = (
        UniqueConstraint("conversation_id", "role", name="uq_participant_role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
    )

    role: Mapped[ParticipantRole] = mapped_column(
        Enum(
            ParticipantRole,
            name="participantrole",
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        nullable=False,
    )


class Message(Base):
    """Append-only chat message."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )

    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
    )

    body: Mapped[str] = mapped_column(Text(), nullable=False)

    type: Mapped[str] = mapped_column(String(20), nullable=False, default="text")

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, conversation_id={self.conversation_id})>"
