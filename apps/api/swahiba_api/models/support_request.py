"""Support request model.

A guest's one-shot inquiry, created by the onboarding flow. It is linked
to a conversation exactly once, on the first successful chat message,
and flips pending -> accepted at the same moment.
"""

import enum
import uuid

from sqlalchemy import Enum, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from swahiba_api.models.base import Base, TimestampMixin


class RequestStatus(str, enum.Enum):
    """Lifecycle of a support request."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    CLOSED = "closed"


class SupportRequest(Base, TimestampMixin):
    """Guest support request awaiting (or bridged into) a conversation."""

    __tablename__ = "support_requests"
    __table_args__ = (
        Index("ix_support_requests_phone_swahiba", "phone", "swahiba_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    swahiba_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("identities.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("identities.id", ondelete="SET NULL"),
        nullable=True,
    )

    conversation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="SET NULL"),
        nullable=True,
    )

    status: Mapped[RequestStatus] = mapped_column(
        Enum(
            RequestStatus,
            name="requeststatus",
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=RequestStatus.PENDING,
    )

    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    nickname: Mapped[str] = mapped_column(String(100), nullable=False, default="Anonymous")
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    need: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    channel: Mapped[str | None] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<SupportRequest(id={self.id}, status={self.status.value})>"
