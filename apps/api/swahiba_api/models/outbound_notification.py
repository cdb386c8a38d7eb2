"""Outbound notification queue model.

Rows are picked up by an external delivery worker (WhatsApp/SMS).
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from swahiba_api.models.base import Base, UTCDateTime, utcnow


class OutboundNotification(Base):
    """Queued message to a guest's phone."""

    __tablename__ = "outbound_notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    channel: Mapped[str] = mapped_column(String(20), nullable=False)

    to_phone: Mapped[str] = mapped_column(String(32), nullable=False)

    body: Mapped[str] = mapped_column(Text(), nullable=False)

    link_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # "metadata" is reserved on declarative classes
    details: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued")

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<OutboundNotification(channel={self.channel}, status={self.status})>"
