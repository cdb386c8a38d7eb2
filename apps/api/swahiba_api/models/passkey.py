"""Passkey challenge and credential models.

Challenges live for a few minutes and are consumed at most once
(``consumed_at``). Credentials only record the authenticator's credential
id and its opaque attestation blob; no signature is ever checked against
``public_key``.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from swahiba_api.models.base import Base, UTCDateTime, utcnow


class ChallengeType(str, enum.Enum):
    """WebAuthn ceremony a challenge belongs to."""

    REGISTER = "register"
    LOGIN = "login"


class PasskeyChallenge(Base):
    """Random challenge handed to the browser for one ceremony."""

    __tablename__ = "passkey_challenges"
    __table_args__ = (
        Index("ix_passkey_challenges_lookup", "type", "phone", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)

    identity_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=True,
    )

    challenge: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)

    type: Mapped[ChallengeType] = mapped_column(
        Enum(
            ChallengeType,
            name="challengetype",
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
    )

    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    consumed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<PasskeyChallenge(type={self.type.value}, consumed={self.consumed_at is not None})>"


class PasskeyCredential(Base):
    """Registered passkey, looked up by credential id at login."""

    __tablename__ = "passkey_credentials"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    identity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    phone: Mapped[str] = mapped_column(String(32), nullable=False)

    credential_id: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)

    public_key: Mapped[str] = mapped_column(Text(), nullable=False, default="")

    counter: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_used_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<PasskeyCredential(identity_id={self.identity_id})>"
