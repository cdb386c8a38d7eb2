"""Access credential model.

Binds a phone to an identity together with the hash of its 4-character
access code. One row per phone. A null hash marks a passkey-only account.
"""

import uuid

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from swahiba_api.models.base import Base, TimestampMixin


class AccessCredential(Base, TimestampMixin):
    """Access code credential for an anonymous guest."""

    __tablename__ = "access_credentials"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    phone: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)

    access_code_hash: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )

    identity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AccessCredential(identity_id={self.identity_id})>"
