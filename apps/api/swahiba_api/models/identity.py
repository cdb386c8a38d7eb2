"""Identity model.

One durable identity per canonical phone number. Guests are provisioned
lazily by the OTP, access-code and passkey flows and never have a
password; peer counselors (swahiba) and admins are created by the
external identity provider and share the same table.
"""

import enum
import uuid

from sqlalchemy import Enum, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from swahiba_api.models.base import Base, TimestampMixin


class IdentityRole(str, enum.Enum):
    """Roles an identity can hold.

    - GUEST: anonymous help seeker, proven only by phone possession
    - SWAHIBA: peer counselor assigned to support requests
    - ADMIN: staff
    """

    GUEST = "guest"
    SWAHIBA = "swahiba"
    ADMIN = "admin"


class Identity(Base, TimestampMixin):
    """Durable user identity.

    Attributes:
        id: Unique identity identifier (UUID)
        phone: Canonical phone number (unique; null for staff without one)
        phone_confirmed: Whether phone possession has been proven
        role: Identity role
        display_name: Optional name shown to the other chat party
    """

    __tablename__ = "identities"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    phone: Mapped[str | None] = mapped_column(
        String(32),
        unique=True,
        nullable=True,
        index=True,
    )
    phone_confirmed: Mapped[bool] = mapped_column(default=False)
    role: Mapped[IdentityRole] = mapped_column(
        Enum(
            IdentityRole,
            name="identityrole",
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=IdentityRole.GUEST,
    )
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Identity {self.id} ({self.role.value})>"
