"""Row factories and token helpers shared by the test modules."""

import uuid
from datetime import UTC, datetime, timedelta

from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.config import settings
from swahiba_api.models import Identity, IdentityRole, RequestStatus, SupportRequest

GUEST_PHONE = "+255780000001"


async def make_identity(
    db: AsyncSession,
    phone: str | None = None,
    role: IdentityRole = IdentityRole.GUEST,
) -> Identity:
    identity = Identity(phone=phone, phone_confirmed=phone is not None, role=role)
    db.add(identity)
    await db.commit()
    return identity


async def make_request(
    db: AsyncSession,
    created_by: uuid.UUID | None,
    swahiba_id: uuid.UUID | None,
    phone: str | None = GUEST_PHONE,
    need: str | None = "counselling",
    status: RequestStatus = RequestStatus.PENDING,
) -> SupportRequest:
    request = SupportRequest(
        created_by=created_by,
        swahiba_id=swahiba_id,
        phone=phone,
        need=need,
        status=status,
    )
    db.add(request)
    await db.commit()
    return request


def bearer_headers(identity_id: uuid.UUID, phone: str | None = None, **claims) -> dict:
    """Authorization header carrying an identity token signed like the provider's."""
    payload = {
        "sub": str(identity_id),
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "exp": datetime.now(UTC) + timedelta(hours=1),
        **claims,
    }
    if phone:
        payload["phone"] = phone
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return {"Authorization": f"Bearer {token}"}
