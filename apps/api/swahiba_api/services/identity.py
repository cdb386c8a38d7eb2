"""Identity provisioning: one durable identity per canonical phone."""

import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from swahiba_api.logging_config import get_logger
from swahiba_api.models.identity import Identity, IdentityRole

logger = get_logger(__name__)


async def get_identity_by_phone(db: AsyncSession, phone: str) -> Identity | None:
    result = await db.execute(select(Identity).where(Identity.phone == phone))
    return result.scalar_one_or_none()


async def get_identity(db: AsyncSession, identity_id: uuid.UUID) -> Identity | None:
    result = await db.execute(select(Identity).where(Identity.id == identity_id))
    return result.scalar_one_or_none()


async def resolve_or_create_identity(db: AsyncSession, phone: str) -> uuid.UUID:
    """Return the identity bound to ``phone``, creating a guest if absent.

    The new identity has its phone confirmed and no password. Concurrent
    callers racing on the same phone collide on the unique phone column;
    the loser rolls back and re-reads the winner's row.

    Commits its own transaction, so call it before staging other writes.
    """
    existing = await get_identity_by_phone(db, phone)
    if existing is not None:
        return existing.id

    identity = Identity(
        phone=phone,
        phone_confirmed=True,
        role=IdentityRole.GUEST,
    )
    db.add(identity)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await get_identity_by_phone(db, phone)
        if existing is None:
            raise
        logger.info("Identity created concurrently, reusing", phone=phone)
        return existing.id

    logger.info("Identity provisioned", identity_id=str(identity.id), phone=phone)
    return identity.id
