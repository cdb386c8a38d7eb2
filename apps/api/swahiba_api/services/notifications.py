"""Outbound notification queue (peer -> guest nudges)."""

import uuid

from swahiba_api.config import settings
from swahiba_api.database import get_db_session
from swahiba_api.logging_config import get_logger
from swahiba_api.models.outbound_notification import OutboundNotification

logger = get_logger(__name__)

PEER_REPLY_CHANNEL = "whatsapp"
PEER_REPLY_BODY = (
    "Swahiba has replied. Open your chat and use your access code to continue."
)


def chat_link() -> str:
    return f"{settings.app_url.rstrip('/')}/talk?chat=1"


async def enqueue_peer_reply(
    to_phone: str,
    request_id: uuid.UUID,
    conversation_id: uuid.UUID,
) -> bool:
    """Queue a "peer replied" notification for the guest.

    Runs in its own session after the message is committed. Failures are
    logged and reported as False; they never reach the sender.
    """
    try:
        async with get_db_session() as db:
            db.add(
                OutboundNotification(
                    channel=PEER_REPLY_CHANNEL,
                    to_phone=to_phone,
                    body=PEER_REPLY_BODY,
                    link_url=chat_link(),
                    details={
                        "request_id": str(request_id),
                        "conversation_id": str(conversation_id),
                    },
                )
            )
            await db.commit()
    except Exception:
        logger.exception(
            "Failed to enqueue outbound notification",
            to_phone=to_phone,
            request_id=str(request_id),
        )
        return False

    logger.info("Outbound notification queued", to_phone=to_phone, channel=PEER_REPLY_CHANNEL)
    return True
