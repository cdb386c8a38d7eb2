"""Security audit logging service."""

import json
import uuid
from typing import Any

from swahiba_api.database import get_db_session
from swahiba_api.logging_config import get_logger
from swahiba_api.models.security_audit_log import SecurityAuditLog

logger = get_logger(__name__)


async def log_event(
    event_type: str,
    identity_id: uuid.UUID | None = None,
    detail: dict[str, Any] | None = None,
    ip_address: str | None = None,
) -> None:
    """Write a security audit log entry in its own session.

    Fire-and-forget: logs errors but never raises, and never shares the
    caller's transaction. Call it when the caller holds no pending writes.
    """
    try:
        async with get_db_session() as db:
            db.add(
                SecurityAuditLog(
                    event_type=event_type,
                    identity_id=identity_id,
                    detail=json.dumps(detail) if detail else None,
                    ip_address=ip_address,
                )
            )
            await db.commit()
    except Exception:
        logger.exception("Failed to write audit log", event_type=event_type)
