# Database Models
from swahiba_api.models.access_credential import AccessCredential
from swahiba_api.models.base import Base, TimestampMixin
from swahiba_api.models.chat_session import ChatSession
from swahiba_api.models.conversation import (
    Conversation,
    ConversationParticipant,
    ConversationStatus,
    Message,
    ParticipantRole,
)
from swahiba_api.models.identity import Identity, IdentityRole
from swahiba_api.models.otp_challenge import OtpChallenge
from swahiba_api.models.outbound_notification import OutboundNotification
from swahiba_api.models.passkey import ChallengeType, PasskeyChallenge, PasskeyCredential
from swahiba_api.models.security_audit_log import SecurityAuditLog
from swahiba_api.models.support_request import RequestStatus, SupportRequest

__all__ = [
    "AccessCredential",
    "Base",
    "ChallengeType",
    "ChatSession",
    "Conversation",
    "ConversationParticipant",
    "ConversationStatus",
    "Identity",
    "IdentityRole",
    "Message",
    "OtpChallenge",
    "OutboundNotification",
    "ParticipantRole",
    "PasskeyChallenge",
    "PasskeyCredential",
    "RequestStatus",
    "SecurityAuditLog",
    "SupportRequest",
    "TimestampMixin",
]
