"""Create identity, access, session and chat tables.

Revision ID: 001_access_and_chat
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_access_and_chat"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUMS = {
    "identityrole": ("guest", "swahiba", "admin"),
    "challengetype": ("register", "login"),
    "requeststatus": ("pending", "accepted", "closed"),
    "conversationstatus": ("active", "closed"),
    "participantrole": ("guest", "peer"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(op.get_bind())

    op.create_table(
        "identities",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("phone_confirmed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("role", _enum("identityrole"), nullable=False, server_default="guest"),
        sa.Column("display_name", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_identities_phone"), "identities", ["phone"], unique=True)

    op.create_table(
        "otp_challenges",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("code_hash", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_otp_challenges_phone_created", "otp_challenges", ["phone", "created_at"]
    )

    op.create_table(
        "access_credentials",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("access_code_hash", sa.String(length=64), nullable=True),
        sa.Column("identity_id", sa.UUID(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["identity_id"], ["identities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("phone"),
    )
    op.create_index(
        op.f("ix_access_credentials_access_code_hash"),
        "access_credentials",
        ["access_code_hash"],
    )
    op.create_index(
        op.f("ix_access_credentials_identity_id"), "access_credentials", ["identity_id"]
    )

    op.create_table(
        "passkey_challenges",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("identity_id", sa.UUID(), nullable=True),
        sa.Column("challenge", sa.String(length=128), nullable=False),
        sa.Column("type", _enum("challengetype"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["identity_id"], ["identities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("challenge"),
    )
    op.create_index(
        "ix_passkey_challenges_lookup",
        "passkey_challenges",
        ["type", "phone", "created_at"],
    )

    op.create_table(
        "passkey_credentials",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("identity_id", sa.UUID(), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("credential_id", sa.String(length=512), nullable=False),
        sa.Column("public_key", sa.Text(), nullable=False, server_default=""),
        sa.Column("counter", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["identity_id"], ["identities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("credential_id"),
    )
    op.create_index(
        op.f("ix_passkey_credentials_identity_id"), "passkey_credentials", ["identity_id"]
    )

    op.create_table(
        "chat_sessions",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("identity_id", sa.UUID(), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["identity_id"], ["identities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token_hash"),
    )
    op.create_index(op.f("ix_chat_sessions_identity_id"), "chat_sessions", ["identity_id"])

    op.create_table(
        "conversations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("created_by", sa.UUID(), nullable=False),
        sa.Column("assigned_to", sa.UUID(), nullable=False),
        sa.Column("guest_phone", sa.String(length=32), nullable=True),
        sa.Column(
            "status", _enum("conversationstatus"), nullable=False, server_default="active"
        ),
        sa.Column("topic", sa.String(length=100), nullable=False, server_default="request"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by"], ["identities.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["assigned_to"], ["identities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_conversations_assigned_to"), "conversations", ["assigned_to"])
    # At most one active conversation per guest phone and peer
    op.create_index(
        "uq_conversations_active_pair",
        "conversations",
        ["guest_phone", "assigned_to"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "conversation_participants",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("conversation_id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("role", _enum("participantrole"), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(
            ["conversation_id"], ["conversations.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["user_id"], ["identities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("conversation_id", "role", name="uq_participant_role"),
    )
    op.create_index(
        op.f("ix_conversation_participants_conversation_id"),
        "conversation_participants",
        ["conversation_id"],
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("conversation_id", sa.UUID(), nullable=False),
        sa.Column("sender_id", sa.UUID(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="text"),
        _created_at(),
        sa.ForeignKeyConstraint(
            ["conversation_id"], ["conversations.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["sender_id"], ["identities.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_messages_conversation_created", "messages", ["conversation_id", "created_at"]
    )

    op.create_table(
        "support_requests",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("swahiba_id", sa.UUID(), nullable=True),
        sa.Column("created_by", sa.UUID(), nullable=True),
        sa.Column("conversation_id", sa.UUID(), nullable=True),
        sa.Column("status", _enum("requeststatus"), nullable=False, server_default="pending"),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column(
            "nickname", sa.String(length=100), nullable=False, server_default="Anonymous"
        ),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("need", sa.String(length=100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("channel", sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["swahiba_id"], ["identities.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["identities.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["conversation_id"], ["conversations.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_support_requests_swahiba_id"), "support_requests", ["swahiba_id"]
    )
    op.create_index(
        "ix_support_requests_phone_swahiba", "support_requests", ["phone", "swahiba_id"]
    )

    op.create_table(
        "outbound_notifications",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("channel", sa.String(length=20), nullable=False),
        sa.Column("to_phone", sa.String(length=32), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("link_url", sa.String(length=500), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="queued"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_outbound_notifications_created_at"),
        "outbound_notifications",
        ["created_at"],
    )

    op.create_table(
        "security_audit_logs",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("identity_id", sa.UUID(), nullable=True),
        sa.Column("event_type", sa.String(length=50), nullable=False),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["identity_id"], ["identities.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_security_audit_logs_event_type"), "security_audit_logs", ["event_type"]
    )
    op.create_index(
        op.f("ix_security_audit_logs_created_at"), "security_audit_logs", ["created_at"]
    )


def downgrade() -> None:
    for table in (
        "security_audit_logs",
        "outbound_notifications",
        "support_requests",
        "messages",
        "conversation_participants",
        "conversations",
        "chat_sessions",
        "passkey_credentials",
        "passkey_challenges",
        "access_credentials",
        "otp_challenges",
        "identities",
    ):
        op.drop_table(table)

    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).drop(op.get_bind())
