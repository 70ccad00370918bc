"""create chat tables

Revision ID: 20261018_01
Revises: 
Create Date: 2026-10-18 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_01"
down_revision = None
branch_labels = None
depends_on = None


FRIEND_REQUEST_STATUS = sa.Enum("pending", "accepted", name="friend_request_status")


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        _timestamp("created_at"),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "servers",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("owner", sa.String(length=64), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["owner"], ["users.username"], ondelete="CASCADE"),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "server_members",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("server_id", sa.String(length=64), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        _timestamp("joined_at"),
        sa.ForeignKeyConstraint(["server_id"], ["servers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["username"], ["users.username"], ondelete="CASCADE"),
        sa.UniqueConstraint("server_id", "username", name="uq_server_member"),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "channels",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("server_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["server_id"], ["servers.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("server_id", "name", name="uq_channel_server_name"),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("server_id", sa.String(length=64), nullable=False),
        sa.Column("channel", sa.String(length=128), nullable=False),
        sa.Column("author", sa.String(length=64), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["server_id"], ["servers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author"], ["users.username"], ondelete="CASCADE"),
        mysql_charset="utf8mb4",
    )
    op.create_index(
        "ix_messages_server_channel_created_at",
        "messages",
        ["server_id", "channel", "created_at"],
    )

    op.create_table(
        "direct_messages",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("sender", sa.String(length=64), nullable=False),
        sa.Column("recipient", sa.String(length=64), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["sender"], ["users.username"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["recipient"], ["users.username"], ondelete="CASCADE"),
        mysql_charset="utf8mb4",
    )
    op.create_index(
        "ix_direct_messages_pair",
        "direct_messages",
        ["sender", "recipient", "created_at"],
    )

    op.create_table(
        "global_messages",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("author", sa.String(length=64), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["author"], ["users.username"], ondelete="CASCADE"),
        mysql_charset="utf8mb4",
    )

    op.create_table(
        "friend_links",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_low", sa.String(length=64), nullable=False),
        sa.Column("user_high", sa.String(length=64), nullable=False),
        sa.Column("requester", sa.String(length=64), nullable=False),
        sa.Column("status", FRIEND_REQUEST_STATUS, nullable=False, server_default="pending"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["user_low"], ["users.username"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_high"], ["users.username"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_low", "user_high", name="uq_friend_link_pair"),
        mysql_charset="utf8mb4",
    )


def downgrade() -> None:
    op.drop_table("friend_links")
    op.drop_table("global_messages")
    op.drop_index("ix_direct_messages_pair", table_name="direct_messages")
    op.drop_table("direct_messages")
    op.drop_index("ix_messages_server_channel_created_at", table_name="messages")
    op.drop_table("messages")
    op.drop_table("channels")
    op.drop_table("server_members")
    op.drop_table("servers")
    op.drop_table("users")
    FRIEND_REQUEST_STATUS.drop(op.get_bind(), checkfirst=True)
