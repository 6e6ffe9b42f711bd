"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates the Radr tables: users, radr_groups, radr_group_members,
radr_messages. Presence is in-memory and has no table.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("name", sa.String(150), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("profile_icon", sa.String(50), nullable=True),
        sa.Column("profile_color", sa.String(20), nullable=True),
        sa.Column("is_admin", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    # --- radr_groups ---
    op.create_table(
        "radr_groups",
        sa.Column("group_id", sa.String(36), primary_key=True),
        sa.Column("creator_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("target_name", sa.String(200), nullable=False),
        sa.Column("target_lat", sa.Float, nullable=False),
        sa.Column("target_lng", sa.Float, nullable=False),
        sa.Column("target_radius_km", sa.Float, nullable=False, server_default="10"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("encryption_key", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_radr_groups_expires_at", "radr_groups", ["expires_at"])

    # --- radr_group_members ---
    op.create_table(
        "radr_group_members",
        sa.Column("group_id", sa.String(36), sa.ForeignKey("radr_groups.group_id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), primary_key=True),
        sa.Column("has_arrived", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("arrived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # --- radr_messages ---
    op.create_table(
        "radr_messages",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("group_id", sa.String(36), sa.ForeignKey("radr_groups.group_id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("type", sa.Enum("text", "arrival", "leave", name="messagetype"), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("metadata", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_radr_messages_group_id", "radr_messages", ["group_id"])
    op.create_index("ix_radr_messages_created_at", "radr_messages", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_radr_messages_created_at", table_name="radr_messages")
    op.drop_index("ix_radr_messages_group_id", table_name="radr_messages")
    op.drop_table("radr_messages")
    sa.Enum(name="messagetype").drop(op.get_bind(), checkfirst=True)
    op.drop_table("radr_group_members")
    op.drop_index("ix_radr_groups_expires_at", table_name="radr_groups")
    op.drop_table("radr_groups")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
