"""Initial schema

Revision ID: 4b8e2c1d9a7f
Revises:
Create Date: 2026-10-19 09:12:44.218305

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4b8e2c1d9a7f"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Create users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("gender", sa.String(20), nullable=False),
        sa.Column("branch", sa.String(100), nullable=False),
        sa.Column("year", sa.String(50), nullable=False),
        sa.Column("bio", sa.Text(), nullable=False, server_default=""),
        sa.Column("photo", sa.String(500), nullable=False, server_default=""),
        sa.Column("show_me", sa.String(20), nullable=False, server_default="all"),
        sa.Column("interests", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("green_flags", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("red_flags", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    # Create swipes table
    op.create_table(
        "swipes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("target_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", sa.String(10), nullable=False),
        sa.Column("is_super_like", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "target_id", name="uq_swipes_user_target"),
        sa.CheckConstraint("action IN ('like', 'pass')", name="ck_swipes_action"),
    )

    # Create matches table
    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user1_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("user2_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user1_id", "user2_id", name="uq_matches_pair"),
        sa.CheckConstraint("user1_id < user2_id", name="ck_matches_canonical_order"),
    )

    # Create messages table
    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("match_id", sa.Integer(), sa.ForeignKey("matches.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False, server_default=""),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("voice_url", sa.String(500), nullable=True),
        sa.Column("reply_to_id", sa.Integer(), sa.ForeignKey("messages.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    # Create reports table
    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("reporter_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reported_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reason", sa.String(100), nullable=False),
        sa.Column("details", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    # Create indexes
    op.create_index("idx_users_is_active", "users", ["is_active"])
    op.create_index("idx_swipes_user", "swipes", ["user_id"])
    op.create_index("idx_swipes_target", "swipes", ["target_id"])
    op.create_index("idx_matches_user1", "matches", ["user1_id"])
    op.create_index("idx_matches_user2", "matches", ["user2_id"])
    op.create_index("idx_messages_match", "messages", ["match_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("idx_messages_match", table_name="messages")
    op.drop_index("idx_matches_user2", table_name="matches")
    op.drop_index("idx_matches_user1", table_name="matches")
    op.drop_index("idx_swipes_target", table_name="swipes")
    op.drop_index("idx_swipes_user", table_name="swipes")
    op.drop_index("idx_users_is_active", table_name="users")
    op.drop_table("reports")
    op.drop_table("messages")
    op.drop_table("matches")
    op.drop_table("swipes")
    op.drop_table("users")
