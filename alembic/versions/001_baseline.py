"""Baseline: users, missing cards, trade listings and notifications.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op
from tcgp.db.models import FRIEND_CODE_LENGTH

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the trading schema."""
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=True),
        sa.Column("friend_code", sa.String(FRIEND_CODE_LENGTH), nullable=True),
        sa.Column("tcg_pocket_username", sa.String(64), nullable=True),
        sa.Column(
            "notification_preference",
            postgresql.JSONB(),
            server_default=sa.text("""'{"email": false, "text": false}'::jsonb"""),
            nullable=False,
        ),
        sa.Column(
            "notification_contact",
            postgresql.JSONB(),
            server_default=sa.text("""'{"email": null, "phone": null}'::jsonb"""),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.execute(
        "ALTER TABLE users ADD CONSTRAINT ck_users_friend_code_digits "
        f"CHECK (friend_code IS NULL OR friend_code ~ '^[0-9]{{{FRIEND_CODE_LENGTH}}}$')"
    )

    # --- user_missing_cards ---
    op.create_table(
        "user_missing_cards",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("card_number", sa.String(32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_user_missing_cards"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_user_missing_cards_user_id_users", ondelete="CASCADE"
        ),
        sa.UniqueConstraint("user_id", "card_number", name="uq_user_missing_cards_user_card"),
    )

    # --- trade_posts ---
    op.create_table(
        "trade_posts",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("card_wanted", sa.String(32), nullable=False),
        sa.Column("rarity", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("last_refreshed", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("is_completed", sa.Boolean(), server_default="false", nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_trade_posts"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_trade_posts_user_id_users", ondelete="CASCADE"),
        sa.CheckConstraint("NOT (is_active AND is_completed)", name="ck_trade_posts_active_not_completed"),
        sa.CheckConstraint(
            "rarity IN ('1-diamond', '2-diamond', '3-diamond', '4-diamond', '1-star')",
            name="ck_trade_posts_rarity",
        ),
    )
    op.create_index("ix_trade_posts_user_id", "trade_posts", ["user_id"])
    # Sweep and browse both filter on the flags and order by last_refreshed
    op.create_index(
        "ix_trade_posts_active_refreshed", "trade_posts", ["is_active", "is_completed", "last_refreshed"]
    )

    # --- trade_post_cards ---
    op.create_table(
        "trade_post_cards",
        sa.Column("trade_post_id", sa.String(36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("card_number", sa.String(32), nullable=False),
        sa.PrimaryKeyConstraint("trade_post_id", "position", name="pk_trade_post_cards"),
        sa.ForeignKeyConstraint(
            ["trade_post_id"],
            ["trade_posts.id"],
            name="fk_trade_post_cards_trade_post_id_trade_posts",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_trade_post_cards_card_number", "trade_post_cards", ["card_number"])

    # --- user_notifications ---
    op.create_table(
        "user_notifications",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("trade_post_id", sa.String(36), nullable=False),
        sa.Column("notifier_username", sa.String(64), nullable=False),
        sa.Column("message", sa.String(200), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("is_read", sa.Boolean(), server_default="false", nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_user_notifications"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_user_notifications_user_id_users", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["trade_post_id"],
            ["trade_posts.id"],
            name="fk_user_notifications_trade_post_id_trade_posts",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("trade_post_id", "notifier_username", name="uq_user_notifications_post_notifier"),
    )
    op.create_index("ix_user_notifications_user_created", "user_notifications", ["user_id", "created_at"])


def downgrade() -> None:
    """Drop the trading schema."""
    op.drop_table("user_notifications")
    op.drop_table("trade_post_cards")
    op.drop_table("trade_posts")
    op.drop_table("user_missing_cards")
    op.drop_table("users")
