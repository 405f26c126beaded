"""ORM models for users, trade listings, missing cards and notifications.

Tables are created by ``alembic/versions/001_baseline.py``; the models mirror
that schema.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tcgp.db.base import Base, JSONType

# Digits in a Pokemon TCG Pocket friend code, as stored (no separators).
FRIEND_CODE_LENGTH = 16


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _default_preference() -> dict[str, bool]:
    return {"email": False, "text": False}


def _default_contact() -> dict[str, str | None]:
    return {"email": None, "phone": None}


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """A registered trader."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(256), nullable=True)
    friend_code: Mapped[str | None] = mapped_column(String(FRIEND_CODE_LENGTH), nullable=True)
    tcg_pocket_username: Mapped[str | None] = mapped_column(String(64), nullable=True)
    notification_preference: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=_default_preference
    )
    notification_contact: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=_default_contact)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    trade_posts: Mapped[list[TradePost]] = relationship("TradePost", back_populates="user")
    missing_cards: Mapped[list[UserMissingCard]] = relationship(
        "UserMissingCard", back_populates="user", cascade="all, delete-orphan"
    )


class UserMissingCard(Base):
    """Membership of a card in a user's missing-cards set."""

    __tablename__ = "user_missing_cards"
    __table_args__ = (UniqueConstraint("user_id", "card_number", name="uq_user_missing_cards_user_card"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    card_number: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    user: Mapped[User] = relationship("User", back_populates="missing_cards")


# ---------------------------------------------------------------------------
# Trade listings
# ---------------------------------------------------------------------------


class TradePost(Base):
    """A "want X, offer [Y, Z]" listing.

    State is carried by two flags: active (is_active, not is_completed),
    expired (neither), completed (is_completed, terminal).
    """

    __tablename__ = "trade_posts"
    __table_args__ = (
        CheckConstraint("NOT (is_active AND is_completed)", name="active_not_completed"),
        Index("ix_trade_posts_active_refreshed", "is_active", "is_completed", "last_refreshed"),
        Index("ix_trade_posts_user_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    card_wanted: Mapped[str] = mapped_column(String(32), nullable=False)
    rarity: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_refreshed: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    user: Mapped[User] = relationship("User", back_populates="trade_posts")
    offered_cards: Mapped[list[TradePostCard]] = relationship(
        "TradePostCard",
        order_by="TradePostCard.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def cards_for_trade(self) -> list[str]:
        """Offered card numbers in the order the owner listed them."""
        return [c.card_number for c in self.offered_cards]


class TradePostCard(Base):
    """One offered card of a listing, keeping its position."""

    __tablename__ = "trade_post_cards"

    trade_post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("trade_posts.id", ondelete="CASCADE"), primary_key=True
    )
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    card_number: Mapped[str] = mapped_column(String(32), nullable=False, index=True)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class UserNotification(Base):
    """Interest notice addressed to a listing owner."""

    __tablename__ = "user_notifications"
    __table_args__ = (
        UniqueConstraint("trade_post_id", "notifier_username", name="uq_user_notifications_post_notifier"),
        Index("ix_user_notifications_user_created", "user_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    trade_post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("trade_posts.id", ondelete="CASCADE"), nullable=False
    )
    notifier_username: Mapped[str] = mapped_column(String(64), nullable=False)
    message: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    trade_post: Mapped[TradePost] = relationship("TradePost")
