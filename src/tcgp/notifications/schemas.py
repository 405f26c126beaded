"""Pydantic schemas for notification endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from tcgp.db.models import UserNotification


class NotifyRequest(BaseModel):
    """Interest notice. Signed-in callers may omit the username to use their profile's."""

    notifier_username: str | None = Field(None, max_length=64)
    message: str | None = Field(None, max_length=1000)


class NotificationResponse(BaseModel):
    id: str
    trade_post_id: str
    card_wanted: str | None = None
    notifier_username: str
    message: str | None
    created_at: datetime
    is_read: bool

    @classmethod
    def from_notification(cls, n: UserNotification, include_listing: bool = False) -> NotificationResponse:
        return cls(
            id=n.id,
            trade_post_id=n.trade_post_id,
            card_wanted=n.trade_post.card_wanted if include_listing and n.trade_post else None,
            notifier_username=n.notifier_username,
            message=n.message,
            created_at=n.created_at,
            is_read=n.is_read,
        )


class NotifyResponse(BaseModel):
    notification: NotificationResponse
    channels_attempted: list[str]


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    page: int
    per_page: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkReadResponse(BaseModel):
    id: str
    is_read: bool


class MarkAllReadResponse(BaseModel):
    updated: int
