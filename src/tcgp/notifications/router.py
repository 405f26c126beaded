"""Notification inbox endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tcgp.auth.dependencies import get_current_user
from tcgp.database import get_session
from tcgp.db.models import User
from tcgp.notifications.schemas import (
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from tcgp.notifications.service import get_notifications, get_unread_count, mark_all_read, mark_read

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> NotificationListResponse:
    """List the caller's notifications (paginated)."""
    notifications, total = await get_notifications(db, user.id, page, per_page, unread_only)
    return NotificationListResponse(
        notifications=[NotificationResponse.from_notification(n, include_listing=True) for n in notifications],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UnreadCountResponse:
    count = await get_unread_count(db, user.id)
    return UnreadCountResponse(unread_count=count)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def read_all(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MarkAllReadResponse:
    """Mark all notifications as read."""
    count = await mark_all_read(db, user.id)
    await db.commit()
    return MarkAllReadResponse(updated=count)


@router.post("/{notification_id}/read", response_model=MarkReadResponse)
async def read_one(
    notification_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MarkReadResponse:
    """Mark a notification as read."""
    await mark_read(db, user.id, notification_id)
    await db.commit()
    return MarkReadResponse(id=notification_id, is_read=True)
