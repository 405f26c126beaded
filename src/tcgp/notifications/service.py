"""Trade-interest notification recording and delivery.

Notifications are:
1. Persisted in the database, at most one per (listing, notifier username)
2. Delivered best-effort through the owner's enabled channels
3. Listed and marked read by the owner
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from tcgp.config import get_settings
from tcgp.db.models import User, UserNotification
from tcgp.errors import DuplicateNotificationError, NotFoundError, ValidationError
from tcgp.notifications.delivery import NotificationChannel, get_channels, interest_message
from tcgp.trades.lifecycle import get_listing

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

# Preference flag -> contact field holding the address for that channel
CONTACT_FIELDS = {"email": "email", "text": "phone"}


@dataclass
class NotifyResult:
    notification: UserNotification
    channels_attempted: list[str] = field(default_factory=list)


def _duplicate(notifier_username: str) -> DuplicateNotificationError:
    msg = f"{notifier_username} has already notified the owner of this listing"
    return DuplicateNotificationError(msg, field="notifier_username")


async def notify(
    db: AsyncSession,
    trade_post_id: str,
    notifier_username: str,
    message: str | None = None,
    notifier_user_id: str | None = None,
    channels: dict[str, NotificationChannel] | None = None,
) -> NotifyResult:
    """
    Record interest in a listing and tell its owner.

    The notification is committed before delivery is attempted; delivery
    errors are logged and never undo the record.

    Raises:
        NotFoundError: Listing does not exist.
        ValidationError: Blank username, message too long, or owner notifying themself.
        DuplicateNotificationError: This username already notified this listing.
    """
    post = await get_listing(db, trade_post_id)

    username = (notifier_username or "").strip()
    if not username:
        msg = "Your Pokemon TCG Pocket username is required"
        raise ValidationError(msg, field="notifier_username")
    max_length = get_settings().notification_message_max_length
    text = (message or "").strip() or None
    if text is not None and len(text) > max_length:
        msg = f"Message must be at most {max_length} characters"
        raise ValidationError(msg, field="message")
    if notifier_user_id is not None and notifier_user_id == post.user_id:
        msg = "You cannot notify your own listing"
        raise ValidationError(msg, field="trade_post_id")

    existing = await db.execute(
        select(UserNotification.id).where(
            UserNotification.trade_post_id == trade_post_id,
            UserNotification.notifier_username == username,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise _duplicate(username)

    notification = UserNotification(
        user_id=post.user_id,
        trade_post_id=trade_post_id,
        notifier_username=username,
        message=text,
        is_read=False,
    )
    db.add(notification)
    try:
        await db.flush()
        await db.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent insert for the same pair.
        await db.rollback()
        raise _duplicate(username) from e

    logger.info(
        "notification_recorded",
        notification_id=notification.id,
        trade_post_id=trade_post_id,
        recipient_id=post.user_id,
        notifier=username,
    )

    attempted = await _deliver(db, post.user_id, username, post.card_wanted, text, channels)
    return NotifyResult(notification=notification, channels_attempted=attempted)


async def _deliver(
    db: AsyncSession,
    owner_id: str,
    notifier_username: str,
    card_wanted: str,
    message: str | None,
    channels: dict[str, NotificationChannel] | None,
) -> list[str]:
    """Send through every channel the owner enabled and has a contact for."""
    channels = get_channels() if channels is None else channels
    attempted: list[str] = []
    try:
        owner = (await db.execute(select(User).where(User.id == owner_id))).scalar_one_or_none()
    except Exception:
        logger.warning("notification_owner_lookup_failed", owner_id=owner_id, exc_info=True)
        return attempted
    if owner is None:
        return attempted

    preference = owner.notification_preference or {}
    contact = owner.notification_contact or {}
    subject, body = interest_message(notifier_username, card_wanted, message)
    for flag, contact_field in CONTACT_FIELDS.items():
        channel = channels.get(flag)
        address = contact.get(contact_field)
        if channel is None or not preference.get(flag) or not address:
            continue
        attempted.append(flag)
        try:
            await channel.send(address, subject, body)
        except Exception:
            logger.warning("notification_delivery_failed", channel=flag, owner_id=owner_id, exc_info=True)
    return attempted


# ---------------------------------------------------------------------------
# Reading / marking
# ---------------------------------------------------------------------------


async def get_notifications(
    db: AsyncSession,
    user_id: str,
    page: int = 1,
    per_page: int = 20,
    unread_only: bool = False,
) -> tuple[list[UserNotification], int]:
    """Get user's notifications (paginated, most recent first)."""
    conditions = [UserNotification.user_id == user_id]
    if unread_only:
        conditions.append(UserNotification.is_read.is_(False))

    total_result = await db.execute(select(func.count()).select_from(UserNotification).where(*conditions))
    total = total_result.scalar_one()

    result = await db.execute(
        select(UserNotification)
        .options(selectinload(UserNotification.trade_post))
        .where(*conditions)
        .order_by(UserNotification.created_at.desc(), UserNotification.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def mark_read(db: AsyncSession, user_id: str, notification_id: str) -> None:
    """
    Mark a single notification as read. Marking it again is a no-op.

    Raises:
        NotFoundError: No such notification for this recipient.
    """
    result = await db.execute(
        update(UserNotification)
        .where(UserNotification.id == notification_id, UserNotification.user_id == user_id)
        .values(is_read=True)
    )
    if result.rowcount == 0:
        msg = "Notification not found"
        raise NotFoundError(msg)


async def mark_all_read(db: AsyncSession, user_id: str) -> int:
    """Mark all unread notifications as read. Returns count updated."""
    result = await db.execute(
        update(UserNotification)
        .where(UserNotification.user_id == user_id, UserNotification.is_read.is_(False))
        .values(is_read=True)
    )
    return result.rowcount


async def get_unread_count(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(UserNotification)
        .where(UserNotification.user_id == user_id, UserNotification.is_read.is_(False))
    )
    return result.scalar_one()
