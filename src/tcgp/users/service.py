"""User profile and missing-cards business logic."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from tcgp.db.models import FRIEND_CODE_LENGTH, User, UserMissingCard
from tcgp.errors import NotFoundError, ValidationError
from tcgp.users.friend_code import is_valid_friend_code, normalize_friend_code

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from tcgp.catalog.catalog import Card, CardCatalog

logger = structlog.get_logger()


async def update_profile(
    db: AsyncSession,
    user: User,
    friend_code: str | None = None,
    tcg_pocket_username: str | None = None,
    notification_preference: dict[str, Any] | None = None,
    notification_contact: dict[str, Any] | None = None,
) -> User:
    """
    Update user profile fields.

    Raises:
        ValidationError: If the friend code is malformed, the username is
            blank, or a notification channel is enabled without its contact.
    """
    if friend_code is not None:
        if not friend_code.strip():
            msg = "Friend code is required"
            raise ValidationError(msg, field="friend_code")
        if not is_valid_friend_code(friend_code):
            msg = f"Invalid friend code format. Should be {FRIEND_CODE_LENGTH} digits (e.g. 1234-5678-9012-3456)"
            raise ValidationError(msg, field="friend_code")

    if tcg_pocket_username is not None and not tcg_pocket_username.strip():
        msg = "Pokemon TCG Pocket username is required"
        raise ValidationError(msg, field="tcg_pocket_username")

    preference = dict(user.notification_preference or {})
    if notification_preference is not None:
        preference.update(notification_preference)
    contact = dict(user.notification_contact or {})
    if notification_contact is not None:
        contact.update({k: (v.strip() or None) if isinstance(v, str) else v for k, v in notification_contact.items()})

    if preference.get("email") and not contact.get("email"):
        msg = "Email address is required for email notifications"
        raise ValidationError(msg, field="notification_contact.email")
    if preference.get("text") and not contact.get("phone"):
        msg = "Phone number is required for text notifications"
        raise ValidationError(msg, field="notification_contact.phone")

    if friend_code is not None:
        user.friend_code = normalize_friend_code(friend_code)
    if tcg_pocket_username is not None:
        user.tcg_pocket_username = tcg_pocket_username.strip()
    user.notification_preference = preference
    user.notification_contact = contact
    user.updated_at = datetime.now(timezone.utc)

    await db.flush()
    logger.info("profile_updated", user_id=user.id)
    return user


# ---------------------------------------------------------------------------
# Missing cards
# ---------------------------------------------------------------------------


async def get_missing_card_numbers(db: AsyncSession, user_id: str) -> list[str]:
    result = await db.execute(
        select(UserMissingCard.card_number)
        .where(UserMissingCard.user_id == user_id)
        .order_by(UserMissingCard.card_number)
    )
    return list(result.scalars().all())


async def list_missing_cards(db: AsyncSession, catalog: CardCatalog, user_id: str) -> list[Card]:
    """Missing cards with catalog details. Numbers the catalog no longer knows are skipped."""
    numbers = await get_missing_card_numbers(db, user_id)
    return catalog.get_by_numbers(numbers)


async def toggle_missing_card(db: AsyncSession, catalog: CardCatalog, user_id: str, card_number: str) -> bool:
    """
    Flip membership of a card in the user's missing set.

    Returns:
        True if the card is now missing, False if it was removed.

    Raises:
        NotFoundError: If the card is not in the catalog.
    """
    if catalog.get_by_number(card_number) is None:
        msg = f"Card {card_number} not found"
        raise NotFoundError(msg, field="card_number")

    result = await db.execute(
        delete(UserMissingCard).where(
            UserMissingCard.user_id == user_id,
            UserMissingCard.card_number == card_number,
        )
    )
    if result.rowcount:
        await db.flush()
        logger.info("missing_card_removed", user_id=user_id, card_number=card_number)
        return False

    db.add(UserMissingCard(user_id=user_id, card_number=card_number))
    try:
        await db.flush()
    except IntegrityError:
        # A concurrent toggle added the same card first; it is a member either way.
        await db.rollback()
        logger.info("missing_card_add_raced", user_id=user_id, card_number=card_number)
        return True
    logger.info("missing_card_added", user_id=user_id, card_number=card_number)
    return True
