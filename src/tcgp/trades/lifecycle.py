"""
Trade listing lifecycle.

A listing is ``active`` (is_active and not is_completed), ``expired`` (neither
flag) or ``completed`` (is_completed, terminal). Staleness is derived from
``last_refreshed``: past the expiry threshold a listing counts as expired even
before a sweep has cleared its flag.

Services flush; routers commit.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update

from tcgp.catalog.catalog import RARITIES, rarity_display_name
from tcgp.config import get_settings
from tcgp.db.models import TradePost, TradePostCard
from tcgp.errors import InvalidTransitionError, NotFoundError, UnauthorizedError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from tcgp.catalog.catalog import CardCatalog

logger = structlog.get_logger()

STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"
STATUS_COMPLETED = "completed"


# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; they were written as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _now(now: datetime | None) -> datetime:
    return _as_utc(now) if now is not None else datetime.now(timezone.utc)


def elapsed_hours(last_refreshed: datetime, now: datetime | None = None) -> float:
    """Hours since the listing was created or last refreshed."""
    return (_now(now) - _as_utc(last_refreshed)).total_seconds() / 3600


def is_expired(last_refreshed: datetime, now: datetime | None = None) -> bool:
    return elapsed_hours(last_refreshed, now) >= get_settings().listing_expiry_hours


def is_expiring_soon(last_refreshed: datetime, now: datetime | None = None) -> bool:
    """True inside the refresh window just before expiry."""
    settings = get_settings()
    hours = elapsed_hours(last_refreshed, now)
    return settings.listing_expiring_soon_hours <= hours < settings.listing_expiry_hours


def listing_status(post: TradePost) -> str:
    """State derived from the persisted flags only."""
    if post.is_completed:
        return STATUS_COMPLETED
    if post.is_active:
        return STATUS_ACTIVE
    return STATUS_EXPIRED


def effective_status(post: TradePost, now: datetime | None = None) -> str:
    """Like ``listing_status`` but a stale active listing counts as expired."""
    status = listing_status(post)
    if status == STATUS_ACTIVE and is_expired(post.last_refreshed, now):
        return STATUS_EXPIRED
    return status


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_listing(db: AsyncSession, listing_id: str) -> TradePost:
    """
    Fetch a listing by ID.

    Raises:
        NotFoundError: If no such listing exists.
    """
    result = await db.execute(
        select(TradePost).where(TradePost.id == listing_id).execution_options(populate_existing=True)
    )
    post = result.scalar_one_or_none()
    if post is None:
        msg = "Trade listing not found"
        raise NotFoundError(msg)
    return post


def _require_owner(post: TradePost, actor_id: str) -> None:
    if post.user_id != actor_id:
        msg = "Only the listing owner can do this"
        raise UnauthorizedError(msg)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


async def create_listing(
    db: AsyncSession,
    catalog: CardCatalog,
    owner_id: str,
    card_wanted: str,
    cards_for_trade: list[str],
    rarity: str,
    now: datetime | None = None,
) -> TradePost:
    """
    Create an active listing wanting ``card_wanted`` and offering ``cards_for_trade``.

    Every card must exist in the catalog and belong to the listing's rarity.
    The wanted card may also appear among the offered ones.

    Raises:
        ValidationError: Unknown rarity, nothing offered, or rarity mismatch.
        NotFoundError: A card number is not in the catalog.
    """
    if rarity not in RARITIES:
        msg = f"Unknown rarity '{rarity}'"
        raise ValidationError(msg, field="rarity")
    if not card_wanted or not card_wanted.strip():
        msg = "Select the card you want"
        raise ValidationError(msg, field="card_wanted")
    if not cards_for_trade:
        msg = "Select at least one card to offer"
        raise ValidationError(msg, field="cards_for_trade")

    label = rarity_display_name(rarity)
    for field, numbers in (("card_wanted", [card_wanted]), ("cards_for_trade", cards_for_trade)):
        for number in numbers:
            card = catalog.get_by_number(number)
            if card is None:
                msg = f"Card {number} not found"
                raise NotFoundError(msg, field=field)
            if card.rarity != rarity:
                msg = f"{card.name} ({number}) is not a {label} card"
                raise ValidationError(msg, field=field)

    now = _now(now)
    post = TradePost(
        user_id=owner_id,
        card_wanted=card_wanted,
        rarity=rarity,
        created_at=now,
        updated_at=now,
        last_refreshed=now,
        is_active=True,
        is_completed=False,
        offered_cards=[
            TradePostCard(position=i, card_number=number) for i, number in enumerate(cards_for_trade)
        ],
    )
    db.add(post)
    await db.flush()
    logger.info(
        "listing_created",
        listing_id=post.id,
        user_id=owner_id,
        card_wanted=card_wanted,
        offered=len(cards_for_trade),
        rarity=rarity,
    )
    return post


async def refresh_listing(
    db: AsyncSession,
    listing_id: str,
    actor_id: str,
    now: datetime | None = None,
) -> TradePost:
    """
    Bring an expired listing back to active and restart its clock.

    The update is conditional on the ``last_refreshed`` value that was read,
    so a sweep or a second refresh racing with this one cannot clobber it.

    Raises:
        NotFoundError: No such listing.
        UnauthorizedError: Caller is not the owner.
        InvalidTransitionError: Listing is completed or still fresh.
    """
    now = _now(now)
    post = await get_listing(db, listing_id)
    _require_owner(post, actor_id)

    status = effective_status(post, now)
    if status == STATUS_COMPLETED:
        msg = "Completed listings cannot be refreshed"
        raise InvalidTransitionError(msg)
    if status == STATUS_ACTIVE:
        msg = "Listing is still active and does not need a refresh"
        raise InvalidTransitionError(msg)

    observed = post.last_refreshed
    result = await db.execute(
        update(TradePost)
        .where(
            TradePost.id == listing_id,
            TradePost.is_completed.is_(False),
            TradePost.last_refreshed == observed,
        )
        .values(is_active=True, last_refreshed=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    await db.refresh(post)

    if result.rowcount == 0:
        # Row changed since it was read.
        if post.is_completed:
            msg = "Completed listings cannot be refreshed"
            raise InvalidTransitionError(msg)
        logger.info("listing_refresh_superseded", listing_id=listing_id)
        return post

    logger.info("listing_refreshed", listing_id=listing_id, user_id=actor_id)
    return post


async def complete_listing(
    db: AsyncSession,
    listing_id: str,
    actor_id: str,
    now: datetime | None = None,
) -> TradePost:
    """
    Mark a listing as traded. Completing twice returns the listing unchanged.

    Raises:
        NotFoundError: No such listing.
        UnauthorizedError: Caller is not the owner.
    """
    post = await get_listing(db, listing_id)
    _require_owner(post, actor_id)

    if post.is_completed:
        return post

    now = _now(now)
    await db.execute(
        update(TradePost)
        .where(TradePost.id == listing_id, TradePost.is_completed.is_(False))
        .values(is_active=False, is_completed=True, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    await db.refresh(post)
    logger.info("listing_completed", listing_id=listing_id, user_id=actor_id)
    return post


async def sweep_expired(db: AsyncSession, now: datetime | None = None) -> int:
    """
    Clear the active flag on every listing past the expiry threshold.

    Safe to run concurrently: the predicate is re-evaluated per row by the
    database, so overlapping sweeps converge and a listing refreshed in the
    meantime no longer matches.

    Returns:
        Number of listings expired by this call.
    """
    threshold = _now(now) - timedelta(hours=get_settings().listing_expiry_hours)
    result = await db.execute(
        update(TradePost)
        .where(
            TradePost.is_active.is_(True),
            TradePost.is_completed.is_(False),
            TradePost.last_refreshed <= threshold,
        )
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    count = result.rowcount or 0
    if count:
        logger.info("listings_expired", count=count)
    return count
