"""
Listing queries: browse, filter, paginate and enrich.

Read paths degrade instead of failing. A sweep that cannot run, a query that
errors or a catalog that will not load each add a message to
``ListingPage.warnings`` and the caller still gets a (possibly empty) page.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from tcgp.catalog.catalog import Card, placeholder_card
from tcgp.config import get_settings
from tcgp.db.models import TradePost, TradePostCard, User
from tcgp.errors import BackendUnavailableError
from tcgp.trades.lifecycle import (
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_EXPIRED,
    effective_status,
    is_expiring_soon,
    sweep_expired,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from tcgp.catalog.catalog import CardCatalog

logger = structlog.get_logger()

SWEEP_WARNING = "Expired listings could not be cleaned up; some stale listings may still appear"
QUERY_WARNING = "Trade listings are temporarily unavailable"
CATALOG_WARNING = "Card details are temporarily unavailable"
OWNER_WARNING = "Some listing owners could not be loaded"


@dataclass
class ListingFilters:
    search: str | None = None
    rarity: str | None = None
    card_number: str | None = None


@dataclass
class OwnerInfo:
    """Public fields of a listing owner."""

    id: str
    email: str
    friend_code: str | None
    username: str | None

    @classmethod
    def from_user(cls, user: User) -> OwnerInfo:
        return cls(
            id=user.id,
            email=user.email,
            friend_code=user.friend_code,
            username=user.tcg_pocket_username,
        )


@dataclass
class ListingView:
    """A listing with its cards resolved against the catalog."""

    id: str
    user_id: str
    rarity: str
    status: str
    expiring_soon: bool
    created_at: datetime
    updated_at: datetime
    last_refreshed: datetime
    is_active: bool
    is_completed: bool
    card_wanted: Card
    cards_for_trade: list[Card]
    owner: OwnerInfo | None = None


@dataclass
class ListingPage:
    items: list[ListingView]
    total_count: int
    total_pages: int
    page: int
    page_size: int
    warnings: list[str] = field(default_factory=list)


@dataclass
class UserListings:
    """A user's own listings split by effective status."""

    active: list[ListingView] = field(default_factory=list)
    expired: list[ListingView] = field(default_factory=list)
    completed: list[ListingView] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------


def _catalog_available(catalog: CardCatalog, warnings: list[str]) -> bool:
    try:
        catalog.load()
    except BackendUnavailableError:
        warnings.append(CATALOG_WARNING)
        return False
    return True


def enrich_listing(
    post: TradePost,
    catalog: CardCatalog | None,
    owner: OwnerInfo | None = None,
    now: datetime | None = None,
) -> ListingView:
    """
    Resolve a listing's card numbers to catalog cards.

    Numbers the catalog does not know, or every number when ``catalog`` is
    None, become "Unknown Card" placeholders carrying the listing's rarity.
    """

    def resolve(number: str) -> Card:
        card = catalog.get_by_number(number) if catalog is not None else None
        return card if card is not None else placeholder_card(number, post.rarity)

    return ListingView(
        id=post.id,
        user_id=post.user_id,
        rarity=post.rarity,
        status=effective_status(post, now),
        expiring_soon=post.is_active and not post.is_completed and is_expiring_soon(post.last_refreshed, now),
        created_at=post.created_at,
        updated_at=post.updated_at,
        last_refreshed=post.last_refreshed,
        is_active=post.is_active,
        is_completed=post.is_completed,
        card_wanted=resolve(post.card_wanted),
        cards_for_trade=[resolve(n) for n in post.cards_for_trade],
        owner=owner,
    )


def apply_search(items: list[ListingView], search: str | None) -> list[ListingView]:
    """Keep listings whose wanted or offered card name/number contains ``search``."""
    needle = (search or "").strip().lower()
    if not needle:
        return items

    def matches(card: Card) -> bool:
        return needle in card.name.lower() or needle in card.number.lower()

    return [v for v in items if matches(v.card_wanted) or any(matches(c) for c in v.cards_for_trade)]


# ---------------------------------------------------------------------------
# Owners
# ---------------------------------------------------------------------------


async def resolve_owners(
    db: AsyncSession,
    rows: list[tuple[TradePost, User | None]],
    warnings: list[str] | None = None,
) -> dict[str, OwnerInfo | None]:
    """
    Map listing id to owner info.

    ``rows`` comes from an outer join; listings whose owner the join did not
    return are looked up one by one on ``user_id``.
    """
    owners: dict[str, OwnerInfo | None] = {}
    for post, user in rows:
        if user is not None:
            owners[post.id] = OwnerInfo.from_user(user)
            continue
        try:
            result = await db.execute(select(User).where(User.id == post.user_id))
            fallback = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.warning("owner_lookup_failed", listing_id=post.id, user_id=post.user_id, error=str(e))
            if warnings is not None and OWNER_WARNING not in warnings:
                warnings.append(OWNER_WARNING)
            fallback = None
        owners[post.id] = OwnerInfo.from_user(fallback) if fallback is not None else None
    return owners


# ---------------------------------------------------------------------------
# Browse
# ---------------------------------------------------------------------------


def _active_filters(filters: ListingFilters) -> list:
    conditions = [TradePost.is_active.is_(True), TradePost.is_completed.is_(False)]
    if filters.rarity:
        conditions.append(TradePost.rarity == filters.rarity)
    if filters.card_number:
        number = filters.card_number.strip()
        conditions.append(
            or_(
                TradePost.card_wanted == number,
                TradePost.id.in_(select(TradePostCard.trade_post_id).where(TradePostCard.card_number == number)),
            )
        )
    return conditions


async def list_active(
    db: AsyncSession,
    catalog: CardCatalog,
    filters: ListingFilters | None = None,
    page: int = 1,
    page_size: int | None = None,
    now: datetime | None = None,
) -> ListingPage:
    """
    One page of active listings, most recently refreshed first.

    Expired listings are swept first. ``total_count`` and ``total_pages``
    describe the filtered set before the free-text search, which only narrows
    the returned page.
    """
    settings = get_settings()
    filters = filters or ListingFilters()
    page = max(page, 1)
    page_size = min(max(page_size or settings.listings_page_size, 1), settings.listings_max_page_size)
    warnings: list[str] = []

    try:
        await sweep_expired(db, now)
        # Committed on its own so a failing query below cannot undo it.
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("listing_sweep_failed", error=str(e))
        warnings.append(SWEEP_WARNING)

    conditions = _active_filters(filters)
    try:
        total_count = (
            await db.execute(select(func.count()).select_from(TradePost).where(*conditions))
        ).scalar_one()
        result = await db.execute(
            select(TradePost, User)
            .outerjoin(User, User.id == TradePost.user_id)
            .where(*conditions)
            .order_by(TradePost.last_refreshed.desc(), TradePost.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        rows = [(row[0], row[1]) for row in result.all()]
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("listing_query_failed", error=str(e))
        warnings.append(QUERY_WARNING)
        return ListingPage(items=[], total_count=0, total_pages=0, page=page, page_size=page_size, warnings=warnings)

    owners = await resolve_owners(db, rows, warnings)
    usable = catalog if _catalog_available(catalog, warnings) else None
    items = [enrich_listing(post, usable, owners.get(post.id), now) for post, _ in rows]
    items = apply_search(items, filters.search)

    return ListingPage(
        items=items,
        total_count=total_count,
        total_pages=math.ceil(total_count / page_size),
        page=page,
        page_size=page_size,
        warnings=warnings,
    )


async def get_listing_view(
    db: AsyncSession,
    catalog: CardCatalog,
    post: TradePost,
    now: datetime | None = None,
) -> tuple[ListingView, list[str]]:
    """Enrich a single listing with its owner and cards."""
    warnings: list[str] = []
    owners = await resolve_owners(db, [(post, None)], warnings)
    usable = catalog if _catalog_available(catalog, warnings) else None
    return enrich_listing(post, usable, owners.get(post.id), now), warnings


async def list_user_listings(
    db: AsyncSession,
    catalog: CardCatalog,
    user_id: str,
    now: datetime | None = None,
) -> UserListings:
    """All listings of one owner, newest update first, grouped by status."""
    grouped = UserListings()
    try:
        result = await db.execute(
            select(TradePost).where(TradePost.user_id == user_id).order_by(TradePost.updated_at.desc())
        )
        posts = list(result.scalars().all())
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("user_listings_query_failed", user_id=user_id, error=str(e))
        grouped.warnings.append(QUERY_WARNING)
        return grouped

    usable = catalog if _catalog_available(catalog, grouped.warnings) else None
    buckets = {
        STATUS_ACTIVE: grouped.active,
        STATUS_EXPIRED: grouped.expired,
        STATUS_COMPLETED: grouped.completed,
    }
    for post in posts:
        view = enrich_listing(post, usable, None, now)
        buckets[view.status].append(view)
    return grouped


async def list_recent_active(
    db: AsyncSession,
    catalog: CardCatalog,
    limit: int,
    now: datetime | None = None,
) -> tuple[list[ListingView], list[str]]:
    """Newest active listings across all users, by creation time."""
    warnings: list[str] = []
    try:
        result = await db.execute(
            select(TradePost, User)
            .outerjoin(User, User.id == TradePost.user_id)
            .where(TradePost.is_active.is_(True), TradePost.is_completed.is_(False))
            .order_by(TradePost.created_at.desc(), TradePost.id)
            .limit(limit)
        )
        rows = [(row[0], row[1]) for row in result.all()]
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("recent_listings_query_failed", error=str(e))
        return [], [QUERY_WARNING]

    owners = await resolve_owners(db, rows, warnings)
    usable = catalog if _catalog_available(catalog, warnings) else None
    return [enrich_listing(post, usable, owners.get(post.id), now) for post, _ in rows], warnings
