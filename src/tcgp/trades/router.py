"""Trade listing endpoints: browsing, creation, owner transitions and interest notices."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tcgp.auth.dependencies import get_current_user, get_optional_user
from tcgp.catalog.catalog import CardCatalog
from tcgp.database import get_session
from tcgp.db.models import User
from tcgp.dependencies import get_catalog
from tcgp.errors import ValidationError
from tcgp.notifications.schemas import NotificationResponse, NotifyRequest, NotifyResponse
from tcgp.notifications.service import notify
from tcgp.trades.lifecycle import complete_listing, create_listing, get_listing, refresh_listing
from tcgp.trades.query import ListingFilters, get_listing_view, list_active, list_user_listings
from tcgp.trades.schemas import (
    CreateListingRequest,
    ListingDetailResponse,
    ListingPageResponse,
    ListingResponse,
    UserListingsResponse,
)

router = APIRouter(prefix="/api/v1/trades", tags=["Trades"])


async def _detail(db: AsyncSession, catalog: CardCatalog, listing_id: str) -> ListingDetailResponse:
    post = await get_listing(db, listing_id)
    view, warnings = await get_listing_view(db, catalog, post)
    return ListingDetailResponse(**ListingResponse.from_view(view).model_dump(), warnings=warnings)


@router.get("", response_model=ListingPageResponse)
async def browse_trades(
    search: str | None = Query(None, max_length=100),
    rarity: str | None = Query(None),
    card_number: str | None = Query(None, max_length=32),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_session),
    catalog: CardCatalog = Depends(get_catalog),
) -> ListingPageResponse:
    """Active listings, most recently refreshed first. Public."""
    filters = ListingFilters(search=search, rarity=rarity or None, card_number=card_number or None)
    result = await list_active(db, catalog, filters, page=page, page_size=page_size)
    return ListingPageResponse.from_page(result)


@router.post("", response_model=ListingDetailResponse, status_code=201)
async def create_trade(
    body: CreateListingRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    catalog: CardCatalog = Depends(get_catalog),
) -> ListingDetailResponse:
    post = await create_listing(db, catalog, user.id, body.card_wanted, body.cards_for_trade, body.rarity)
    await db.commit()
    return await _detail(db, catalog, post.id)


@router.get("/mine", response_model=UserListingsResponse)
async def my_trades(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    catalog: CardCatalog = Depends(get_catalog),
) -> UserListingsResponse:
    """Every listing of the caller, grouped into active, expired and completed."""
    groups = await list_user_listings(db, catalog, user.id)
    return UserListingsResponse.from_groups(groups)


@router.get("/{listing_id}", response_model=ListingDetailResponse)
async def get_trade(
    listing_id: str,
    db: AsyncSession = Depends(get_session),
    catalog: CardCatalog = Depends(get_catalog),
) -> ListingDetailResponse:
    return await _detail(db, catalog, listing_id)


@router.post("/{listing_id}/refresh", response_model=ListingDetailResponse)
async def refresh_trade(
    listing_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    catalog: CardCatalog = Depends(get_catalog),
) -> ListingDetailResponse:
    """Reactivate an expired listing for another six hours. Owner only."""
    await refresh_listing(db, listing_id, user.id)
    await db.commit()
    return await _detail(db, catalog, listing_id)


@router.post("/{listing_id}/complete", response_model=ListingDetailResponse)
async def complete_trade(
    listing_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    catalog: CardCatalog = Depends(get_catalog),
) -> ListingDetailResponse:
    """Mark a listing as traded. Owner only."""
    await complete_listing(db, listing_id, user.id)
    await db.commit()
    return await _detail(db, catalog, listing_id)


@router.post("/{listing_id}/notify", response_model=NotifyResponse, status_code=201)
async def notify_owner(
    listing_id: str,
    body: NotifyRequest,
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
) -> NotifyResponse:
    """Tell a listing's owner you want to trade. Anonymous callers must give a username."""
    username = body.notifier_username
    if not (username and username.strip()) and user is not None:
        username = user.tcg_pocket_username
    if not (username and username.strip()):
        msg = "Your Pokemon TCG Pocket username is required"
        raise ValidationError(msg, field="notifier_username")

    result = await notify(
        db,
        listing_id,
        username,
        body.message,
        notifier_user_id=user.id if user is not None else None,
    )
    return NotifyResponse(
        notification=NotificationResponse.from_notification(result.notification),
        channels_attempted=result.channels_attempted,
    )
