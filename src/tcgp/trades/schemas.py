"""Pydantic schemas for trade listing endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from tcgp.catalog.schemas import CardResponse
from tcgp.trades.query import ListingPage, ListingView, OwnerInfo, UserListings
from tcgp.users.friend_code import format_friend_code


class CreateListingRequest(BaseModel):
    card_wanted: str = Field(..., max_length=32)
    cards_for_trade: list[str] = Field(default_factory=list, max_length=20)
    rarity: str = Field(..., max_length=16)


class OwnerResponse(BaseModel):
    id: str
    email: str
    friend_code: str | None
    friend_code_display: str | None
    username: str | None

    @classmethod
    def from_owner(cls, owner: OwnerInfo) -> OwnerResponse:
        return cls(
            id=owner.id,
            email=owner.email,
            friend_code=owner.friend_code,
            friend_code_display=format_friend_code(owner.friend_code) or None,
            username=owner.username,
        )


class ListingResponse(BaseModel):
    id: str
    user_id: str
    rarity: str
    status: str
    expiring_soon: bool
    is_active: bool
    is_completed: bool
    created_at: datetime
    updated_at: datetime
    last_refreshed: datetime
    card_wanted: CardResponse
    cards_for_trade: list[CardResponse]
    owner: OwnerResponse | None = None

    @classmethod
    def from_view(cls, view: ListingView) -> ListingResponse:
        return cls(
            id=view.id,
            user_id=view.user_id,
            rarity=view.rarity,
            status=view.status,
            expiring_soon=view.expiring_soon,
            is_active=view.is_active,
            is_completed=view.is_completed,
            created_at=view.created_at,
            updated_at=view.updated_at,
            last_refreshed=view.last_refreshed,
            card_wanted=CardResponse.from_card(view.card_wanted),
            cards_for_trade=[CardResponse.from_card(c) for c in view.cards_for_trade],
            owner=OwnerResponse.from_owner(view.owner) if view.owner else None,
        )


class ListingDetailResponse(ListingResponse):
    warnings: list[str] = []


class ListingPageResponse(BaseModel):
    items: list[ListingResponse]
    total_count: int
    total_pages: int
    page: int
    page_size: int
    warnings: list[str]

    @classmethod
    def from_page(cls, page: ListingPage) -> ListingPageResponse:
        return cls(
            items=[ListingResponse.from_view(v) for v in page.items],
            total_count=page.total_count,
            total_pages=page.total_pages,
            page=page.page,
            page_size=page.page_size,
            warnings=page.warnings,
        )


class UserListingsResponse(BaseModel):
    active: list[ListingResponse]
    expired: list[ListingResponse]
    completed: list[ListingResponse]
    warnings: list[str]

    @classmethod
    def from_groups(cls, groups: UserListings) -> UserListingsResponse:
        return cls(
            active=[ListingResponse.from_view(v) for v in groups.active],
            expired=[ListingResponse.from_view(v) for v in groups.expired],
            completed=[ListingResponse.from_view(v) for v in groups.completed],
            warnings=groups.warnings,
        )
