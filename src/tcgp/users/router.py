"""User endpoints: profile and missing cards."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tcgp.auth.dependencies import get_current_user
from tcgp.catalog.catalog import CardCatalog
from tcgp.catalog.schemas import CardResponse
from tcgp.database import get_session
from tcgp.db.models import User
from tcgp.dependencies import get_catalog
from tcgp.users.schemas import (
    MissingCardsResponse,
    MissingCardToggleResponse,
    ProfileUpdateRequest,
    UserResponse,
)
from tcgp.users.service import list_missing_cards, toggle_missing_card, update_profile

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    """Get the caller's profile."""
    return UserResponse.from_user(user)


@router.patch("/me", response_model=UserResponse)
async def patch_me(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update friend code, username and notification settings."""
    user = await update_profile(
        db,
        user,
        friend_code=body.friend_code,
        tcg_pocket_username=body.tcg_pocket_username,
        notification_preference=body.notification_preference.model_dump()
        if body.notification_preference
        else None,
        notification_contact=body.notification_contact.model_dump(exclude_unset=True)
        if body.notification_contact
        else None,
    )
    await db.commit()
    return UserResponse.from_user(user)


@router.get("/me/missing-cards", response_model=MissingCardsResponse)
async def get_missing_cards(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    catalog: CardCatalog = Depends(get_catalog),
) -> MissingCardsResponse:
    cards = await list_missing_cards(db, catalog, user.id)
    return MissingCardsResponse(cards=[CardResponse.from_card(c) for c in cards], total=len(cards))


@router.post("/me/missing-cards/{card_number}/toggle", response_model=MissingCardToggleResponse)
async def toggle_missing(
    card_number: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    catalog: CardCatalog = Depends(get_catalog),
) -> MissingCardToggleResponse:
    """Add the card to the missing set, or remove it if already there."""
    missing = await toggle_missing_card(db, catalog, user.id, card_number)
    await db.commit()
    return MissingCardToggleResponse(card_number=card_number, missing=missing)
