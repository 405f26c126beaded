"""Card catalog endpoints: read-only lookups."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from tcgp.catalog.catalog import CardCatalog, rarity_display_name
from tcgp.catalog.schemas import CardResponse, CardSearchResponse, RarityResponse
from tcgp.dependencies import get_catalog
from tcgp.errors import NotFoundError

router = APIRouter(prefix="/api/v1/cards", tags=["Cards"])


@router.get("", response_model=CardSearchResponse)
async def search_cards(
    q: str = Query("", max_length=100),
    rarity: str | None = Query(None),
    catalog: CardCatalog = Depends(get_catalog),
) -> CardSearchResponse:
    """Search cards by number, name or pack, optionally within one rarity."""
    cards = catalog.search(q, rarity or None)
    return CardSearchResponse(cards=[CardResponse.from_card(c) for c in cards], total=len(cards))


@router.get("/rarities", response_model=list[RarityResponse])
async def list_rarities(catalog: CardCatalog = Depends(get_catalog)) -> list[RarityResponse]:
    """Rarity tiers present in the catalog, with display labels."""
    return [RarityResponse(value=r, label=rarity_display_name(r)) for r in catalog.rarities()]


@router.get("/{number}", response_model=CardResponse)
async def get_card(number: str, catalog: CardCatalog = Depends(get_catalog)) -> CardResponse:
    """Get a single card by its number."""
    card = catalog.get_by_number(number)
    if card is None:
        msg = "Card not found"
        raise NotFoundError(msg, field="number")
    return CardResponse.from_card(card)
