"""Pydantic schemas for card catalog endpoints."""

from __future__ import annotations

from pydantic import BaseModel

from tcgp.catalog.catalog import Card


class CardResponse(BaseModel):
    number: str
    name: str
    rarity: str
    exclusive_pack: str

    @classmethod
    def from_card(cls, card: Card) -> CardResponse:
        return cls(
            number=card.number,
            name=card.name,
            rarity=card.rarity,
            exclusive_pack=card.exclusive_pack,
        )


class RarityResponse(BaseModel):
    value: str
    label: str


class CardSearchResponse(BaseModel):
    cards: list[CardResponse]
    total: int
