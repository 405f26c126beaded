"""Static card catalog.

The dataset is a JSON list of ``{number, name, rarity, exclusive_pack}``
records shipped with the package. It is read once per process into an
in-memory map; the catalog never changes at runtime so nothing is evicted.

The catalog is constructed explicitly by the application factory and passed
to the services that need it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

import structlog

from tcgp.errors import BackendUnavailableError

logger = structlog.get_logger()

RARITIES: tuple[str, ...] = ("1-diamond", "2-diamond", "3-diamond", "4-diamond", "1-star")

RARITY_DISPLAY_NAMES: dict[str, str] = {
    "1-diamond": "1 Diamond",
    "2-diamond": "2 Diamond",
    "3-diamond": "3 Diamond",
    "4-diamond": "4 Diamond",
    "1-star": "1 Star",
}

UNKNOWN_CARD_NAME = "Unknown Card"
UNKNOWN_PACK = "Unknown"


@dataclass(frozen=True)
class Card:
    number: str
    name: str
    rarity: str
    exclusive_pack: str


def rarity_display_name(rarity: str) -> str:
    """Human label for a rarity tier, falling back to the raw value."""
    return RARITY_DISPLAY_NAMES.get(rarity, rarity)


def placeholder_card(number: str, rarity: str) -> Card:
    """Stand-in for a card number the catalog does not know."""
    return Card(number=number, name=UNKNOWN_CARD_NAME, rarity=rarity, exclusive_pack=UNKNOWN_PACK)


class CardCatalog:
    """Read-only lookup of card metadata, loaded lazily and at most once."""

    def __init__(self, source_path: str | Path) -> None:
        self.source_path = Path(source_path)
        self._cards: dict[str, Card] = {}
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(self) -> None:
        """Populate the catalog from the dataset. No-op once loaded.

        Raises:
            BackendUnavailableError: If the dataset cannot be read or parsed.
                The catalog stays unloaded so a later call retries.
        """
        if self._loaded:
            return

        try:
            raw = json.loads(self.source_path.read_text(encoding="utf-8"))
            cards = {
                row["number"]: Card(
                    number=row["number"],
                    name=row["name"],
                    rarity=row["rarity"],
                    exclusive_pack=row.get("exclusive_pack") or UNKNOWN_PACK,
                )
                for row in raw
            }
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("catalog_load_failed", path=str(self.source_path), error=str(e))
            msg = f"Card catalog unavailable: {e}"
            raise BackendUnavailableError(msg) from e

        self._cards = cards
        self._loaded = True
        logger.info("catalog_loaded", path=str(self.source_path), cards=len(cards))

    def get_by_number(self, number: str) -> Card | None:
        self.load()
        return self._cards.get(number)

    def get_by_numbers(self, numbers: list[str]) -> list[Card]:
        """Return the cards that exist, in catalog order. Unknown numbers are dropped."""
        self.load()
        wanted = set(numbers)
        return [card for number, card in self._cards.items() if number in wanted]

    def get_all_cards(self) -> list[Card]:
        self.load()
        return list(self._cards.values())

    def get_by_rarity(self, rarity: str) -> list[Card]:
        self.load()
        return [card for card in self._cards.values() if card.rarity == rarity]

    def rarities(self) -> list[str]:
        """Distinct rarities present in the dataset, in tier order."""
        self.load()
        present = {card.rarity for card in self._cards.values()}
        ordered = [r for r in RARITIES if r in present]
        return ordered + sorted(present - set(RARITIES))

    def search(self, query: str, rarity: str | None = None) -> list[Card]:
        """Case-insensitive substring search over number, name and pack.

        An empty query matches every card; ``rarity`` narrows by exact tier.
        """
        self.load()
        needle = query.strip().lower()
        results = []
        for card in self._cards.values():
            if rarity and card.rarity != rarity:
                continue
            if needle and not (
                needle in card.number.lower()
                or needle in card.name.lower()
                or needle in card.exclusive_pack.lower()
            ):
                continue
            results.append(card)
        return results
