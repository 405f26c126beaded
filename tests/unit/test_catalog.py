"""Tests for the static card catalog."""

import json

import pytest

from tcgp.catalog.catalog import (
    UNKNOWN_CARD_NAME,
    CardCatalog,
    placeholder_card,
    rarity_display_name,
)
from tcgp.errors import BackendUnavailableError


class TestLoading:
    def test_load_is_lazy_and_idempotent(self, catalog: CardCatalog):
        assert catalog.loaded is False
        catalog.get_by_number("A1-001")
        assert catalog.loaded is True
        catalog.load()
        assert catalog.loaded is True

    def test_missing_file_raises_and_stays_unloaded(self, tmp_path):
        broken = CardCatalog(tmp_path / "nope.json")
        with pytest.raises(BackendUnavailableError):
            broken.load()
        assert broken.loaded is False

    def test_malformed_file_raises(self, tmp_path):
        path = tmp_path / "cards.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(BackendUnavailableError):
            CardCatalog(path).get_all_cards()

    def test_retry_after_failure(self, tmp_path):
        path = tmp_path / "cards.json"
        catalog = CardCatalog(path)
        with pytest.raises(BackendUnavailableError):
            catalog.load()
        path.write_text(
            json.dumps([{"number": "X-1", "name": "Mew", "rarity": "1-star", "exclusive_pack": "Mewtwo"}]),
            encoding="utf-8",
        )
        assert catalog.get_by_number("X-1").name == "Mew"


class TestLookups:
    def test_get_by_number(self, catalog: CardCatalog):
        card = catalog.get_by_number("A1-001")
        assert card is not None
        assert card.name == "Bulbasaur"
        assert card.rarity == "1-diamond"
        assert card.exclusive_pack == "Mewtwo"

    def test_get_by_number_unknown(self, catalog: CardCatalog):
        assert catalog.get_by_number("ZZZ-999") is None

    def test_get_by_numbers_drops_unknown(self, catalog: CardCatalog):
        cards = catalog.get_by_numbers(["A1-001", "ZZZ-999"])
        assert [c.number for c in cards] == ["A1-001"]

    def test_get_all_cards_returns_copy(self, catalog: CardCatalog):
        cards = catalog.get_all_cards()
        cards.clear()
        assert len(catalog.get_all_cards()) > 0

    def test_get_by_rarity(self, catalog: CardCatalog):
        stars = catalog.get_by_rarity("1-star")
        assert stars
        assert all(c.rarity == "1-star" for c in stars)

    def test_rarities_in_tier_order(self, catalog: CardCatalog):
        assert catalog.rarities() == ["1-diamond", "2-diamond", "3-diamond", "4-diamond", "1-star"]


class TestSearch:
    def test_search_by_name_case_insensitive(self, catalog: CardCatalog):
        numbers = [c.number for c in catalog.search("  VenuSAUR ")]
        assert numbers == ["A1-003", "A1-004"]

    def test_search_by_number(self, catalog: CardCatalog):
        assert [c.number for c in catalog.search("a1-096")] == ["A1-096"]

    def test_search_by_pack(self, catalog: CardCatalog):
        results = catalog.search("pikachu")
        assert any(c.name == "Pikachu" for c in results)
        # Pack matches pull in cards whose name does not contain the query
        assert any("pikachu" not in c.name.lower() for c in results)

    def test_search_with_rarity(self, catalog: CardCatalog):
        results = catalog.search("bulbasaur", rarity="1-star")
        assert [c.number for c in results] == ["A1-227"]

    def test_empty_query_returns_everything(self, catalog: CardCatalog):
        assert len(catalog.search("")) == len(catalog.get_all_cards())

    def test_empty_query_with_rarity(self, catalog: CardCatalog):
        assert catalog.search("", rarity="4-diamond") == catalog.get_by_rarity("4-diamond")


def test_placeholder_card():
    card = placeholder_card("ZZZ-999", "3-diamond")
    assert card.name == UNKNOWN_CARD_NAME
    assert card.rarity == "3-diamond"
    assert card.exclusive_pack == "Unknown"


def test_rarity_display_name():
    assert rarity_display_name("1-star") == "1 Star"
    assert rarity_display_name("mystery") == "mystery"
