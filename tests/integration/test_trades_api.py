"""Integration: trade listing endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import add_listing, add_user, register
from tcgp.catalog.catalog import CardCatalog
from tcgp.trades.query import (
    CATALOG_WARNING,
    ListingFilters,
    apply_search,
    enrich_listing,
    list_active,
    resolve_owners,
)


def _hours_ago(hours: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(hours=hours)


class TestBrowse:
    @pytest.mark.asyncio
    async def test_pagination(self, client: AsyncClient, db_session: AsyncSession):
        owner = await add_user(db_session, "ash@example.com", "Ash", friend_code="1234567890123456")
        for i in range(25):
            await add_listing(
                db_session, owner.id, "A1-035", ["A1-117"], "3-diamond", refreshed_at=_hours_ago(i * 0.1)
            )
        await db_session.commit()

        pages = []
        for page in (1, 2, 3):
            response = await client.get("/api/v1/trades", params={"page": page, "page_size": 10})
            assert response.status_code == 200
            pages.append(response.json())

        assert [len(p["items"]) for p in pages] == [10, 10, 5]
        assert all(p["total_count"] == 25 and p["total_pages"] == 3 for p in pages)
        ids = [item["id"] for p in pages for item in p["items"]]
        assert len(set(ids)) == 25

    @pytest.mark.asyncio
    async def test_most_recently_refreshed_first(self, client: AsyncClient, db_session: AsyncSession):
        owner = await add_user(db_session, "ash@example.com", "Ash")
        older = await add_listing(db_session, owner.id, "A1-035", ["A1-117"], "3-diamond", refreshed_at=_hours_ago(3))
        newer = await add_listing(db_session, owner.id, "A1-035", ["A1-117"], "3-diamond", refreshed_at=_hours_ago(1))
        await db_session.commit()

        items = (await client.get("/api/v1/trades")).json()["items"]
        assert [i["id"] for i in items] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_default_page_size(self, client: AsyncClient, db_session: AsyncSession):
        owner = await add_user(db_session, "ash@example.com")
        for _ in range(12):
            await add_listing(db_session, owner.id, "A1-035", ["A1-117"], "3-diamond")
        await db_session.commit()

        data = (await client.get("/api/v1/trades")).json()
        assert data["page_size"] == 10
        assert len(data["items"]) == 10
        assert data["total_pages"] == 2

    @pytest.mark.asyncio
    async def test_rarity_filter_uses_listing_rarity(self, client: AsyncClient, db_session: AsyncSession):
        owner = await add_user(db_session, "ash@example.com")
        # Offered card's catalog rarity disagrees with the listing's; the listing field wins
        odd = await add_listing(db_session, owner.id, "A1-035", ["A1-001"], "3-diamond")
        await add_listing(db_session, owner.id, "A1-001", ["A1-005"], "1-diamond")
        await db_session.commit()

        data = (await client.get("/api/v1/trades", params={"rarity": "3-diamond"})).json()
        assert [i["id"] for i in data["items"]] == [odd.id]
        assert all(i["rarity"] == "3-diamond" for i in data["items"])

    @pytest.mark.asyncio
    async def test_card_number_filter(self, client: AsyncClient, db_session: AsyncSession):
        owner = await add_user(db_session, "ash@example.com")
        wants = await add_listing(db_session, owner.id, "A1-095", ["A1-117"], "3-diamond")
        offers = await add_listing(db_session, owner.id, "A1-035", ["A1-007", "A1-095"], "3-diamond")
        await add_listing(db_session, owner.id, "A1-035", ["A1-117"], "3-diamond")
        await db_session.commit()

        data = (await client.get("/api/v1/trades", params={"card_number": "A1-095"})).json()
        assert {i["id"] for i in data["items"]} == {wants.id, offers.id}
        assert data["total_count"] == 2

    @pytest.mark.asyncio
    async def test_unknown_card_number_filter_is_empty(self, client: AsyncClient, db_session: AsyncSession):
        owner = await add_user(db_session, "ash@example.com")
        await add_listing(db_session, owner.id, "A1-035", ["A1-117"], "3-diamond")
        await db_session.commit()

        response = await client.get("/api/v1/trades", params={"card_number": "ZZZ-999"})
        assert response.status_code == 200
        assert response.json()["items"] == []
        assert response.json()["total_pages"] == 0

    @pytest.mark.asyncio
    async def test_browse_sweeps_stale_listings(self, client: AsyncClient, db_session: AsyncSession):
        owner = await add_user(db_session, "ash@example.com")
        stale = await add_listing(
            db_session, owner.id, "A1-035", ["A1-117"], "3-diamond", refreshed_at=_hours_ago(6.1)
        )
        fresh = await add_listing(
            db_session, owner.id, "A1-035", ["A1-117"], "3-diamond", refreshed_at=_hours_ago(5.9)
        )
        await db_session.commit()

        data = (await client.get("/api/v1/trades")).json()
        assert [i["id"] for i in data["items"]] == [fresh.id]
        assert data["items"][0]["expiring_soon"] is True

        detail = (await client.get(f"/api/v1/trades/{stale.id}")).json()
        assert detail["status"] == "expired"
        assert detail["is_active"] is False

    @pytest.mark.asyncio
    async def test_listing_exactly_at_expiry_is_not_served(self, db_session: AsyncSession, catalog: CardCatalog):
        now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        owner = await add_user(db_session, "ash@example.com")
        await add_listing(
            db_session, owner.id, "A1-035", ["A1-117"], "3-diamond", refreshed_at=now - timedelta(hours=6)
        )
        fresh = await add_listing(
            db_session, owner.id, "A1-035", ["A1-117"], "3-diamond", refreshed_at=now - timedelta(hours=5, minutes=59)
        )
        await db_session.commit()
        fresh_id = fresh.id

        page = await list_active(db_session, catalog, now=now)

        assert page.total_count == 1
        assert [(v.id, v.status) for v in page.items] == [(fresh_id, "active")]

    @pytest.mark.asyncio
    async def test_completed_and_expired_hidden(self, client: AsyncClient, db_session: AsyncSession):
        owner = await add_user(db_session, "ash@example.com")
        await add_listing(db_session, owner.id, "A1-035", ["A1-117"], "3-diamond", is_active=False)
        await add_listing(
            db_session, owner.id, "A1-035", ["A1-117"], "3-diamond", is_active=False, is_completed=True
        )
        await db_session.commit()

        assert (await client.get("/api/v1/trades")).json()["total_count"] == 0

    @pytest.mark.asyncio
    async def test_owner_and_cards_enriched(self, client: AsyncClient, db_session: AsyncSession):
        owner = await add_user(db_session, "ash@example.com", "Ash", friend_code="1234567890123456")
        await add_listing(db_session, owner.id, "A1-035", ["A1-117", "ZZZ-999"], "3-diamond")
        await db_session.commit()

        item = (await client.get("/api/v1/trades")).json()["items"][0]
        assert item["owner"]["username"] == "Ash"
        assert item["owner"]["friend_code_display"] == "1234-5678-9012-3456"
        assert item["card_wanted"]["name"] == "Charizard"
        assert [c["name"] for c in item["cards_for_trade"]] == ["Alakazam", "Unknown Card"]
        unknown = item["cards_for_trade"][1]
        assert unknown["rarity"] == "3-diamond"
        assert unknown["exclusive_pack"] == "Unknown"

    @pytest.mark.asyncio
    async def test_search_applies_after_pagination(self, client: AsyncClient, db_session: AsyncSession):
        owner = await add_user(db_session, "ash@example.com")
        await add_listing(db_session, owner.id, "A1-035", ["A1-117"], "3-diamond", refreshed_at=_hours_ago(1))
        await add_listing(db_session, owner.id, "A1-095", ["A1-007"], "3-diamond", refreshed_at=_hours_ago(2))
        await add_listing(db_session, owner.id, "A1-010", ["A1-055"], "3-diamond", refreshed_at=_hours_ago(3))
        await db_session.commit()

        data = (await client.get("/api/v1/trades", params={"search": " charizard ", "page_size": 2})).json()
        assert [i["card_wanted"]["number"] for i in data["items"]] == ["A1-035"]
        # Counts describe the unsearched result set
        assert data["total_count"] == 3
        assert data["total_pages"] == 2

        page2 = (await client.get("/api/v1/trades", params={"search": "charizard", "page": 2, "page_size": 2})).json()
        assert page2["items"] == []

    @pytest.mark.asyncio
    async def test_search_matches_offered_number(self, client: AsyncClient, db_session: AsyncSession):
        owner = await add_user(db_session, "ash@example.com")
        await add_listing(db_session, owner.id, "A1-035", ["A1-117"], "3-diamond")
        await add_listing(db_session, owner.id, "A1-095", ["A1-007"], "3-diamond")
        await db_session.commit()

        data = (await client.get("/api/v1/trades", params={"search": "a1-117"})).json()
        assert [i["card_wanted"]["number"] for i in data["items"]] == ["A1-035"]


class TestDegradedReads:
    @pytest.mark.asyncio
    async def test_catalog_unavailable_yields_placeholders(self, db_session: AsyncSession, tmp_path):
        owner = await add_user(db_session, "ash@example.com")
        await add_listing(db_session, owner.id, "A1-035", ["A1-117"], "3-diamond")
        await db_session.commit()

        broken = CardCatalog(tmp_path / "missing.json")
        page = await list_active(db_session, broken)
        assert CATALOG_WARNING in page.warnings
        assert page.items[0].card_wanted.name == "Unknown Card"
        assert page.items[0].cards_for_trade[0].rarity == "3-diamond"

    @pytest.mark.asyncio
    async def test_owner_fallback_lookup(self, db_session: AsyncSession):
        owner = await add_user(db_session, "ash@example.com", "Ash", friend_code="1234567890123456")
        post = await add_listing(db_session, owner.id, "A1-035", ["A1-117"], "3-diamond")
        await db_session.commit()

        owners = await resolve_owners(db_session, [(post, None)])
        assert owners[post.id].username == "Ash"
        assert owners[post.id].friend_code == "1234567890123456"

    @pytest.mark.asyncio
    async def test_owner_missing_entirely(self, db_session: AsyncSession):
        post = await add_listing(db_session, "ghost-user", "A1-035", ["A1-117"], "3-diamond")
        await db_session.commit()

        owners = await resolve_owners(db_session, [(post, None)])
        assert owners[post.id] is None

    @pytest.mark.asyncio
    async def test_filters_object_defaults(self, db_session: AsyncSession, catalog: CardCatalog):
        page = await list_active(db_session, catalog, ListingFilters())
        assert page.items == []
        assert page.total_pages == 0
        assert page.warnings == []

    def test_apply_search_blank_keeps_everything(self, catalog: CardCatalog):
        from tcgp.db.models import TradePost, TradePostCard

        post = TradePost(
            id="p1",
            user_id="u1",
            card_wanted="A1-035",
            rarity="3-diamond",
            is_active=True,
            is_completed=False,
            last_refreshed=datetime.now(timezone.utc),
            offered_cards=[TradePostCard(position=0, card_number="A1-117")],
        )
        views = [enrich_listing(post, catalog)]
        assert apply_search(views, "   ") == views
        assert apply_search(views, "ALAKAZAM") == views
        assert apply_search(views, "pikachu") == []


class TestOwnerActions:
    @pytest.mark.asyncio
    async def test_create_listing(self, client: AsyncClient):
        ash = await register(client)
        response = await client.post(
            "/api/v1/trades",
            json={"card_wanted": "A1-035", "cards_for_trade": ["A1-117", "A1-055"], "rarity": "3-diamond"},
            headers=ash["headers"],
        )
        assert response.status_code == 201, response.text
        data = response.json()
        assert data["status"] == "active"
        assert data["owner"]["id"] == ash["user_id"]
        assert [c["number"] for c in data["cards_for_trade"]] == ["A1-117", "A1-055"]

    @pytest.mark.asyncio
    async def test_create_requires_auth(self, client: AsyncClient, database: None):
        response = await client.post(
            "/api/v1/trades", json={"card_wanted": "A1-035", "cards_for_trade": ["A1-117"], "rarity": "3-diamond"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_create_rarity_mismatch_is_field_error(self, client: AsyncClient):
        ash = await register(client)
        response = await client.post(
            "/api/v1/trades",
            json={"card_wanted": "A1-035", "cards_for_trade": ["A1-001"], "rarity": "3-diamond"},
            headers=ash["headers"],
        )
        assert response.status_code == 400
        assert response.json()["field"] == "cards_for_trade"

    @pytest.mark.asyncio
    async def test_refresh_and_complete_are_owner_only(self, client: AsyncClient, db_session: AsyncSession):
        ash = await register(client)
        misty = await register(client, email="misty@example.com", username="Misty")
        post = await add_listing(
            db_session, ash["user_id"], "A1-035", ["A1-117"], "3-diamond", refreshed_at=_hours_ago(7)
        )
        await db_session.commit()

        response = await client.post(f"/api/v1/trades/{post.id}/refresh", headers=misty["headers"])
        assert response.status_code == 403
        response = await client.post(f"/api/v1/trades/{post.id}/complete", headers=misty["headers"])
        assert response.status_code == 403

        response = await client.post(f"/api/v1/trades/{post.id}/refresh", headers=ash["headers"])
        assert response.status_code == 200
        assert response.json()["status"] == "active"

        response = await client.post(f"/api/v1/trades/{post.id}/refresh", headers=ash["headers"])
        assert response.status_code == 409

        response = await client.post(f"/api/v1/trades/{post.id}/complete", headers=ash["headers"])
        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert response.json()["is_active"] is False

        response = await client.post(f"/api/v1/trades/{post.id}/complete", headers=ash["headers"])
        assert response.status_code == 200

        response = await client.post(f"/api/v1/trades/{post.id}/refresh", headers=ash["headers"])
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_missing_listing_is_404(self, client: AsyncClient):
        ash = await register(client)
        response = await client.post("/api/v1/trades/nope/complete", headers=ash["headers"])
        assert response.status_code == 404
        assert response.json()["detail"] == "Trade listing not found"
        assert (await client.get("/api/v1/trades/nope")).status_code == 404

    @pytest.mark.asyncio
    async def test_my_trades_grouped(self, client: AsyncClient, db_session: AsyncSession):
        ash = await register(client)
        active = await add_listing(db_session, ash["user_id"], "A1-035", ["A1-117"], "3-diamond")
        stale = await add_listing(
            db_session, ash["user_id"], "A1-035", ["A1-117"], "3-diamond", refreshed_at=_hours_ago(8)
        )
        done = await add_listing(
            db_session, ash["user_id"], "A1-035", ["A1-117"], "3-diamond", is_active=False, is_completed=True
        )
        await db_session.commit()

        data = (await client.get("/api/v1/trades/mine", headers=ash["headers"])).json()
        assert [v["id"] for v in data["active"]] == [active.id]
        assert [v["id"] for v in data["expired"]] == [stale.id]
        assert [v["id"] for v in data["completed"]] == [done.id]
