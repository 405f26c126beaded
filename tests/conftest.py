"""Shared test fixtures.

Each test gets its own SQLite database file with the schema created from the
ORM metadata. Redis is left uninitialised so the rate limiter lets every
request through.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tcgp.catalog.catalog import CardCatalog
from tcgp.config import get_settings
from tcgp.database import close_db, get_engine, get_session, init_db
from tcgp.db.base import Base
from tcgp.db.models import TradePost, TradePostCard, User

PASSWORD = "pikachu123"


@pytest.fixture(autouse=True)
def _test_settings(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("TCGP_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path}/test.db")
    monkeypatch.setenv("TCGP_LOG_FORMAT", "console")
    monkeypatch.setenv("TCGP_JWT_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Initialise the engine and create all tables."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to a fresh app."""
    from tcgp.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for service calls and assertions."""
    async for session in get_session():
        yield session
        break


@pytest.fixture
def catalog() -> CardCatalog:
    return CardCatalog(get_settings().catalog_path)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def register(
    client: AsyncClient,
    email: str = "ash@example.com",
    username: str | None = "Ash",
    friend_code: str | None = "1234-5678-9012-3456",
) -> dict:
    """Register through the API and optionally complete the profile."""
    response = await client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": PASSWORD, "tcg_pocket_username": username},
    )
    assert response.status_code == 201, response.text
    data = response.json()
    headers = {"Authorization": f"Bearer {data['access_token']}"}
    if friend_code is not None:
        patched = await client.patch("/api/v1/users/me", json={"friend_code": friend_code}, headers=headers)
        assert patched.status_code == 200, patched.text
    return {"user_id": data["user"]["id"], "headers": headers, "email": email}


async def add_user(db: AsyncSession, email: str, username: str | None = None, **fields) -> User:
    user = User(email=email, tcg_pocket_username=username, **fields)
    db.add(user)
    await db.flush()
    return user


async def add_listing(
    db: AsyncSession,
    user_id: str,
    card_wanted: str,
    offered: list[str],
    rarity: str,
    refreshed_at: datetime | None = None,
    created_at: datetime | None = None,
    is_active: bool = True,
    is_completed: bool = False,
) -> TradePost:
    """Insert a listing directly, bypassing catalog validation, with controllable timestamps."""
    refreshed_at = refreshed_at or datetime.now(timezone.utc)
    post = TradePost(
        user_id=user_id,
        card_wanted=card_wanted,
        rarity=rarity,
        created_at=created_at or refreshed_at,
        updated_at=refreshed_at,
        last_refreshed=refreshed_at,
        is_active=is_active,
        is_completed=is_completed,
        offered_cards=[TradePostCard(position=i, card_number=n) for i, n in enumerate(offered)],
    )
    db.add(post)
    await db.flush()
    return post
