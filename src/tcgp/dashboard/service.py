"""Dashboard summary for a signed-in trader.

Combines the caller's listing counts, their latest unread notices and the
newest listings on the board. Each part degrades on its own.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from tcgp.config import get_settings
from tcgp.db.models import TradePost, User
from tcgp.notifications.service import get_notifications
from tcgp.trades.lifecycle import is_expired, is_expiring_soon
from tcgp.trades.query import QUERY_WARNING, list_recent_active

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from tcgp.catalog.catalog import CardCatalog

logger = structlog.get_logger()


async def get_dashboard(
    db: AsyncSession,
    catalog: CardCatalog,
    user: User,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Aggregated dashboard data for ``user``."""
    settings = get_settings()
    warnings: list[str] = []

    active_count = 0
    expiring_soon_count = 0
    try:
        result = await db.execute(
            select(TradePost.last_refreshed).where(
                TradePost.user_id == user.id,
                TradePost.is_active.is_(True),
                TradePost.is_completed.is_(False),
            )
        )
        refreshed = [ts for ts in result.scalars().all() if not is_expired(ts, now)]
        active_count = len(refreshed)
        expiring_soon_count = sum(1 for ts in refreshed if is_expiring_soon(ts, now))
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("dashboard_counts_failed", user_id=user.id, error=str(e))
        warnings.append(QUERY_WARNING)

    notifications = []
    try:
        notifications, _ = await get_notifications(
            db, user.id, per_page=settings.dashboard_recent_notifications, unread_only=True
        )
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("dashboard_notifications_failed", user_id=user.id, error=str(e))
        warnings.append("Notifications are temporarily unavailable")

    recent, recent_warnings = await list_recent_active(db, catalog, settings.dashboard_recent_trades, now)
    warnings.extend(w for w in recent_warnings if w not in warnings)

    return {
        "profile_complete": bool(user.friend_code and user.tcg_pocket_username),
        "active_trades": active_count,
        "expiring_soon": expiring_soon_count,
        "notifications": notifications,
        "recent_trades": recent,
        "warnings": warnings,
    }
