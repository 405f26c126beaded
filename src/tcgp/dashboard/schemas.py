"""Pydantic schemas for the dashboard endpoint."""

from __future__ import annotations

from pydantic import BaseModel

from tcgp.notifications.schemas import NotificationResponse
from tcgp.trades.schemas import ListingResponse


class DashboardResponse(BaseModel):
    profile_complete: bool
    active_trades: int
    expiring_soon: int
    notifications: list[NotificationResponse]
    recent_trades: list[ListingResponse]
    warnings: list[str]
