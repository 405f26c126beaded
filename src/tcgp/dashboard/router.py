"""Dashboard endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tcgp.auth.dependencies import get_current_user
from tcgp.catalog.catalog import CardCatalog
from tcgp.dashboard.schemas import DashboardResponse
from tcgp.dashboard.service import get_dashboard
from tcgp.database import get_session
from tcgp.db.models import User
from tcgp.dependencies import get_catalog
from tcgp.notifications.schemas import NotificationResponse
from tcgp.trades.schemas import ListingResponse

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardResponse)
async def dashboard(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    catalog: CardCatalog = Depends(get_catalog),
) -> DashboardResponse:
    """Listing counts, unread notices and the newest trades on the board."""
    data = await get_dashboard(db, catalog, user)
    return DashboardResponse(
        profile_complete=data["profile_complete"],
        active_trades=data["active_trades"],
        expiring_soon=data["expiring_soon"],
        notifications=[NotificationResponse.from_notification(n, include_listing=True) for n in data["notifications"]],
        recent_trades=[ListingResponse.from_view(v) for v in data["recent_trades"]],
        warnings=data["warnings"],
    )
