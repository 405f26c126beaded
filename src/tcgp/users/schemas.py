"""Request/response schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from tcgp.catalog.schemas import CardResponse
from tcgp.db.models import User
from tcgp.users.friend_code import format_friend_code


class NotificationPreference(BaseModel):
    email: bool = False
    text: bool = False


class NotificationContact(BaseModel):
    email: str | None = None
    phone: str | None = None


class UserResponse(BaseModel):
    id: str
    email: str
    friend_code: str | None
    friend_code_display: str | None
    tcg_pocket_username: str | None
    notification_preference: NotificationPreference
    notification_contact: NotificationContact
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(
            id=user.id,
            email=user.email,
            friend_code=user.friend_code,
            friend_code_display=format_friend_code(user.friend_code) or None,
            tcg_pocket_username=user.tcg_pocket_username,
            notification_preference=NotificationPreference(**(user.notification_preference or {})),
            notification_contact=NotificationContact(**(user.notification_contact or {})),
            created_at=user.created_at,
        )


class ProfileUpdateRequest(BaseModel):
    """Partial profile update. Omitted fields are left unchanged."""

    friend_code: str | None = Field(None, max_length=32)
    tcg_pocket_username: str | None = Field(None, max_length=64)
    notification_preference: NotificationPreference | None = None
    notification_contact: NotificationContact | None = None


class MissingCardsResponse(BaseModel):
    cards: list[CardResponse]
    total: int


class MissingCardToggleResponse(BaseModel):
    card_number: str
    missing: bool
