"""Trade-interest delivery channels (stubbed).

Provides an abstract interface ready for an email or SMS provider later.
The stubs log instead of sending.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog

from tcgp.config import get_settings

logger = structlog.get_logger()


class NotificationChannel(ABC):
    """A fire-and-forget delivery channel (email, SMS, ...)."""

    name: str

    @abstractmethod
    async def send(self, to: str, subject: str, body: str) -> bool:
        """Deliver a message. Returns True if it was handed off."""
        ...


class StubEmailChannel(NotificationChannel):
    """Logs emails instead of sending them."""

    name = "email"

    async def send(self, to: str, subject: str, body: str) -> bool:
        logger.info("email_stub_sent", to=to, subject=subject, body=body)
        return True


class StubSmsChannel(NotificationChannel):
    """Logs text messages instead of sending them."""

    name = "text"

    async def send(self, to: str, subject: str, body: str) -> bool:
        logger.info("sms_stub_sent", to=to, body=body)
        return True


def get_channels() -> dict[str, NotificationChannel]:
    """Factory: channels keyed by the preference flag that enables them."""
    if not get_settings().notification_delivery_enabled:
        return {}
    return {"email": StubEmailChannel(), "text": StubSmsChannel()}


def interest_message(notifier_username: str, card_wanted: str, message: str | None) -> tuple[str, str]:
    """Subject and body telling an owner someone wants to trade."""
    extra = f'Message: "{message}"' if message else "No additional message provided."
    body = (
        f'User "{notifier_username}" is interested in your trade for card {card_wanted}. '
        f"{extra} Please check your notifications in the app."
    )
    return "New Trade Interest Notification", body
