"""Domain error kinds shared by every service.

Each error carries the HTTP status it maps to; the global handler in
``tcgp.middleware.error_handler`` renders them as ``{"detail", "field"}``.
"""

from __future__ import annotations


class TradeError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(TradeError):
    """Malformed input: bad friend code, empty required field, rarity mismatch."""

    status_code = 400


class NotFoundError(TradeError):
    """Listing, card or notification target does not exist."""

    status_code = 404


class UnauthorizedError(TradeError):
    """Non-owner attempting an owner-only transition."""

    status_code = 403


class DuplicateNotificationError(TradeError):
    """Same notifier already recorded interest in this listing."""

    status_code = 409


class InvalidTransitionError(TradeError):
    """Lifecycle transition not allowed from the listing's current state."""

    status_code = 409


class BackendUnavailableError(TradeError):
    """Persistence or catalog I/O failure."""

    status_code = 503
