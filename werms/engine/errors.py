"""
werms.engine.errors — Typed Error Taxonomy
===========================================

Every core operation fails fast by raising one of these.  The API layer
maps them onto HTTP status codes via ``status_code``; the Slack routes
turn the message into an ephemeral reply.
"""

from __future__ import annotations

__all__ = [
    "HolderResolutionError",
    "InsufficientBalanceError",
    "InvalidCommandError",
    "NotFoundError",
    "StoreError",
    "UnknownTierError",
    "ValidationError",
    "WermsError",
]


class WermsError(Exception):
    """Base class for all ledger errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(WermsError):
    """Malformed input, missing fields, or a rule the request breaks."""

    status_code = 400


class UnknownTierError(ValidationError):
    def __init__(self, tier: object) -> None:
        super().__init__(f"Unknown werm tier: {tier!r}")
        self.tier = tier


class InvalidCommandError(ValidationError):
    pass


class NotFoundError(WermsError):
    """A holder, policy or bank that the operation needs does not exist."""

    status_code = 404


class HolderResolutionError(NotFoundError):
    """Sender/receiver lookup did not yield exactly the expected holders."""


class InsufficientBalanceError(WermsError):
    """The sender holds fewer coins of *tier* than requested."""

    status_code = 400

    def __init__(self, tier: str, available: int, requested: int) -> None:
        super().__init__(
            f"Insufficient {tier} balance: have {available}, need {requested}"
        )
        self.tier = tier
        self.available = available
        self.requested = requested


class StoreError(WermsError):
    """Database or transport failure.  Callers see a generic message."""

    status_code = 500
