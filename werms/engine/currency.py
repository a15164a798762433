"""
werms.engine.currency — Werm Tiers and Unit Values
===================================================

The closed set of coin tiers and what one coin of each tier is worth.
This is the single canonical value table; balances, transaction records
and Slack replies all price coins through :func:`unit_value`.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping

from werms.engine.errors import UnknownTierError, ValidationError

__all__ = [
    "DEFAULT_TIER",
    "MAX_TIER_AMOUNT",
    "TIER_ORDER",
    "TIER_VALUES",
    "WermTier",
    "is_tier",
    "normalize_amounts",
    "parse_tier",
    "unit_value",
]


class WermTier(enum.StrEnum):
    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"


# Display / iteration order, most valuable first.
TIER_ORDER: tuple[WermTier, ...] = (WermTier.GOLD, WermTier.SILVER, WermTier.BRONZE)

TIER_VALUES: Mapping[WermTier, float] = {
    WermTier.GOLD: 10.0,
    WermTier.SILVER: 3.0,
    WermTier.BRONZE: 1.0,
}

# Tier assumed when a Slack command gives an amount without a tier.
DEFAULT_TIER = WermTier.BRONZE

# Largest count of one tier accepted in a single request (PostgreSQL int4).
MAX_TIER_AMOUNT = 2**31 - 1


def is_tier(name: object) -> bool:
    """Case-sensitive membership test against the closed tier set."""
    return isinstance(name, str) and name in WermTier._value2member_map_


def parse_tier(name: object) -> WermTier:
    """Return the :class:`WermTier` for *name* or raise :class:`UnknownTierError`."""
    if not is_tier(name):
        raise UnknownTierError(name)
    return WermTier(name)


def unit_value(tier: object) -> float:
    """Value of a single coin of *tier*.

    Unknown tier names raise instead of pricing at zero.
    """
    return TIER_VALUES[parse_tier(tier)]


def normalize_amounts(amounts: Mapping[str, object] | None) -> dict[WermTier, int]:
    """Validate a ``{tier: amount}`` request and drop zero entries.

    Amounts must be non-negative integers (``bool`` and ``float`` are
    rejected even when integral).  ``None`` values count as zero, which
    matches how optional JSON fields arrive from the dashboard.
    """
    if amounts is None:
        return {}
    if not isinstance(amounts, Mapping):
        raise ValidationError("Amounts must be an object of tier → count")

    result: dict[WermTier, int] = {}
    for name, raw in amounts.items():
        tier = parse_tier(name)
        if raw is None:
            continue
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValidationError(f"Amount for {tier} must be a whole number")
        if raw < 0:
            raise ValidationError(f"Amount for {tier} cannot be negative")
        if raw > MAX_TIER_AMOUNT:
            raise ValidationError(f"Amount for {tier} is too large")
        if raw:
            result[tier] = result.get(tier, 0) + raw
    return result
