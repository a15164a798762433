"""
werms.engine.balances — Balance Aggregation
============================================

Turns a stored per-tier count map into the enriched balance shown on the
dashboard and in Slack.  Pure: no DB I/O, never mutates its input.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from werms.engine.currency import TIER_ORDER, TIER_VALUES, WermTier

__all__ = ["EnrichedBalance", "TierBalance", "aggregate", "empty_holding"]


@dataclass(frozen=True, slots=True)
class TierBalance:
    count: int
    total_value: float


@dataclass(frozen=True, slots=True)
class EnrichedBalance:
    """Per-tier counts and values plus overall totals."""

    tiers: dict[WermTier, TierBalance]
    total_coins: int
    total_value: float

    def __getitem__(self, tier: str) -> TierBalance:
        return self.tiers[WermTier(tier)]

    @property
    def gold(self) -> TierBalance:
        return self.tiers[WermTier.GOLD]

    @property
    def silver(self) -> TierBalance:
        return self.tiers[WermTier.SILVER]

    @property
    def bronze(self) -> TierBalance:
        return self.tiers[WermTier.BRONZE]

    def counts(self) -> dict[str, int]:
        return {tier.value: self.tiers[tier].count for tier in TIER_ORDER}

    def to_dict(self) -> dict:
        data: dict = {
            tier.value: {
                "count": self.tiers[tier].count,
                "total_value": self.tiers[tier].total_value,
            }
            for tier in TIER_ORDER
        }
        data["total_coins"] = self.total_coins
        data["total_value"] = self.total_value
        return data


def empty_holding() -> dict[str, int]:
    """A fresh all-zero holding, as stored on new employees."""
    return {tier.value: 0 for tier in TIER_ORDER}


def aggregate(holding: Mapping[str, int] | None) -> EnrichedBalance:
    """Compute coin and value totals for *holding*.

    Missing tiers count as zero and keys outside the tier set are ignored.
    """
    holding = holding or {}
    tiers: dict[WermTier, TierBalance] = {}
    total_coins = 0
    total_value = 0.0
    for tier in TIER_ORDER:
        count = int(holding.get(tier.value, 0) or 0)
        value = count * TIER_VALUES[tier]
        tiers[tier] = TierBalance(count=count, total_value=value)
        total_coins += count
        total_value += value
    return EnrichedBalance(tiers=tiers, total_coins=total_coins, total_value=total_value)
