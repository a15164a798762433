"""
tests/test_currency.py — Tiers, unit values & amount normalization
===================================================================
"""

from __future__ import annotations

import pytest

from werms.engine.currency import (
    DEFAULT_TIER,
    MAX_TIER_AMOUNT,
    TIER_ORDER,
    WermTier,
    is_tier,
    normalize_amounts,
    parse_tier,
    unit_value,
)
from werms.engine.errors import UnknownTierError, ValidationError


class TestTiers:
    def test_order_is_most_valuable_first(self):
        assert TIER_ORDER == (WermTier.GOLD, WermTier.SILVER, WermTier.BRONZE)

    def test_unit_values(self):
        assert unit_value("gold") == 10
        assert unit_value("silver") == 3
        assert unit_value(WermTier.BRONZE) == 1

    def test_values_strictly_ordered(self):
        values = [unit_value(t) for t in TIER_ORDER]
        assert values == sorted(values, reverse=True)
        assert all(v > 0 for v in values)

    def test_default_tier_is_bronze(self):
        assert DEFAULT_TIER is WermTier.BRONZE

    @pytest.mark.parametrize("name", ["gold", "silver", "bronze"])
    def test_is_tier_accepts_members(self, name):
        assert is_tier(name)

    @pytest.mark.parametrize("name", ["Gold", "GOLD", "platinum", "", None, 3])
    def test_is_tier_is_case_sensitive_and_closed(self, name):
        assert not is_tier(name)

    def test_unknown_tier_raises_instead_of_pricing_zero(self):
        with pytest.raises(UnknownTierError, match="platinum"):
            unit_value("platinum")

    def test_parse_tier_returns_enum(self):
        assert parse_tier("silver") is WermTier.SILVER

    def test_unknown_tier_is_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_tier("copper")
        assert exc_info.value.status_code == 400


class TestNormalizeAmounts:
    def test_drops_zero_and_none(self):
        assert normalize_amounts({"gold": 2, "silver": 0, "bronze": None}) == {WermTier.GOLD: 2}

    def test_none_is_empty(self):
        assert normalize_amounts(None) == {}

    def test_rejects_negative(self):
        with pytest.raises(ValidationError, match="negative"):
            normalize_amounts({"gold": -1})

    @pytest.mark.parametrize("bad", [1.5, 2.0, "3", True])
    def test_rejects_non_integers(self, bad):
        with pytest.raises(ValidationError, match="whole number"):
            normalize_amounts({"bronze": bad})

    def test_rejects_amount_beyond_column_range(self):
        assert normalize_amounts({"gold": MAX_TIER_AMOUNT}) == {WermTier.GOLD: MAX_TIER_AMOUNT}
        with pytest.raises(ValidationError, match="too large"):
            normalize_amounts({"gold": MAX_TIER_AMOUNT + 1})

    def test_rejects_unknown_tier(self):
        with pytest.raises(UnknownTierError):
            normalize_amounts({"diamond": 1})

    def test_rejects_non_mapping(self):
        with pytest.raises(ValidationError):
            normalize_amounts([("gold", 1)])
