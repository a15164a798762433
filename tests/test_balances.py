"""
tests/test_balances.py — Balance aggregation (pure, no I/O)
============================================================
"""

from __future__ import annotations

import pytest

from werms.engine.balances import aggregate, empty_holding
from werms.engine.currency import TIER_ORDER, unit_value


@pytest.mark.parametrize(
    "holding",
    [
        {"gold": 0, "silver": 0, "bronze": 0},
        {"gold": 5, "silver": 10, "bronze": 20},
        {"gold": 1},
        {"bronze": 999, "silver": 1},
    ],
)
def test_totals_match_per_tier_sums(holding):
    result = aggregate(holding)
    assert result.total_coins == sum(holding.get(t.value, 0) for t in TIER_ORDER)
    assert result.total_value == pytest.approx(
        sum(holding.get(t.value, 0) * unit_value(t) for t in TIER_ORDER)
    )


def test_enriched_tiers():
    result = aggregate({"gold": 5, "silver": 10, "bronze": 20})
    assert result.gold.count == 5
    assert result.gold.total_value == 50
    assert result.silver.total_value == 30
    assert result.bronze.total_value == 20
    assert result.total_coins == 35
    assert result.total_value == 100


def test_missing_tiers_count_as_zero():
    result = aggregate({"silver": 2})
    assert result.gold.count == 0
    assert result.bronze.count == 0
    assert result.total_value == 6


def test_none_holding_is_empty():
    assert aggregate(None).total_coins == 0


def test_unknown_keys_are_ignored():
    result = aggregate({"gold": 1, "platinum": 100})
    assert result.total_coins == 1
    assert result.total_value == 10


def test_input_not_mutated():
    holding = {"gold": 1}
    aggregate(holding)
    assert holding == {"gold": 1}


def test_to_dict_shape():
    data = aggregate({"gold": 2, "silver": 1, "bronze": 0}).to_dict()
    assert data["gold"] == {"count": 2, "total_value": 20}
    assert data["silver"] == {"count": 1, "total_value": 3}
    assert data["total_coins"] == 3
    assert data["total_value"] == 23


def test_empty_holding_has_every_tier():
    assert empty_holding() == {"gold": 0, "silver": 0, "bronze": 0}
