"""
tests/test_commands.py — Slash-command parsing and reply rendering
===================================================================
"""

from __future__ import annotations

import pytest

from werms.engine.balances import aggregate
from werms.engine.commands import (
    TransferRequest,
    format_balance_message,
    format_transfer_message,
    parse_transfer_command,
)
from werms.engine.currency import WermTier


class TestParse:
    def test_explicit_tiers_with_reason(self):
        assert parse_transfer_command("@alice 5 gold 3 silver thanks") == TransferRequest(
            receiver_handle="@alice",
            amounts={WermTier.GOLD: 5, WermTier.SILVER: 3},
            reason="thanks",
        )

    def test_shorthand_defaults_to_bronze(self):
        parsed = parse_transfer_command("@bob 10")
        assert parsed.receiver_handle == "@bob"
        assert parsed.amounts == {WermTier.BRONZE: 10}
        assert parsed.reason is None

    def test_shorthand_with_reason(self):
        parsed = parse_transfer_command("@bob 10 for the coffee run")
        assert parsed.amounts == {WermTier.BRONZE: 10}
        assert parsed.reason == "for the coffee run"

    def test_requires_handle(self):
        assert parse_transfer_command("notahandle 5 gold") is None

    @pytest.mark.parametrize("text", ["", "   ", None, "@"])
    def test_empty_or_bare_marker(self, text):
        assert parse_transfer_command(text) is None

    def test_repeated_tiers_are_summed(self):
        parsed = parse_transfer_command("@carol 1 gold 2 gold 4 bronze")
        assert parsed.amounts == {WermTier.GOLD: 3, WermTier.BRONZE: 4}
        assert parsed.reason is None

    def test_stops_at_first_non_pair(self):
        parsed = parse_transfer_command("@dave 2 silver great 3 gold")
        assert parsed.amounts == {WermTier.SILVER: 2}
        assert parsed.reason == "great 3 gold"

    def test_tier_names_are_case_sensitive(self):
        parsed = parse_transfer_command("@erin 2 Gold nice")
        # "2" is a bare integer followed by a non-tier token: shorthand bronze
        assert parsed.amounts == {WermTier.BRONZE: 2}
        assert parsed.reason == "Gold nice"

    def test_no_amounts_is_a_valid_parse(self):
        parsed = parse_transfer_command("@frank just saying hi")
        assert parsed.amounts == {}
        assert parsed.reason == "just saying hi"

    def test_negative_numbers_are_not_amounts(self):
        parsed = parse_transfer_command("@gina -5 gold")
        assert parsed.amounts == {}
        assert parsed.reason == "-5 gold"

    def test_extra_whitespace(self):
        parsed = parse_transfer_command("  @hal   1   gold    well   done ")
        assert parsed.amounts == {WermTier.GOLD: 1}
        assert parsed.reason == "well done"


class TestMessages:
    def test_transfer_message(self):
        text = format_transfer_message(
            {WermTier.GOLD: 5, WermTier.SILVER: 3}, "@alice", "thanks", sender="<@U1>"
        )
        assert text == (
            "\U0001fab1 <@U1> sent @alice 5 gold \U0001f947, 3 silver \U0001f948 "
            "(worth 59 werms). Reason: thanks"
        )

    def test_transfer_message_without_reason(self):
        text = format_transfer_message({WermTier.BRONZE: 10}, "@bob")
        assert text.startswith("\U0001fab1 Sent @bob 10 bronze")
        assert text.endswith("Reason: no reason provided")

    def test_balance_message(self):
        text = format_balance_message(aggregate({"gold": 1, "silver": 2, "bronze": 3}))
        assert text == (
            "You currently have *19 werms* (1 \U0001f947, 2 \U0001f948, 3 \U0001f949)."
        )

    def test_large_values_use_separators(self):
        text = format_balance_message(aggregate({"gold": 1000}))
        assert "*10,000 werms*" in text
