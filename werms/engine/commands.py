"""
werms.engine.commands — Slack Transfer Command Parser
======================================================

Parses the free text of ``/werm`` slash commands into a structured
transfer request and renders the replies posted back to Slack.

Grammar (whitespace separated)::

    @handle [N] [reason…]                  # shorthand, N bronze coins
    @handle N tier [N tier …] [reason…]    # explicit tiers, repeats summed

Pure functions only — amount validation (positive totals, balances)
happens in the transfer service, not here.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from werms.constants import HANDLE_MARKER, NO_REASON, TIER_EMOJI, format_werms
from werms.engine.balances import EnrichedBalance
from werms.engine.currency import DEFAULT_TIER, TIER_ORDER, WermTier, is_tier, unit_value

__all__ = [
    "TransferRequest",
    "format_balance_message",
    "format_transfer_message",
    "parse_transfer_command",
]

_INTEGER = re.compile(r"^\d+$")


@dataclass(frozen=True, slots=True)
class TransferRequest:
    receiver_handle: str
    amounts: dict[WermTier, int] = field(default_factory=dict)
    reason: str | None = None


def _is_int(token: str) -> bool:
    return bool(_INTEGER.match(token))


def parse_transfer_command(raw_text: str | None) -> TransferRequest | None:
    """Parse *raw_text* into a :class:`TransferRequest`.

    Returns ``None`` when the text does not start with an ``@handle``.
    An empty ``amounts`` map is a valid result.
    """
    tokens = (raw_text or "").split()
    if not tokens or not tokens[0].startswith(HANDLE_MARKER) or tokens[0] == HANDLE_MARKER:
        return None

    handle = tokens[0]
    amounts: dict[WermTier, int] = {}
    i = 1

    # Shorthand: "@bob 10" or "@bob 10 for the coffee"
    if (
        i < len(tokens)
        and _is_int(tokens[i])
        and (i + 1 >= len(tokens) or not is_tier(tokens[i + 1]))
    ):
        amounts[DEFAULT_TIER] = int(tokens[i])
        i += 1
    else:
        while i + 1 < len(tokens) and _is_int(tokens[i]) and is_tier(tokens[i + 1]):
            tier = WermTier(tokens[i + 1])
            amounts[tier] = amounts.get(tier, 0) + int(tokens[i])
            i += 2

    reason = " ".join(tokens[i:]).strip() or None
    return TransferRequest(receiver_handle=handle, amounts=amounts, reason=reason)


def _describe_amounts(amounts: Mapping[str, int]) -> str:
    parts = [
        f"{amounts[tier]} {tier.value} {TIER_EMOJI[tier.value]}"
        for tier in TIER_ORDER
        if amounts.get(tier, 0) > 0
    ]
    return ", ".join(parts) if parts else "nothing"


def format_transfer_message(
    amounts: Mapping[str, int],
    receiver_handle: str,
    reason: str | None = None,
    sender: str | None = None,
) -> str:
    """Public reply announcing a completed transfer."""
    value = sum(count * unit_value(tier) for tier, count in amounts.items() if count > 0)
    who = f"{sender} sent" if sender else "Sent"
    return (
        f"\U0001fab1 {who} {receiver_handle} {_describe_amounts(amounts)} "
        f"(worth {format_werms(value)} werms). Reason: {reason or NO_REASON}"
    )


def format_balance_message(balance: EnrichedBalance) -> str:
    """Ephemeral reply for ``/balance``."""
    return (
        f"You currently have *{format_werms(balance.total_value)} werms* "
        f"({balance.gold.count} {TIER_EMOJI['gold']}, "
        f"{balance.silver.count} {TIER_EMOJI['silver']}, "
        f"{balance.bronze.count} {TIER_EMOJI['bronze']})."
    )
