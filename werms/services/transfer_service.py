"""
werms.services.transfer_service — Peer-to-Peer Transfers
=========================================================

Moves werms from one employee to another.

Pipeline (one database transaction, holders row-locked):
  1. Normalize and validate the requested amounts
  2. Resolve exactly one sender (by email) and one receiver (by handle)
  3. Check every tier against the sender's balance — all or nothing
  4. Debit sender, credit receiver + receiver lifetime_earned
  5. Write both holders in one flush
  6. Append one ledger record per tier moved
  7. Commit

A failure at any step (including step 6) rolls back the whole transfer.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from sqlalchemy import Engine, or_

from werms.constants import NO_REASON
from werms.database.models import Employee, TransactionSource, TransactionStatus
from werms.engine.balances import EnrichedBalance, aggregate
from werms.engine.currency import TIER_ORDER, WermTier, normalize_amounts, unit_value
from werms.engine.errors import (
    HolderResolutionError,
    InsufficientBalanceError,
    ValidationError,
)
from werms.services.ledger_store import HolderSnapshot, LedgerEntry, ledger_transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransferResult:
    sender_id: str
    receiver_id: str
    amounts: dict[WermTier, int]
    sender_balance: EnrichedBalance
    receiver_balance: EnrichedBalance
    transaction_ids: list[str]


def _resolve_pair(
    holders: list[HolderSnapshot], sender_email: str, receiver_handle: str
) -> tuple[HolderSnapshot, HolderSnapshot]:
    if len(holders) != 2:
        raise HolderResolutionError(
            f"Could not resolve sender {sender_email} and receiver {receiver_handle}"
        )
    sender = next((h for h in holders if h.email == sender_email), None)
    receiver = next((h for h in holders if h.slack_username == receiver_handle), None)
    if sender is None or receiver is None or sender.id == receiver.id:
        raise HolderResolutionError(
            f"Could not resolve sender {sender_email} and receiver {receiver_handle}"
        )
    return sender, receiver


def check_sufficient(balances: Mapping[str, int], amounts: Mapping[WermTier, int]) -> None:
    """Raise :class:`InsufficientBalanceError` for the first short tier."""
    for tier in TIER_ORDER:
        requested = amounts.get(tier, 0)
        available = balances.get(tier.value, 0)
        if requested > available:
            raise InsufficientBalanceError(tier.value, available, requested)


def transfer_werms(
    engine: Engine,
    sender_email: str,
    receiver_handle: str,
    amounts: Mapping[str, int],
    note: str | None = None,
) -> TransferResult:
    """Transfer *amounts* from the employee with *sender_email* to *receiver_handle*."""
    moved = normalize_amounts(amounts)
    if not moved:
        raise ValidationError("Specify at least one werm to send")

    with ledger_transaction(engine) as store:
        holders = store.find_holders(
            or_(Employee.email == sender_email, Employee.slack_username == receiver_handle),
            for_update=True,
        )
        sender, receiver = _resolve_pair(holders, sender_email, receiver_handle)

        check_sufficient(sender.werm_balances, moved)

        sender_balances = dict(sender.werm_balances)
        receiver_balances = dict(receiver.werm_balances)
        receiver_lifetime = dict(receiver.lifetime_earned)
        for tier, amount in moved.items():
            sender_balances[tier.value] -= amount
            receiver_balances[tier.value] += amount
            receiver_lifetime[tier.value] += amount

        store.upsert_holders([
            sender.model_copy(update={"werm_balances": sender_balances}),
            receiver.model_copy(update={
                "werm_balances": receiver_balances,
                "lifetime_earned": receiver_lifetime,
            }),
        ])

        rows = store.append_transactions(
            LedgerEntry(
                sender_id=sender.id,
                receiver_id=receiver.id,
                sender_email=sender.email,
                receiver_username=receiver.slack_username or receiver_handle,
                werm_type=tier.value,
                amount=moved[tier],
                value_aud=moved[tier] * unit_value(tier),
                description=note or NO_REASON,
                source=TransactionSource.PEER_TRANSFER,
                status=TransactionStatus.COMPLETED,
            )
            for tier in TIER_ORDER
            if moved.get(tier, 0) > 0
        )
        transaction_ids = [row.id for row in rows]

    logger.info(
        "Transfer %s → %s: %s",
        sender.id,
        receiver.id,
        ", ".join(f"{moved[t]} {t}" for t in TIER_ORDER if t in moved),
    )
    return TransferResult(
        sender_id=sender.id,
        receiver_id=receiver.id,
        amounts=moved,
        sender_balance=aggregate(sender_balances),
        receiver_balance=aggregate(receiver_balances),
        transaction_ids=transaction_ids,
    )
