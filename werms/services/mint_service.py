"""
werms.services.mint_service — Minting New Werms
================================================

Creates new currency in the bank's holdings, either from an active
``mint`` policy or from explicit admin-supplied amounts.

Order of effects (one transaction, rows locked):
  1. Bank supply counters — digital and physical totals += amount
  2. Bank holder balance += amount
  3. One ledger record per tier (sender = system, receiver = bank)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from sqlalchemy import Engine

from werms.constants import BANK_HOLDER_ID, BANK_HOLDER_USERNAME, SYSTEM_SENDER_EMAIL
from werms.database.models import (
    Employee,
    PolicyOperation,
    PolicyStatus,
    TransactionSource,
    TransactionStatus,
)
from werms.engine.currency import TIER_ORDER, WermTier, normalize_amounts, unit_value
from werms.engine.errors import NotFoundError, ValidationError
from werms.services.ledger_store import LedgerEntry, LedgerStore, ledger_transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MintResult:
    bank_id: str
    minted: dict[WermTier, int]
    policy_id: str | None = None
    transaction_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "bankId": self.bank_id,
            "minted": {tier.value: self.minted.get(tier, 0) for tier in TIER_ORDER},
            "policyId": self.policy_id,
        }


def _policy_amounts(store: LedgerStore, policy_id: str) -> dict[WermTier, int]:
    policy = store.get_policy(policy_id)
    if policy.operation != PolicyOperation.MINT:
        raise ValidationError("Policy is not a mint policy")
    if policy.status != PolicyStatus.ACTIVE:
        raise ValidationError("Policy is not active")
    return {tier: n for tier, n in policy.rewards().items() if n > 0}


def _increment_bank_supply(store: LedgerStore, bank_id: str, amounts: dict[WermTier, int]) -> None:
    for tier in TIER_ORDER:
        amount = amounts.get(tier, 0)
        if amount <= 0:
            continue
        current = store.get_supply_counter(bank_id, tier)
        store.update_supply_counter(
            bank_id, tier, current.digital + amount, current.physical + amount
        )


def _increment_bank_holder(store: LedgerStore, amounts: dict[WermTier, int]) -> None:
    bank = store.find_holder(Employee.id == BANK_HOLDER_ID, for_update=True)
    if bank is None:
        raise NotFoundError("Bank holder not found")
    balances = dict(bank.werm_balances)
    for tier, amount in amounts.items():
        balances[tier.value] += amount
    store.upsert_holders([bank.model_copy(update={"werm_balances": balances})])


def mint_werms(
    engine: Engine,
    policy_id: str | None = None,
    amounts: Mapping[str, int] | None = None,
) -> MintResult:
    """Mint werms into the bank from *policy_id* or explicit *amounts*.

    Exactly one of the two must be given.
    """
    if (policy_id is None) == (amounts is None):
        raise ValidationError("Provide policyId or amounts")

    explicit = normalize_amounts(amounts) if amounts is not None else None

    with ledger_transaction(engine) as store:
        bank_id = store.get_default_bank()
        minted = _policy_amounts(store, policy_id) if policy_id is not None else explicit
        if not minted:
            raise ValidationError("Nothing to mint: all amounts are zero")

        _increment_bank_supply(store, bank_id, minted)
        _increment_bank_holder(store, minted)

        description = "Mint via policy" if policy_id is not None else "Manual mint"
        rows = store.append_transactions(
            LedgerEntry(
                sender_id=None,
                receiver_id=BANK_HOLDER_ID,
                sender_email=SYSTEM_SENDER_EMAIL,
                receiver_username=BANK_HOLDER_USERNAME,
                werm_type=tier.value,
                amount=minted[tier],
                value_aud=minted[tier] * unit_value(tier),
                description=description,
                source=TransactionSource.POLICY,
                status=TransactionStatus.COMPLETED,
                policy_id=policy_id,
            )
            for tier in TIER_ORDER
            if minted.get(tier, 0) > 0
        )
        transaction_ids = [row.id for row in rows]

    logger.info(
        "Minted into bank %s (policy=%s): %s",
        bank_id,
        policy_id,
        ", ".join(f"{minted[t]} {t}" for t in TIER_ORDER if t in minted),
    )
    return MintResult(
        bank_id=bank_id, minted=minted, policy_id=policy_id, transaction_ids=transaction_ids
    )
