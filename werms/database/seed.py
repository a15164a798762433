"""
werms.database.seed — Default Bank Seeder
==========================================

Creates the rows the ledger cannot run without:

* one bank flagged ``is_default``;
* a zeroed ``bank_coin_supply`` row per tier for that bank;
* the reserved ``bank`` employee row that holds minted werms.

Idempotent — only inserts what is missing, never overwrites balances.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select

from werms.constants import BANK_HOLDER_ID, BANK_HOLDER_USERNAME
from werms.database.engine import get_session
from werms.database.models import Bank, BankCoinSupply, Employee
from werms.engine.balances import empty_holding
from werms.engine.currency import TIER_ORDER

logger = logging.getLogger(__name__)

BANK_HOLDER_EMAIL = "bank@werms.internal"


def seed_default_bank(engine: Engine, *, bank_name: str = "Werms Central Bank") -> str:
    """Ensure the default bank, its supply rows and the bank holder exist.

    Returns the default bank id.
    """
    inserted = 0
    with get_session(engine) as session:
        bank = session.scalar(select(Bank).where(Bank.is_default.is_(True)).limit(1))
        if bank is None:
            bank = Bank(name=bank_name, is_default=True)
            session.add(bank)
            session.flush()
            inserted += 1

        for tier in TIER_ORDER:
            if session.get(BankCoinSupply, (bank.id, tier.value)) is None:
                session.add(BankCoinSupply(
                    bank_id=bank.id,
                    werm_type=tier.value,
                    digital_amount=0,
                    physical_amount=0,
                ))
                inserted += 1

        if session.get(Employee, BANK_HOLDER_ID) is None:
            session.add(Employee(
                id=BANK_HOLDER_ID,
                name=bank_name,
                email=BANK_HOLDER_EMAIL,
                slack_username=BANK_HOLDER_USERNAME,
                permissions=[],
                werm_balances=empty_holding(),
                lifetime_earned=empty_holding(),
            ))
            inserted += 1

        bank_id = bank.id

    if inserted:
        logger.info("Seeded %d default bank rows.", inserted)
    return bank_id
