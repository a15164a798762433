"""
werms.services.ledger_store — Session-Bound Ledger Store
=========================================================

The only place the transfer and mint services touch SQLAlchemy.

A :class:`LedgerStore` wraps one explicitly opened :class:`Session`;
:func:`ledger_transaction` opens it, commits once at the end, and rolls
everything back on any error.  Rows are validated with pydantic on the
way out, so a malformed ``werm_balances`` blob fails fast as a
:class:`StoreError` instead of leaking half-typed dicts into the engine.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass

from pydantic import BaseModel, ConfigDict, NonNegativeInt, field_validator
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import Engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from werms.database.models import (
    Bank,
    BankCoinSupply,
    Employee,
    Policy,
    PolicyOperation,
    PolicyStatus,
    WermTransaction,
)
from werms.engine.currency import TIER_ORDER, WermTier
from werms.engine.errors import NotFoundError, StoreError, WermsError

logger = logging.getLogger(__name__)

STORE_FAILURE_MESSAGE = "The ledger is unavailable right now. Please try again later."


# ---------------------------------------------------------------------------
# Validated row shapes
# ---------------------------------------------------------------------------
def _coerce_holding(value: object) -> dict[str, object]:
    if value is None:
        value = {}
    if not isinstance(value, dict):
        raise ValueError("holding must be an object")
    return {tier.value: value.get(tier.value) or 0 for tier in TIER_ORDER}


class HolderSnapshot(BaseModel):
    """A ledger holder as read from ``employees``."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    email: str
    slack_username: str | None = None
    werm_balances: dict[str, NonNegativeInt]
    lifetime_earned: dict[str, NonNegativeInt]

    @field_validator("werm_balances", "lifetime_earned", mode="before")
    @classmethod
    def _holding(cls, v: object) -> dict[str, object]:
        return _coerce_holding(v)


class PolicySnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    title: str
    operation: PolicyOperation
    status: PolicyStatus
    gold_reward: NonNegativeInt = 0
    silver_reward: NonNegativeInt = 0
    bronze_reward: NonNegativeInt = 0

    @field_validator("gold_reward", "silver_reward", "bronze_reward", mode="before")
    @classmethod
    def _none_is_zero(cls, v: object) -> object:
        return 0 if v is None else v

    def rewards(self) -> dict[WermTier, int]:
        return {
            WermTier.GOLD: self.gold_reward,
            WermTier.SILVER: self.silver_reward,
            WermTier.BRONZE: self.bronze_reward,
        }


@dataclass(frozen=True, slots=True)
class SupplyCounter:
    digital: int
    physical: int


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """A transaction record waiting to be appended."""

    sender_id: str | None
    receiver_id: str | None
    sender_email: str
    receiver_username: str
    werm_type: str
    amount: int
    value_aud: float
    description: str | None
    source: str
    status: str
    policy_id: str | None = None


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------
class LedgerStore:
    """Ledger reads and writes bound to one open session.

    Nothing here commits; the enclosing :func:`ledger_transaction` does.
    ``for_update`` reads take row locks (``SELECT … FOR UPDATE``) so two
    requests touching the same holder or counter serialise instead of
    losing an update.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    # -- holders -----------------------------------------------------------
    def snapshot(self, holder: Employee) -> HolderSnapshot:
        try:
            return HolderSnapshot.model_validate(holder)
        except PydanticValidationError as exc:
            logger.error("Malformed ledger row for holder %s: %s", holder.id, exc)
            raise StoreError(STORE_FAILURE_MESSAGE) from exc

    def find_holders(self, *criteria, for_update: bool = False) -> list[HolderSnapshot]:
        stmt = select(Employee).where(*criteria)
        if for_update:
            stmt = stmt.with_for_update()
        return [self.snapshot(row) for row in self.session.scalars(stmt).all()]

    def find_holder(self, *criteria, for_update: bool = False) -> HolderSnapshot | None:
        rows = self.find_holders(*criteria, for_update=for_update)
        return rows[0] if len(rows) == 1 else None

    def upsert_holders(self, holders: Iterable[HolderSnapshot]) -> None:
        """Write balances and lifetime counters for every holder in one flush."""
        for snap in holders:
            row = self.session.get(Employee, snap.id)
            if row is None:
                row = Employee(
                    id=snap.id,
                    name=snap.name,
                    email=snap.email,
                    slack_username=snap.slack_username,
                )
                self.session.add(row)
            row.werm_balances = dict(snap.werm_balances)
            row.lifetime_earned = dict(snap.lifetime_earned)
        self.session.flush()

    # -- ledger ------------------------------------------------------------
    def append_transactions(self, entries: Iterable[LedgerEntry]) -> list[WermTransaction]:
        rows = [WermTransaction(**asdict(entry)) for entry in entries]
        if rows:
            self.session.add_all(rows)
            self.session.flush()
        return rows

    # -- bank & policies ---------------------------------------------------
    def get_default_bank(self) -> str:
        bank_id = self.session.scalar(
            select(Bank.id).where(Bank.is_default.is_(True)).limit(1)
        )
        if bank_id is None:
            raise NotFoundError("Default bank not found")
        return bank_id

    def get_policy(self, policy_id: str) -> PolicySnapshot:
        row = self.session.get(Policy, policy_id)
        if row is None:
            raise NotFoundError("Policy not found")
        try:
            return PolicySnapshot.model_validate(row)
        except PydanticValidationError as exc:
            logger.error("Malformed policy row %s: %s", policy_id, exc)
            raise StoreError(STORE_FAILURE_MESSAGE) from exc

    def _supply_row(self, bank_id: str, tier: WermTier) -> BankCoinSupply:
        row = self.session.scalar(
            select(BankCoinSupply)
            .where(BankCoinSupply.bank_id == bank_id, BankCoinSupply.werm_type == tier.value)
            .with_for_update()
        )
        if row is None:
            row = BankCoinSupply(
                bank_id=bank_id, werm_type=tier.value, digital_amount=0, physical_amount=0
            )
            self.session.add(row)
            self.session.flush()
            logger.info("Created missing supply counter %s/%s", bank_id, tier.value)
        return row

    def get_supply_counter(self, bank_id: str, tier: WermTier) -> SupplyCounter:
        row = self._supply_row(bank_id, tier)
        return SupplyCounter(
            digital=int(row.digital_amount or 0), physical=int(row.physical_amount or 0)
        )

    def update_supply_counter(
        self, bank_id: str, tier: WermTier, digital: int, physical: int
    ) -> None:
        row = self._supply_row(bank_id, tier)
        row.digital_amount = digital
        row.physical_amount = physical
        self.session.flush()


@contextmanager
def ledger_transaction(engine: Engine) -> Iterator[LedgerStore]:
    """Run a block of ledger work as one database transaction.

    Domain errors propagate untouched; SQLAlchemy failures are logged and
    re-raised as :class:`StoreError` with a generic message.  Either way
    nothing is committed.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield LedgerStore(session)
        session.commit()
    except WermsError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Ledger transaction failed", exc_info=True)
        raise StoreError(STORE_FAILURE_MESSAGE) from exc
    finally:
        session.close()
