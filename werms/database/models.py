"""
werms.database.models — SQLAlchemy 2.0 Data Models
===================================================

Tables:
- employees          — Ledger holders (employees + the reserved ``bank`` row)
- banks              — Bank entities; exactly one is flagged default
- bank_coin_supply   — Per-bank, per-tier running totals of minted coins
- policies           — Admin-defined mint / distribution / burn rules
- werm_transactions  — Append-only ledger of tier-amount movements
- admin_log          — Append-only audit trail of admin mutations
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, date, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from werms.engine.currency import WermTier

__all__ = [
    "AdminLog",
    "Bank",
    "BankCoinSupply",
    "Base",
    "Employee",
    "Policy",
    "PolicyCategory",
    "PolicyOperation",
    "PolicyStatus",
    "TransactionSource",
    "TransactionStatus",
    "WermTier",
    "WermTransaction",
]


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Werms ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PolicyOperation(enum.StrEnum):
    MINT = "mint"
    DISTRIBUTION = "distribution"
    BURN = "burn"


class PolicyStatus(enum.StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"


class PolicyCategory(enum.StrEnum):
    DISTRIBUTION = "distribution"
    MINTING = "minting"
    RECOGNITION = "recognition"
    COMPLIANCE = "compliance"
    PERFORMANCE = "performance"


class TransactionSource(enum.StrEnum):
    """Where a ledger movement originated."""
    APP = "app"
    SLACK = "slack"
    POLICY = "policy"
    PEER_TRANSFER = "peer-transfer"


class TransactionStatus(enum.StrEnum):
    COMPLETED = "completed"


# ---------------------------------------------------------------------------
# Employees: ledger holders
# ---------------------------------------------------------------------------
class Employee(Base):
    """An employee or the reserved ``bank`` holder.

    ``werm_balances`` and ``lifetime_earned`` are ``{tier: count}`` maps.
    Always assign a new dict when changing them; in-place mutation of a
    JSON column is not tracked by the ORM.
    """
    __tablename__ = "employees"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    slack_username: Mapped[str | None] = mapped_column(String(100), unique=True, default=None)
    department: Mapped[str | None] = mapped_column(String(50), default=None)
    role: Mapped[str | None] = mapped_column(String(100), default=None)
    hire_date: Mapped[date | None] = mapped_column(Date, default=None)
    manager_id: Mapped[str | None] = mapped_column(String(64), default=None)
    permissions: Mapped[list | None] = mapped_column(JSONB, default=list)
    werm_balances: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    lifetime_earned: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    avatar_url: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Employee id={self.id!r} email={self.email!r} slack={self.slack_username!r}>"


# ---------------------------------------------------------------------------
# Banks & supply counters
# ---------------------------------------------------------------------------
class Bank(Base):
    __tablename__ = "banks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Bank id={self.id!r} name={self.name!r} default={self.is_default}>"


class BankCoinSupply(Base):
    """Running totals of coins ever minted, per bank and tier.

    Only the mint service writes here and values never decrease.
    """
    __tablename__ = "bank_coin_supply"

    bank_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("banks.id", ondelete="CASCADE"), primary_key=True
    )
    werm_type: Mapped[str] = mapped_column(String(16), primary_key=True)
    digital_amount: Mapped[int] = mapped_column(BigInteger, default=0)
    physical_amount: Mapped[int] = mapped_column(BigInteger, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<BankCoinSupply bank={self.bank_id!r} tier={self.werm_type} "
            f"digital={self.digital_amount} physical={self.physical_amount}>"
        )


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------
class Policy(Base):
    __tablename__ = "policies"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PolicyStatus.DRAFT)
    operation: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PolicyOperation.DISTRIBUTION
    )
    execution_mode: Mapped[str] = mapped_column(String(20), default="manual")
    target_type: Mapped[str] = mapped_column(String(20), default="all")
    target_values: Mapped[list] = mapped_column(JSONB, default=list)
    approval_required: Mapped[bool] = mapped_column(Boolean, default=False)
    gold_reward: Mapped[int] = mapped_column(Integer, default=0)
    silver_reward: Mapped[int] = mapped_column(Integer, default=0)
    bronze_reward: Mapped[int] = mapped_column(Integer, default=0)
    created_by: Mapped[dict] = mapped_column(JSONB, default=dict)
    effective_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    is_system_policy: Mapped[bool] = mapped_column(Boolean, default=False)
    metadata_: Mapped[dict] = mapped_column("metadata", JSONB, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_policies_status_category", "status", "category"),
    )

    def __repr__(self) -> str:
        return f"<Policy id={self.id!r} op={self.operation} status={self.status}>"


# ---------------------------------------------------------------------------
# Ledger (append-only)
# ---------------------------------------------------------------------------
class WermTransaction(Base):
    """One completed tier-amount movement.  Never updated or deleted."""
    __tablename__ = "werm_transactions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    sender_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    receiver_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sender_email: Mapped[str] = mapped_column(String(255), nullable=False)
    receiver_username: Mapped[str] = mapped_column(String(100), nullable=False)
    werm_type: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    value_aud: Mapped[float] = mapped_column(Float, default=0.0)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    policy_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    source: Mapped[str] = mapped_column(String(20), default=TransactionSource.APP)
    status: Mapped[str] = mapped_column(String(20), default=TransactionStatus.COMPLETED)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_werm_transactions_created", "created_at"),
        Index("ix_werm_transactions_sender", "sender_id", "created_at"),
        Index("ix_werm_transactions_receiver", "receiver_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<WermTransaction {self.sender_id}→{self.receiver_id} "
            f"{self.amount} {self.werm_type}>"
        )


# ---------------------------------------------------------------------------
# AdminLog: append-only audit trail
# ---------------------------------------------------------------------------
class AdminLog(Base):
    __tablename__ = "admin_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_email: Mapped[str] = mapped_column(String(255), nullable=False)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_table: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    before_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    after_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_admin_log_target", "target_table", "target_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<AdminLog id={self.id} actor={self.actor_email!r} action={self.action_type}>"
