"""
tests/test_mint_service.py — Minting into the bank
===================================================
Uses an in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import load_employee
from werms.database.models import Bank, BankCoinSupply, Policy, WermTransaction
from werms.engine.currency import WermTier
from werms.engine.errors import NotFoundError, ValidationError
from werms.services.mint_service import mint_werms


def _add_policy(engine, *, operation="mint", status="active", gold=15, silver=47, bronze=94) -> str:
    with Session(engine, expire_on_commit=False) as session:
        policy = Policy(
            title="Quarterly issuance",
            description="Mint the quarter's recognition budget",
            category="minting",
            status=status,
            operation=operation,
            gold_reward=gold,
            silver_reward=silver,
            bronze_reward=bronze,
            effective_at=datetime(2026, 1, 1, tzinfo=UTC),
        )
        session.add(policy)
        session.commit()
        return policy.id


def _supply(engine) -> dict[str, tuple[int, int]]:
    with Session(engine) as session:
        rows = session.scalars(select(BankCoinSupply)).all()
        return {r.werm_type: (r.digital_amount, r.physical_amount) for r in rows}


def _records(engine) -> list[WermTransaction]:
    with Session(engine) as session:
        rows = session.scalars(select(WermTransaction)).all()
        for r in rows:
            session.expunge(r)
        return list(rows)


class TestPolicyMint:
    def test_mints_policy_rewards_into_bank(self, engine):
        policy_id = _add_policy(engine)

        result = mint_werms(engine, policy_id=policy_id)

        assert load_employee(engine, "bank").werm_balances == {
            "gold": 15, "silver": 47, "bronze": 94,
        }
        assert _supply(engine) == {"gold": (15, 15), "silver": (47, 47), "bronze": (94, 94)}
        assert result.minted == {WermTier.GOLD: 15, WermTier.SILVER: 47, WermTier.BRONZE: 94}
        assert result.policy_id == policy_id

    def test_one_record_per_tier_from_system_to_bank(self, engine):
        policy_id = _add_policy(engine)
        mint_werms(engine, policy_id=policy_id)

        rows = _records(engine)
        assert len(rows) == 3
        assert sorted((r.werm_type, r.amount) for r in rows) == [
            ("bronze", 94), ("gold", 15), ("silver", 47),
        ]
        for r in rows:
            assert r.sender_id is None
            assert r.sender_email == "system"
            assert r.receiver_id == "bank"
            assert r.receiver_username == "bank"
            assert r.source == "policy"
            assert r.status == "completed"
            assert r.policy_id == policy_id
            assert r.description == "Mint via policy"

    def test_minting_twice_accumulates(self, engine):
        policy_id = _add_policy(engine, gold=1, silver=0, bronze=2)
        mint_werms(engine, policy_id=policy_id)
        mint_werms(engine, policy_id=policy_id)

        assert load_employee(engine, "bank").werm_balances == {"gold": 2, "silver": 0, "bronze": 4}
        assert _supply(engine)["gold"] == (2, 2)
        assert _supply(engine)["silver"] == (0, 0)
        assert len(_records(engine)) == 4

    def test_zero_tiers_produce_no_record(self, engine):
        policy_id = _add_policy(engine, gold=0, silver=5, bronze=0)
        mint_werms(engine, policy_id=policy_id)
        assert [r.werm_type for r in _records(engine)] == ["silver"]

    def test_result_dict(self, engine):
        policy_id = _add_policy(engine, gold=1, silver=0, bronze=0)
        data = mint_werms(engine, policy_id=policy_id).to_dict()
        assert data["minted"] == {"gold": 1, "silver": 0, "bronze": 0}
        assert data["policyId"] == policy_id
        assert data["bankId"]


class TestPolicyRejections:
    @pytest.mark.parametrize(
        "operation,status,message",
        [
            ("distribution", "active", "not a mint policy"),
            ("burn", "active", "not a mint policy"),
            ("mint", "inactive", "not active"),
            ("mint", "draft", "not active"),
        ],
    )
    def test_rejected_without_mutation(self, engine, operation, status, message):
        policy_id = _add_policy(engine, operation=operation, status=status)

        with pytest.raises(ValidationError, match=message):
            mint_werms(engine, policy_id=policy_id)

        assert load_employee(engine, "bank").werm_balances == {"gold": 0, "silver": 0, "bronze": 0}
        assert _supply(engine) == {"gold": (0, 0), "silver": (0, 0), "bronze": (0, 0)}
        assert _records(engine) == []

    def test_unknown_policy(self, engine):
        with pytest.raises(NotFoundError, match="Policy not found"):
            mint_werms(engine, policy_id="nope")

    def test_all_zero_policy_rejected(self, engine):
        policy_id = _add_policy(engine, gold=0, silver=0, bronze=0)
        with pytest.raises(ValidationError):
            mint_werms(engine, policy_id=policy_id)


class TestManualMint:
    def test_explicit_amounts(self, engine):
        result = mint_werms(engine, amounts={"gold": 3, "bronze": 10})

        assert load_employee(engine, "bank").werm_balances == {"gold": 3, "silver": 0, "bronze": 10}
        assert result.policy_id is None
        rows = _records(engine)
        assert len(rows) == 2
        assert all(r.description == "Manual mint" and r.policy_id is None for r in rows)
        assert {r.werm_type: r.value_aud for r in rows} == {"gold": 30.0, "bronze": 10.0}

    @pytest.mark.parametrize("kwargs", [{}, {"policy_id": "p", "amounts": {"gold": 1}}])
    def test_requires_exactly_one_source(self, engine, kwargs):
        with pytest.raises(ValidationError, match="Provide policyId or amounts"):
            mint_werms(engine, **kwargs)

    def test_negative_amount_rejected(self, engine):
        with pytest.raises(ValidationError):
            mint_werms(engine, amounts={"gold": -5})
        assert _records(engine) == []


class TestBankState:
    def test_missing_supply_row_created_at_zero(self, engine):
        with Session(engine) as session:
            session.query(BankCoinSupply).filter_by(werm_type="gold").delete()
            session.commit()

        mint_werms(engine, amounts={"gold": 4})
        assert _supply(engine)["gold"] == (4, 4)

    def test_no_default_bank(self, engine):
        with Session(engine) as session:
            for bank in session.scalars(select(Bank)).all():
                bank.is_default = False
            session.commit()

        with pytest.raises(NotFoundError, match="Default bank not found"):
            mint_werms(engine, amounts={"gold": 1})
