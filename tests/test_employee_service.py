"""
tests/test_employee_service.py — Provisioning, balances & history
==================================================================
"""

from __future__ import annotations

import re
from datetime import UTC, datetime

import pytest

from conftest import load_employee
from werms.engine.errors import NotFoundError, ValidationError
from werms.services import employee_service
from werms.services.transfer_service import transfer_werms


def _user(email="new.person@example.com", **meta):
    return {"id": "auth-uuid", "email": email, "user_metadata": meta}


class TestEnsureEmployee:
    def test_creates_with_defaults(self, engine):
        emp, created = employee_service.ensure_employee(
            engine, _user(full_name="New Person", user_name="newbie", avatar_url="https://a/x.png")
        )
        assert created is True
        assert re.fullmatch(r"EMP-\d{4}-\d{4}", emp.id)
        assert emp.name == "New Person"
        assert emp.slack_username == "@newbie"
        assert emp.permissions == ["view_own_balance"]
        assert emp.werm_balances == {"gold": 0, "silver": 0, "bronze": 0}
        assert emp.avatar_url == "https://a/x.png"

    def test_name_falls_back_to_email_local_part(self, engine):
        emp, _ = employee_service.ensure_employee(engine, _user("sam@example.com"))
        assert emp.name == "sam"
        assert emp.slack_username == "@sam"

    def test_existing_row_keeps_balances(self, engine, alice):
        emp, created = employee_service.ensure_employee(
            engine, _user("alice@example.com", full_name="Alice Liddell")
        )
        assert created is False
        assert emp.id == alice.id
        assert emp.name == "Alice Liddell"
        assert load_employee(engine, alice.id).werm_balances == {"gold": 5, "silver": 10, "bronze": 20}

    def test_requires_email(self, engine):
        with pytest.raises(ValidationError):
            employee_service.ensure_employee(engine, {"user_metadata": {}})

    def test_handle_collision_is_validation_error(self, engine, alice):
        with pytest.raises(ValidationError, match="@alice"):
            employee_service.ensure_employee(engine, _user("other@example.com", user_name="alice"))


def test_generate_employee_id_format():
    emp_id = employee_service.generate_employee_id(datetime(2025, 6, 1, tzinfo=UTC))
    assert emp_id.startswith("EMP-2025-")
    assert len(emp_id) == len("EMP-2025-0000")


class TestBalanceLookup:
    def test_by_handle_with_or_without_marker(self, engine, alice):
        for handle in ("@alice", "alice"):
            emp, balance = employee_service.get_balance(engine, handle=handle)
            assert emp.id == alice.id
            assert balance.total_value == 5 * 10 + 10 * 3 + 20

    def test_by_email(self, engine, bob):
        _, balance = employee_service.get_balance(engine, email="bob@example.com")
        assert balance.total_coins == 6

    def test_unknown(self, engine):
        with pytest.raises(NotFoundError, match="@ghost"):
            employee_service.get_balance(engine, handle="@ghost")

    def test_requires_a_key(self, engine):
        with pytest.raises(ValidationError):
            employee_service.get_employee(engine)


class TestTransactionHistory:
    def test_filters_by_employee_on_either_side(self, engine, alice, bob, admin):
        transfer_werms(engine, "alice@example.com", "@bob", {"gold": 1})
        transfer_werms(engine, "bob@example.com", "@alice", {"bronze": 2})

        alice_rows = employee_service.list_transactions(engine, employee_id=alice.id)
        assert len(alice_rows) == 2
        assert employee_service.list_transactions(engine, employee_id=admin.id) == []

    def test_newest_first_and_paginated(self, engine, alice, bob):
        for n in (1, 2, 3):
            transfer_werms(engine, "alice@example.com", "@bob", {"bronze": n})

        rows = employee_service.list_transactions(engine, slack_username="bob")
        assert [r.amount for r in rows] == [3, 2, 1]

        page = employee_service.list_transactions(engine, slack_username="@bob", limit=1, offset=1)
        assert [r.amount for r in page] == [2]

    def test_slack_username_matches_sent_records(self, engine, alice, bob):
        transfer_werms(engine, "alice@example.com", "@bob", {"bronze": 1})
        rows = employee_service.list_transactions(engine, slack_username="@alice")
        assert len(rows) == 1
        assert rows[0].sender_id == alice.id

    @pytest.mark.parametrize("limit,offset", [(0, 0), (10, -1)])
    def test_rejects_bad_paging(self, engine, limit, offset):
        with pytest.raises(ValidationError):
            employee_service.list_transactions(engine, limit=limit, offset=offset)
