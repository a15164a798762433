"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid SUPABASE_JWT_SECRET is always set for test runs.
# This must happen before any import of werms.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("SUPABASE_JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, but SQLAlchemy's JSON type works.
# We register a custom type compiler so SQLite renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from werms.database.engine import init_db  # noqa: E402
from werms.database.models import Employee  # noqa: E402
from werms.services.slack_service import SlackError, SlackService  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all tables and the default bank seeded.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` in ``run_db``).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@pytest.fixture
def engine(db_engine):
    return db_engine


def add_employee(
    engine: Engine,
    emp_id: str,
    email: str,
    handle: str | None,
    *,
    gold: int = 0,
    silver: int = 0,
    bronze: int = 0,
    permissions: list[str] | None = None,
    name: str | None = None,
) -> Employee:
    """Insert an employee holding the given coins."""
    with Session(engine, expire_on_commit=False) as session:
        emp = Employee(
            id=emp_id,
            name=name or emp_id,
            email=email,
            slack_username=handle,
            permissions=permissions if permissions is not None else ["view_own_balance"],
            werm_balances={"gold": gold, "silver": silver, "bronze": bronze},
            lifetime_earned={"gold": 0, "silver": 0, "bronze": 0},
        )
        session.add(emp)
        session.commit()
        return emp


def load_employee(engine: Engine, emp_id: str) -> Employee:
    with Session(engine, expire_on_commit=False) as session:
        emp = session.get(Employee, emp_id)
        session.expunge(emp)
        return emp


@pytest.fixture
def alice(engine) -> Employee:
    return add_employee(engine, "EMP-2024-0001", "alice@example.com", "@alice",
                        gold=5, silver=10, bronze=20)


@pytest.fixture
def bob(engine) -> Employee:
    return add_employee(engine, "EMP-2024-0002", "bob@example.com", "@bob",
                        gold=1, silver=2, bronze=3)


@pytest.fixture
def admin(engine) -> Employee:
    return add_employee(engine, "EMP-2024-0099", "admin@example.com", "@admin",
                        permissions=["admin", "view_own_balance"])


# ---------------------------------------------------------------------------
# Auth & API
# ---------------------------------------------------------------------------
def make_token(email: str, *, audience: str = "authenticated", secret: str | None = None) -> str:
    """Create a bearer token like the hosted auth provider issues."""
    import jwt

    from werms.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode(
        {"sub": "user-" + email, "email": email, "aud": audience, "role": "authenticated"},
        secret or JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


def auth(email: str) -> dict:
    return {"Authorization": f"Bearer {make_token(email)}"}


class FakeSlack(SlackService):
    """SlackService that resolves emails from a dict instead of the Web API."""

    def __init__(self, emails: dict[str, str] | None = None, **kwargs) -> None:
        super().__init__("xoxb-test", **kwargs)
        self.emails = emails or {}

    async def get_user_email(self, user_id: str) -> str:
        if user_id not in self.emails:
            raise SlackError("user_not_found")
        return self.emails[user_id]


@pytest.fixture
def fake_slack() -> FakeSlack:
    return FakeSlack({"U_ALICE": "alice@example.com", "U_BOB": "bob@example.com"})


@pytest.fixture
def client(engine, fake_slack):
    """FastAPI TestClient bound to the in-memory engine and fake Slack."""
    from fastapi.testclient import TestClient

    from werms.api.deps import get_config, get_engine, get_slack_service
    from werms.api.main import app
    from werms.config import WermsConfig

    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_slack_service] = lambda: fake_slack
    app.dependency_overrides[get_config] = lambda: WermsConfig(max_transactions_limit=5)
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
