"""
werms.services.employee_service — Employees, Balances & History
================================================================

Read paths used by the dashboard and Slack (balances, transaction
history) plus provisioning of employee rows for newly signed-in users.
"""

from __future__ import annotations

import logging
import random
from datetime import UTC, datetime

from sqlalchemy import Engine, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from werms.constants import DEFAULT_PERMISSIONS, normalize_handle
from werms.database.models import Employee, WermTransaction
from werms.engine.balances import EnrichedBalance, aggregate, empty_holding
from werms.engine.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def generate_employee_id(now: datetime | None = None) -> str:
    """``EMP-<year>-<4 digits>``, the format the dashboard expects."""
    now = now or datetime.now(UTC)
    return f"EMP-{now.year}-{random.randint(0, 9999):04d}"


def get_employee(engine: Engine, *, email: str | None = None, handle: str | None = None) -> Employee | None:
    """Look up one employee by email or Slack handle (detached copy)."""
    if email is None and handle is None:
        raise ValidationError("Provide an email or a Slack handle")
    stmt = select(Employee)
    if email is not None:
        stmt = stmt.where(Employee.email == email)
    if handle is not None:
        stmt = stmt.where(Employee.slack_username == normalize_handle(handle))
    with Session(engine, expire_on_commit=False) as session:
        row = session.scalar(stmt)
        if row is not None:
            session.expunge(row)
        return row


def get_balance(
    engine: Engine, *, email: str | None = None, handle: str | None = None
) -> tuple[Employee, EnrichedBalance]:
    """Enriched balance for an employee, or :class:`NotFoundError`."""
    employee = get_employee(engine, email=email, handle=handle)
    if employee is None:
        who = handle if handle is not None else email
        raise NotFoundError(f"Could not find a record for {who}")
    return employee, aggregate(employee.werm_balances)


def ensure_employee(engine: Engine, user: dict) -> tuple[Employee, bool]:
    """Create the employee row for an auth-provider user if it is missing.

    *user* is the provider's user object (``email`` plus optional
    ``user_metadata`` with ``full_name``, ``user_name``, ``avatar_url``).
    Existing rows keep their id and balances; only the display name and
    avatar are refreshed.  Returns ``(employee, created)``.
    """
    email = (user.get("email") or "").strip()
    if not email:
        raise ValidationError("User has no email")
    meta = user.get("user_metadata") or {}
    name = meta.get("full_name") or email.split("@")[0]
    handle = normalize_handle(meta.get("user_name") or name)
    avatar_url = meta.get("avatar_url") or ""

    with Session(engine, expire_on_commit=False) as session:
        employee = session.scalar(select(Employee).where(Employee.email == email))
        created = employee is None
        if created:
            employee = Employee(
                id=generate_employee_id(),
                name=name,
                email=email,
                slack_username=handle,
                hire_date=datetime.now(UTC).date(),
                permissions=list(DEFAULT_PERMISSIONS),
                werm_balances=empty_holding(),
                lifetime_earned=empty_holding(),
                avatar_url=avatar_url,
            )
            session.add(employee)
        else:
            employee.name = name
            if avatar_url:
                employee.avatar_url = avatar_url
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ValidationError(
                f"Could not provision {email}: id or Slack handle {handle} already in use"
            ) from exc
        session.refresh(employee)
        session.expunge(employee)

    if created:
        logger.info("Provisioned employee %s (%s)", employee.id, email)
    return employee, created


def list_transactions(
    engine: Engine,
    *,
    employee_id: str | None = None,
    slack_username: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[WermTransaction]:
    """Ledger records, newest first.

    ``employee_id`` matches either side of a movement; ``slack_username``
    matches the receiver handle or anything that employee sent.
    """
    if limit < 1 or offset < 0:
        raise ValidationError("limit must be positive and offset non-negative")

    stmt = select(WermTransaction)
    with Session(engine) as session:
        if employee_id:
            stmt = stmt.where(or_(
                WermTransaction.sender_id == employee_id,
                WermTransaction.receiver_id == employee_id,
            ))
        if slack_username:
            handle = normalize_handle(slack_username)
            sender_id = session.scalar(
                select(Employee.id).where(Employee.slack_username == handle)
            )
            clauses = [WermTransaction.receiver_username == handle]
            if sender_id is not None:
                clauses.append(WermTransaction.sender_id == sender_id)
            stmt = stmt.where(or_(*clauses))

        stmt = (
            stmt.order_by(WermTransaction.created_at.desc(), WermTransaction.id)
            .offset(offset)
            .limit(limit)
        )
        rows = session.scalars(stmt).all()
        for r in rows:
            session.expunge(r)
        return list(rows)
