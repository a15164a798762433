"""
werms.services.policy_service — Audit-Logged Policy CRUD
=========================================================

Every write follows the pattern:
  1. Open a session
  2. Read "before" snapshot
  3. Apply change
  4. Write admin_log with before/after JSON
  5. Commit
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from werms.database.models import (
    AdminLog,
    Policy,
    PolicyCategory,
    PolicyOperation,
    PolicyStatus,
)
from werms.engine.currency import MAX_TIER_AMOUNT, TIER_ORDER
from werms.engine.errors import ValidationError

logger = logging.getLogger(__name__)

UNKNOWN_CREATOR = {"name": "Unknown", "email": "", "role": ""}

# Fields an admin may change after creation.
EDITABLE_FIELDS: frozenset[str] = frozenset({
    "title", "description", "category", "status", "operation",
    "approval_required", "gold_reward", "silver_reward", "bronze_reward",
    "effective_at", "expires_at",
})


# ---------------------------------------------------------------------------
# Audit helpers
# ---------------------------------------------------------------------------
def _row_to_dict(obj: Any) -> dict | None:
    """Convert a model instance to a JSON-serializable dict."""
    if obj is None:
        return None
    result = {}
    for col in obj.__table__.columns:
        val = getattr(obj, col.key if col.key != "metadata" else "metadata_", None)
        if isinstance(val, (datetime, date)):
            val = val.isoformat()
        result[col.name] = val
    return result


def _log_admin_action(
    session: Session,
    *,
    actor_email: str,
    action_type: str,
    target_id: str | None,
    before: dict | None,
    after: dict | None,
    reason: str | None = None,
) -> None:
    session.add(AdminLog(
        actor_email=actor_email,
        action_type=action_type,
        target_table="policies",
        target_id=target_id,
        before_snapshot=before,
        after_snapshot=after,
        reason=reason,
    ))


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def _check_choice(value: str, choices: type, label: str) -> str:
    if value not in choices._value2member_map_:
        allowed = ", ".join(choices._value2member_map_)
        raise ValidationError(f"Invalid {label} {value!r}; expected one of: {allowed}")
    return value


def operation_for_category(category: str) -> PolicyOperation:
    """Minting policies mint; every other category distributes."""
    if category == PolicyCategory.MINTING:
        return PolicyOperation.MINT
    return PolicyOperation.DISTRIBUTION


def total_condition_rewards(conditions: Iterable[Mapping[str, Any]]) -> tuple[dict[str, int], bool]:
    """Sum the per-tier ``wormReward`` of each condition.

    Returns ``(totals, approval_required)``; approval is required if any
    condition asks for it.  Keys outside the tier set are ignored.
    """
    totals = {tier.value: 0 for tier in TIER_ORDER}
    approval = False
    for cond in conditions:
        if not isinstance(cond, Mapping):
            continue
        reward = cond.get("wormReward") or {}
        for tier in TIER_ORDER:
            raw = reward.get(tier.value)
            if raw is None:
                continue
            if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
                raise ValidationError(f"{tier.value} reward must be a non-negative whole number")
            totals[tier.value] += raw
            if totals[tier.value] > MAX_TIER_AMOUNT:
                raise ValidationError(f"{tier.value} reward is too large")
        approval = approval or bool(cond.get("requiresApproval"))
    return totals, approval


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_policies(
    engine: Engine,
    *,
    status: str | None = None,
    category: str | None = None,
) -> list[Policy]:
    """All policies, newest first, optionally filtered."""
    stmt = select(Policy).order_by(Policy.created_at.desc(), Policy.title)
    if status:
        stmt = stmt.where(Policy.status == status)
    if category:
        stmt = stmt.where(Policy.category == category)
    with Session(engine) as session:
        rows = session.scalars(stmt).all()
        for r in rows:
            session.expunge(r)
        return list(rows)


def get_policy(engine: Engine, policy_id: str) -> Policy | None:
    with Session(engine, expire_on_commit=False) as session:
        row = session.get(Policy, policy_id)
        if row is not None:
            session.expunge(row)
        return row


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def create_policy(
    engine: Engine,
    *,
    title: str,
    description: str,
    category: str,
    status: str,
    effective_at: datetime,
    conditions: list[dict] | None = None,
    expires_at: datetime | None = None,
    is_system_policy: bool = False,
    created_by: dict | None = None,
    actor_email: str,
) -> Policy:
    """Create a policy from the dashboard form payload."""
    if not title or not description or not category or not status or effective_at is None:
        raise ValidationError("Missing required fields")
    _check_choice(category, PolicyCategory, "category")
    _check_choice(status, PolicyStatus, "status")

    conditions = conditions or []
    totals, approval = total_condition_rewards(conditions)

    policy = Policy(
        title=title,
        description=description,
        category=category,
        status=status,
        operation=operation_for_category(category),
        execution_mode="manual",
        target_type="all",
        target_values=[],
        approval_required=approval,
        gold_reward=totals["gold"],
        silver_reward=totals["silver"],
        bronze_reward=totals["bronze"],
        created_by=created_by or dict(UNKNOWN_CREATOR),
        effective_at=effective_at,
        expires_at=expires_at,
        is_system_policy=is_system_policy,
        metadata_={"source": "ui", "conditions": conditions},
    )
    with Session(engine, expire_on_commit=False) as session:
        session.add(policy)
        session.flush()
        _log_admin_action(
            session,
            actor_email=actor_email,
            action_type="CREATE",
            target_id=policy.id,
            before=None,
            after=_row_to_dict(policy),
        )
        session.commit()
        session.refresh(policy)
        session.expunge(policy)

    logger.info("Policy %s created by %s (%s)", policy.id, actor_email, policy.operation)
    return policy


def update_policy(
    engine: Engine,
    policy_id: str,
    *,
    actor_email: str,
    **changes: Any,
) -> Policy | None:
    """Apply *changes* to an existing policy.  Returns ``None`` if not found."""
    if "category" in changes and changes["category"] is not None:
        _check_choice(changes["category"], PolicyCategory, "category")
    if "status" in changes and changes["status"] is not None:
        _check_choice(changes["status"], PolicyStatus, "status")
    if "operation" in changes and changes["operation"] is not None:
        _check_choice(changes["operation"], PolicyOperation, "operation")
    for key in ("gold_reward", "silver_reward", "bronze_reward"):
        value = changes.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
            raise ValidationError(f"{key} must be a non-negative whole number")

    with Session(engine, expire_on_commit=False) as session:
        policy = session.get(Policy, policy_id)
        if policy is None:
            return None
        before = _row_to_dict(policy)
        for key, value in changes.items():
            if key in EDITABLE_FIELDS and value is not None:
                setattr(policy, key, value)
        session.flush()
        _log_admin_action(
            session,
            actor_email=actor_email,
            action_type="UPDATE",
            target_id=policy.id,
            before=before,
            after=_row_to_dict(policy),
        )
        session.commit()
        session.refresh(policy)
        session.expunge(policy)
        return policy


def delete_policy(engine: Engine, policy_id: str, *, actor_email: str) -> bool:
    """Delete a policy.  Returns ``True`` if it existed.

    Ledger records that reference the policy keep their ``policy_id``.
    """
    with Session(engine) as session:
        policy = session.get(Policy, policy_id)
        if policy is None:
            return False
        _log_admin_action(
            session,
            actor_email=actor_email,
            action_type="DELETE",
            target_id=policy.id,
            before=_row_to_dict(policy),
            after=None,
        )
        session.delete(policy)
        session.commit()

    logger.info("Policy %s deleted by %s", policy_id, actor_email)
    return True
