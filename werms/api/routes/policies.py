"""
werms.api.routes.policies — Policy management (JWT-protected writes)
=====================================================================

Serializes policies into the camelCase shape the dashboard renders
(conditions come back out of ``metadata``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Engine

from werms.api.deps import get_engine, get_policy_admin, get_token_claims
from werms.database.models import Employee, Policy
from werms.services import policy_service
from werms.services.ledger_store import PolicySnapshot

router = APIRouter(prefix="/policies", tags=["policies"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class PolicyCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    description: str = ""
    category: str = ""
    status: str = ""
    effective_date: datetime | None = Field(default=None, alias="effectiveDate")
    expiration_date: datetime | None = Field(default=None, alias="expirationDate")
    conditions: list[dict[str, Any]] = Field(default_factory=list)
    is_system_policy: bool = Field(default=False, alias="isSystemPolicy")


class PolicyUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    description: str | None = None
    category: str | None = None
    status: str | None = None
    operation: str | None = None
    effective_date: datetime | None = Field(default=None, alias="effectiveDate")
    expiration_date: datetime | None = Field(default=None, alias="expirationDate")
    gold_reward: int | None = Field(default=None, alias="goldReward")
    silver_reward: int | None = Field(default=None, alias="silverReward")
    bronze_reward: int | None = Field(default=None, alias="bronzeReward")


def _policy_dict(p: Policy) -> dict:
    meta = p.metadata_ or {}
    return {
        "id": p.id,
        "title": p.title,
        "description": p.description,
        "category": p.category,
        "status": p.status,
        "operation": p.operation,
        "conditions": meta.get("conditions", []),
        "rewards": {tier.value: n for tier, n in PolicySnapshot.model_validate(p).rewards().items()},
        "approvalRequired": p.approval_required,
        "createdBy": p.created_by or dict(policy_service.UNKNOWN_CREATOR),
        "effectiveDate": p.effective_at.isoformat() if p.effective_at else None,
        "expirationDate": p.expires_at.isoformat() if p.expires_at else None,
        "isSystemPolicy": p.is_system_policy,
        "createdAt": p.created_at.isoformat() if p.created_at else None,
        "updatedAt": p.updated_at.isoformat() if p.updated_at else None,
    }


def _creator(employee: Employee) -> dict:
    return {"name": employee.name, "email": employee.email, "role": employee.role or ""}


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.get("")
def list_policies(
    status: str | None = Query(None),
    category: str | None = Query(None),
    claims: dict = Depends(get_token_claims),
    engine: Engine = Depends(get_engine),
):
    rows = policy_service.list_policies(engine, status=status, category=category)
    return {"policies": [_policy_dict(p) for p in rows]}


@router.get("/{policy_id}")
def get_policy(policy_id: str, claims: dict = Depends(get_token_claims),
               engine: Engine = Depends(get_engine)):
    policy = policy_service.get_policy(engine, policy_id)
    if policy is None:
        raise HTTPException(404, "Policy not found")
    return _policy_dict(policy)


@router.post("", status_code=201)
def create_policy(
    body: PolicyCreate,
    admin: Employee = Depends(get_policy_admin),
    engine: Engine = Depends(get_engine),
):
    policy = policy_service.create_policy(
        engine,
        title=body.title,
        description=body.description,
        category=body.category,
        status=body.status,
        effective_at=body.effective_date,
        expires_at=body.expiration_date,
        conditions=body.conditions,
        is_system_policy=body.is_system_policy,
        created_by=_creator(admin),
        actor_email=admin.email,
    )
    return {"success": True, "policy": _policy_dict(policy)}


@router.patch("/{policy_id}")
def update_policy(
    policy_id: str,
    body: PolicyUpdate,
    admin: Employee = Depends(get_policy_admin),
    engine: Engine = Depends(get_engine),
):
    changes = body.model_dump(exclude_unset=True, exclude={"effective_date", "expiration_date"})
    if "effective_date" in body.model_fields_set:
        changes["effective_at"] = body.effective_date
    if "expiration_date" in body.model_fields_set:
        changes["expires_at"] = body.expiration_date
    policy = policy_service.update_policy(engine, policy_id, actor_email=admin.email, **changes)
    if policy is None:
        raise HTTPException(404, "Policy not found")
    return {"success": True, "policy": _policy_dict(policy)}


@router.delete("/{policy_id}")
def delete_policy(
    policy_id: str,
    admin: Employee = Depends(get_policy_admin),
    engine: Engine = Depends(get_engine),
):
    if not policy_service.delete_policy(engine, policy_id, actor_email=admin.email):
        raise HTTPException(404, "Policy not found")
    return {"success": True}
