"""
werms.api.routes.ledger — Minting, balances & transaction history
==================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, StrictInt
from sqlalchemy import Engine

from werms.api.deps import get_config, get_current_admin, get_engine, get_token_claims
from werms.config import WermsConfig
from werms.database.models import Employee, WermTransaction
from werms.engine.errors import ValidationError
from werms.services import employee_service, mint_service

router = APIRouter(tags=["ledger"])


class MintRequest(BaseModel):
    policy_id: str | None = Field(default=None, alias="policyId")
    amounts: dict[str, StrictInt | None] | None = None


def _transaction_dict(t: WermTransaction) -> dict:
    return {
        "id": t.id,
        "senderId": t.sender_id,
        "receiverId": t.receiver_id,
        "senderEmail": t.sender_email,
        "receiverUsername": t.receiver_username,
        "wermType": t.werm_type,
        "amount": t.amount,
        "valueAud": t.value_aud,
        "description": t.description,
        "policyId": t.policy_id,
        "source": t.source,
        "status": t.status,
        "createdAt": t.created_at.isoformat() if t.created_at else None,
    }


@router.post("/mint")
def mint(body: MintRequest, admin: Employee = Depends(get_current_admin),
         engine: Engine = Depends(get_engine)):
    result = mint_service.mint_werms(engine, policy_id=body.policy_id, amounts=body.amounts)
    return {"success": True, **result.to_dict()}


@router.get("/balance")
def balance(
    handle: str | None = Query(None),
    email: str | None = Query(None),
    claims: dict = Depends(get_token_claims),
    engine: Engine = Depends(get_engine),
):
    """Enriched balance of one employee, by Slack handle or email."""
    if not handle and not email:
        raise ValidationError("Provide handle or email")
    employee, enriched = employee_service.get_balance(
        engine, email=email or None, handle=handle or None
    )
    return {
        "employeeId": employee.id,
        "name": employee.name,
        "slackUsername": employee.slack_username,
        "balance": enriched.to_dict(),
    }


@router.get("/transactions")
def transactions(
    employee_id: str | None = Query(None, alias="employeeId"),
    slack_username: str | None = Query(None, alias="slackUsername"),
    limit: int | None = Query(None),
    offset: int = Query(0),
    claims: dict = Depends(get_token_claims),
    engine: Engine = Depends(get_engine),
    cfg: WermsConfig = Depends(get_config),
):
    limit = cfg.default_transactions_limit if limit is None else min(limit, cfg.max_transactions_limit)
    rows = employee_service.list_transactions(
        engine,
        employee_id=employee_id,
        slack_username=slack_username,
        limit=limit,
        offset=offset,
    )
    return {"transactions": [_transaction_dict(t) for t in rows], "limit": limit, "offset": offset}
