"""
werms.api.routes.employees — Employee provisioning after sign-in
=================================================================
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import Engine

from werms.api.deps import get_engine, get_token_claims
from werms.constants import ADMIN_PERMISSION
from werms.database.models import Employee
from werms.engine.balances import aggregate
from werms.services import employee_service

router = APIRouter(prefix="/employees", tags=["employees"])


class EnsureRequest(BaseModel):
    user: dict[str, Any]


def _employee_dict(e: Employee) -> dict:
    return {
        "id": e.id,
        "name": e.name,
        "email": e.email,
        "slackUsername": e.slack_username,
        "department": e.department,
        "role": e.role,
        "hireDate": e.hire_date.isoformat() if e.hire_date else None,
        "permissions": e.permissions or [],
        "avatarUrl": e.avatar_url,
        "balance": aggregate(e.werm_balances).to_dict(),
    }


@router.post("/ensure")
def ensure(
    body: EnsureRequest,
    claims: dict = Depends(get_token_claims),
    engine: Engine = Depends(get_engine),
):
    """Provision the signed-in user (or, for admins, any user)."""
    if body.user.get("email") != claims["email"]:
        caller = employee_service.get_employee(engine, email=claims["email"])
        if caller is None or ADMIN_PERMISSION not in (caller.permissions or []):
            raise HTTPException(403, "Not admin")
    employee, created = employee_service.ensure_employee(engine, body.user)
    return {"created": created, "employee": _employee_dict(employee)}
