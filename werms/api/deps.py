"""
werms.api.deps — FastAPI dependency injection
==============================================

Engine, config and Slack client providers, plus verification of the
bearer tokens issued by the hosted auth provider (HS256, audience
``authenticated``).  Tests swap any of these via
``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from werms.config import WermsConfig, load_config
from werms.constants import ADMIN_PERMISSION, POLICY_PERMISSION
from werms.database.engine import create_db_engine, run_db
from werms.database.models import Employee
from werms.services.employee_service import get_employee
from werms.services.slack_service import SlackService

logger = logging.getLogger(__name__)

_WEAK_SECRETS = frozenset({
    "super-secret-jwt-token-with-at-least-32-characters-long",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"


def _load_jwt_secret() -> str:
    """Load and validate SUPABASE_JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("SUPABASE_JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "SUPABASE_JWT_SECRET environment variable is not set. "
            "Copy it from the auth provider's API settings into .env."
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            "SUPABASE_JWT_SECRET is set to a known weak default. "
            "Please set the project's real JWT secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"SUPABASE_JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> WermsConfig:
    path = Path(os.getenv("WERMS_CONFIG", "config.yaml"))
    if not path.exists():
        logger.warning("No %s found; using default configuration", path)
        return WermsConfig()
    return load_config(path)


@lru_cache(maxsize=1)
def get_slack_service() -> SlackService | None:
    """Slack client, or ``None`` when no bot token is configured."""
    token = os.getenv("SLACK_BOT_USER_OAUTH_TOKEN", "").strip()
    if not token:
        logger.error("SLACK_BOT_USER_OAUTH_TOKEN is not set; Slack commands disabled")
        return None
    return SlackService(
        token,
        signing_secret=os.getenv("SLACK_SIGNING_SECRET", "").strip() or None,
        timeout=get_config().slack_api_timeout,
    )


# ---------------------------------------------------------------------------
# Bearer token verification
# ---------------------------------------------------------------------------
def get_token_claims(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate the bearer token and return its claims. Raises 401 if invalid."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(
            token, JWT_SECRET, algorithms=[JWT_ALGORITHM], audience=JWT_AUDIENCE
        )
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    if not payload.get("email"):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Token has no email")
    return payload


async def get_current_employee(
    claims: dict = Depends(get_token_claims),
    engine: Engine = Depends(get_engine),
) -> Employee:
    """The employee row behind the token. 403 if none is provisioned."""
    employee = await run_db(get_employee, engine, email=claims["email"])
    if employee is None:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "No employee record for this account")
    return employee


def _require(employee: Employee, *permissions: str) -> Employee:
    granted = set(employee.permissions or [])
    if not granted.intersection(permissions):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return employee


def get_current_admin(employee: Employee = Depends(get_current_employee)) -> Employee:
    return _require(employee, ADMIN_PERMISSION)


def get_policy_admin(employee: Employee = Depends(get_current_employee)) -> Employee:
    return _require(employee, ADMIN_PERMISSION, POLICY_PERMISSION)
