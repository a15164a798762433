"""
werms.api.routes.slack — Slash-command webhooks
================================================

Slack posts ``application/x-www-form-urlencoded`` bodies here.  Every
handler answers HTTP 200 with a Slack payload, even on failure, so the
user always sees a message instead of Slack's generic timeout error.
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qs

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import Engine

from werms.api.deps import get_engine, get_slack_service
from werms.constants import normalize_handle
from werms.database.engine import run_db
from werms.engine.commands import (
    format_balance_message,
    format_transfer_message,
    parse_transfer_command,
)
from werms.engine.errors import InvalidCommandError, WermsError
from werms.services.employee_service import get_balance
from werms.services.slack_service import SlackError, SlackService
from werms.services.transfer_service import transfer_werms

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slack", tags=["slack"])

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

USAGE = "Invalid command format. Try `/werm @alice 5 gold 2 silver for the demo`."
NOT_CONFIGURED = "Slack integration is not configured. Please contact an admin."
GENERIC_FAILURE = "Something went wrong. Please try again later."


async def _read_form(request: Request, slack: SlackService | None) -> dict[str, str]:
    """Decode the form body after checking Slack's request signature."""
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith(FORM_CONTENT_TYPE):
        raise HTTPException(400, "Unsupported content type")

    body = await request.body()
    if slack is not None and not slack.verify_signature(
        body,
        request.headers.get("x-slack-request-timestamp"),
        request.headers.get("x-slack-signature"),
    ):
        logger.warning("Rejected Slack request with bad signature")
        raise HTTPException(401, "Invalid signature")

    parsed = parse_qs(body.decode("utf-8", errors="replace"), keep_blank_values=True)
    return {key: values[0] for key, values in parsed.items()}


@router.post("/transfer")
async def slack_transfer(
    request: Request,
    engine: Engine = Depends(get_engine),
    slack: SlackService | None = Depends(get_slack_service),
):
    """``/werm @user <amounts> [reason]``: send werms to a colleague."""
    form = await _read_form(request, slack)

    user_id = form.get("user_id", "").strip()
    text = form.get("text", "")
    if not user_id:
        return SlackService.response("Missing Slack user id.")
    if slack is None:
        return SlackService.response(NOT_CONFIGURED)

    parsed = parse_transfer_command(text)
    try:
        if parsed is None:
            raise InvalidCommandError(USAGE)
        sender_email = await slack.get_user_email(user_id)
        await run_db(
            transfer_werms,
            engine,
            sender_email,
            parsed.receiver_handle,
            parsed.amounts,
            parsed.reason,
        )
    except SlackError as exc:
        logger.warning("Could not resolve Slack user %s: %s", user_id, exc)
        return SlackService.response("Could not look up your Slack email.")
    except WermsError as exc:
        return SlackService.response(f"🚫 Transfer failed: {exc.message}")
    except Exception:
        logger.exception("Unexpected error in /slack/transfer")
        return SlackService.response(GENERIC_FAILURE)

    message = format_transfer_message(
        parsed.amounts, parsed.receiver_handle, parsed.reason, sender=f"<@{user_id}>"
    )
    return SlackService.response(message, "in_channel")


@router.post("/balance")
async def slack_balance(
    request: Request,
    engine: Engine = Depends(get_engine),
    slack: SlackService | None = Depends(get_slack_service),
):
    """Balance of the calling user, looked up by Slack username."""
    form = await _read_form(request, slack)

    user_name = form.get("user_name", "").strip()
    if not user_name:
        return SlackService.response("Missing Slack username.")

    handle = normalize_handle(user_name)
    try:
        _, balance = await run_db(get_balance, engine, handle=handle)
    except WermsError as exc:
        return SlackService.response(exc.message)
    except Exception:
        logger.exception("Unexpected error in /slack/balance")
        return SlackService.response(GENERIC_FAILURE)
    return SlackService.response(format_balance_message(balance))


@router.post("/command")
async def slack_command(
    request: Request,
    engine: Engine = Depends(get_engine),
    slack: SlackService | None = Depends(get_slack_service),
):
    """Balance of the calling user, looked up by their Slack profile email."""
    form = await _read_form(request, slack)

    user_id = form.get("user_id", "").strip()
    if not user_id:
        return SlackService.response("Missing Slack user id.")
    if slack is None:
        return SlackService.response(NOT_CONFIGURED)

    try:
        email = await slack.get_user_email(user_id)
        _, balance = await run_db(get_balance, engine, email=email)
    except SlackError as exc:
        logger.warning("Could not resolve Slack user %s: %s", user_id, exc)
        return SlackService.response("Could not look up your Slack email.")
    except WermsError as exc:
        return SlackService.response(exc.message)
    except Exception:
        logger.exception("Unexpected error in /slack/command")
        return SlackService.response(GENERIC_FAILURE)
    return SlackService.response(format_balance_message(balance))
