"""
werms.services.slack_service — Slack Web API Helper
====================================================

Thin wrapper around the few Slack operations the bank needs:

* ``users.info`` → resolve a Slack user id to the profile email;
* slash-command response payloads (ephemeral or in-channel);
* verification of Slack's request signature (``X-Slack-Signature``).
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from typing import Literal

import httpx

logger = logging.getLogger(__name__)

SLACK_API = "https://slack.com/api"

# Slack rejects replays older than five minutes; so do we.
SIGNATURE_MAX_AGE_SECONDS = 60 * 5

Visibility = Literal["ephemeral", "in_channel"]


class SlackError(Exception):
    """Slack API call failed or returned an unusable payload."""


class SlackService:
    """Slack Web API client bound to one bot token."""

    def __init__(
        self,
        token: str,
        *,
        signing_secret: str | None = None,
        timeout: float = 3.0,
        base_url: str = SLACK_API,
    ) -> None:
        self._token = token
        self._signing_secret = signing_secret or None
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")

    @property
    def _auth_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    async def get_user_email(self, user_id: str) -> str:
        """Fetch a Slack user's email via ``users.info``.

        Raises :class:`SlackError` if the request fails, Slack answers
        ``ok: false``, or the profile carries no email.
        """
        transport = httpx.AsyncHTTPTransport(retries=1)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=transport) as client:
                resp = await client.get(
                    f"{self._base_url}/users.info",
                    params={"user": user_id},
                    headers=self._auth_header,
                )
        except httpx.HTTPError as exc:
            raise SlackError(f"users.info request failed: {exc}") from exc

        if resp.status_code != 200:
            raise SlackError(f"users.info returned HTTP {resp.status_code}")
        data = resp.json()
        if not data.get("ok"):
            raise SlackError(data.get("error") or "Slack API request failed")

        email = ((data.get("user") or {}).get("profile") or {}).get("email")
        if not email:
            raise SlackError("Email not found")
        return email

    @staticmethod
    def response(text: str, visibility: Visibility = "ephemeral") -> dict[str, str]:
        """Slash-command response body."""
        return {"response_type": visibility, "text": text}

    def verify_signature(
        self,
        body: bytes,
        timestamp: str | None,
        signature: str | None,
        *,
        now: float | None = None,
    ) -> bool:
        """Check Slack's v0 HMAC-SHA256 request signature.

        Always ``True`` when no signing secret is configured (local dev).
        """
        if self._signing_secret is None:
            return True
        if not timestamp or not signature:
            return False
        try:
            ts = int(timestamp)
        except ValueError:
            return False
        now = time.time() if now is None else now
        if abs(now - ts) > SIGNATURE_MAX_AGE_SECONDS:
            logger.warning("Rejected stale Slack request (ts=%s)", timestamp)
            return False

        base = b"v0:" + timestamp.encode() + b":" + body
        expected = "v0=" + hmac.new(
            self._signing_secret.encode(), base, hashlib.sha256
        ).hexdigest()
        return hmac.compare_digest(expected, signature)
