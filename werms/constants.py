"""
werms.constants — Shared Constants & Helpers
=============================================

Single source of truth for reserved identifiers and presentation strings.
Import from here instead of duplicating in services, routes, and tests.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Reserved ledger identities
# ---------------------------------------------------------------------------
BANK_HOLDER_ID = "bank"
BANK_HOLDER_USERNAME = "bank"
SYSTEM_SENDER_EMAIL = "system"

# Slack handles are stored with their marker, e.g. "@alice".
HANDLE_MARKER = "@"

# ---------------------------------------------------------------------------
# Tier presentation (Slack replies)
# ---------------------------------------------------------------------------
TIER_EMOJI: dict[str, str] = {
    "gold": "\U0001f947",    # 🥇
    "silver": "\U0001f948",  # 🥈
    "bronze": "\U0001f949",  # 🥉
}

NO_REASON = "no reason provided"

# ---------------------------------------------------------------------------
# Employee provisioning
# ---------------------------------------------------------------------------
DEFAULT_PERMISSIONS: list[str] = ["view_own_balance"]

ADMIN_PERMISSION = "admin"
POLICY_PERMISSION = "create_policies"


def format_werms(value: float) -> str:
    """Render a werm value without a trailing ``.0`` for whole numbers."""
    return f"{value:,.0f}" if float(value).is_integer() else f"{value:,.2f}"


def normalize_handle(handle: str) -> str:
    """Ensure a Slack handle carries the ``@`` marker."""
    handle = handle.strip()
    if not handle.startswith(HANDLE_MARKER):
        handle = HANDLE_MARKER + handle
    return handle
