"""
werms.config — YAML Configuration Loader
=========================================

Reads ``config.yaml`` for soft, non-secret settings (bank name, API
paging limits, Slack timeouts).  Secrets and connection strings come
from the environment (``.env``): ``DATABASE_URL``,
``SLACK_BOT_USER_OAUTH_TOKEN``, ``SLACK_SIGNING_SECRET``,
``SUPABASE_JWT_SECRET``.

Usage::

    from werms.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.bank_name)         # "Werms Central Bank"
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class WermsConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    bank_name: str = "Werms Central Bank"

    # Dashboard / API
    dashboard_port: int = 8000
    default_transactions_limit: int = 50
    max_transactions_limit: int = 200

    # Slack
    slack_api_timeout: float = 3.0


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> WermsConfig:
    """Read *path* and return a :class:`WermsConfig` instance.

    Keys missing from the file keep their defaults.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a value cannot be converted to the expected type.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    defaults = WermsConfig()
    return WermsConfig(
        bank_name=str(raw.get("bank_name", defaults.bank_name)),
        dashboard_port=int(raw.get("dashboard_port", defaults.dashboard_port)),
        default_transactions_limit=int(
            raw.get("default_transactions_limit", defaults.default_transactions_limit)
        ),
        max_transactions_limit=int(
            raw.get("max_transactions_limit", defaults.max_transactions_limit)
        ),
        slack_api_timeout=float(raw.get("slack_api_timeout", defaults.slack_api_timeout)),
    )
