"""
werms.api.__main__ — Entry point for ``python -m werms.api``
=============================================================

Wiring:
1. Load .env (secrets).
2. Check the database URL and JWT secret are present.
3. Load config.yaml (soft settings).
4. Serve the FastAPI app with uvicorn (tables and the default bank are
   created in the app's lifespan).

Run with::

    uv run python -m werms.api
"""

from __future__ import annotations

import logging
import os
import sys

import uvicorn
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("werms")


def main() -> None:
    """Bootstrap and serve the Werms API."""

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Required secrets.
    for name in ("DATABASE_URL", "SUPABASE_JWT_SECRET"):
        if not os.getenv(name):
            logger.critical(
                "%s is not set.  Copy .env.example → .env and fill it in.", name
            )
            sys.exit(1)
    if not os.getenv("SLACK_BOT_USER_OAUTH_TOKEN"):
        logger.warning("SLACK_BOT_USER_OAUTH_TOKEN is not set; Slack commands will be refused")

    # 3. Soft configuration.
    from werms.api.deps import get_config

    cfg = get_config()
    logger.info("Config loaded — Bank: %s", cfg.bank_name)

    # 4. Serve (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting Werms API on port %d…", cfg.dashboard_port)
    uvicorn.run("werms.api.main:app", host="0.0.0.0", port=cfg.dashboard_port, log_config=None)


if __name__ == "__main__":
    main()
