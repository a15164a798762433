"""
Werms Central Bank — Employee Recognition Currency Service
===========================================================
Employees hold tiered werm coins (gold, silver, bronze), administrators
define distribution policies, the bank mints new werms, and a Slack
slash-command integration lets people check balances and send coins.

Package layout::

    werms/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Tier emoji, reserved ids, reply strings
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # ORM models (employees, banks, policies, ledger)
    │   └── seed.py        # Default bank + bank holder seeder
    ├── engine/
    │   ├── currency.py    # Tier definitions and unit values
    │   ├── balances.py    # Holding → enriched balance aggregation
    │   ├── commands.py    # Slack transfer command parser + reply text
    │   └── errors.py      # Typed error taxonomy
    ├── services/
    │   ├── ledger_store.py      # Session-bound store with validated rows
    │   ├── transfer_service.py  # Peer-to-peer transfers
    │   ├── mint_service.py      # Policy-driven / manual minting
    │   ├── policy_service.py    # Audit-logged policy CRUD
    │   ├── employee_service.py  # Provisioning, balances, history
    │   └── slack_service.py     # Slack Web API + request signing
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine, config, token verification
        └── routes/        # Slack webhooks + REST endpoints
"""

__version__ = "0.1.0"
