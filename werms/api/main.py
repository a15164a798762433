"""
werms.api.main — FastAPI application entry point
=================================================

Run with::

    uvicorn werms.api.main:app --reload --port 8000

or ``python -m werms.api`` to pick up ``config.yaml`` and logging setup.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

load_dotenv()

from werms.api.deps import get_config, get_engine  # noqa: E402
from werms.api.routes.employees import router as employees_router  # noqa: E402
from werms.api.routes.ledger import router as ledger_router  # noqa: E402
from werms.api.routes.policies import router as policies_router  # noqa: E402
from werms.api.routes.slack import router as slack_router  # noqa: E402
from werms.database.engine import init_db  # noqa: E402
from werms.engine.errors import WermsError  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — create tables and seed the default bank."""
    engine = get_engine()
    init_db(engine, bank_name=get_config().bank_name)
    logger.info("Werms API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Werms API shutting down")


app = FastAPI(
    title="Werms Central Bank API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error envelope: {"error": message}
# ---------------------------------------------------------------------------
@app.exception_handler(WermsError)
async def werms_error_handler(request: Request, exc: WermsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{where}: {first.get('msg', 'invalid request')}" if where else "Invalid request"
    return JSONResponse({"error": message}, status_code=400)


# Mount routers
app.include_router(slack_router, prefix="/api")
app.include_router(ledger_router, prefix="/api")
app.include_router(policies_router, prefix="/api")
app.include_router(employees_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
