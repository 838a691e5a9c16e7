"""Invintus Sync - FastAPI Application Entry Point.

Receives Invintus event webhooks and mirrors them into the local content store.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from invintus_sync.config import settings
from invintus_sync.database import init_db, test_connection
from invintus_sync.scheduler.jobs import start_scheduler, stop_scheduler
from invintus_sync.api.webhook_routes import router as webhook_router
from invintus_sync.api.settings_routes import router as settings_router
from invintus_sync.connectors.invintus.client import InvintusAPIError
from invintus_sync.core.auth import ANONYMOUS
from invintus_sync.core.errors import SyncError
from invintus_sync.core.logging import get_logger

logger = get_logger("main")

IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("Invintus Sync starting up...")
    if test_connection():
        init_db()
    else:
        logger.error("Database NOT connected, endpoints will fail")
    if not IS_SERVERLESS:
        start_scheduler()
    yield
    if not IS_SERVERLESS:
        stop_scheduler()
    logger.info("Invintus Sync shut down")


app = FastAPI(
    title="Invintus Sync",
    description="Invintus webhook ingestion: mirrors remote video events into a local content store.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhook_router)
app.include_router(settings_router)


# ── Error Rendering ──


@app.exception_handler(SyncError)
async def sync_error_handler(request: Request, exc: SyncError):
    """Render ``{code, message, status}``; 401 for anonymous callers, 403 otherwise."""
    principal = getattr(request.state, "principal", ANONYMOUS)
    status = exc.status_code or (403 if principal.is_authenticated else 401)
    logger.warning(
        f"{request.method} {request.url.path} rejected: {exc.code}",
        extra={"status_code": status},
    )
    return JSONResponse(status_code=status, content=exc.to_dict(status))


@app.exception_handler(InvintusAPIError)
async def invintus_api_error_handler(request: Request, exc: InvintusAPIError):
    return JSONResponse(
        status_code=502,
        content={"code": "invintus_api_error", "message": str(exc), "status": 502},
    )


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "invintus-sync", "version": "1.0.0"}
