"""Invintus Sync - Webhook Routes."""

import json

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from invintus_sync.api.deps import get_sync_hooks, require_authenticated
from invintus_sync.core.auth import Principal
from invintus_sync.core.errors import MalformedPayload
from invintus_sync.core.lifecycle import StatusSets
from invintus_sync.core.options import load_options
from invintus_sync.database import get_session
from invintus_sync.models.sync_models import ReconcileResult
from invintus_sync.sync.gateway import IngestionGateway
from invintus_sync.sync.hooks import SyncHooks
from invintus_sync.core.logging import get_logger

logger = get_logger("api.webhook")

router = APIRouter(prefix="/invintus/v2", tags=["Webhook"])


@router.post("/events/crud", response_model=ReconcileResult)
async def process_payload(
    request: Request,
    session: Session = Depends(get_session),
    principal: Principal = Depends(require_authenticated),
    hooks: SyncHooks = Depends(get_sync_hooks),
):
    """Apply an Invintus event notification to the content store.

    Body: ``{action: {method, type}, data: {...event}, errors?: {hasError, message}}``.
    """
    raw_body = (await request.body()).decode("utf-8", errors="replace")
    try:
        params = json.loads(raw_body) if raw_body.strip() else None
    except ValueError as e:
        logger.warning(f"Rejected non-JSON webhook body from {principal.name}")
        raise MalformedPayload("Request body is not valid JSON.") from e

    gateway = IngestionGateway(
        session,
        principal,
        load_options(session),
        hooks=hooks,
        status_sets=StatusSets.from_settings(),
    )
    return gateway.handle(params, raw_body)
