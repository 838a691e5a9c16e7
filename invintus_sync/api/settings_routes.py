"""Invintus Sync - Settings, Player Preference & Live Status Routes."""

import json
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlmodel import Session

from invintus_sync.api.deps import get_invintus_endpoints, require_capability
from invintus_sync.core.auth import Capability, Principal
from invintus_sync.core.errors import MalformedPayload, UpstreamValidationError
from invintus_sync.core.options import load_raw_options, map_settings_request, save_options
from invintus_sync.connectors.invintus.client import InvintusAPIError
from invintus_sync.connectors.invintus.endpoints import InvintusEndpoints
from invintus_sync.database import get_session
from invintus_sync.models.payload_models import WebhookErrors
from invintus_sync.core.logging import get_logger

logger = get_logger("api.settings")

router = APIRouter(prefix="/invintus/v2", tags=["Settings"])

manage_settings = require_capability(Capability.MANAGE_SETTINGS)


# ── Response Models ──


class PlayerPreferencesResponse(BaseModel):
    status: str = "success"
    preferences: Dict[str, str] = {}


class PurgePreferencesResponse(PlayerPreferencesResponse):
    purged: bool = True
    refresh_error: Optional[str] = None


class IsLiveResponse(BaseModel):
    is_live: bool


# ── Endpoints ──


@router.get("/settings")
async def get_settings(
    session: Session = Depends(get_session),
    endpoints: InvintusEndpoints = Depends(get_invintus_endpoints),
    principal: Principal = Depends(manage_settings),
):
    """Stored site options plus the (cached) player preferences.

    Preferences are None when Invintus cannot be reached; the options are
    still returned.
    """
    stored: Dict[str, object] = dict(load_raw_options(session))
    try:
        stored["invintus_player_preferences"] = await endpoints.player_preferences()
    except InvintusAPIError as e:
        logger.warning(
            f"Settings read without player preferences: {e}",
            extra={"status_code": e.status_code},
        )
        stored["invintus_player_preferences"] = None
    return stored


@router.post("/settings")
async def update_settings(
    request: Request,
    session: Session = Depends(get_session),
    principal: Principal = Depends(manage_settings),
):
    """Update site options from camelCase request keys (``clientId``, ``enableLogs`` ...)."""
    raw_body = await request.body()
    try:
        params = json.loads(raw_body) if raw_body.strip() else {}
    except ValueError as e:
        raise MalformedPayload("Request body is not valid JSON.") from e
    if not isinstance(params, dict):
        raise MalformedPayload("Request body must be a JSON object.")

    errors: Optional[dict] = params.get("errors") if isinstance(params.get("errors"), dict) else None
    if errors is not None:
        flagged = WebhookErrors.model_validate(errors)
        if flagged.has_error:
            raise UpstreamValidationError(flagged.message or "The sender reported an error.")

    return save_options(session, map_settings_request(params))


@router.get("/settings/player_prefs", response_model=PlayerPreferencesResponse)
async def get_player_preferences(
    endpoints: InvintusEndpoints = Depends(get_invintus_endpoints),
    principal: Principal = Depends(manage_settings),
):
    return PlayerPreferencesResponse(preferences=await endpoints.player_preferences())


@router.delete("/settings/player_prefs", response_model=PurgePreferencesResponse)
async def purge_player_preferences(
    endpoints: InvintusEndpoints = Depends(get_invintus_endpoints),
    principal: Principal = Depends(manage_settings),
):
    """Drop the cached preferences and return freshly fetched ones.

    The purge stands even when the refetch fails; ``refresh_error`` says why
    no preferences came back.
    """
    purged = endpoints.purge_player_preferences()
    try:
        preferences = await endpoints.player_preferences()
    except InvintusAPIError as e:
        logger.warning(
            f"Player preferences purged but refetch failed: {e}",
            extra={"status_code": e.status_code},
        )
        return PurgePreferencesResponse(purged=purged, refresh_error=str(e))
    return PurgePreferencesResponse(purged=purged, preferences=preferences)


@router.get("/events/is_live", response_model=IsLiveResponse)
async def is_live(endpoints: InvintusEndpoints = Depends(get_invintus_endpoints)):
    """Whether the client is streaming right now. Public."""
    return IsLiveResponse(is_live=await endpoints.is_live())
