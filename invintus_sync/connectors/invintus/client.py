"""Invintus Sync - Invintus API Client.

Thin async wrapper over the Invintus v2 JSON API. Every call is a single
POST; failures surface as InvintusAPIError and are never retried.
"""

from datetime import date
from typing import Any, Dict, Optional

import httpx

from invintus_sync.config import settings
from invintus_sync.core.logging import get_logger

logger = get_logger("invintus.client")

PLAYER_PREFERENCES_PATH = "Player/getPlayerPreference"
LISTINGS_PATH = "Listings/getBasic"


class InvintusAPIError(Exception):
    """Raised when the Invintus API cannot be reached or answers with an error."""

    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message)


class InvintusClient:
    """Async HTTP client for the Invintus API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        client_id: Optional[str] = None,
        vendor_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or settings.invintus_api_key
        self.client_id = client_id or settings.invintus_client_id
        self.vendor_key = vendor_key or settings.invintus_vendor_key
        self.base_url = (base_url or settings.invintus_api_url).rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=settings.request_timeout, transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Authorization": self.api_key}
        if self.vendor_key:
            headers["Wsc-api-key"] = self.vendor_key
        return headers

    # ── Core Request Method ──

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{path}"
        client = await self._get_client()
        try:
            resp = await client.post(url, json=body, headers=self._headers())
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Invintus API {path} returned {e.response.status_code}",
                extra={"status_code": e.response.status_code},
            )
            raise InvintusAPIError(
                f"{path} failed with status {e.response.status_code}",
                e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Invintus API {path} unreachable: {e}")
            raise InvintusAPIError(f"{path} request failed: {e}") from e

        try:
            payload = resp.json()
        except ValueError as e:
            raise InvintusAPIError(f"{path} returned invalid JSON", resp.status_code) from e
        return payload if isinstance(payload, dict) else {}

    # ── Player Preferences ──

    async def get_player_preferences(self) -> Dict[str, str]:
        """Return the client's player preferences as ``{prefID: name}``."""
        result = await self._post(PLAYER_PREFERENCES_PATH, {"clientID": self.client_id})
        preferences: Dict[str, str] = {}
        for pref in result.get("data") or []:
            pref_id = pref.get("prefID")
            if pref_id is None:
                continue
            preferences[str(pref_id)] = (pref.get("playerPref") or {}).get("name", "")
        logger.info(f"Fetched {len(preferences)} player preferences")
        return preferences

    # ── Listings ──

    async def is_live(self, today: Optional[date] = None) -> bool:
        """Whether the client has an event streaming today."""
        day = (today or date.today()).strftime("%Y-%m-%d")
        result = await self._post(
            LISTINGS_PATH,
            {
                "clientID": self.client_id,
                "startDate": day,
                "endDate": day,
                "resultMax": 1,
                "resultPage": 1,
                "getLive": True,
            },
        )
        return bool(result.get("data"))
