"""Invintus Sync - Cached Invintus Lookups.

Player preferences are cached for a day, the is-live flag for a minute.
"""

from datetime import date
from typing import Dict, Optional

from invintus_sync.config import settings
from invintus_sync.connectors.invintus.cache import TransientCache
from invintus_sync.connectors.invintus.client import InvintusClient
from invintus_sync.core.logging import get_logger

logger = get_logger("invintus.endpoints")

PLAYER_PREFS_KEY = "invintus_player_prefs"
IS_LIVE_KEY = "invintus_is_live"


class InvintusEndpoints:
    """Invintus reads backed by the transient cache."""

    def __init__(self, client: InvintusClient, cache: TransientCache):
        self.client = client
        self.cache = cache

    async def player_preferences(self) -> Dict[str, str]:
        cached = self.cache.get(PLAYER_PREFS_KEY)
        if cached is not None:
            return cached

        preferences = await self.client.get_player_preferences()
        # An empty answer is not cached so the next read asks again
        if preferences:
            self.cache.set(PLAYER_PREFS_KEY, preferences, settings.player_prefs_ttl_seconds)
        return preferences

    def purge_player_preferences(self) -> bool:
        purged = self.cache.delete(PLAYER_PREFS_KEY)
        if purged:
            logger.info("Purged cached player preferences")
        return purged

    async def refresh_player_preferences(self) -> Dict[str, str]:
        """Drop the cached preferences and fetch them again."""
        self.purge_player_preferences()
        return await self.player_preferences()

    async def is_live(self, today: Optional[date] = None) -> bool:
        cached = self.cache.get(IS_LIVE_KEY)
        if cached is not None:
            return bool(cached)

        live = await self.client.is_live(today)
        self.cache.set(IS_LIVE_KEY, live, settings.is_live_ttl_seconds)
        return live
