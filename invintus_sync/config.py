"""Invintus Sync - Central Configuration via Pydantic Settings."""

import os
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Invintus API ──
    invintus_api_url: str = "https://api.v3.invintus.com/v2"
    invintus_api_key: str = ""
    invintus_client_id: str = ""
    invintus_vendor_key: Optional[str] = None
    request_timeout: float = 30.0

    # ── Database ──
    database_url: str = ""

    # ── Webhook auth ──
    # key -> capabilities, e.g. {"s3cret": ["publish", "delete", "manage_settings"]}
    api_keys: Dict[str, List[str]] = {}

    # ── Status classification ──
    live_statuses: List[str] = ["live", "onBreak", "disconnected", "break", "on break"]
    future_statuses: List[str] = ["new", "available"]
    publish_statuses: List[str] = ["published"]

    # ── Cache lifetimes ──
    player_prefs_ttl_seconds: int = 86400
    is_live_ttl_seconds: int = 60

    # ── App ──
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]
    scheduler_enabled: bool = True
    preferences_refresh_hour: int = 3  # Daily refresh at 3 AM UTC

    @property
    def effective_database_url(self) -> str:
        """Return the configured database URL, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/invintus_sync.db"
        return "sqlite:///./invintus_sync.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
