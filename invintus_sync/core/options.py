"""Invintus Sync - Site Options.

Runtime options editable through the settings endpoint, stored as rows of
the ``site_options`` table. Credentials set in the environment always win
over stored ones.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel
from sqlmodel import Session, select

from invintus_sync.config import settings
from invintus_sync.models.option_models import SiteOption
from invintus_sync.models.payload_models import coerce_flag
from invintus_sync.sync.audit import parse_retention
from invintus_sync.core.logging import get_logger

logger = get_logger("core.options")

# request key -> option key
SETTINGS_MAP = {
    "clientId": "invintus_client_id",
    "apiKey": "invintus_api_key",
    "defaultPlayerPreference": "invintus_player_preference_default",
    "enablePublicEvents": "can_public_future_events",
    "watchRedirectPath": "invintus_watch_path",
    "enableLogs": "can_log_payloads",
    "logRetention": "invintus_log_retention",
}

OPTION_KEYS = tuple(SETTINGS_MAP.values())


class SiteOptions(BaseModel):
    """Parsed view over the stored option rows."""

    invintus_client_id: str = ""
    invintus_api_key: str = ""
    invintus_player_preference_default: str = ""
    can_public_future_events: bool = False
    invintus_watch_path: str = ""
    can_log_payloads: bool = False
    invintus_log_retention: Optional[int] = None

    @classmethod
    def from_raw(cls, raw: Dict[str, str]) -> "SiteOptions":
        return cls(
            invintus_client_id=settings.invintus_client_id
            or raw.get("invintus_client_id", ""),
            invintus_api_key=settings.invintus_api_key
            or raw.get("invintus_api_key", ""),
            invintus_player_preference_default=raw.get(
                "invintus_player_preference_default", ""
            ),
            can_public_future_events=coerce_flag(
                raw.get("can_public_future_events", "")
            ),
            invintus_watch_path=raw.get("invintus_watch_path", ""),
            can_log_payloads=coerce_flag(raw.get("can_log_payloads", "")),
            invintus_log_retention=parse_retention(raw.get("invintus_log_retention")),
        )


def load_raw_options(session: Session) -> Dict[str, str]:
    rows = session.exec(
        select(SiteOption).where(SiteOption.key.in_(OPTION_KEYS))  # type: ignore
    ).all()
    return {row.key: row.value for row in rows}


def load_options(session: Session) -> SiteOptions:
    return SiteOptions.from_raw(load_raw_options(session))


def map_settings_request(params: Dict[str, Any]) -> Dict[str, str]:
    """Pick the known request keys and return them as stripped option values."""
    values: Dict[str, str] = {}
    for param_key, option_key in SETTINGS_MAP.items():
        if param_key not in params or params[param_key] is None:
            continue
        value = params[param_key]
        if isinstance(value, bool):
            value = "1" if value else ""
        values[option_key] = str(value).strip()
    return values


def save_options(session: Session, values: Dict[str, str]) -> Dict[str, str]:
    """Upsert option rows and return the full stored option map."""
    for key, value in values.items():
        row = session.get(SiteOption, key)
        if row is None:
            row = SiteOption(key=key, value=value)
        else:
            row.value = value
        session.add(row)
    session.commit()

    if values:
        logger.info(f"Updated site options: {', '.join(sorted(values))}")
    return load_raw_options(session)
