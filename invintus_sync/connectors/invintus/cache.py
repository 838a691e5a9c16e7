"""Invintus Sync - Transient Cache.

Expiring key/value rows in ``cache_entries``. Lives in the database so that
no cached state is held in process memory between requests.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlmodel import Session

from invintus_sync.models.option_models import CacheEntry


def _as_utc(value: datetime) -> datetime:
    # SQLite hands datetimes back naive
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class TransientCache:
    def __init__(self, session: Session):
        self.session = session

    def get(self, key: str, now: Optional[datetime] = None) -> Optional[Any]:
        """Return the cached value, or None when absent or expired."""
        entry = self.session.get(CacheEntry, key)
        if entry is None:
            return None
        now = now or datetime.now(timezone.utc)
        if entry.expires_at is not None and _as_utc(entry.expires_at) <= now:
            self.delete(key)
            return None
        return json.loads(entry.value_json)

    def set(
        self, key: str, value: Any, ttl_seconds: int, now: Optional[datetime] = None
    ) -> None:
        now = now or datetime.now(timezone.utc)
        entry = self.session.get(CacheEntry, key) or CacheEntry(key=key, value_json="null")
        entry.value_json = json.dumps(value)
        entry.expires_at = now + timedelta(seconds=ttl_seconds) if ttl_seconds > 0 else None
        self.session.add(entry)
        self.session.commit()

    def delete(self, key: str) -> bool:
        entry = self.session.get(CacheEntry, key)
        if entry is None:
            return False
        self.session.delete(entry)
        self.session.commit()
        return True
