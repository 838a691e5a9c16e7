"""Invintus Sync - Payload Audit Log.

Append-only record of inbound payloads with age-based retention.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import delete
from sqlmodel import Session

from invintus_sync.models.audit_models import AuditLogEntry
from invintus_sync.core.logging import get_logger

logger = get_logger("sync.audit")

ACTION_MAX_LENGTH = 20


def parse_retention(value: Any) -> Optional[int]:
    """Turn the ``invintus_log_retention`` option into a number of days.

    Absent, non-numeric, zero or negative values disable pruning (None).
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        days = int(str(value).strip())
    except ValueError:
        return None
    return days if days > 0 else None


def _event_id_column(event_id: Optional[str]) -> Optional[int]:
    if event_id is None:
        return None
    event_id = str(event_id).strip()
    return int(event_id) if event_id.isdigit() else None


class AuditLog:
    """Writes and prunes ``invintus_logs`` rows when logging is enabled."""

    def __init__(self, session: Session, enabled: bool):
        self.session = session
        self.enabled = enabled

    def record(
        self, event_id: Optional[str], action: str, payload: str
    ) -> Optional[AuditLogEntry]:
        """Append one entry and commit it. No-op when logging is disabled."""
        if not self.enabled:
            return None

        entry = AuditLogEntry(
            event_id=_event_id_column(event_id),
            action=(action or "")[:ACTION_MAX_LENGTH],
            payload=payload or "",
        )
        self.session.add(entry)
        self.session.commit()
        return entry

    def prune(
        self, retention_days: Optional[int], now: Optional[datetime] = None
    ) -> int:
        """Delete entries older than ``retention_days``. None disables pruning."""
        if not self.enabled or not retention_days:
            return 0

        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=retention_days)
        result = self.session.exec(
            delete(AuditLogEntry)
            .where(AuditLogEntry.date < cutoff)  # type: ignore
            .execution_options(synchronize_session=False)
        )
        self.session.commit()

        removed = result.rowcount or 0
        if removed:
            logger.info(f"Pruned {removed} audit log entries older than {retention_days} days")
        return removed
