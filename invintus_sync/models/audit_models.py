"""Invintus Sync - Payload Audit Log (Append-only)."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Text
from sqlmodel import SQLModel, Field


class AuditLogEntry(SQLModel, table=True):
    """Raw inbound webhook payload.

    Never modified after insert; only removed by the retention prune.
    """

    __tablename__ = "invintus_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: Optional[int] = Field(
        default=None, index=True, description="Numeric Invintus event id, NULL for errors"
    )
    action: str = Field(default="", max_length=20, description="add | update | delete | error ...")
    payload: str = Field(sa_type=Text, description="Raw request body")
    date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), index=True
    )
