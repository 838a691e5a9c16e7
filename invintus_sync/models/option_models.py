"""Invintus Sync - Site Options & Transient Cache Tables."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Text
from sqlmodel import SQLModel, Field


class SiteOption(SQLModel, table=True):
    """Runtime option editable through the settings endpoint."""

    __tablename__ = "site_options"

    key: str = Field(primary_key=True)
    value: str = Field(default="", sa_type=Text)


class CacheEntry(SQLModel, table=True):
    """Expiring cached value (player preferences, is-live flag)."""

    __tablename__ = "cache_entries"

    key: str = Field(primary_key=True)
    value_json: str = Field(sa_type=Text)
    expires_at: Optional[datetime] = Field(default=None)
