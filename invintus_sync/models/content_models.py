"""Invintus Sync - Content Store Models.

Local mirror of Invintus events: one ContentRecord per remote event, a flat
tag vocabulary and a hierarchical category taxonomy.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Text
from sqlmodel import SQLModel, Field

from invintus_sync.core.lifecycle import LifecycleState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContentRecord(SQLModel, table=True):
    """A video page mirrored from an Invintus event.

    ``remote_event_id`` is unique: re-delivered webhooks update the same row
    instead of inserting a duplicate.
    """

    __tablename__ = "content_records"

    id: Optional[int] = Field(default=None, primary_key=True)
    remote_event_id: str = Field(
        index=True, unique=True, description="Numeric Invintus event id"
    )
    title: str = Field(default="")
    slug: str = Field(default="", index=True)
    body: str = Field(default="", sa_type=Text)
    published_at: Optional[datetime] = Field(default=None)
    lifecycle_state: str = Field(
        default=LifecycleState.DRAFT.value,
        index=True,
        description="draft | future | live | publish",
    )

    # ── Custom fields ──
    custom_id: str = Field(default="")
    description: str = Field(default="", sa_type=Text)
    caption: str = Field(default="")
    thumbnail: str = Field(default="")
    audio: str = Field(default="")
    location: str = Field(default="")
    total_runtime: str = Field(default="")

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Tag(SQLModel, table=True):
    """Flat keyword attached to content records."""

    __tablename__ = "tags"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    slug: str = Field(default="")


class RecordTag(SQLModel, table=True):
    __tablename__ = "record_tags"

    record_id: int = Field(foreign_key="content_records.id", primary_key=True)
    tag_id: int = Field(foreign_key="tags.id", primary_key=True)


class CategoryNode(SQLModel, table=True):
    """Hierarchical category.

    Once ``remote_category_id`` is set it is the primary lookup key; the
    unique index keeps one node per Invintus category.
    """

    __tablename__ = "categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    remote_category_id: Optional[int] = Field(default=None, index=True, unique=True)
    remote_parent_id: Optional[int] = Field(default=None)
    name: str = Field(index=True)
    slug: str = Field(default="")
    description: str = Field(default="", sa_type=Text)
    parent_id: Optional[int] = Field(default=None, foreign_key="categories.id")


class RecordCategory(SQLModel, table=True):
    __tablename__ = "record_categories"

    record_id: int = Field(foreign_key="content_records.id", primary_key=True)
    category_id: int = Field(foreign_key="categories.id", primary_key=True)
