"""Invintus Sync - Normalized Record & Reconciliation Result Schemas."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from invintus_sync.core.lifecycle import LifecycleState
from invintus_sync.models.payload_models import RemoteCategory


class SyncOperation(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class NormalizedRecord(BaseModel):
    """A remote event mapped onto the local content schema.

    Categories are still remote descriptors; the engine resolves them
    against the taxonomy before saving.
    """

    remote_event_id: str
    title: str = ""
    slug: str = ""
    body: str = ""
    published_at: Optional[datetime] = None
    lifecycle_state: LifecycleState = LifecycleState.DRAFT
    custom_id: str = ""
    description: str = ""
    caption: str = ""
    thumbnail: str = ""
    audio: str = ""
    location: str = ""
    total_runtime: str = ""
    tags: List[str] = []
    categories: List[RemoteCategory] = []
    category_ids: List[int] = []


class ContentRecordRead(BaseModel):
    """Content record as returned to the webhook caller."""

    id: int
    remote_event_id: str
    title: str
    slug: str
    body: str
    published_at: Optional[datetime] = None
    lifecycle_state: LifecycleState
    visible_state: LifecycleState
    custom_id: str = ""
    description: str = ""
    caption: str = ""
    thumbnail: str = ""
    audio: str = ""
    location: str = ""
    total_runtime: str = ""
    tags: List[str] = []
    category_ids: List[int] = []


class DeletionResult(BaseModel):
    """Outcome of removing one matched record."""

    record_id: int
    remote_event_id: str
    title: str = ""
    deleted: bool = True


class ReconcileResult(BaseModel):
    """What a webhook delivery did to the content store."""

    status: str = "success"
    op: SyncOperation
    records: List[ContentRecordRead] = []
    deleted: List[DeletionResult] = []
    message: str = ""
