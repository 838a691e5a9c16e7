"""Invintus Sync - Reconciliation Engine.

Applies one webhook action to the content store:

  add | update | new | stop  → upsert (insert, update in place, or remove
                               when the event turned private)
  delete                     → remove every record matching the event id

Capabilities are checked before anything is written. The unique index on
``remote_event_id`` closes the lookup/insert race: an insert that loses it
is rolled back and replayed once, and the replay lands on the update branch.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from invintus_sync.core.auth import Capability, Principal
from invintus_sync.core.errors import (
    Forbidden,
    InvalidAction,
    InvalidMethod,
    MalformedPayload,
    NotFound,
)
from invintus_sync.core.lifecycle import LifecycleState, StatusSets, visible_state
from invintus_sync.models.content_models import (
    ContentRecord,
    RecordCategory,
    RecordTag,
    Tag,
)
from invintus_sync.models.payload_models import RemoteEvent, WebhookAction
from invintus_sync.models.sync_models import (
    ContentRecordRead,
    DeletionResult,
    NormalizedRecord,
    ReconcileResult,
    SyncOperation,
)
from invintus_sync.sync.categories import CategoryReconciler
from invintus_sync.sync.hooks import SyncHooks
from invintus_sync.sync.normalizer import extract_event_id, normalize, parse_event, slugify
from invintus_sync.core.logging import get_logger

logger = get_logger("sync.engine")

EVENTS_METHOD = "events"
UPSERT_ACTIONS = {"add", "update", "new", "stop"}
DELETE_ACTIONS = {"delete"}

PRIVATE_DELETED = "Private: Events were deleted."
PRIVATE_NO_ACTION = "Private: No action was taken."


class ReconciliationEngine:
    """Turns webhook actions into content store mutations."""

    def __init__(
        self,
        session: Session,
        principal: Principal,
        status_sets: Optional[StatusSets] = None,
        hooks: Optional[SyncHooks] = None,
        can_public_future_events: bool = False,
    ):
        self.session = session
        self.principal = principal
        self.status_sets = status_sets
        self.hooks = hooks or SyncHooks()
        self.can_public_future_events = can_public_future_events

    # ── Entry Point ──

    def reconcile(
        self,
        action: Union[WebhookAction, Dict[str, Any]],
        event: Union[RemoteEvent, Dict[str, Any], None],
        now: Optional[datetime] = None,
    ) -> ReconcileResult:
        if not isinstance(action, WebhookAction):
            action = WebhookAction.model_validate(action or {})

        if action.method != EVENTS_METHOD:
            raise InvalidMethod(f"Unsupported method '{action.method}'.")

        if action.type in UPSERT_ACTIONS:
            return self.upsert(event, now=now)
        if action.type in DELETE_ACTIONS:
            return self.delete(event)
        raise InvalidAction(f"Unsupported action '{action.type}'.")

    # ── Lookups ──

    def find_existing(self, remote_event_id: str) -> List[ContentRecord]:
        """All records mirroring ``remote_event_id``, oldest first."""
        return list(
            self.session.exec(
                select(ContentRecord)
                .where(ContentRecord.remote_event_id == remote_event_id)
                .order_by(ContentRecord.id)  # type: ignore
            ).all()
        )

    # ── Upsert Path ──

    def upsert(
        self,
        event: Union[RemoteEvent, Dict[str, Any], None],
        now: Optional[datetime] = None,
        _replay: bool = True,
    ) -> ReconcileResult:
        if not self.principal.can(Capability.PUBLISH):
            raise Forbidden("Sorry, you are not allowed to create or edit events.")

        event = parse_event(event)
        now = now or datetime.now(timezone.utc)

        record = normalize(event, now=now, status_sets=self.status_sets)
        record = self.hooks.run_prepare(record, event)
        if not record.remote_event_id:
            raise MalformedPayload("Event data has no eventID.")

        matches = self.find_existing(record.remote_event_id)
        for orphan in matches[1:]:
            logger.warning(
                f"Orphaned record {orphan.id} also mirrors event {record.remote_event_id}",
                extra={"event_id": record.remote_event_id, "record_id": orphan.id},
            )

        record = self.hooks.run_before_save(record, [m.id for m in matches])

        if record.lifecycle_state == LifecycleState.PRIVATE:
            return self._remove_private(record, matches)

        try:
            if matches:
                return self._update(matches[0], record)
            return self._insert(record)
        except IntegrityError:
            self.session.rollback()
            if not _replay:
                raise
            logger.warning(
                f"Concurrent insert for event {record.remote_event_id}; replaying as update",
                extra={"event_id": record.remote_event_id},
            )
            return self.upsert(event, now=now, _replay=False)

    def _remove_private(
        self, record: NormalizedRecord, matches: List[ContentRecord]
    ) -> ReconcileResult:
        if not matches:
            return ReconcileResult(op=SyncOperation.DELETE, message=PRIVATE_NO_ACTION)

        deleted = [self._remove(content) for content in matches]
        self.session.commit()
        logger.info(
            f"Event {record.remote_event_id} turned private; removed {len(deleted)} record(s)",
            extra={"event_id": record.remote_event_id, "operation": "delete"},
        )
        return ReconcileResult(
            op=SyncOperation.DELETE, deleted=deleted, message=PRIVATE_DELETED
        )

    def _insert(self, record: NormalizedRecord) -> ReconcileResult:
        record.category_ids = CategoryReconciler(self.session).resolve(record.categories)

        content = ContentRecord(remote_event_id=record.remote_event_id)
        self._apply(content, record)
        self.session.add(content)
        self.session.flush()

        self._replace_tags(content.id, record.tags)
        self._replace_categories(content.id, record.category_ids)
        self.session.commit()

        located = self.find_existing(record.remote_event_id)[0]
        logger.info(
            f"Inserted record {located.id} for event {record.remote_event_id}",
            extra={"event_id": record.remote_event_id, "record_id": located.id, "operation": "insert"},
        )
        self.hooks.run_after_save(located, located.id, SyncOperation.INSERT)
        return ReconcileResult(op=SyncOperation.INSERT, records=[self.to_read(located)])

    def _update(self, content: ContentRecord, record: NormalizedRecord) -> ReconcileResult:
        record.category_ids = CategoryReconciler(self.session).resolve(record.categories)

        self._apply(content, record)
        content.updated_at = datetime.now(timezone.utc)
        self.session.add(content)

        self._replace_tags(content.id, record.tags)
        self._replace_categories(content.id, record.category_ids)
        self.session.commit()
        self.session.refresh(content)

        logger.info(
            f"Updated record {content.id} for event {record.remote_event_id}",
            extra={"event_id": record.remote_event_id, "record_id": content.id, "operation": "update"},
        )
        self.hooks.run_after_save(content, content.id, SyncOperation.UPDATE)
        return ReconcileResult(op=SyncOperation.UPDATE, records=[self.to_read(content)])

    # ── Delete Path ──

    def delete(self, event: Union[RemoteEvent, Dict[str, Any], None]) -> ReconcileResult:
        if not self.principal.can(Capability.DELETE):
            raise Forbidden("Sorry, you are not allowed to delete events.")

        event = parse_event(event)
        remote_event_id = extract_event_id(event.event_id)
        if not remote_event_id:
            raise MalformedPayload("Event data has no eventID.")

        matches = self.find_existing(remote_event_id)
        if not matches:
            raise NotFound(f"No event found for id {remote_event_id}.")

        deleted = [self._remove(content) for content in matches]
        self.session.commit()
        logger.info(
            f"Deleted {len(deleted)} record(s) for event {remote_event_id}",
            extra={"event_id": remote_event_id, "operation": "delete"},
        )
        return ReconcileResult(op=SyncOperation.DELETE, deleted=deleted)

    def _remove(self, content: ContentRecord) -> DeletionResult:
        result = DeletionResult(
            record_id=content.id,
            remote_event_id=content.remote_event_id,
            title=content.title,
        )
        self.session.exec(delete(RecordTag).where(RecordTag.record_id == content.id))  # type: ignore
        self.session.exec(
            delete(RecordCategory).where(RecordCategory.record_id == content.id)  # type: ignore
        )
        self.session.delete(content)
        self.session.flush()
        return result

    # ── Associations ──

    @staticmethod
    def _apply(content: ContentRecord, record: NormalizedRecord) -> None:
        content.title = record.title
        content.slug = record.slug
        content.body = record.body
        content.published_at = record.published_at
        content.lifecycle_state = record.lifecycle_state.value
        content.custom_id = record.custom_id
        content.description = record.description
        content.caption = record.caption
        content.thumbnail = record.thumbnail
        content.audio = record.audio
        content.location = record.location
        content.total_runtime = record.total_runtime

    def _tag_for(self, name: str) -> Tag:
        tag = self.session.exec(select(Tag).where(Tag.name == name)).first()
        if tag is None:
            tag = Tag(name=name, slug=slugify(name))
            self.session.add(tag)
            self.session.flush()
        return tag

    def _replace_tags(self, record_id: int, names: List[str]) -> None:
        self.session.exec(delete(RecordTag).where(RecordTag.record_id == record_id))  # type: ignore
        for name in names:
            tag = self._tag_for(name)
            self.session.add(RecordTag(record_id=record_id, tag_id=tag.id))
        self.session.flush()

    def _replace_categories(self, record_id: int, category_ids: List[int]) -> None:
        self.session.exec(
            delete(RecordCategory).where(RecordCategory.record_id == record_id)  # type: ignore
        )
        for category_id in category_ids:
            self.session.add(RecordCategory(record_id=record_id, category_id=category_id))
        self.session.flush()

    # ── Serialization ──

    def tags_of(self, record_id: int) -> List[str]:
        return list(
            self.session.exec(
                select(Tag.name)
                .join(RecordTag, RecordTag.tag_id == Tag.id)  # type: ignore
                .where(RecordTag.record_id == record_id)
                .order_by(Tag.id)  # type: ignore
            ).all()
        )

    def category_ids_of(self, record_id: int) -> List[int]:
        return list(
            self.session.exec(
                select(RecordCategory.category_id)
                .where(RecordCategory.record_id == record_id)
                .order_by(RecordCategory.category_id)  # type: ignore
            ).all()
        )

    def to_read(self, content: ContentRecord) -> ContentRecordRead:
        state = LifecycleState(content.lifecycle_state)
        return ContentRecordRead(
            id=content.id,
            remote_event_id=content.remote_event_id,
            title=content.title,
            slug=content.slug,
            body=content.body,
            published_at=content.published_at,
            lifecycle_state=state,
            visible_state=visible_state(state, self.can_public_future_events),
            custom_id=content.custom_id,
            description=content.description,
            caption=content.caption,
            thumbnail=content.thumbnail,
            audio=content.audio,
            location=content.location,
            total_runtime=content.total_runtime,
            tags=self.tags_of(content.id),
            category_ids=self.category_ids_of(content.id),
        )
