"""Unit tests for ReconciliationEngine."""
import pytest
from datetime import datetime, timezone

from sqlmodel import select

from invintus_sync.core.auth import Capability, Principal
from invintus_sync.core.errors import Forbidden, InvalidAction, InvalidMethod, MalformedPayload, NotFound
from invintus_sync.core.lifecycle import LifecycleState
from invintus_sync.models.content_models import ContentRecord, RecordCategory, RecordTag, Tag
from invintus_sync.models.sync_models import SyncOperation
from invintus_sync.sync.engine import PRIVATE_DELETED, PRIVATE_NO_ACTION, ReconciliationEngine
from invintus_sync.sync.hooks import SyncHooks

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

ADD = {"method": "events", "type": "add"}
UPDATE = {"method": "events", "type": "update"}
DELETE = {"method": "events", "type": "delete"}


def _records(session, remote_event_id="42"):
    return session.exec(
        select(ContentRecord).where(ContentRecord.remote_event_id == remote_event_id)
    ).all()


class TestDispatch:
    """Test cases for action/method validation."""

    def test_invalid_method(self, session, editor, town_hall):
        engine = ReconciliationEngine(session, editor)
        for action_type in ("add", "delete", "bogus"):
            with pytest.raises(InvalidMethod):
                engine.reconcile({"method": "other", "type": action_type}, town_hall)
        assert _records(session) == []

    def test_invalid_action(self, session, editor, town_hall):
        with pytest.raises(InvalidAction):
            ReconciliationEngine(session, editor).reconcile(
                {"method": "events", "type": "archive"}, town_hall
            )

    def test_missing_event(self, session, editor):
        with pytest.raises(MalformedPayload):
            ReconciliationEngine(session, editor).reconcile(ADD, None)

    def test_empty_event_id(self, session, editor):
        with pytest.raises(MalformedPayload):
            ReconciliationEngine(session, editor).reconcile(ADD, {"title": "No id"})


class TestUpsert:
    """Test cases for the upsert path."""

    def test_insert_town_hall(self, session, editor, town_hall):
        result = ReconciliationEngine(session, editor).reconcile(ADD, town_hall, now=NOW)

        assert result.op == SyncOperation.INSERT
        assert len(result.records) == 1
        record = result.records[0]
        assert record.remote_event_id == "42"
        assert record.lifecycle_state == LifecycleState.PUBLISH
        assert record.slug.endswith("-42")
        assert len(_records(session)) == 1

    def test_update_in_place(self, session, editor, town_hall):
        engine = ReconciliationEngine(session, editor)
        inserted = engine.reconcile(ADD, town_hall, now=NOW).records[0]

        town_hall["title"] = "Town Hall Meeting"
        result = engine.reconcile(UPDATE, town_hall, now=NOW)

        assert result.op == SyncOperation.UPDATE
        assert result.records[0].id == inserted.id
        assert result.records[0].title == "Town Hall Meeting"
        assert result.records[0].slug == "town-hall-meeting-42"
        assert len(_records(session)) == 1

    def test_redelivery_is_idempotent(self, session, editor, town_hall):
        engine = ReconciliationEngine(session, editor)
        first = engine.reconcile(ADD, town_hall, now=NOW)
        second = engine.reconcile(ADD, town_hall, now=NOW)

        assert first.op == SyncOperation.INSERT
        assert second.op == SyncOperation.UPDATE
        assert first.records[0].id == second.records[0].id
        assert len(_records(session)) == 1

    @pytest.mark.parametrize("action_type", ["new", "stop"])
    def test_other_upsert_actions(self, session, editor, town_hall, action_type):
        result = ReconciliationEngine(session, editor).reconcile(
            {"method": "events", "type": action_type}, town_hall, now=NOW
        )
        assert result.op == SyncOperation.INSERT

    def test_tags_and_categories_replaced(self, session, editor, town_hall):
        engine = ReconciliationEngine(session, editor)
        town_hall.update(
            keywords=["budget", "council"],
            categoryXtended=[
                {"categoryID": 1, "categoryName": "News"},
                {"categoryID": 2, "categoryName": "Local", "childOf": 1},
            ],
        )
        inserted = engine.reconcile(ADD, town_hall, now=NOW).records[0]
        assert inserted.tags == ["budget", "council"]
        assert len(inserted.category_ids) == 2

        town_hall.update(keywords=["zoning"], categoryXtended=[{"categoryID": 1, "categoryName": "News"}])
        updated = engine.reconcile(UPDATE, town_hall, now=NOW).records[0]

        assert updated.tags == ["zoning"]
        assert updated.category_ids == [inserted.category_ids[0]]
        assert len(session.exec(select(RecordTag)).all()) == 1
        # tag vocabulary is never pruned
        assert len(session.exec(select(Tag)).all()) == 3

    def test_custom_fields_updated(self, session, editor, town_hall):
        engine = ReconciliationEngine(session, editor)
        engine.reconcile(ADD, dict(town_hall, locationName="Room A"), now=NOW)
        record = engine.reconcile(UPDATE, dict(town_hall, locationName="Room B"), now=NOW).records[0]

        assert record.location == "Room B"

    def test_visible_state(self, session, editor, town_hall):
        town_hall["startDateTime"] = "2030-01-01T00:00:00Z"

        hidden = ReconciliationEngine(session, editor).reconcile(ADD, town_hall, now=NOW)
        shown = ReconciliationEngine(session, editor, can_public_future_events=True).reconcile(
            ADD, town_hall, now=NOW
        )

        assert hidden.records[0].lifecycle_state == LifecycleState.FUTURE
        assert hidden.records[0].visible_state == LifecycleState.FUTURE
        assert shown.records[0].visible_state == LifecycleState.PUBLISH

    def test_requires_publish_capability(self, session, town_hall):
        deleter = Principal("deleter", [Capability.DELETE])
        with pytest.raises(Forbidden):
            ReconciliationEngine(session, deleter).reconcile(ADD, town_hall, now=NOW)
        assert _records(session) == []


class TestPrivate:
    """Test cases for events that turned private."""

    def test_private_removes_existing(self, session, editor, town_hall):
        engine = ReconciliationEngine(session, editor)
        town_hall["keywords"] = ["budget"]
        engine.reconcile(ADD, town_hall, now=NOW)

        town_hall["private"] = True
        result = engine.reconcile(UPDATE, town_hall, now=NOW)

        assert result.op == SyncOperation.DELETE
        assert result.records == []
        assert result.message == PRIVATE_DELETED
        assert len(result.deleted) == 1
        assert _records(session) == []
        assert session.exec(select(RecordTag)).all() == []

    def test_private_without_record_is_noop(self, session, editor, town_hall):
        town_hall["private"] = True
        result = ReconciliationEngine(session, editor).reconcile(ADD, town_hall, now=NOW)

        assert result.records == []
        assert result.deleted == []
        assert result.message == PRIVATE_NO_ACTION
        assert _records(session) == []


class TestDelete:
    """Test cases for the delete path."""

    def test_delete_missing_is_not_found(self, session, editor, town_hall):
        with pytest.raises(NotFound):
            ReconciliationEngine(session, editor).reconcile(DELETE, town_hall)

    def test_delete_existing(self, session, editor, town_hall):
        engine = ReconciliationEngine(session, editor)
        town_hall["categoryXtended"] = [{"categoryID": 1, "categoryName": "News"}]
        record_id = engine.reconcile(ADD, town_hall, now=NOW).records[0].id

        result = engine.reconcile(DELETE, {"eventID": "abc_42"})

        assert result.op == SyncOperation.DELETE
        assert [d.record_id for d in result.deleted] == [record_id]
        assert result.deleted[0].deleted is True
        assert _records(session) == []
        assert session.exec(select(RecordCategory)).all() == []

    def test_requires_delete_capability(self, session, town_hall):
        publisher = Principal("publisher", [Capability.PUBLISH])
        ReconciliationEngine(session, publisher).reconcile(ADD, town_hall, now=NOW)

        with pytest.raises(Forbidden):
            ReconciliationEngine(session, publisher).reconcile(DELETE, town_hall)
        assert len(_records(session)) == 1


class TestHooks:
    """Test cases for SyncHooks wiring."""

    def test_hooks_run_in_order(self, session, editor, town_hall):
        hooks = SyncHooks()
        calls = []

        @hooks.on_prepare
        def shout(record, event):
            calls.append("prepare")
            record.title = record.title.upper()
            return record

        @hooks.on_before_save
        def remember(record, existing_ids):
            calls.append(("before_save", list(existing_ids)))
            return record

        @hooks.on_after_save
        def notify(record, record_id, op):
            calls.append(("after_save", record_id, op))

        engine = ReconciliationEngine(session, editor, hooks=hooks)
        inserted = engine.reconcile(ADD, town_hall, now=NOW).records[0]
        engine.reconcile(UPDATE, town_hall, now=NOW)

        assert inserted.title == "TOWN HALL"
        assert calls == [
            "prepare",
            ("before_save", []),
            ("after_save", inserted.id, SyncOperation.INSERT),
            "prepare",
            ("before_save", [inserted.id]),
            ("after_save", inserted.id, SyncOperation.UPDATE),
        ]

    def test_lost_insert_race_replays_as_update(self, session, editor, town_hall):
        """A concurrent insert of the same event turns this delivery into an update."""
        hooks = SyncHooks()
        raced = []

        @hooks.on_before_save
        def concurrent_insert(record, existing_ids):
            if not raced:
                raced.append(True)
                session.add(ContentRecord(remote_event_id=record.remote_event_id, title="Racer"))
                session.commit()
            return record

        result = ReconciliationEngine(session, editor, hooks=hooks).reconcile(ADD, town_hall, now=NOW)

        assert result.op == SyncOperation.UPDATE
        assert result.records[0].title == "Town Hall"
        assert len(_records(session)) == 1
