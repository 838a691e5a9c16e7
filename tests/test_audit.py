"""Unit tests for the payload audit log."""
import pytest
from datetime import datetime, timedelta, timezone

from sqlmodel import select

from invintus_sync.models.audit_models import AuditLogEntry
from invintus_sync.sync.audit import AuditLog, parse_retention

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _entries(session):
    return session.exec(select(AuditLogEntry).order_by(AuditLogEntry.id)).all()


class TestParseRetention:
    """Test cases for parse_retention."""

    @pytest.mark.parametrize("value,expected", [("30", 30), (7, 7), (" 14 ", 14)])
    def test_positive_days(self, value, expected):
        assert parse_retention(value) == expected

    @pytest.mark.parametrize("value", [None, "", "0", 0, "-3", "forever", "1.5", True])
    def test_disabled(self, value):
        assert parse_retention(value) is None


class TestAuditLog:
    """Test cases for AuditLog."""

    def test_record_when_enabled(self, session):
        AuditLog(session, enabled=True).record("42", "add", '{"a": 1}')

        [entry] = _entries(session)
        assert entry.event_id == 42
        assert entry.action == "add"
        assert entry.payload == '{"a": 1}'

    def test_record_when_disabled(self, session):
        assert AuditLog(session, enabled=False).record("42", "add", "{}") is None
        assert _entries(session) == []

    def test_action_truncated(self, session):
        AuditLog(session, enabled=True).record("42", "x" * 30, "{}")
        assert _entries(session)[0].action == "x" * 20

    def test_non_numeric_event_id_is_null(self, session):
        log = AuditLog(session, enabled=True)
        log.record(None, "error", "boom")
        log.record("abc", "add", "{}")

        assert [e.event_id for e in _entries(session)] == [None, None]

    def test_prune_removes_old_entries(self, session):
        session.add(AuditLogEntry(event_id=1, action="add", payload="old", date=NOW - timedelta(days=10)))
        session.add(AuditLogEntry(event_id=2, action="add", payload="new", date=NOW - timedelta(days=1)))
        session.commit()

        removed = AuditLog(session, enabled=True).prune(5, now=NOW)

        assert removed == 1
        assert [e.payload for e in _entries(session)] == ["new"]

    @pytest.mark.parametrize("retention", [None, 0])
    def test_prune_disabled_keeps_everything(self, session, retention):
        session.add(AuditLogEntry(event_id=1, action="add", payload="old", date=NOW - timedelta(days=400)))
        session.commit()

        assert AuditLog(session, enabled=True).prune(retention, now=NOW) == 0
        assert len(_entries(session)) == 1

    def test_prune_skipped_when_logging_disabled(self, session):
        session.add(AuditLogEntry(event_id=1, action="add", payload="old", date=NOW - timedelta(days=400)))
        session.commit()

        assert AuditLog(session, enabled=False).prune(5, now=NOW) == 0
        assert len(_entries(session)) == 1
