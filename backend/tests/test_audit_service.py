"""
Audit logger tests.

Verifies:
- A failed audit write never changes the decision and is retried later
- The retry queue is bounded, drained by one thread at a time, and drops
  entries the store rejects
- Trail, security events, search and stats read paths
- Retention cleanup removes only entries past the window
"""

import logging
import threading
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from bizops.extensions import db
from bizops.models import PermissionAuditLog
from bizops.services.audit_service import AuditEntry, AuditEventType, AuditLogger
from bizops.services.maintenance_service import (
    AuditRetentionSweeper,
    cleanup_audit_log,
    get_audit_retention_status,
    preview_audit_cleanup,
)
from bizops.services.permission_resolver import PermissionResolver
from bizops.time_utils import utcnow


class FlakyEngine:
    """Delegates to the real engine unless told to fail; can hold the next insert."""

    def __init__(self):
        self.fail = True
        self.engine = db.engine
        self.hold = None

    def begin(self):
        if self.fail:
            raise OperationalError("INSERT INTO permission_audit_log", {}, Exception("disk I/O error"))
        if self.hold is not None:
            (entered, release), self.hold = self.hold, None
            entered.set()
            release.wait(5)
        return self.engine.begin()


def audit_count(session):
    return session.query(PermissionAuditLog).count()


# =============================================================================
# WRITE FAILURES
# =============================================================================


class TestWriteFailure:
    def test_failure_does_not_change_decision(self, app, db_session, employees, caplog):
        engine = FlakyEngine()
        audit_logger = AuditLogger(logger=app.logger, engine_provider=lambda: engine)
        resolver = PermissionResolver(audit_logger=audit_logger, logger=app.logger)

        with caplog.at_level(logging.ERROR):
            allowed = resolver.check_permission(employees["technician"].id, "modify.service_locations.enable")
            denied = resolver.check_permission(employees["admin"].id, "hardDelete.businesses.enable")

        assert allowed is True
        assert denied is False
        assert audit_logger.pending_count == 2
        assert "audit append failed" in caplog.text
        assert audit_count(db_session) == 0

    def test_queued_entries_are_retried(self, app, db_session, employees):
        engine = FlakyEngine()
        audit_logger = AuditLogger(logger=app.logger, engine_provider=lambda: engine)
        resolver = PermissionResolver(audit_logger=audit_logger, logger=app.logger)
        tech_id = employees["technician"].id

        resolver.check_permission(tech_id, "view.users.enable")
        assert audit_logger.pending_count == 1

        engine.fail = False
        assert audit_logger.flush_pending() == 1
        assert audit_logger.pending_count == 0
        assert resolver.get_audit_trail(tech_id)[0]["permission_key"] == "view.users.enable"

    def test_next_write_drains_queue_first(self, app, db_session, employees):
        engine = FlakyEngine()
        audit_logger = AuditLogger(logger=app.logger, engine_provider=lambda: engine)
        resolver = PermissionResolver(audit_logger=audit_logger, logger=app.logger)
        tech_id = employees["technician"].id

        resolver.check_permission(tech_id, "view.users.enable")
        engine.fail = False
        resolver.check_permission(tech_id, "modify.users.enable")

        assert audit_logger.pending_count == 0
        keys = [e["permission_key"] for e in resolver.get_audit_trail(tech_id)]
        assert sorted(keys) == ["modify.users.enable", "view.users.enable"]

    def test_queue_is_bounded(self, app, db_session, caplog):
        engine = FlakyEngine()
        audit_logger = AuditLogger(logger=app.logger, engine_provider=lambda: engine, retry_queue_size=2)

        with caplog.at_level(logging.ERROR):
            for n in range(3):
                audit_logger.log(n, AuditEventType.PERMISSION_DENIED, "view.users.enable", "denied")

        assert audit_logger.pending_count == 2
        assert audit_logger.dropped_count == 1
        assert "queue full" in caplog.text

    def test_failed_flush_keeps_entries(self, app, db_session):
        engine = FlakyEngine()
        audit_logger = AuditLogger(logger=app.logger, engine_provider=lambda: engine)
        audit_logger.log(1, AuditEventType.PERMISSION_DENIED, "view.users.enable", "denied")

        assert audit_logger.flush_pending() == 0
        assert audit_logger.pending_count == 1

    def test_audit_exception_does_not_escape_check(self, app, db_session, employees, caplog):
        class BrokenAuditLogger(AuditLogger):
            def log(self, *args, **kwargs):
                raise IndexError("pop from an empty deque")

        resolver = PermissionResolver(audit_logger=BrokenAuditLogger(logger=app.logger), logger=app.logger)

        with caplog.at_level(logging.ERROR):
            allowed = resolver.check_permission(employees["technician"].id, "view.users.enable")

        assert allowed is True
        assert "Audit of permission decision failed" in caplog.text


class TestRejectedEntries:
    def test_rejected_entry_is_dropped_not_queued(self, app, db_session, caplog):
        audit_logger = AuditLogger(logger=app.logger)

        with caplog.at_level(logging.ERROR):
            written = audit_logger.log(1, AuditEventType.PERMISSION_DENIED, None, "denied")

        assert written is False
        assert audit_logger.pending_count == 0
        assert audit_logger.rejected_count == 1
        assert "audit entry rejected" in caplog.text

    def test_rejected_queued_entry_does_not_block_later_writes(self, app, db_session):
        engine = FlakyEngine()
        audit_logger = AuditLogger(logger=app.logger, engine_provider=lambda: engine)
        audit_logger.log(1, AuditEventType.PERMISSION_DENIED, None, "denied")
        audit_logger.log(1, AuditEventType.PERMISSION_DENIED, "view.queued.enable", "denied")
        assert audit_logger.pending_count == 2

        engine.fail = False
        results = [
            audit_logger.log(1, AuditEventType.PERMISSION_GRANTED, f"view.item{n}.enable", "granted")
            for n in range(5)
        ]

        assert results == [True] * 5
        assert audit_logger.pending_count == 0
        assert audit_logger.rejected_count == 1
        assert audit_count(db_session) == 6

    def test_long_values_are_cut_to_column_size(self, app, db_session):
        audit_logger = AuditLogger(logger=app.logger)
        long_key = "view." + "x" * 400 + ".enable"

        assert audit_logger.log(1, AuditEventType.UNKNOWN_PERMISSION, long_key, "denied", user_agent="a" * 2000)

        entry = db_session.query(PermissionAuditLog).one()
        assert entry.permission_key == long_key[:255]
        assert len(entry.user_agent) == 512


class TestConcurrentDrain:
    def _hold_next_insert(self, engine):
        entered, release = threading.Event(), threading.Event()
        engine.hold = (entered, release)
        return entered, release

    def test_flush_during_write_inserts_each_entry_once(self, app, db_session):
        engine = FlakyEngine()
        audit_logger = AuditLogger(logger=app.logger, engine_provider=lambda: engine)
        audit_logger.log(1, AuditEventType.PERMISSION_DENIED, "view.parked.enable", "denied")

        engine.fail = False
        entered, release = self._hold_next_insert(engine)
        outcome = {}
        writer = threading.Thread(target=lambda: outcome.update(written=audit_logger.log(
            1, AuditEventType.PERMISSION_GRANTED, "view.fresh.enable", "granted"
        )))
        writer.start()
        assert entered.wait(5)

        flushed = audit_logger.flush_pending()
        release.set()
        writer.join(5)

        assert flushed == 0
        assert outcome == {"written": True}
        assert audit_logger.pending_count == 0
        keys = sorted(row.permission_key for row in db_session.query(PermissionAuditLog).all())
        assert keys == ["view.fresh.enable", "view.parked.enable"]

    def test_sweeper_pass_during_write(self, app, resolver, db_session):
        engine = FlakyEngine()
        audit_logger = AuditLogger(logger=app.logger, engine_provider=lambda: engine)
        resolver.audit_logger = audit_logger
        audit_logger.log(1, AuditEventType.PERMISSION_DENIED, "view.parked.enable", "denied")

        engine.fail = False
        entered, release = self._hold_next_insert(engine)
        writer = threading.Thread(target=audit_logger.log, args=(
            1, AuditEventType.PERMISSION_GRANTED, "view.fresh.enable", "granted",
        ))
        writer.start()
        assert entered.wait(5)

        sweeper = AuditRetentionSweeper(app, interval_seconds=3600, retention_days=365)
        result = sweeper.run_once()
        release.set()
        writer.join(5)

        assert result == {"flushed": 0, "deleted": 0}
        assert audit_logger.pending_count == 0
        assert audit_count(db_session) == 2


# =============================================================================
# READ PATHS
# =============================================================================


@pytest.fixture
def audit_logger(app, db_session):
    return AuditLogger(logger=app.logger)


def record(audit_logger, employee_id, event_type, key="view.users.enable", result="denied", age=None, **context):
    occurred_at = utcnow() - age if age is not None else None
    return audit_logger.record(AuditEntry(
        employee_id=employee_id,
        event_type=event_type,
        permission_key=key,
        result=result,
        occurred_at=occurred_at,
        **context,
    ))


class TestAuditTrail:
    def test_newest_first_and_bounded(self, audit_logger):
        for minutes in (30, 20, 10):
            record(audit_logger, 7, AuditEventType.PERMISSION_GRANTED,
                   key=f"view.item{minutes}.enable", result="granted", age=timedelta(minutes=minutes))
        record(audit_logger, 8, AuditEventType.PERMISSION_GRANTED, result="granted")

        trail = audit_logger.get_audit_trail(7, limit=2)
        assert [e["permission_key"] for e in trail] == ["view.item10.enable", "view.item20.enable"]


class TestSecurityEvents:
    def test_grouped_by_type_employee_and_ip(self, audit_logger):
        for _ in range(3):
            record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, ip_address="10.0.0.1")
        record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, ip_address="10.0.0.2")
        record(audit_logger, 2, AuditEventType.LAST_RECORD_BLOCKED, key="hardDelete.users.enable")
        record(audit_logger, 1, AuditEventType.PERMISSION_GRANTED, result="granted")
        record(audit_logger, 3, AuditEventType.PERMISSION_DENIED, age=timedelta(hours=30))

        events = audit_logger.get_recent_security_events(hours=24)

        assert events[0]["event_type"] == AuditEventType.PERMISSION_DENIED
        assert events[0]["employee_id"] == 1
        assert events[0]["ip_address"] == "10.0.0.1"
        assert events[0]["event_count"] == 3
        assert events[0]["last_occurrence"].endswith("Z")
        assert len(events) == 3
        assert {e["employee_id"] for e in events} == {1, 2}

    def test_longer_window_includes_older(self, audit_logger):
        record(audit_logger, 3, AuditEventType.UNKNOWN_PERMISSION, age=timedelta(hours=30))
        assert audit_logger.get_recent_security_events(hours=24) == []
        assert len(audit_logger.get_recent_security_events(hours=48)) == 1


class TestSearchAndStats:
    def test_search_filters_and_paginates(self, audit_logger):
        for n in range(5):
            record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(minutes=n))
        record(audit_logger, 1, AuditEventType.PERMISSION_GRANTED, result="granted")
        record(audit_logger, 2, AuditEventType.PERMISSION_DENIED)

        page = audit_logger.search_audit_log(employee_id=1, result="denied", page=2, limit=2)
        assert page["pagination"] == {"page": 2, "limit": 2, "total": 5, "total_pages": 3}
        assert len(page["logs"]) == 2
        assert all(e["result"] == "denied" and e["employee_id"] == 1 for e in page["logs"])

    def test_search_by_date_range(self, audit_logger):
        record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(days=10))
        record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(days=1))

        page = audit_logger.search_audit_log(start=utcnow() - timedelta(days=2))
        assert page["pagination"]["total"] == 1

    def test_stats(self, audit_logger, employees):
        tech_id = employees["technician"].id
        record(audit_logger, tech_id, AuditEventType.PERMISSION_GRANTED, result="granted")
        record(audit_logger, tech_id, AuditEventType.PERMISSION_DENIED, key="hardDelete.users.enable")
        record(audit_logger, tech_id, AuditEventType.PERMISSION_DENIED, key="hardDelete.users.enable")

        stats = audit_logger.get_audit_stats()
        assert stats["total"] == 3
        assert stats["granted"] == 1
        assert stats["denied"] == 2
        assert stats["top_permissions"][0] == {
            "permission_key": "hardDelete.users.enable", "result": "denied", "count": 2,
        }
        assert stats["top_employees"][0]["email"] == "technician@bizops.test"
        assert len(stats["recent_denials"]) == 2


# =============================================================================
# RETENTION
# =============================================================================


class TestRetention:
    def test_cleanup_deletes_only_older_entries(self, audit_logger, db_session):
        record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(days=400))
        record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(days=366))
        record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(days=364))
        record(audit_logger, 1, AuditEventType.PERMISSION_GRANTED, result="granted")

        assert cleanup_audit_log(retention_days=365) == 2
        assert audit_count(db_session) == 2

    def test_cleanup_is_reentrant(self, audit_logger, db_session):
        record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(days=400))

        assert cleanup_audit_log(retention_days=365) == 1
        assert cleanup_audit_log(retention_days=365) == 0

    def test_cleanup_is_recorded(self, audit_logger, db_session):
        record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(days=400))

        cleanup_audit_log(retention_days=365, audit_logger=audit_logger)

        entry = db_session.query(PermissionAuditLog).one()
        assert entry.event_type == AuditEventType.AUDIT_LOG_CLEANUP
        assert entry.employee_id is None
        assert entry.action_details["deleted"] == 1

    def test_invalid_retention(self, db_session):
        with pytest.raises(ValueError):
            cleanup_audit_log(retention_days=0)

    def test_sweeper_pass(self, app, resolver, db_session):
        record(resolver.audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(days=400))
        record(resolver.audit_logger, 1, AuditEventType.PERMISSION_DENIED)

        sweeper = AuditRetentionSweeper(app, interval_seconds=3600, retention_days=365)
        result = sweeper.run_once()

        assert result == {"flushed": 0, "deleted": 1}
        assert db_session.query(PermissionAuditLog).filter_by(
            event_type=AuditEventType.PERMISSION_DENIED
        ).count() == 1

    def test_sweeper_thread_starts_and_stops(self, app, db_session):
        sweeper = AuditRetentionSweeper(app, interval_seconds=3600, retention_days=365)
        sweeper.start()
        assert sweeper.running is True

        sweeper.stop(timeout=5)
        assert sweeper.running is False

    def test_sweeper_requires_interval(self, app):
        with pytest.raises(ValueError):
            AuditRetentionSweeper(app, interval_seconds=0, retention_days=365)


class TestRetentionPreview:
    def test_preview_counts_without_deleting(self, audit_logger, db_session):
        record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(days=400))
        record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(days=370))
        record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(days=10))

        preview = preview_audit_cleanup(retention_days=365)

        assert preview["dry_run"] is True
        assert preview["would_delete_count"] == 2
        assert preview["oldest_entry"] != preview["newest_to_delete"]
        assert preview["cutoff"].endswith("Z")
        assert audit_count(db_session) == 3

    def test_preview_of_empty_log(self, db_session):
        preview = preview_audit_cleanup(retention_days=30)
        assert preview["would_delete_count"] == 0
        assert preview["oldest_entry"] is None

    def test_preview_rejects_invalid_retention(self, db_session):
        with pytest.raises(ValueError):
            preview_audit_cleanup(retention_days=0)

    def test_status(self, audit_logger, db_session):
        record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(days=400))
        record(audit_logger, 1, AuditEventType.PERMISSION_DENIED, age=timedelta(days=20))
        record(audit_logger, 1, AuditEventType.PERMISSION_GRANTED, result="granted", age=timedelta(days=1))

        status = get_audit_retention_status(retention_days=365)
        assert status["total_entries"] == 3
        assert status["last_7_days"] == 1
        assert status["last_30_days"] == 2
        assert status["expired_entries"] == 1
        assert status["recent_cleanups"] == []

        cleanup_audit_log(retention_days=365, audit_logger=audit_logger)

        status = get_audit_retention_status(retention_days=365)
        assert status["expired_entries"] == 0
        assert status["recent_cleanups"][0]["details"]["deleted"] == 1
