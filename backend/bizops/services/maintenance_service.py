# Overview: Service-layer operations for maintenance; audit log retention and the background sweep.

from __future__ import annotations

import threading
from datetime import datetime, timedelta

from sqlalchemy import case, func

from ..extensions import PERMISSION_RESOLVER_KEY, db
from ..models import PermissionAuditLog
from ..time_utils import to_utc_z, utcnow
from .audit_service import RESULT_GRANTED, AuditEventType, AuditLogger


def cleanup_audit_log(
    *,
    retention_days: int = 365,
    now: datetime | None = None,
    audit_logger: AuditLogger | None = None,
) -> int:
    """
    Delete audit entries older than retention_days.

    A single delete-where-older-than statement: an overlapping run finds
    nothing left to delete. The cleanup itself is recorded when rows were removed.
    """
    if retention_days < 1:
        raise ValueError("retention_days must be at least 1")

    cutoff = (now or utcnow()) - timedelta(days=retention_days)
    deleted = db.session.query(PermissionAuditLog).filter(
        PermissionAuditLog.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()

    if deleted and audit_logger is not None:
        audit_logger.log(
            None,
            AuditEventType.AUDIT_LOG_CLEANUP,
            "manage.data_retention.enable",
            RESULT_GRANTED,
            action_details={
                "deleted": deleted,
                "retention_days": retention_days,
                "cutoff": to_utc_z(cutoff),
            },
        )
    return deleted


def preview_audit_cleanup(*, retention_days: int = 365, now: datetime | None = None) -> dict:
    """What cleanup_audit_log would delete, without deleting anything."""
    if retention_days < 1:
        raise ValueError("retention_days must be at least 1")

    cutoff = (now or utcnow()) - timedelta(days=retention_days)
    row = db.session.query(
        func.count(PermissionAuditLog.id),
        func.min(PermissionAuditLog.occurred_at),
        func.max(PermissionAuditLog.occurred_at),
    ).filter(PermissionAuditLog.occurred_at < cutoff).one()

    return {
        "dry_run": True,
        "retention_days": retention_days,
        "cutoff": to_utc_z(cutoff),
        "would_delete_count": row[0],
        "oldest_entry": to_utc_z(row[1]),
        "newest_to_delete": to_utc_z(row[2]),
    }


def get_audit_retention_status(*, retention_days: int = 365, now: datetime | None = None) -> dict:
    """Audit log size, age, expired entries and the most recent cleanups."""
    now = now or utcnow()
    cutoff = now - timedelta(days=retention_days)

    def newer_than(days):
        return func.sum(case((PermissionAuditLog.occurred_at >= now - timedelta(days=days), 1), else_=0))

    row = db.session.query(
        func.count(PermissionAuditLog.id),
        func.min(PermissionAuditLog.occurred_at),
        func.max(PermissionAuditLog.occurred_at),
        newer_than(7),
        newer_than(30),
        func.sum(case((PermissionAuditLog.occurred_at < cutoff, 1), else_=0)),
    ).one()

    cleanups = (
        db.session.query(PermissionAuditLog)
        .filter_by(event_type=AuditEventType.AUDIT_LOG_CLEANUP)
        .order_by(PermissionAuditLog.occurred_at.desc(), PermissionAuditLog.id.desc())
        .limit(10)
        .all()
    )

    return {
        "total_entries": row[0],
        "oldest_entry": to_utc_z(row[1]),
        "newest_entry": to_utc_z(row[2]),
        "last_7_days": int(row[3] or 0),
        "last_30_days": int(row[4] or 0),
        "expired_entries": int(row[5] or 0),
        "retention_days": retention_days,
        "recent_cleanups": [
            {"occurred_at": to_utc_z(entry.occurred_at), "details": entry.action_details}
            for entry in cleanups
        ],
    }


class AuditRetentionSweeper:
    """
    Periodic retention sweep on a daemon thread.

    Each pass runs inside its own app context: it retries queued audit entries,
    then deletes entries past the retention window.
    """

    def __init__(self, app, *, interval_seconds: float, retention_days: int):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.app = app
        self.interval_seconds = interval_seconds
        self.retention_days = retention_days
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> dict:
        with self.app.app_context():
            resolver = self.app.extensions[PERMISSION_RESOLVER_KEY]
            flushed = resolver.audit_logger.flush_pending()
            deleted = cleanup_audit_log(
                retention_days=self.retention_days,
                audit_logger=resolver.audit_logger,
            )
        if deleted:
            self.app.logger.info("Audit retention sweep removed %d entries", deleted)
        return {"flushed": flushed, "deleted": deleted}

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                self.app.logger.exception("Audit retention sweep failed")

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="audit-retention-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
