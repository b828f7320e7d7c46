# Overview: Append-only permission audit log: independent writes, retry queue and read paths.

"""
Permission Audit Logging

WHY: Compliance review needs a record of who attempted which privileged
operation, the outcome, and which role produced an ALLOW.

DESIGN PRINCIPLES:
- Independent appends: each entry is written on its own connection and
  transaction, never through the caller's session
- Fail open for availability: a failed write is logged at ERROR and parked in a
  bounded retry queue; the decision that produced it is never changed
- Immutable: rows are never updated; only the retention sweep deletes them
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from sqlalchemy import func
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError

from ..errors import AuditEntryRejectedError, AuditWriteError
from ..extensions import db
from ..models import Employee, PermissionAuditLog
from ..time_utils import to_utc_z, utcnow


class AuditEventType:
    PERMISSION_GRANTED = "permission_granted"
    PERMISSION_DENIED = "permission_denied"
    UNKNOWN_PERMISSION = "unknown_permission"
    PERMISSION_CHECK_ERROR = "permission_check_error"
    LAST_RECORD_BLOCKED = "last_record_blocked"
    ROLE_PERMISSIONS_CHANGED = "role_permissions_changed"
    AUDIT_LOG_CLEANUP = "audit_log_cleanup"


# Event types surfaced by the recent security events view
SECURITY_EVENT_TYPES = (
    AuditEventType.PERMISSION_DENIED,
    AuditEventType.LAST_RECORD_BLOCKED,
    AuditEventType.UNKNOWN_PERMISSION,
    AuditEventType.PERMISSION_CHECK_ERROR,
)

RESULT_GRANTED = "granted"
RESULT_DENIED = "denied"

MAX_SECURITY_EVENT_GROUPS = 100


def _clip(column: str, value):
    """Cut a string value to its column length."""
    if value is None:
        return None
    value = str(value)
    length = PermissionAuditLog.__table__.c[column].type.length
    return value[:length] if length else value


@dataclass
class AuditEntry:
    employee_id: int | None
    event_type: str
    permission_key: str
    result: str
    role_used_id: int | None = None
    resource_type: str | None = None
    resource_id: Any = None
    ip_address: str | None = None
    user_agent: str | None = None
    action_details: dict | None = None
    occurred_at: datetime | None = field(default=None)

    def as_row(self) -> dict:
        return {
            "occurred_at": self.occurred_at,
            "employee_id": self.employee_id,
            "event_type": _clip("event_type", self.event_type),
            "permission_key": _clip("permission_key", self.permission_key),
            "result": _clip("result", self.result),
            "role_used_id": self.role_used_id,
            "resource_type": _clip("resource_type", self.resource_type),
            "resource_id": _clip("resource_id", self.resource_id),
            "ip_address": _clip("ip_address", self.ip_address),
            "user_agent": _clip("user_agent", self.user_agent),
            "action_details": self.action_details,
        }


class AuditLogger:
    """
    Writes audit entries and answers the audit read paths.

    engine_provider returns the SQLAlchemy engine to append with; it defaults to
    db.engine of the current app, so writes need an app context.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger | None = None,
        engine_provider: Callable[[], Any] | None = None,
        clock: Callable[[], datetime] = utcnow,
        retry_queue_size: int = 1000,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self._engine_provider = engine_provider or (lambda: db.engine)
        self._clock = clock
        self._pending: deque[AuditEntry] = deque()
        self.retry_queue_size = max(0, int(retry_queue_size))
        self.dropped_count = 0
        self.rejected_count = 0
        self._lock = threading.Lock()
        self._drain_lock = threading.Lock()

    # -- writes --------------------------------------------------------------

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _insert(self, entry: AuditEntry) -> None:
        try:
            with self._engine_provider().begin() as connection:
                connection.execute(PermissionAuditLog.__table__.insert(), [entry.as_row()])
        except (DataError, IntegrityError) as exc:
            raise AuditEntryRejectedError(f"audit entry rejected: {exc}") from exc
        except SQLAlchemyError as exc:
            raise AuditWriteError(f"audit append failed: {exc}") from exc

    def _park(self, entry: AuditEntry) -> None:
        with self._lock:
            if self.retry_queue_size == 0:
                self.dropped_count += 1
                self.logger.error(
                    "Audit entry dropped (retry queue disabled): %s %s employee=%s",
                    entry.event_type, entry.permission_key, entry.employee_id,
                )
                return
            if len(self._pending) >= self.retry_queue_size:
                oldest = self._pending.popleft()
                self.dropped_count += 1
                self.logger.error(
                    "Audit retry queue full (%d); dropped %s %s employee=%s",
                    self.retry_queue_size, oldest.event_type, oldest.permission_key, oldest.employee_id,
                )
            self._pending.append(entry)

    def _reject(self, entry: AuditEntry, exc: Exception) -> None:
        with self._lock:
            self.rejected_count += 1
        self.logger.error(
            "%s; dropped %s %s employee=%s",
            exc, entry.event_type, entry.permission_key, entry.employee_id,
        )

    def _discard_head(self, entry: AuditEntry) -> None:
        # The head may already have been pushed out by _park while it was being written
        with self._lock:
            if self._pending and self._pending[0] is entry:
                self._pending.popleft()

    def _drain(self) -> int:
        """
        Retry parked entries oldest first, one insert per entry.

        Only one thread drains at a time; a concurrent caller returns 0 at once.
        Stops at the first failure that is not a rejection of the entry itself.
        """
        if not self._drain_lock.acquire(blocking=False):
            return 0
        written = 0
        try:
            while True:
                with self._lock:
                    if not self._pending:
                        break
                    entry = self._pending[0]
                try:
                    self._insert(entry)
                except AuditEntryRejectedError as exc:
                    self._discard_head(entry)
                    self._reject(entry, exc)
                    continue
                except AuditWriteError as exc:
                    self.logger.error("Audit retry failed, %d entries still queued: %s", self.pending_count, exc)
                    break
                except Exception:
                    self.logger.exception("Unexpected audit retry failure")
                    break
                self._discard_head(entry)
                written += 1
        finally:
            self._drain_lock.release()
        return written

    def record(self, entry: AuditEntry) -> bool:
        """
        Append one entry, retrying any parked entries first.

        The new entry is written on its own, so a parked entry that keeps
        failing never holds it back. Returns True when the entry reached the
        store. Never raises.
        """
        if entry.occurred_at is None:
            entry.occurred_at = self._clock()

        if self._pending:
            self._drain()

        try:
            self._insert(entry)
        except AuditEntryRejectedError as exc:
            self._reject(entry, exc)
            return False
        except AuditWriteError as exc:
            self.logger.error("%s (employee=%s key=%s)", exc, entry.employee_id, entry.permission_key)
            self._park(entry)
            return False
        except Exception:
            self.logger.exception("Unexpected audit write failure")
            self._park(entry)
            return False
        return True

    def log(self, employee_id, event_type: str, permission_key: str, result: str, **context) -> bool:
        return self.record(AuditEntry(
            employee_id=employee_id,
            event_type=event_type,
            permission_key=permission_key,
            result=result,
            **context,
        ))

    def flush_pending(self) -> int:
        """Retry parked entries. Returns how many were written."""
        if not self._pending:
            return 0
        written = self._drain()
        if written:
            self.logger.info("Flushed %d queued audit entries", written)
        return written

    # -- reads ---------------------------------------------------------------

    def get_audit_trail(self, employee_id: int, limit: int = 100) -> list[dict]:
        """Most recent entries for one employee, newest first."""
        limit = max(1, min(int(limit), 1000))
        rows = (
            db.session.query(PermissionAuditLog)
            .filter(PermissionAuditLog.employee_id == employee_id)
            .order_by(PermissionAuditLog.occurred_at.desc(), PermissionAuditLog.id.desc())
            .limit(limit)
            .all()
        )
        return [row.to_dict() for row in rows]

    def get_recent_security_events(self, hours: int = 24) -> list[dict]:
        """
        Denials, blocked deletions and resolver errors in the last `hours`,
        grouped by event type, employee and IP address.
        """
        since = self._clock() - timedelta(hours=hours)
        event_count = func.count(PermissionAuditLog.id).label("event_count")
        last_occurrence = func.max(PermissionAuditLog.occurred_at).label("last_occurrence")

        rows = (
            db.session.query(
                PermissionAuditLog.event_type,
                PermissionAuditLog.employee_id,
                PermissionAuditLog.ip_address,
                event_count,
                last_occurrence,
            )
            .filter(
                PermissionAuditLog.event_type.in_(SECURITY_EVENT_TYPES),
                PermissionAuditLog.occurred_at > since,
            )
            .group_by(
                PermissionAuditLog.event_type,
                PermissionAuditLog.employee_id,
                PermissionAuditLog.ip_address,
            )
            .order_by(event_count.desc(), last_occurrence.desc())
            .limit(MAX_SECURITY_EVENT_GROUPS)
            .all()
        )

        return [
            {
                "event_type": row.event_type,
                "employee_id": row.employee_id,
                "ip_address": row.ip_address,
                "event_count": row.event_count,
                "last_occurrence": to_utc_z(row.last_occurrence),
            }
            for row in rows
        ]

    def search_audit_log(
        self,
        *,
        employee_id: int | None = None,
        result: str | None = None,
        event_type: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> dict:
        """Filtered, paginated audit listing (newest first)."""
        page = max(1, int(page))
        limit = max(1, min(int(limit), 500))

        query = db.session.query(PermissionAuditLog)
        if employee_id is not None:
            query = query.filter(PermissionAuditLog.employee_id == employee_id)
        if result:
            query = query.filter(PermissionAuditLog.result == result)
        if event_type:
            query = query.filter(PermissionAuditLog.event_type == event_type)
        if start is not None:
            query = query.filter(PermissionAuditLog.occurred_at >= start)
        if end is not None:
            query = query.filter(PermissionAuditLog.occurred_at <= end)

        total = query.count()
        rows = (
            query.order_by(PermissionAuditLog.occurred_at.desc(), PermissionAuditLog.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "logs": [row.to_dict() for row in rows],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": (total + limit - 1) // limit,
            },
        }

    def get_audit_stats(self, *, top: int = 10, recent_denials: int = 20) -> dict:
        total = db.session.query(func.count(PermissionAuditLog.id)).scalar() or 0

        by_result = dict(
            db.session.query(PermissionAuditLog.result, func.count(PermissionAuditLog.id))
            .group_by(PermissionAuditLog.result)
            .all()
        )

        key_count = func.count(PermissionAuditLog.id).label("count")
        top_permissions = (
            db.session.query(PermissionAuditLog.permission_key, PermissionAuditLog.result, key_count)
            .group_by(PermissionAuditLog.permission_key, PermissionAuditLog.result)
            .order_by(key_count.desc(), PermissionAuditLog.permission_key)
            .limit(top)
            .all()
        )

        employee_count = func.count(PermissionAuditLog.id).label("count")
        top_employees = (
            db.session.query(PermissionAuditLog.employee_id, Employee.email, employee_count)
            .outerjoin(Employee, Employee.id == PermissionAuditLog.employee_id)
            .filter(PermissionAuditLog.employee_id.isnot(None))
            .group_by(PermissionAuditLog.employee_id, Employee.email)
            .order_by(employee_count.desc(), PermissionAuditLog.employee_id)
            .limit(top)
            .all()
        )

        denials = (
            db.session.query(PermissionAuditLog)
            .filter(PermissionAuditLog.result == RESULT_DENIED)
            .order_by(PermissionAuditLog.occurred_at.desc(), PermissionAuditLog.id.desc())
            .limit(recent_denials)
            .all()
        )

        return {
            "total": total,
            "granted": by_result.get(RESULT_GRANTED, 0),
            "denied": by_result.get(RESULT_DENIED, 0),
            "top_permissions": [
                {"permission_key": key, "result": res, "count": count}
                for key, res, count in top_permissions
            ],
            "top_employees": [
                {"employee_id": emp_id, "email": email, "count": count}
                for emp_id, email, count in top_employees
            ],
            "recent_denials": [row.to_dict() for row in denials],
            "pending_retries": self.pending_count,
        }
