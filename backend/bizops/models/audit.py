from __future__ import annotations

from ..extensions import db
from bizops.time_utils import to_utc_z, utcnow


class PermissionAuditLog(db.Model):
    """
    Permission decision audit trail.

    WHY: Compliance review of who attempted which privileged operation, and
    which role produced the ALLOW.

    IMMUTABLE: Never update. Rows are removed only by the retention sweep.
    """
    __tablename__ = "permission_audit_log"
    __table_args__ = (
        db.Index("ix_permission_audit_log_employee_occurred", "employee_id", "occurred_at"),
        db.Index("ix_permission_audit_log_event_occurred", "event_type", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    # No FK: entries outlive employees; None for system events (retention sweep)
    employee_id = db.Column(db.Integer, nullable=True, index=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)  # permission_granted, permission_denied, ...
    permission_key = db.Column(db.String(255), nullable=False)
    result = db.Column(db.String(20), nullable=False, index=True)  # granted | denied

    role_used_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=True)

    resource_type = db.Column(db.String(100), nullable=True)
    resource_id = db.Column(db.String(64), nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    action_details = db.Column(db.JSON, nullable=True)

    role_used = db.relationship("Role")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "occurred_at": to_utc_z(self.occurred_at),
            "employee_id": self.employee_id,
            "event_type": self.event_type,
            "permission_key": self.permission_key,
            "result": self.result,
            "role_used_id": self.role_used_id,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "action_details": self.action_details,
        }
