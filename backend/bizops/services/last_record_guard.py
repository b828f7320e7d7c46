# Overview: Blocks destructive operations that would remove the last record of a scoped collection.

"""
Last-Record Protection

WHY: Deleting or deactivating the final service location (or client user) of a
business leaves it unusable. The guard counts what would remain and refuses the
operation unless the caller holds the hardDelete override for that resource.

This is not a permission check. Callers run check_permission for the operation
itself AND check_last_record_protection before destroying anything.

Fail closed: an unknown resource type or a store error disallows the operation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ClientUser, ServiceLocation
from ..permissions import ResourceType, override_permission_key
from .audit_service import RESULT_DENIED, AuditEventType, AuditLogger


@dataclass(frozen=True)
class LastRecordDecision:
    allowed: bool
    reason: str | None
    remaining_count: int | None

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "remaining_count": self.remaining_count,
        }


@dataclass(frozen=True)
class ProtectedResource:
    """A collection that must keep at least one active row per scope."""

    resource_type: str
    model: Any
    scope_column: str
    label: str
    extra_filters: Callable[[Any], list] | None = None

    def count_remaining(self, session, scope_id) -> int:
        model = self.model
        query = session.query(model).filter(
            getattr(model, self.scope_column) == scope_id,
            model.is_active.is_(True),
            model.soft_delete.is_(False),
        )
        if self.extra_filters:
            query = query.filter(*self.extra_filters(model))
        return query.count()


def default_protected_resources() -> dict[str, ProtectedResource]:
    return {
        ResourceType.SERVICE_LOCATIONS: ProtectedResource(
            resource_type=ResourceType.SERVICE_LOCATIONS,
            model=ServiceLocation,
            scope_column="business_id",
            label="service location",
            # Headquarters rows are not deletable through this path.
            extra_filters=lambda model: [model.is_headquarters.is_(False)],
        ),
        ResourceType.USERS: ProtectedResource(
            resource_type=ResourceType.USERS,
            model=ClientUser,
            scope_column="business_id",
            label="user",
        ),
    }


class LastRecordGuard:
    """
    permission_checker(employee_id, permission_key) -> bool answers whether the
    caller holds the override; the resolver provides it.
    """

    def __init__(
        self,
        permission_checker: Callable[[int, str], bool],
        *,
        audit_logger: AuditLogger | None = None,
        logger: logging.Logger | None = None,
        resources: dict[str, ProtectedResource] | None = None,
        session=None,
    ):
        self._permission_checker = permission_checker
        self.audit_logger = audit_logger
        self.logger = logger or logging.getLogger(__name__)
        self.resources = resources if resources is not None else default_protected_resources()
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def register(self, resource: ProtectedResource) -> None:
        self.resources[resource.resource_type] = resource

    def check_last_record_protection(
        self,
        resource_type: str,
        scope_id,
        employee_id: int,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LastRecordDecision:
        resource = self.resources.get(resource_type)
        if resource is None:
            self.logger.warning("Last-record check for unregistered resource type %r", resource_type)
            return LastRecordDecision(
                allowed=False,
                reason=f"Deletion of '{resource_type}' records cannot be verified",
                remaining_count=None,
            )

        try:
            remaining = resource.count_remaining(self.session, scope_id)
        except SQLAlchemyError:
            self.session.rollback()
            self.logger.exception(
                "Last-record count failed for %s scope=%s", resource_type, scope_id
            )
            return LastRecordDecision(
                allowed=False,
                reason="Unable to verify remaining records; operation not allowed",
                remaining_count=None,
            )

        if remaining > 1:
            return LastRecordDecision(allowed=True, reason=None, remaining_count=remaining)

        override_key = override_permission_key(resource_type)
        if self._permission_checker(employee_id, override_key):
            return LastRecordDecision(allowed=True, reason=None, remaining_count=remaining)

        reason = (
            f"Cannot remove the last {resource.label} for this business. "
            f"At least one {resource.label} must remain."
        )
        if self.audit_logger is not None:
            self.audit_logger.log(
                employee_id,
                AuditEventType.LAST_RECORD_BLOCKED,
                override_key,
                RESULT_DENIED,
                resource_type=resource_type,
                resource_id=scope_id,
                ip_address=ip_address,
                user_agent=user_agent,
                action_details={"remaining_count": remaining},
            )
        return LastRecordDecision(allowed=False, reason=reason, remaining_count=remaining)
