# Overview: Resolves employee permissions from roles, role inheritance and grants.

"""
Permission Resolver

WHY: Every privileged operation asks one question: may this employee do this?
The answer combines the employee's roles, everything those roles inherit, and
the explicit grant rows of all of them.

DESIGN PRINCIPLES:
- Fail closed: unknown keys and store errors resolve to DENY and are logged;
  nothing escapes check_permission except a broken role graph
- OR across roles: any role in the closure with is_granted=True allows; a
  revoked row on one role never cancels another role's grant
- Cached per (employee, key); any administrative mutation clears the cache
- Audited unless the caller suppresses it; audit failures never change a decision
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Callable, Iterable

from ..errors import ConfigurationError, StoreUnavailableError, UnknownPermissionError
from ..permissions import ResourceType
from ..time_utils import monotonic
from .audit_service import RESULT_DENIED, RESULT_GRANTED, AuditEventType, AuditLogger
from .grant_store import GrantStore
from .last_record_guard import LastRecordDecision, LastRecordGuard
from .permission_cache import PermissionCache
from .role_graph import RoleGraph


class DecisionReason:
    GRANTED = "granted"
    NOT_GRANTED = "not_granted"
    NO_ROLES = "no_roles"
    UNKNOWN_PERMISSION = "unknown_permission"
    STORE_UNAVAILABLE = "store_unavailable"
    ERROR = "error"


# Reasons that describe a failure rather than the grant tables
_FAILURE_REASONS = {
    DecisionReason.UNKNOWN_PERMISSION,
    DecisionReason.STORE_UNAVAILABLE,
    DecisionReason.ERROR,
}


@dataclass(frozen=True)
class PermissionDecision:
    allowed: bool
    permission_key: str
    role_id: int | None = None
    role_name: str | None = None
    reason: str = DecisionReason.NOT_GRANTED

    @property
    def cacheable(self) -> bool:
        return self.reason not in _FAILURE_REASONS

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PermissionDescriptor:
    permission_key: str
    resource_type: str
    action_type: str
    description: str | None
    granted_by: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["granted_by"] = list(self.granted_by)
        return data


@dataclass(frozen=True)
class RoleDescriptor:
    id: int
    name: str
    display_name: str | None
    description: str | None
    text_color: str | None
    background_color: str | None
    border_color: str | None
    sort_order: int
    inherited: bool = False

    @classmethod
    def from_role(cls, role, *, inherited: bool = False) -> "RoleDescriptor":
        return cls(
            id=role.id,
            name=role.name,
            display_name=role.display_name,
            description=role.description,
            text_color=role.text_color,
            background_color=role.background_color,
            border_color=role.border_color,
            sort_order=role.sort_order,
            inherited=inherited,
        )

    def to_dict(self) -> dict:
        return asdict(self)


class PermissionResolver:
    """
    One instance per Flask app (see create_app); collaborators are injectable so
    tests can swap the store, the clock or the audit sink.
    """

    def __init__(
        self,
        store: GrantStore | None = None,
        cache: PermissionCache | None = None,
        audit_logger: AuditLogger | None = None,
        *,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = monotonic,
        last_record_guard: LastRecordGuard | None = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.store = store or GrantStore()
        self.cache = cache if cache is not None else PermissionCache(clock=clock)
        self.audit_logger = audit_logger or AuditLogger(logger=self.logger)
        self.last_record_guard = last_record_guard or LastRecordGuard(
            self._holds_permission,
            audit_logger=self.audit_logger,
            logger=self.logger,
        )
        self._graph: RoleGraph | None = None
        self._graph_version = 0

    # -- role graph ----------------------------------------------------------

    @property
    def graph_version(self) -> int:
        return self._graph_version

    def load_role_graph(self) -> RoleGraph:
        """Current graph snapshot; built from the store on first use."""
        if self._graph is None:
            self._graph = RoleGraph(self.store.load_role_parents(), version=self._graph_version)
        return self._graph

    def validate_role_graph(self) -> RoleGraph:
        """Rebuild the graph now. Raises ConfigurationError on a parent cycle."""
        self.invalidate(role_graph=True)
        return self.load_role_graph()

    def invalidate(self, *, role_graph: bool = False) -> None:
        self.cache.clear()
        if role_graph:
            self._graph = None
            self._graph_version += 1

    def _resolve_roles(self, employee_id: int) -> tuple[list[int], frozenset[int]]:
        direct = self.store.get_direct_role_ids(employee_id)
        graph = self.load_role_graph()
        if any(role_id not in graph for role_id in direct):
            # Role created since the snapshot was taken.
            self.invalidate(role_graph=True)
            graph = self.load_role_graph()
        return direct, graph.closure(direct)

    # -- decisions -----------------------------------------------------------

    def _compute_decision(self, employee_id: int, permission_key: str) -> PermissionDecision:
        try:
            permission = self.store.require_permission(permission_key)
            _, closure = self._resolve_roles(employee_id)
            if not closure:
                return PermissionDecision(False, permission_key, reason=DecisionReason.NO_ROLES)

            granting = self.store.find_granting_role_ids(closure, permission.id)
            if not granting:
                return PermissionDecision(False, permission_key, reason=DecisionReason.NOT_GRANTED)

            role = self.store.get_roles(granting)[0]
            return PermissionDecision(
                True,
                permission_key,
                role_id=role.id,
                role_name=role.name,
                reason=DecisionReason.GRANTED,
            )
        except UnknownPermissionError:
            self.logger.warning(
                "Permission check for unknown key %r (employee=%s); denying", permission_key, employee_id
            )
            return PermissionDecision(False, permission_key, reason=DecisionReason.UNKNOWN_PERMISSION)
        except StoreUnavailableError as exc:
            self.logger.warning(
                "Permission store unavailable for %r (employee=%s); denying: %s",
                permission_key, employee_id, exc,
            )
            return PermissionDecision(False, permission_key, reason=DecisionReason.STORE_UNAVAILABLE)
        except ConfigurationError:
            raise
        except Exception:
            self.logger.exception(
                "Permission check failed for %r (employee=%s); denying", permission_key, employee_id
            )
            return PermissionDecision(False, permission_key, reason=DecisionReason.ERROR)

    def evaluate_permission(
        self,
        employee_id: int,
        permission_key: str,
        *,
        skip_audit_log: bool = False,
        resource_type: str | None = None,
        resource_id=None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> PermissionDecision:
        decision = self.cache.get_decision(employee_id, permission_key)
        from_cache = decision is not None
        if not from_cache:
            decision = self._compute_decision(employee_id, permission_key)
            if decision.cacheable:
                self.cache.set_decision(employee_id, permission_key, decision)

        if not skip_audit_log:
            try:
                self._audit_decision(
                    employee_id,
                    decision,
                    from_cache=from_cache,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
            except Exception:
                self.logger.exception(
                    "Audit of permission decision failed for %r (employee=%s)", permission_key, employee_id
                )
        return decision

    def check_permission(self, employee_id: int, permission_key: str, **options) -> bool:
        return self.evaluate_permission(employee_id, permission_key, **options).allowed

    def _holds_permission(self, employee_id: int, permission_key: str) -> bool:
        return self.check_permission(employee_id, permission_key, skip_audit_log=True)

    def _audit_decision(self, employee_id, decision: PermissionDecision, *, from_cache: bool, **context) -> None:
        if decision.allowed:
            event_type = AuditEventType.PERMISSION_GRANTED
        elif decision.reason == DecisionReason.UNKNOWN_PERMISSION:
            event_type = AuditEventType.UNKNOWN_PERMISSION
        elif decision.reason in _FAILURE_REASONS:
            event_type = AuditEventType.PERMISSION_CHECK_ERROR
        else:
            event_type = AuditEventType.PERMISSION_DENIED

        self.audit_logger.log(
            employee_id,
            event_type,
            decision.permission_key,
            RESULT_GRANTED if decision.allowed else RESULT_DENIED,
            role_used_id=decision.role_id,
            action_details={"reason": decision.reason, "cached": from_cache},
            **context,
        )

    # -- listings ------------------------------------------------------------

    def get_user_permissions(self, employee_id: int) -> list[PermissionDescriptor]:
        """Every active permission reachable through the employee's roles (UI gating only)."""
        cached = self.cache.get_permission_set(employee_id)
        if cached is not None:
            return list(cached)

        try:
            _, closure = self._resolve_roles(employee_id)
            granted = self.store.get_granted_permissions(closure)
            role_names = {role.id: role.name for role in self.store.get_roles(closure)}
        except StoreUnavailableError as exc:
            self.logger.warning("Cannot list permissions for employee=%s: %s", employee_id, exc)
            return []

        by_key: dict[str, tuple] = {}
        granted_by: dict[str, set[str]] = {}
        for permission, role_id in granted:
            by_key.setdefault(permission.permission_key, (
                permission.resource_type,
                permission.action_type,
                permission.description,
            ))
            granted_by.setdefault(permission.permission_key, set()).add(role_names.get(role_id, str(role_id)))

        descriptors = tuple(
            PermissionDescriptor(
                permission_key=key,
                resource_type=resource_type,
                action_type=action_type,
                description=description,
                granted_by=tuple(sorted(granted_by[key])),
            )
            for key, (resource_type, action_type, description) in sorted(by_key.items())
        )
        self.cache.set_permission_set(employee_id, descriptors)
        return list(descriptors)

    def get_user_roles(self, employee_id: int, *, include_inherited: bool = False) -> list[RoleDescriptor]:
        try:
            direct, closure = self._resolve_roles(employee_id)
            role_ids = closure if include_inherited else direct
            roles = self.store.get_roles(role_ids)
        except StoreUnavailableError as exc:
            self.logger.warning("Cannot list roles for employee=%s: %s", employee_id, exc)
            return []

        direct_ids = set(direct)
        return [RoleDescriptor.from_role(role, inherited=role.id not in direct_ids) for role in roles]

    def has_role(self, employee_id: int, role_name: str, *, include_inherited: bool = False) -> bool:
        return any(
            role.name == role_name
            for role in self.get_user_roles(employee_id, include_inherited=include_inherited)
        )

    # -- last-record protection ----------------------------------------------

    def check_last_record_protection(self, resource_type: str, scope_id, employee_id: int, **context) -> LastRecordDecision:
        return self.last_record_guard.check_last_record_protection(resource_type, scope_id, employee_id, **context)

    # -- administration ------------------------------------------------------

    def _audit_change(self, actor_id, role, permission_key: str, is_granted: bool, details: dict | None = None) -> None:
        if actor_id is None:
            return
        self.audit_logger.log(
            actor_id,
            AuditEventType.ROLE_PERMISSIONS_CHANGED,
            permission_key,
            RESULT_GRANTED if is_granted else RESULT_DENIED,
            role_used_id=role.id,
            resource_type=ResourceType.ROLE_PERMISSIONS,
            resource_id=role.id,
            action_details=details or {"role": role.name, "is_granted": is_granted},
        )

    def grant(self, role_ref, permission_key: str, *, actor_id: int | None = None):
        row = self.store.grant(role_ref, permission_key)
        self.invalidate()
        self._audit_change(actor_id, row.role, permission_key, True)
        return row

    def revoke(self, role_ref, permission_key: str, *, actor_id: int | None = None):
        row = self.store.revoke(role_ref, permission_key)
        self.invalidate()
        self._audit_change(actor_id, row.role, permission_key, False)
        return row

    def apply_role_grants(self, role_ref, changes: Iterable[tuple[str, bool]], *, actor_id: int | None = None) -> int:
        changes = [(key, bool(is_granted)) for key, is_granted in changes]
        applied = self.store.apply_role_grants(role_ref, changes)
        self.invalidate()
        if actor_id is not None:
            role = self.store.require_role(role_ref)
            self._audit_change(
                actor_id,
                role,
                "modify.role_permissions.enable",
                True,
                details={
                    "role": role.name,
                    "changes": [{"permission_key": key, "is_granted": granted} for key, granted in changes],
                },
            )
        return applied

    def assign_role(self, employee_id: int, role_ref):
        link = self.store.assign_role(employee_id, role_ref)
        self.invalidate()
        return link

    def remove_role(self, employee_id: int, role_ref) -> bool:
        removed = self.store.remove_role(employee_id, role_ref)
        self.invalidate()
        return removed

    def set_role_parents(self, role_ref, parent_refs):
        role = self.store.set_role_parents(role_ref, parent_refs)
        self.invalidate(role_graph=True)
        return role

    # -- audit read paths ----------------------------------------------------

    def get_audit_trail(self, employee_id: int, limit: int = 100) -> list[dict]:
        return self.audit_logger.get_audit_trail(employee_id, limit)

    def get_recent_security_events(self, hours: int = 24) -> list[dict]:
        return self.audit_logger.get_recent_security_events(hours)
