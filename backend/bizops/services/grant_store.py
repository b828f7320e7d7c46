# Overview: Data access for roles, employee-role links and role-permission grants.

"""
Role & Grant Store

WHY: The resolver, the guard and the admin tooling all read the same four
tables. Keeping every query here gives one place that converts SQLAlchemy
failures into StoreUnavailableError, which the resolver turns into DENY.

DESIGN PRINCIPLES:
- Revoke never deletes: RolePermission.is_granted flips and updated_at moves
- Multi-row grant changes commit once or roll back entirely
- Only active roles and active permissions take part in decisions
"""

from __future__ import annotations

from functools import wraps
from typing import Iterable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import ConfigurationError, StoreUnavailableError, UnknownPermissionError
from ..extensions import db
from ..models import Employee, EmployeeRole, Permission, Role, RolePermission, role_parents
from .role_graph import find_cycle


def _store_call(func):
    """Roll back and re-raise SQLAlchemy failures as StoreUnavailableError."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except IntegrityError:
            # Constraint violations are caller errors, not outages.
            self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreUnavailableError(f"{func.__name__} failed: {exc}") from exc
    return wrapper


class GrantStore:
    """Role, assignment and grant queries over a SQLAlchemy session."""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    # -- reads ---------------------------------------------------------------

    @_store_call
    def load_role_parents(self) -> dict[int, set[int]]:
        """Parent map for every active role (inactive roles are left out)."""
        active_ids = [
            row[0] for row in self.session.query(Role.id).filter(Role.is_active.is_(True)).all()
        ]
        parents: dict[int, set[int]] = {role_id: set() for role_id in active_ids}
        edges = self.session.execute(
            db.select(role_parents.c.role_id, role_parents.c.parent_role_id)
        ).all()
        for role_id, parent_id in edges:
            if role_id in parents:
                parents[role_id].add(parent_id)
        return parents

    @_store_call
    def get_direct_role_ids(self, employee_id: int) -> list[int]:
        """
        Active roles assigned directly to the employee, by sort order.

        A deactivated employee holds no roles.
        """
        rows = (
            self.session.query(Role.id)
            .join(EmployeeRole, EmployeeRole.role_id == Role.id)
            .join(Employee, Employee.id == EmployeeRole.employee_id)
            .filter(
                EmployeeRole.employee_id == employee_id,
                Employee.is_active.is_(True),
                Role.is_active.is_(True),
            )
            .order_by(Role.sort_order, Role.name)
            .all()
        )
        return [row[0] for row in rows]

    @_store_call
    def get_roles(self, role_ids: Iterable[int]) -> list[Role]:
        role_ids = list(role_ids)
        if not role_ids:
            return []
        return (
            self.session.query(Role)
            .filter(Role.id.in_(role_ids))
            .order_by(Role.sort_order, Role.name)
            .all()
        )

    @_store_call
    def get_role(self, role_ref) -> Role | None:
        """Look up a role by id (int) or name (str)."""
        if isinstance(role_ref, Role):
            return role_ref
        if isinstance(role_ref, int):
            return self.session.get(Role, role_ref)
        return self.session.query(Role).filter_by(name=role_ref).first()

    def require_role(self, role_ref) -> Role:
        role = self.get_role(role_ref)
        if not role:
            raise ValueError(f"Role '{role_ref}' not found")
        return role

    @_store_call
    def get_permission(self, permission_key: str, *, include_inactive: bool = False) -> Permission | None:
        query = self.session.query(Permission).filter_by(permission_key=permission_key)
        if not include_inactive:
            query = query.filter(Permission.is_active.is_(True))
        return query.first()

    def require_permission(self, permission_key: str) -> Permission:
        permission = self.get_permission(permission_key)
        if not permission:
            raise UnknownPermissionError(permission_key)
        return permission

    @_store_call
    def find_granting_role_ids(self, role_ids: Iterable[int], permission_id: int) -> list[int]:
        """Roles among role_ids holding an is_granted=True row for the permission."""
        role_ids = list(role_ids)
        if not role_ids:
            return []
        rows = (
            self.session.query(RolePermission.role_id)
            .filter(
                RolePermission.role_id.in_(role_ids),
                RolePermission.permission_id == permission_id,
                RolePermission.is_granted.is_(True),
            )
            .all()
        )
        return [row[0] for row in rows]

    @_store_call
    def get_granted_permissions(self, role_ids: Iterable[int]) -> list[tuple[Permission, int]]:
        """(permission, granting role id) pairs for active permissions granted to role_ids."""
        role_ids = list(role_ids)
        if not role_ids:
            return []
        rows = (
            self.session.query(Permission, RolePermission.role_id)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .filter(
                RolePermission.role_id.in_(role_ids),
                RolePermission.is_granted.is_(True),
                Permission.is_active.is_(True),
            )
            .order_by(Permission.permission_key)
            .all()
        )
        return [(permission, role_id) for permission, role_id in rows]

    @_store_call
    def get_role_grants(self, role_ref) -> list[RolePermission]:
        """Every grant row of a role, granted or revoked (history included)."""
        role = self.require_role(role_ref)
        return (
            self.session.query(RolePermission)
            .join(Permission, Permission.id == RolePermission.permission_id)
            .filter(RolePermission.role_id == role.id)
            .order_by(Permission.permission_key)
            .all()
        )

    # -- writes --------------------------------------------------------------

    def stage_grant(self, role: Role, permission: Permission, is_granted: bool) -> RolePermission:
        """Upsert the grant row without committing."""
        row = self.session.query(RolePermission).filter_by(
            role_id=role.id,
            permission_id=permission.id,
        ).first()

        if row:
            if row.is_granted != is_granted:
                row.is_granted = is_granted
        else:
            row = RolePermission(role_id=role.id, permission_id=permission.id, is_granted=is_granted)
            self.session.add(row)
        return row

    @_store_call
    def set_grant(self, role_ref, permission_key: str, is_granted: bool) -> RolePermission:
        role = self.require_role(role_ref)
        permission = self.require_permission(permission_key)
        row = self.stage_grant(role, permission, is_granted)
        self.session.commit()
        return row

    def grant(self, role_ref, permission_key: str) -> RolePermission:
        return self.set_grant(role_ref, permission_key, True)

    def revoke(self, role_ref, permission_key: str) -> RolePermission:
        return self.set_grant(role_ref, permission_key, False)

    @_store_call
    def apply_role_grants(self, role_ref, changes: Iterable[tuple[str, bool]]) -> int:
        """
        Apply many (permission_key, is_granted) changes to one role atomically.

        Any unknown key aborts the whole batch; nothing is written.
        """
        role = self.require_role(role_ref)
        applied = 0
        try:
            for permission_key, is_granted in changes:
                permission = self.require_permission(permission_key)
                self.stage_grant(role, permission, bool(is_granted))
                applied += 1
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return applied

    @_store_call
    def assign_role(self, employee_id: int, role_ref) -> EmployeeRole:
        role = self.require_role(role_ref)
        existing = self.session.query(EmployeeRole).filter_by(
            employee_id=employee_id,
            role_id=role.id,
        ).first()
        if existing:
            return existing

        link = EmployeeRole(employee_id=employee_id, role_id=role.id)
        self.session.add(link)
        self.session.commit()
        return link

    @_store_call
    def remove_role(self, employee_id: int, role_ref) -> bool:
        role = self.require_role(role_ref)
        link = self.session.query(EmployeeRole).filter_by(
            employee_id=employee_id,
            role_id=role.id,
        ).first()
        if not link:
            return False
        self.session.delete(link)
        self.session.commit()
        return True

    @_store_call
    def set_role_parents(self, role_ref, parent_refs: Iterable) -> Role:
        """
        Replace a role's parents.

        The proposed graph is checked first; a cycle raises ConfigurationError
        and nothing is written.
        """
        role = self.require_role(role_ref)
        parents = [self.require_role(ref) for ref in parent_refs]
        if any(parent.id == role.id for parent in parents):
            raise ConfigurationError(f"Role '{role.name}' cannot inherit from itself")

        proposed = self.load_role_parents()
        proposed.setdefault(role.id, set())
        proposed[role.id] = {parent.id for parent in parents}
        for parent in parents:
            proposed.setdefault(parent.id, set())

        cycle = find_cycle(proposed)
        if cycle:
            names = {r.id: r.name for r in self.get_roles(set(cycle))}
            chain = " -> ".join(names.get(role_id, str(role_id)) for role_id in cycle)
            raise ConfigurationError(f"Role inheritance cycle detected: {chain}")

        role.parents = parents
        self.session.commit()
        return role
