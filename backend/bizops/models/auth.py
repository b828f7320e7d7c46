from __future__ import annotations

from ..extensions import db
from bizops.time_utils import to_utc_z, utcnow


# Self-referential inheritance edges: role_id inherits every grant of parent_role_id.
role_parents = db.Table(
    "role_parents",
    db.Column("role_id", db.Integer, db.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    db.Column("parent_role_id", db.Integer, db.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    db.CheckConstraint("role_id <> parent_role_id", name="ck_role_parents_not_self"),
)


class Employee(db.Model):
    """
    Staff member whose privileged operations are authorized here.

    Authentication lives elsewhere; by the time an employee id reaches the
    permission engine it has already been verified.
    """
    __tablename__ = "employees"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def full_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or self.email

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Role(db.Model):
    """
    Named bundle of permission grants.

    INHERITANCE: `parents` forms a DAG. A role effectively holds its own
    grants plus every grant reachable through its ancestors; grants are never
    copied into descendant roles. Cycles are rejected when the graph loads.

    DISPLAY: display_name and the three colours render the role badge; roles
    are listed by sort_order.
    """
    __tablename__ = "roles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True, index=True)
    display_name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)

    text_color = db.Column(db.String(16), nullable=False, default="#000000")
    background_color = db.Column(db.String(16), nullable=False, default="#f3f4f6")
    border_color = db.Column(db.String(16), nullable=False, default="#d1d5db")
    sort_order = db.Column(db.Integer, nullable=False, default=99)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    parents = db.relationship(
        "Role",
        secondary=role_parents,
        primaryjoin=lambda: Role.id == role_parents.c.role_id,
        secondaryjoin=lambda: Role.id == role_parents.c.parent_role_id,
        backref=db.backref("children", lazy=True),
        lazy=True,
    )

    def display_attributes(self) -> dict:
        return {
            "display_name": self.display_name,
            "text_color": self.text_color,
            "background_color": self.background_color,
            "border_color": self.border_color,
            "sort_order": self.sort_order,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "parent_role_ids": sorted(p.id for p in self.parents),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            **self.display_attributes(),
        }


class EmployeeRole(db.Model):
    """Employee-Role association (an employee may hold several roles)."""
    __tablename__ = "employee_roles"
    __table_args__ = (
        db.UniqueConstraint("employee_id", "role_id", name="uq_employee_roles"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=False, index=True)

    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    employee = db.relationship("Employee", backref=db.backref("employee_roles", lazy=True))
    role = db.relationship("Role", backref=db.backref("employee_roles", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "role_id": self.role_id,
            "assigned_at": to_utc_z(self.assigned_at),
        }


class Permission(db.Model):
    """
    Catalog entry for one grantable capability.

    DESIGN: permission_key (`<action>.<resource>.<qualifier>`) is the stable
    contract with calling code. Renaming a key moves this row so that the
    grants referencing it follow; it is never silently re-keyed.
    """
    __tablename__ = "permissions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    permission_key = db.Column(db.String(255), nullable=False, unique=True, index=True)
    resource_type = db.Column(db.String(100), nullable=False, index=True)
    action_type = db.Column(db.String(50), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "permission_key": self.permission_key,
            "resource_type": self.resource_type,
            "action_type": self.action_type,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class RolePermission(db.Model):
    """
    Grant row for a (role, permission) pair.

    Revoking flips is_granted to False instead of deleting the row, so
    updated_at doubles as the change record.
    """
    __tablename__ = "role_permissions"
    __table_args__ = (
        db.UniqueConstraint("role_id", "permission_id", name="uq_role_permissions"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=False, index=True)
    permission_id = db.Column(db.Integer, db.ForeignKey("permissions.id"), nullable=False, index=True)
    is_granted = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    role = db.relationship("Role", backref=db.backref("role_permissions", lazy=True))
    permission = db.relationship("Permission", backref=db.backref("role_permissions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role_id": self.role_id,
            "permission_id": self.permission_id,
            "is_granted": self.is_granted,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
