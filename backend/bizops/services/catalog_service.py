# Overview: Service-layer operations for the permission catalog, default roles and default grants.

"""
Permission catalog seeding.

WHY: Permissions and roles must exist in the store before they can be granted
or checked. Every function here is idempotent: safe to run on every deploy.
"""

from ..extensions import db, get_permission_resolver
from ..errors import UnknownPermissionError
from ..models import Permission, Role, RolePermission
from ..permissions import (
    DEFAULT_ROLE_PARENTS,
    DEFAULT_ROLE_PERMISSIONS,
    DEFAULT_ROLES,
    PERMISSION_DEFINITIONS,
    parse_permission_key,
)
from .grant_store import GrantStore
from .role_graph import RoleGraph


def upsert_permission(key, resource_type, action_type, description=None, *, commit=True):
    """
    Create or refresh one catalog row.

    Only resource_type, action_type and description are written on an existing
    row; is_active and created_at are left alone.

    Returns (permission, created).
    """
    parse_permission_key(key)

    permission = db.session.query(Permission).filter_by(permission_key=key).first()
    created = False

    if permission is None:
        permission = Permission(
            permission_key=key,
            resource_type=resource_type,
            action_type=action_type,
            description=description,
        )
        db.session.add(permission)
        created = True
    else:
        if permission.resource_type != resource_type:
            permission.resource_type = resource_type
        if permission.action_type != action_type:
            permission.action_type = action_type
        if permission.description != description:
            permission.description = description

    if commit:
        db.session.commit()
    return permission, created


def seed_permission_catalog():
    """
    Upsert every entry of PERMISSION_DEFINITIONS in one transaction.

    Returns the number of rows created (0 on a re-run).
    """
    created_count = 0
    try:
        for key, resource_type, action_type, description in PERMISSION_DEFINITIONS:
            _, created = upsert_permission(key, resource_type, action_type, description, commit=False)
            if created:
                created_count += 1
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return created_count


def seed_default_roles():
    """
    Create the default roles and wire their parents.

    Existing roles keep their display attributes; missing parent edges are added.
    Returns the number of roles created.
    """
    created_count = 0
    roles = {}

    try:
        for name, display_name, description, text_color, background_color, border_color, sort_order in DEFAULT_ROLES:
            role = db.session.query(Role).filter_by(name=name).first()
            if not role:
                role = Role(
                    name=name,
                    display_name=display_name,
                    description=description,
                    text_color=text_color,
                    background_color=background_color,
                    border_color=border_color,
                    sort_order=sort_order,
                )
                db.session.add(role)
                created_count += 1
            roles[name] = role

        db.session.flush()

        for name, parent_names in DEFAULT_ROLE_PARENTS.items():
            role = roles.get(name)
            if role is None:
                continue
            for parent_name in parent_names:
                parent = roles.get(parent_name)
                if parent is not None and parent not in role.parents:
                    role.parents.append(parent)

        db.session.flush()
        # A hand-edited parent edge could close a loop with the defaults.
        RoleGraph(GrantStore().load_role_parents())
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return created_count


def seed_default_grants():
    """
    Write DEFAULT_ROLE_PERMISSIONS in one transaction.

    Only each role's own grants are written; inheritance is resolved at query
    time. Existing rows are skipped so that an administrative revoke survives a
    re-seed. Returns the number of grant rows created.
    """
    created_count = 0
    try:
        for role_name, permission_keys in DEFAULT_ROLE_PERMISSIONS.items():
            role = db.session.query(Role).filter_by(name=role_name).first()
            if not role:
                continue

            for permission_key in permission_keys:
                permission = db.session.query(Permission).filter_by(permission_key=permission_key).first()
                if not permission:
                    raise UnknownPermissionError(permission_key)

                existing = db.session.query(RolePermission).filter_by(
                    role_id=role.id,
                    permission_id=permission.id,
                ).first()

                if not existing:
                    db.session.add(RolePermission(role_id=role.id, permission_id=permission.id, is_granted=True))
                    created_count += 1

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return created_count


def seed_all():
    """Catalog, roles, then grants. Returns a summary dict."""
    return {
        "permissions_created": seed_permission_catalog(),
        "roles_created": seed_default_roles(),
        "grants_created": seed_default_grants(),
    }


def rename_permission(old_key, new_key):
    """
    Move a catalog row to a new key.

    Grants reference the permission id, so they follow the rename. Refuses to
    merge into an existing key.
    """
    parse_permission_key(new_key)

    permission = db.session.query(Permission).filter_by(permission_key=old_key).first()
    if not permission:
        raise UnknownPermissionError(old_key)

    if db.session.query(Permission).filter_by(permission_key=new_key).first():
        raise ValueError(f"Permission '{new_key}' already exists")

    permission.permission_key = new_key
    db.session.commit()
    get_permission_resolver().invalidate()
    return permission


def set_permission_active(key, is_active):
    """Retire (or restore) a catalog entry without touching its grants."""
    permission = db.session.query(Permission).filter_by(permission_key=key).first()
    if not permission:
        raise UnknownPermissionError(key)
    permission.is_active = bool(is_active)
    db.session.commit()
    get_permission_resolver().invalidate()
    return permission
