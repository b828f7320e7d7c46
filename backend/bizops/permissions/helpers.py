# Overview: Utility functions for permission key parsing, lookups and validation.

from collections import namedtuple

from .categories import ActionType
from .definitions import PERMISSION_DEFINITIONS


PermissionKey = namedtuple("PermissionKey", ["action", "resource", "qualifier"])


def parse_permission_key(key):
    """
    Split `<action>.<resource>.<qualifier>` into its parts.

    The qualifier may itself contain dots ("modify.users.photo.enable").
    Raises ValueError for malformed keys.
    """
    if not isinstance(key, str):
        raise ValueError("Permission key must be a string")
    parts = key.split(".")
    if len(parts) < 3 or any(not part for part in parts):
        raise ValueError(f"Malformed permission key: {key!r}")
    return PermissionKey(parts[0], parts[1], ".".join(parts[2:]))


def override_permission_key(resource_type):
    """Permission that lets a caller remove the last record of resource_type."""
    return f"{ActionType.HARD_DELETE}.{resource_type}.enable"


def get_all_permission_keys():
    """Get list of all permission keys."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permissions_by_resource(resource_type):
    """Get all permissions for a resource type."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[1] == resource_type]


def get_permission_definition(key):
    """Get full definition for a permission key."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == key:
            return {
                "permission_key": perm[0],
                "resource_type": perm[1],
                "action_type": perm[2],
                "description": perm[3],
            }
    return None


def validate_permission_key(key):
    """Check if a permission key is in the static catalog."""
    return key in get_all_permission_keys()
