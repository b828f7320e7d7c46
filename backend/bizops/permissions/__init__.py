# Overview: Permission catalog package.
# Re-exports all public APIs for `from bizops.permissions import ...`.

from .categories import ActionType, ResourceType
from .definitions import (
    PERMISSION_DEFINITIONS,
    BUSINESS_PERMISSIONS,
    SERVICE_LOCATION_PERMISSIONS,
    USER_PERMISSIONS,
    EMPLOYEE_PERMISSIONS,
    SERVICE_REQUEST_PERMISSIONS,
    TIME_ENTRY_PERMISSIONS,
    INVOICE_PERMISSIONS,
    REPORT_PERMISSIONS,
    PERMISSION_ADMIN_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import DEFAULT_ROLES, DEFAULT_ROLE_PARENTS, DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    PermissionKey,
    parse_permission_key,
    override_permission_key,
    get_all_permission_keys,
    get_permissions_by_resource,
    get_permission_definition,
    validate_permission_key,
)

__all__ = [
    "ActionType",
    "ResourceType",
    "PERMISSION_DEFINITIONS",
    "BUSINESS_PERMISSIONS",
    "SERVICE_LOCATION_PERMISSIONS",
    "USER_PERMISSIONS",
    "EMPLOYEE_PERMISSIONS",
    "SERVICE_REQUEST_PERMISSIONS",
    "TIME_ENTRY_PERMISSIONS",
    "INVOICE_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "PERMISSION_ADMIN_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "DEFAULT_ROLES",
    "DEFAULT_ROLE_PARENTS",
    "DEFAULT_ROLE_PERMISSIONS",
    "PermissionKey",
    "parse_permission_key",
    "override_permission_key",
    "get_all_permission_keys",
    "get_permissions_by_resource",
    "get_permission_definition",
    "validate_permission_key",
]
