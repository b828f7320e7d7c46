from .tenancy import Business, ServiceLocation, ClientUser
from .auth import Employee, Role, EmployeeRole, Permission, RolePermission, role_parents
from .audit import PermissionAuditLog

__all__ = [
    'Business', 'ServiceLocation', 'ClientUser',
    'Employee', 'Role', 'EmployeeRole', 'Permission', 'RolePermission', 'role_parents',
    'PermissionAuditLog',
]
