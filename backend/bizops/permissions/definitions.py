# Overview: All permission definitions organized by resource.
# Each permission is defined as: (permission_key, resource_type, action_type, description)
# Keys are the contract with calling code; renaming one needs a grant migration.

from .categories import ActionType, ResourceType


# -- BUSINESSES --

BUSINESS_PERMISSIONS = [
    (
        "add.businesses.enable",
        ResourceType.BUSINESSES,
        ActionType.ADD,
        "Create new businesses",
    ),
    (
        "modify.businesses.enable",
        ResourceType.BUSINESSES,
        ActionType.MODIFY,
        "Edit existing businesses",
    ),
    (
        "softDelete.businesses.enable",
        ResourceType.BUSINESSES,
        ActionType.SOFT_DELETE,
        "Soft delete/deactivate businesses",
    ),
    (
        "hardDelete.businesses.enable",
        ResourceType.BUSINESSES,
        ActionType.HARD_DELETE,
        "Permanently delete businesses",
    ),
]


# -- SERVICE LOCATIONS --

SERVICE_LOCATION_PERMISSIONS = [
    (
        "view.service_locations.enable",
        ResourceType.SERVICE_LOCATIONS,
        ActionType.VIEW,
        "View service locations",
    ),
    (
        "view.soft_deleted_service_locations.enable",
        ResourceType.SERVICE_LOCATIONS,
        ActionType.VIEW,
        "View soft-deleted service locations",
    ),
    (
        "add.service_locations.enable",
        ResourceType.SERVICE_LOCATIONS,
        ActionType.ADD,
        "Create new service locations",
    ),
    (
        "modify.service_locations.enable",
        ResourceType.SERVICE_LOCATIONS,
        ActionType.MODIFY,
        "Edit existing service locations",
    ),
    (
        "softDelete.service_locations.enable",
        ResourceType.SERVICE_LOCATIONS,
        ActionType.SOFT_DELETE,
        "Soft delete/deactivate service locations",
    ),
    (
        "hardDelete.service_locations.enable",
        ResourceType.SERVICE_LOCATIONS,
        ActionType.HARD_DELETE,
        "Permanently delete service locations (including last record)",
    ),
]


# -- CLIENT USERS --

USER_PERMISSIONS = [
    (
        "view.users.enable",
        ResourceType.USERS,
        ActionType.VIEW,
        "View client accounts",
    ),
    (
        "view.soft_deleted_users.enable",
        ResourceType.USERS,
        ActionType.VIEW,
        "View soft-deleted client accounts",
    ),
    (
        "add.users.enable",
        ResourceType.USERS,
        ActionType.ADD,
        "Create new client accounts",
    ),
    (
        "modify.users.enable",
        ResourceType.USERS,
        ActionType.MODIFY,
        "Edit client account information",
    ),
    (
        "modify.users.photo.enable",
        ResourceType.USERS,
        ActionType.MODIFY,
        "Edit client profile photos (others)",
    ),
    (
        "softDelete.users.enable",
        ResourceType.USERS,
        ActionType.SOFT_DELETE,
        "Soft delete/deactivate client accounts",
    ),
    (
        "hardDelete.users.enable",
        ResourceType.USERS,
        ActionType.HARD_DELETE,
        "Permanently delete client accounts (including last record)",
    ),
]


# -- EMPLOYEES --

EMPLOYEE_PERMISSIONS = [
    (
        "add.employees.enable",
        ResourceType.EMPLOYEES,
        ActionType.ADD,
        "Create new employee accounts",
    ),
    (
        "modify.employees.enable",
        ResourceType.EMPLOYEES,
        ActionType.MODIFY,
        "Edit employee details (profile, contact info)",
    ),
    (
        "deactivate.employees.enable",
        ResourceType.EMPLOYEES,
        ActionType.DEACTIVATE,
        "Soft delete or deactivate employees",
    ),
    (
        "hardDelete.employees.enable",
        ResourceType.EMPLOYEES,
        ActionType.HARD_DELETE,
        "Permanently delete employee accounts",
    ),
    (
        "view.employee_sensitive_data.enable",
        ResourceType.EMPLOYEES,
        ActionType.VIEW,
        "View sensitive employee data (salary, emergency contacts)",
    ),
    (
        "modify.employee_roles.enable",
        ResourceType.EMPLOYEES,
        ActionType.MODIFY,
        "Change employee roles",
    ),
    (
        "reset.employee_passwords.enable",
        ResourceType.EMPLOYEES,
        ActionType.RESET,
        "Force password reset for employees",
    ),
]


# -- SERVICE REQUESTS --

SERVICE_REQUEST_PERMISSIONS = [
    (
        "view.service_requests.enable",
        ResourceType.SERVICE_REQUESTS,
        ActionType.VIEW,
        "View service requests",
    ),
    (
        "assign.service_requests.enable",
        ResourceType.SERVICE_REQUESTS,
        ActionType.ASSIGN,
        "Assign service requests to technicians",
    ),
    (
        "reassign.service_requests.enable",
        ResourceType.SERVICE_REQUESTS,
        ActionType.REASSIGN,
        "Reassign service requests from one technician to another",
    ),
    (
        "escalate.service_requests.enable",
        ResourceType.SERVICE_REQUESTS,
        ActionType.ESCALATE,
        "Escalate service requests to higher priority or management",
    ),
    (
        "close.service_requests.enable",
        ResourceType.SERVICE_REQUESTS,
        ActionType.CLOSE,
        "Close or resolve service requests",
    ),
    (
        "reopen.service_requests.enable",
        ResourceType.SERVICE_REQUESTS,
        ActionType.REOPEN,
        "Reopen closed service requests",
    ),
    (
        "modify.service_requests.enable",
        ResourceType.SERVICE_REQUESTS,
        ActionType.MODIFY,
        "Edit service request details (title, description, priority)",
    ),
    (
        "delete.service_requests.enable",
        ResourceType.SERVICE_REQUESTS,
        ActionType.DELETE,
        "Delete service requests (restricted operation)",
    ),
]


# -- TIME ENTRIES --

TIME_ENTRY_PERMISSIONS = [
    (
        "create.service_request_time_entries.enable",
        ResourceType.TIME_ENTRIES,
        ActionType.CREATE,
        "Log time entries for service requests",
    ),
    (
        "modify.service_request_time_entries.enable",
        ResourceType.TIME_ENTRIES,
        ActionType.MODIFY,
        "Edit time entries (own or others)",
    ),
    (
        "approve.service_request_time_entries.enable",
        ResourceType.TIME_ENTRIES,
        ActionType.APPROVE,
        "Approve time entries for billing",
    ),
    (
        "export.service_request_time_entries.enable",
        ResourceType.TIME_ENTRIES,
        ActionType.EXPORT,
        "Export time entry reports",
    ),
]


# -- INVOICES --

INVOICE_PERMISSIONS = [
    (
        "create.invoices.enable",
        ResourceType.INVOICES,
        ActionType.CREATE,
        "Generate invoices from service requests",
    ),
    (
        "modify.invoices.enable",
        ResourceType.INVOICES,
        ActionType.MODIFY,
        "Edit invoice details (amounts, descriptions)",
    ),
    (
        "void.invoices.enable",
        ResourceType.INVOICES,
        ActionType.VOID,
        "Void or cancel invoices",
    ),
    (
        "send.invoices.enable",
        ResourceType.INVOICES,
        ActionType.SEND,
        "Send invoices to clients via email",
    ),
    (
        "export.invoices.enable",
        ResourceType.INVOICES,
        ActionType.EXPORT,
        "Export invoice data (PDF, CSV)",
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "view.reports.enable",
        ResourceType.REPORTS,
        ActionType.VIEW,
        "View operational reports",
    ),
    (
        "export.reports.enable",
        ResourceType.REPORTS,
        ActionType.EXPORT,
        "Export business reports and analytics",
    ),
    (
        "view.financial_reports.enable",
        ResourceType.REPORTS,
        ActionType.VIEW,
        "View P&L, revenue, and financial reports",
    ),
    (
        "view.technical_reports.enable",
        ResourceType.REPORTS,
        ActionType.VIEW,
        "View technical metrics and SLA compliance reports",
    ),
]


# -- PERMISSION ADMINISTRATION --

PERMISSION_ADMIN_PERMISSIONS = [
    (
        "modify.role_permissions.enable",
        ResourceType.ROLE_PERMISSIONS,
        ActionType.MODIFY,
        "Modify permission matrices for roles",
    ),
    (
        "view.permission_audit_log.enable",
        ResourceType.AUDIT_LOGS,
        ActionType.VIEW,
        "View permission audit logs",
    ),
    (
        "export.audit_logs.enable",
        ResourceType.AUDIT_LOGS,
        ActionType.EXPORT,
        "Export audit logs for compliance review",
    ),
    (
        "manage.data_retention.enable",
        ResourceType.AUDIT_LOGS,
        ActionType.MANAGE,
        "Run and configure audit log retention",
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "access.admin_dashboard.enable",
        ResourceType.SYSTEM,
        ActionType.ACCESS,
        "Access the employee admin dashboard",
    ),
    (
        "modify.system_settings.enable",
        ResourceType.SYSTEM,
        ActionType.MODIFY,
        "Change system-wide settings",
    ),
]


# Combined list of all permissions (seed order)
PERMISSION_DEFINITIONS = (
    BUSINESS_PERMISSIONS
    + SERVICE_LOCATION_PERMISSIONS
    + USER_PERMISSIONS
    + EMPLOYEE_PERMISSIONS
    + SERVICE_REQUEST_PERMISSIONS
    + TIME_ENTRY_PERMISSIONS
    + INVOICE_PERMISSIONS
    + REPORT_PERMISSIONS
    + PERMISSION_ADMIN_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
