# Overview: Resource and action constants used to build permission keys.


class ResourceType:
    """Resource segment of a permission key; also groups permissions for UI display."""
    BUSINESSES = "businesses"
    SERVICE_LOCATIONS = "service_locations"
    USERS = "users"
    EMPLOYEES = "employees"
    SERVICE_REQUESTS = "service_requests"
    TIME_ENTRIES = "service_request_time_entries"
    INVOICES = "invoices"
    REPORTS = "reports"
    ROLE_PERMISSIONS = "role_permissions"
    AUDIT_LOGS = "permission_audit_log"
    SYSTEM = "system"


class ActionType:
    """Action segment of a permission key."""
    VIEW = "view"
    ADD = "add"
    CREATE = "create"
    MODIFY = "modify"
    SOFT_DELETE = "softDelete"
    HARD_DELETE = "hardDelete"
    DELETE = "delete"
    DEACTIVATE = "deactivate"
    ASSIGN = "assign"
    REASSIGN = "reassign"
    ESCALATE = "escalate"
    CLOSE = "close"
    REOPEN = "reopen"
    APPROVE = "approve"
    EXPORT = "export"
    SEND = "send"
    VOID = "void"
    RESET = "reset"
    MANAGE = "manage"
    ACCESS = "access"
