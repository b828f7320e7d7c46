# Overview: Default roles, their inheritance edges, and each role's own grants.

"""
Role hierarchy:

    executive -> admin -> technician
              -> manager -> technician
              -> sales

Each role lists only the permissions it adds on top of its parents.
Inheritance is resolved at query time, so a grant added to technician later
reaches admin, manager and executive without touching their rows.
"""

from .definitions import PERMISSION_DEFINITIONS


# (name, display_name, description, text_color, background_color, border_color, sort_order)
DEFAULT_ROLES = [
    ("executive", "Executive", "Full system access", "#ffffff", "#7c3aed", "#6d28d9", 1),
    ("admin", "Administrator", "Business, client and staff administration", "#ffffff", "#dc2626", "#b91c1c", 2),
    ("manager", "Manager", "Operational oversight, reporting and approvals", "#ffffff", "#2563eb", "#1d4ed8", 3),
    ("sales", "Sales", "Onboard businesses, locations and clients", "#ffffff", "#059669", "#047857", 4),
    ("technician", "Technician", "Field service and client support", "#111827", "#fde68a", "#f59e0b", 5),
]

DEFAULT_ROLE_PARENTS = {
    "executive": ["admin", "manager", "sales"],
    "admin": ["technician"],
    "manager": ["technician"],
    "sales": [],
    "technician": [],
}

TECHNICIAN_PERMISSIONS = [
    "access.admin_dashboard.enable",
    "view.service_locations.enable",
    "modify.service_locations.enable",
    "view.users.enable",
    "modify.users.enable",
    "view.service_requests.enable",
    "close.service_requests.enable",
    "create.service_request_time_entries.enable",
    "modify.service_request_time_entries.enable",
]

ADMIN_PERMISSIONS = [
    "modify.businesses.enable",
    "softDelete.businesses.enable",
    "add.service_locations.enable",
    "softDelete.service_locations.enable",
    "view.soft_deleted_service_locations.enable",
    "add.users.enable",
    "modify.users.photo.enable",
    "softDelete.users.enable",
    "view.soft_deleted_users.enable",
    "add.employees.enable",
    "modify.employees.enable",
    "deactivate.employees.enable",
    "assign.service_requests.enable",
    "reassign.service_requests.enable",
    "reopen.service_requests.enable",
    "modify.service_requests.enable",
    "create.invoices.enable",
    "modify.invoices.enable",
    "send.invoices.enable",
]

MANAGER_PERMISSIONS = [
    "view.reports.enable",
    "export.reports.enable",
    "view.financial_reports.enable",
    "view.technical_reports.enable",
    "escalate.service_requests.enable",
    "approve.service_request_time_entries.enable",
    "export.service_request_time_entries.enable",
    "export.invoices.enable",
]

SALES_PERMISSIONS = [
    "add.businesses.enable",
    "modify.businesses.enable",
    "add.service_locations.enable",
    "view.service_locations.enable",
    "add.users.enable",
    "view.users.enable",
]

_OWN_PERMISSIONS = {
    "admin": ADMIN_PERMISSIONS,
    "manager": MANAGER_PERMISSIONS,
    "sales": SALES_PERMISSIONS,
    "technician": TECHNICIAN_PERMISSIONS,
}


def _inherited_keys(role_name):
    keys = set()
    pending = list(DEFAULT_ROLE_PARENTS.get(role_name, []))
    seen = set()
    while pending:
        parent = pending.pop()
        if parent in seen:
            continue
        seen.add(parent)
        keys.update(_OWN_PERMISSIONS.get(parent, []))
        pending.extend(DEFAULT_ROLE_PARENTS.get(parent, []))
    return keys


# Executive receives whatever its parents do not already reach, so it holds the
# whole catalog through one copy of each grant.
EXECUTIVE_PERMISSIONS = [
    perm[0] for perm in PERMISSION_DEFINITIONS
    if perm[0] not in _inherited_keys("executive")
]

DEFAULT_ROLE_PERMISSIONS = {
    "executive": EXECUTIVE_PERMISSIONS,
    **_OWN_PERMISSIONS,
}
