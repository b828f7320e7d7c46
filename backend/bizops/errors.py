# Overview: Exception taxonomy for permission resolution, auditing and role configuration.

"""
Errors raised inside the permission engine.

The resolver converts UnknownPermissionError and StoreUnavailableError into a
DENY decision; they only reach callers of administrative operations (grant,
revoke, seeding). AuditWriteError never leaves the audit logger.
ConfigurationError is fatal: it is raised at startup or before a bad role graph
is written, never turned into a runtime denial.
"""


class PermissionEngineError(Exception):
    """Base class for permission engine failures."""


class UnknownPermissionError(PermissionEngineError):
    """Permission key is not in the catalog (or is inactive)."""

    def __init__(self, permission_key: str):
        self.permission_key = permission_key
        super().__init__(f"Unknown permission: {permission_key}")


class StoreUnavailableError(PermissionEngineError):
    """The relational store could not answer a query."""


class AuditWriteError(PermissionEngineError):
    """An audit entry could not be appended."""


class AuditEntryRejectedError(AuditWriteError):
    """The store refused an audit entry because of its data; retrying cannot help."""


class ConfigurationError(PermissionEngineError):
    """Role graph (or catalog) configuration is invalid, e.g. a parent cycle."""
