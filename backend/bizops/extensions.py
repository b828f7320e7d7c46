# Overview: Flask extension instances for database and migrations, plus the resolver accessor.

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

# Key under app.extensions holding the per-app PermissionResolver.
PERMISSION_RESOLVER_KEY = "bizops.permission_resolver"


def get_permission_resolver():
    """The PermissionResolver owned by the current app (needs an app context)."""
    return current_app.extensions[PERMISSION_RESOLVER_KEY]
