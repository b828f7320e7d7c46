# backend/bizops/__init__.py
from flask import Flask
from sqlalchemy import inspect

from .config import Config
from .extensions import PERMISSION_RESOLVER_KEY, db, get_permission_resolver, migrate

AUDIT_SWEEPER_KEY = "bizops.audit_sweeper"


def build_permission_resolver(app: Flask):
    """One resolver per app, wired from app.config and the app logger."""
    from .services.audit_service import AuditLogger
    from .services.grant_store import GrantStore
    from .services.permission_cache import PermissionCache
    from .services.permission_resolver import PermissionResolver

    audit_logger = AuditLogger(
        logger=app.logger,
        retry_queue_size=app.config.get("AUDIT_RETRY_QUEUE_SIZE", 1000),
    )
    cache = PermissionCache(ttl_seconds=app.config.get("PERMISSION_CACHE_TTL_SECONDS", 300))
    return PermissionResolver(
        store=GrantStore(),
        cache=cache,
        audit_logger=audit_logger,
        logger=app.logger,
    )


def create_app(config_object=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    app.extensions[PERMISSION_RESOLVER_KEY] = build_permission_resolver(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    # A parent cycle is fatal here rather than a surprise DENY later.
    if app.config.get("PERMISSIONS_VALIDATE_ON_STARTUP"):
        with app.app_context():
            if inspect(db.engine).has_table("role_parents"):
                get_permission_resolver().validate_role_graph()

    interval = app.config.get("AUDIT_SWEEP_INTERVAL_SECONDS", 0)
    if interval and interval > 0:
        from .services.maintenance_service import AuditRetentionSweeper
        sweeper = AuditRetentionSweeper(
            app,
            interval_seconds=interval,
            retention_days=app.config.get("AUDIT_RETENTION_DAYS", 365),
        )
        sweeper.start()
        app.extensions[AUDIT_SWEEPER_KEY] = sweeper

    return app


__all__ = ["create_app", "build_permission_resolver", "get_permission_resolver", "AUDIT_SWEEPER_KEY"]
