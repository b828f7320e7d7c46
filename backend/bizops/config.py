# backend/bizops/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///bizops.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Permission decisions are cached per process for this many seconds
    PERMISSION_CACHE_TTL_SECONDS = _env_int("PERMISSION_CACHE_TTL_SECONDS", 300)

    # Refuse to start when the role graph contains a parent cycle
    PERMISSIONS_VALIDATE_ON_STARTUP = _env_bool("PERMISSIONS_VALIDATE_ON_STARTUP", True)

    # Audit log retention and the background sweep (0 disables the sweep thread)
    AUDIT_RETENTION_DAYS = _env_int("AUDIT_RETENTION_DAYS", 365)
    AUDIT_SWEEP_INTERVAL_SECONDS = _env_int("AUDIT_SWEEP_INTERVAL_SECONDS", 0)

    # Failed audit appends are parked here until the store comes back
    AUDIT_RETRY_QUEUE_SIZE = _env_int("AUDIT_RETRY_QUEUE_SIZE", 1000)

    SECURITY_EVENTS_LOOKBACK_HOURS = _env_int("SECURITY_EVENTS_LOOKBACK_HOURS", 24)


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    PERMISSIONS_VALIDATE_ON_STARTUP = False
    AUDIT_SWEEP_INTERVAL_SECONDS = 0
    AUDIT_RETRY_QUEUE_SIZE = 50
