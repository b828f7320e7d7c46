# Overview: Permission decorators for API routes.

"""
Route glue for the permission engine.

The authentication layer sets g.employee_id before these run. Responses never
carry internal detail: 401 when nobody is authenticated, 403 "Not authorized"
otherwise. The resolver logs and audits the full context.
"""

from functools import wraps
from flask import request, jsonify, g

from .extensions import get_permission_resolver
from .permissions import parse_permission_key


def _current_employee_id():
    return getattr(g, "employee_id", None)


def _client_context() -> dict:
    return {
        "ip_address": request.remote_addr,
        "user_agent": request.headers.get("User-Agent"),
    }


def _unauthenticated():
    return jsonify({"error": "Authentication required"}), 401


def _not_authorized(reason=None):
    body = {"error": "Not authorized"}
    if reason:
        body["reason"] = reason
    return jsonify(body), 403


def _check(employee_id, permission_key, resource_id=None) -> bool:
    return get_permission_resolver().check_permission(
        employee_id,
        permission_key,
        resource_type=parse_permission_key(permission_key).resource,
        resource_id=resource_id,
        **_client_context(),
    )


def require_permission(permission_key: str):
    """Require a permission for the authenticated employee."""
    parse_permission_key(permission_key)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            employee_id = _current_employee_id()
            if employee_id is None:
                return _unauthenticated()

            if not _check(employee_id, permission_key):
                return _not_authorized()

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def _is_self(target_id, employee_id) -> bool:
    # Non-numeric targets never match; they fall through to the permission check
    try:
        return target_id is not None and int(target_id) == int(employee_id)
    except (TypeError, ValueError):
        return False


def require_permission_or_self(permission_key: str, get_target_id):
    """
    Require a permission unless the employee is acting on their own record.

    get_target_id receives the view arguments and returns the target employee id.
    """
    parse_permission_key(permission_key)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            employee_id = _current_employee_id()
            if employee_id is None:
                return _unauthenticated()

            target_id = get_target_id(*args, **kwargs)
            if _is_self(target_id, employee_id):
                return f(*args, **kwargs)

            if not _check(employee_id, permission_key, resource_id=target_id):
                return _not_authorized()

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_last_record_protection(resource_type: str, get_scope_id):
    """
    Refuse to remove the last active record of resource_type in its scope.

    get_scope_id receives the view arguments and returns the scope (business) id.
    Stack under require_permission: this guard does not check the operation
    permission itself.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            employee_id = _current_employee_id()
            if employee_id is None:
                return _unauthenticated()

            scope_id = get_scope_id(*args, **kwargs)
            if scope_id is None:
                return _not_authorized()

            decision = get_permission_resolver().check_last_record_protection(
                resource_type,
                scope_id,
                employee_id,
                **_client_context(),
            )
            if not decision.allowed:
                return _not_authorized(decision.reason)

            return f(*args, **kwargs)

        return decorated_function
    return decorator
