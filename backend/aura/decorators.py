# Overview: Request decorators for API routes (identity and role checks).

from functools import wraps
from flask import request, jsonify, g

from .services import permission_service
from .services.permission_service import PermissionDeniedError


def _is_authenticated() -> bool:
    return g.get("identity") is not None


def require_auth(f):
    """
    Require an authenticated identity.

    The access gate has already validated the session cookie and set
    g.profile / g.identity. JSON endpoints outside the gate's protected
    paths use this to answer 401 instead of redirecting.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """
    Require a role on the current profile.

    This is the capability check admin handlers must apply: the gate only
    guarantees identity on admin paths. Denials are logged to
    security_events.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require_role(
                    g.profile,
                    role,
                    resource=request.path,
                    action=request.method,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
            except PermissionDeniedError as e:
                return jsonify({
                    "error": "Permission denied",
                    "required_role": role,
                    "message": str(e)
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
