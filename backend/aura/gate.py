# Overview: Per-request access gate; validates the session cookie and guards protected paths.

"""
Access Gate

Runs before every request:

- Validates the session cookie (no caching between requests). The result
  is Anonymous or Authenticated; on success the profile and a
  CustomerIdentity are put on flask.g.
- Classifies the path as PUBLIC, PROTECTED or ADMIN.
- Redirects an Anonymous request for a PROTECTED or ADMIN path to the
  login route with the original path as redirectTo. Nothing else runs.
- Answers 503 with Retry-After when the session store cannot be read.
  The cookie is left as it is.

Runs after every request:

- If validation rotated the token, writes the new token onto the response
  cookie, whatever the path was.
- If the request carried a cookie that no longer validates, clears it.

CONTRACT: the gate guarantees identity, never authorization. ADMIN paths
only get the identity check here; their handlers must call require_role.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable
from urllib.parse import urlencode

from flask import current_app, g, jsonify, redirect, request
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .services import session_service


class PathClass(str, Enum):
    PUBLIC = "public"
    PROTECTED = "protected"
    ADMIN = "admin"


def _normalize(prefix: str) -> str:
    return prefix.rstrip("/") or "/"


def _matches(path: str, prefix: str) -> bool:
    prefix = _normalize(prefix)
    if prefix == "/":
        return True
    return path == prefix or path.startswith(prefix + "/")


def classify_path(path: str, protected_paths: Iterable[str], admin_paths: Iterable[str]) -> PathClass:
    if any(_matches(path, prefix) for prefix in admin_paths):
        return PathClass.ADMIN
    if any(_matches(path, prefix) for prefix in protected_paths):
        return PathClass.PROTECTED
    return PathClass.PUBLIC


def check_disjoint(protected_paths: Iterable[str], admin_paths: Iterable[str]) -> None:
    """Raise ValueError if any protected prefix overlaps an admin prefix."""
    protected_paths = list(protected_paths)
    admin_paths = list(admin_paths)
    overlaps = [
        (p, a) for p in protected_paths for a in admin_paths
        if _matches(_normalize(p), a) or _matches(_normalize(a), p)
    ]
    if overlaps:
        listed = ", ".join(f"{p} / {a}" for p, a in overlaps)
        raise ValueError(f"Protected and admin paths must be disjoint (overlap: {listed})")


def is_safe_redirect_target(target: str | None) -> bool:
    """Only same-site absolute paths; rejects '//host' and backslash tricks."""
    if not target or not target.startswith("/"):
        return False
    return not target.startswith("//") and "\\" not in target


def login_redirect():
    target = request.full_path if request.query_string else request.path
    query = urlencode({"redirectTo": target})
    return redirect(f"{current_app.config['LOGIN_PATH']}?{query}")


def set_session_cookie(response, token: str):
    response.set_cookie(
        current_app.config["AUTH_COOKIE_NAME"],
        token,
        max_age=int(session_service.SESSION_TTL.total_seconds()),
        httponly=True,
        secure=current_app.config["AUTH_COOKIE_SECURE"],
        samesite="Lax",
        path="/",
    )
    # Handler wrote the cookie itself; after_request must not overwrite it
    g.session_cookie_written = True
    return response


def clear_session_cookie(response):
    response.delete_cookie(
        current_app.config["AUTH_COOKIE_NAME"],
        path="/",
        httponly=True,
        secure=current_app.config["AUTH_COOKIE_SECURE"],
        samesite="Lax",
    )
    g.session_cookie_written = True
    return response


def init_access_gate(app) -> None:
    check_disjoint(app.config["PROTECTED_PATHS"], app.config["ADMIN_PATHS"])

    @app.before_request
    def access_gate():
        g.session_context = None
        g.profile = None
        g.identity = None
        g.stale_session_cookie = False
        g.session_cookie_written = False

        token = request.cookies.get(current_app.config["AUTH_COOKIE_NAME"])
        if token:
            try:
                context = session_service.validate_session(token)
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.exception("Session validation failed for %s", request.path)
                return jsonify({"error": "Service temporarily unavailable, please retry"}), 503, {"Retry-After": "5"}
            if context:
                g.session_context = context
                g.profile = context.profile
                g.identity = context.identity
            else:
                g.stale_session_cookie = True

        g.path_class = classify_path(
            request.path,
            current_app.config["PROTECTED_PATHS"],
            current_app.config["ADMIN_PATHS"],
        )

        if g.path_class is not PathClass.PUBLIC and g.identity is None:
            return login_redirect()

        return None

    @app.after_request
    def propagate_session_cookie(response):
        if g.get("session_cookie_written"):
            return response

        context = g.get("session_context")
        if context is not None and context.refreshed_token:
            set_session_cookie(response, context.refreshed_token)
        elif g.get("stale_session_cookie"):
            clear_session_cookie(response)
        return response
