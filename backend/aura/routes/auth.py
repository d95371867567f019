# Overview: Flask routes for login, the authorization-code callback and logout.

# backend/aura/routes/auth.py
"""
Authentication routes

Login is delegated to the identity provider (OAuth 2.0 authorization code):

GET  /auth/login?redirectTo=/path    start the flow (state kept in the signed Flask session)
GET  /auth/callback?code=..&state=.. exchange code, provision profile once, set session cookie
POST /auth/logout                    revoke the session and clear the cookie
GET  /api/auth/session               current identity, 401 when anonymous

Every callback failure ends at /auth/error; provider details go to the log
and security_events, never to the browser.
"""

import secrets

from flask import Blueprint, request, jsonify, current_app, g, redirect, session

from ..decorators import require_auth
from ..gate import clear_session_cookie, is_safe_redirect_target, set_session_cookie
from ..services import auth_service
from ..services import permission_service
from ..services import session_service
from ..services.identity_service import IdentityProviderError, identity_provider


auth_bp = Blueprint("auth", __name__)

DEFAULT_REDIRECT = "/dashboard"
ERROR_PATH = "/auth/error"

_STATE_KEY = "oauth_state"
_REDIRECT_KEY = "oauth_redirect_to"


def _redirect_target(value: str | None) -> str:
    return value if is_safe_redirect_target(value) else DEFAULT_REDIRECT


def _callback_url() -> str:
    return f"{current_app.config['APP_URL']}/auth/callback"


def _login_failed(reason: str):
    permission_service.log_security_event(
        profile_id=None,
        event_type="LOGIN_FAILED",
        success=False,
        resource=request.path,
        action=request.method,
        reason=reason,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    current_app.logger.warning("Login failed: %s", reason)
    return redirect(ERROR_PATH)


@auth_bp.get("/auth/login")
def login_route():
    """
    Send the browser to the identity provider.

    Already-authenticated visitors skip straight to redirectTo.
    """
    redirect_to = _redirect_target(request.args.get("redirectTo"))
    if g.get("identity") is not None:
        return redirect(redirect_to)

    state = secrets.token_urlsafe(32)
    session[_STATE_KEY] = state
    session[_REDIRECT_KEY] = redirect_to

    return redirect(identity_provider.authorize_url(_callback_url(), state))


@auth_bp.get("/auth/callback")
def callback_route():
    """
    Complete login.

    On the first successful exchange for an identity a profile
    {id, email, display_name, avatar_url, role=customer} is provisioned;
    later logins reuse it unchanged.
    """
    code = request.args.get("code")
    state = request.args.get("state")
    expected_state = session.pop(_STATE_KEY, None)
    redirect_to = _redirect_target(session.pop(_REDIRECT_KEY, None) or request.args.get("redirectTo"))

    if not code:
        return _login_failed("Missing authorization code")
    if not state or not expected_state or not secrets.compare_digest(state, expected_state):
        return _login_failed("OAuth state mismatch")

    try:
        identity = identity_provider.exchange_code(code, redirect_uri=_callback_url())
    except IdentityProviderError as e:
        current_app.logger.exception("Authorization code exchange failed")
        return _login_failed(str(e))

    try:
        profile, created = auth_service.provision_profile(identity)
        _, token = session_service.create_session(
            profile_id=profile.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except Exception:
        current_app.logger.exception("Failed to complete login for identity %s", identity.id)
        return redirect(ERROR_PATH)

    if created:
        current_app.logger.info("Provisioned profile %s", profile.id)

    permission_service.log_security_event(
        profile_id=profile.id,
        event_type="LOGIN_SUCCEEDED",
        success=True,
        resource=request.path,
        action=request.method,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )

    return set_session_cookie(redirect(redirect_to), token)


@auth_bp.post("/auth/logout")
def logout_route():
    """Revoke the cookie's session. Succeeds even without a session."""
    try:
        context = g.get("session_context")
        token = request.cookies.get(current_app.config["AUTH_COOKIE_NAME"])
        if context is not None:
            revoked = session_service.end_session(context.session, reason="User logout")
        else:
            revoked = bool(token) and session_service.revoke_session(token, reason="User logout")

        if revoked:
            permission_service.log_security_event(
                profile_id=g.profile.id if g.get("profile") else None,
                event_type="SESSION_REVOKED",
                success=True,
                resource=request.path,
                action=request.method,
                reason="User logout",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )

        return clear_session_cookie(jsonify({"message": "Logout successful"})), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/api/auth/session")
@require_auth
def session_route():
    context = g.session_context
    return jsonify({
        "user": context.profile.to_dict(),
        "role": context.profile.role,
        "session": context.session.to_dict(),
    }), 200
