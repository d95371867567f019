"""
Tests for the access gate and cookie sessions.

Covers:
1. Path classification and configuration checks
2. Anonymous redirects to login with redirectTo
3. Session validation on every request (expiry, idle, revocation)
4. Token rotation written back on any path
5. Admin paths: identity at the gate, role in the handler
6. Session store outages answer 503
"""

from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest
from sqlalchemy.exc import OperationalError

from aura.gate import PathClass, check_disjoint, classify_path, is_safe_redirect_target
from aura.models import SecurityEvent, SessionToken
from aura.services import session_service
from aura.services.session_service import hash_token
from aura.time_utils import utcnow

from conftest import cookie_value, login, session_cookie_headers


PROTECTED = ("/dashboard", "/account", "/checkout", "/orders", "/subscription")
ADMIN = ("/admin",)


def stored_session(token: str) -> SessionToken:
    return SessionToken.query.filter_by(token_hash=hash_token(token)).one()


# =============================================================================
# PATH CLASSIFICATION
# =============================================================================


class TestClassifyPath:

    @pytest.mark.parametrize("path,expected", [
        ("/dashboard", PathClass.PROTECTED),
        ("/dashboard/orders/12", PathClass.PROTECTED),
        ("/checkout/success", PathClass.PROTECTED),
        ("/admin", PathClass.ADMIN),
        ("/admin/dealers", PathClass.ADMIN),
        ("/", PathClass.PUBLIC),
        ("/build-box", PathClass.PUBLIC),
        ("/api/checkout", PathClass.PUBLIC),
        ("/dashboards", PathClass.PUBLIC),
        ("/administrator", PathClass.PUBLIC),
    ])
    def test_classification(self, path, expected):
        assert classify_path(path, PROTECTED, ADMIN) is expected

    def test_admin_checked_first(self):
        assert classify_path("/admin/reports", ("/admin/reports",), ("/admin",)) is PathClass.ADMIN

    @pytest.mark.parametrize("protected,admin", [
        (("/admin",), ("/admin",)),
        (("/admin/reports",), ("/admin",)),
        (("/",), ("/admin",)),
    ])
    def test_overlap_rejected(self, protected, admin):
        with pytest.raises(ValueError):
            check_disjoint(protected, admin)

    def test_default_lists_are_disjoint(self):
        check_disjoint(PROTECTED, ADMIN)

    @pytest.mark.parametrize("target,safe", [
        ("/dashboard", True),
        ("/orders?page=2", True),
        ("//evil.example.com", False),
        ("https://evil.example.com", False),
        ("/\\evil.example.com", False),
        ("", False),
        (None, False),
    ])
    def test_safe_redirect_target(self, target, safe):
        assert is_safe_redirect_target(target) is safe


# =============================================================================
# ANONYMOUS REQUESTS
# =============================================================================


class TestAnonymousRequests:

    @pytest.mark.parametrize("path", ["/dashboard", "/orders/42", "/admin/dealers"])
    def test_redirected_to_login(self, client, db_session, path):
        response = client.get(path)

        assert response.status_code == 302
        location = urlparse(response.headers["Location"])
        assert location.path == "/auth/login"
        assert parse_qs(location.query) == {"redirectTo": [path]}

    def test_query_string_kept_in_redirect(self, client, db_session):
        response = client.get("/orders?page=2")

        location = urlparse(response.headers["Location"])
        assert parse_qs(location.query)["redirectTo"] == ["/orders?page=2"]

    @pytest.mark.parametrize("path", ["/health", "/api/boxes", "/v/UNKNOWN"])
    def test_public_paths_pass(self, client, db_session, path):
        response = client.get(path)

        assert not response.headers.get("Location", "").startswith("/auth/login")
        assert session_cookie_headers(response) == []


# =============================================================================
# SESSION VALIDATION
# =============================================================================


class TestSessionValidation:

    def test_valid_session_reaches_handler(self, customer_client, customer_profile):
        response = customer_client.get("/api/auth/session")

        assert response.status_code == 200
        assert response.get_json()["user"]["id"] == customer_profile.id
        assert response.get_json()["role"] == "customer"

    def test_protected_path_passes_gate(self, customer_client):
        # No handler is mounted for /dashboard; a 404 means the gate let it through
        response = customer_client.get("/dashboard")

        assert response.status_code == 404

    def test_expired_session_redirects_and_clears_cookie(self, client, db_session, customer_profile):
        token = login(client, customer_profile)
        stored_session(token).expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        response = client.get("/dashboard")

        assert response.status_code == 302
        cleared = session_cookie_headers(response)
        assert len(cleared) == 1
        assert cookie_value(cleared[0]) == ""

    def test_idle_session_is_revoked(self, client, db_session, customer_profile):
        token = login(client, customer_profile)
        session = stored_session(token)
        session.last_used_at = utcnow() - session_service.SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db_session.commit()

        response = client.get("/api/auth/session")

        assert response.status_code == 401
        assert session.is_revoked is True
        assert session.revoked_reason == "Idle timeout"

    def test_revoked_session_rejected_on_next_request(self, client, db_session, customer_profile):
        token = login(client, customer_profile)
        assert client.get("/api/auth/session").status_code == 200

        session_service.revoke_all_profile_sessions(customer_profile.id)

        assert client.get("/api/auth/session").status_code == 401

    def test_last_used_updated(self, customer_client, db_session, customer_profile):
        session = SessionToken.query.filter_by(profile_id=customer_profile.id).one()
        session.last_used_at = utcnow() - timedelta(hours=2)
        session.refreshed_at = utcnow()
        db_session.commit()

        customer_client.get("/api/auth/session")

        assert utcnow() - session.last_used_at < timedelta(minutes=1)


# =============================================================================
# TOKEN ROTATION
# =============================================================================


class TestTokenRotation:

    def _age_session(self, db_session, token, by=timedelta(hours=2)):
        session = stored_session(token)
        session.refreshed_at = utcnow() - by
        db_session.commit()
        return session

    def test_fresh_session_not_rotated(self, client, db_session, customer_profile):
        login(client, customer_profile)

        response = client.get("/api/auth/session")

        assert session_cookie_headers(response) == []

    @pytest.mark.parametrize("path", ["/api/auth/session", "/api/boxes", "/health"])
    def test_rotated_token_written_on_any_path(self, client, db_session, customer_profile, path):
        old_token = login(client, customer_profile)
        session = self._age_session(db_session, old_token)

        response = client.get(path)

        headers = session_cookie_headers(response)
        assert len(headers) == 1
        new_token = cookie_value(headers[0])
        assert new_token and new_token != old_token
        assert "HttpOnly" in headers[0]
        assert session.token_hash == hash_token(new_token)

    def test_old_token_stops_working_after_rotation(self, client, db_session, customer_profile):
        old_token = login(client, customer_profile)
        self._age_session(db_session, old_token)

        client.get("/api/boxes")
        assert client.get("/api/auth/session").status_code == 200

        client.set_cookie("aura_session", old_token)
        assert client.get("/api/auth/session").status_code == 401

    def test_rotation_capped_by_absolute_timeout(self, client, db_session, customer_profile):
        token = login(client, customer_profile)
        session = self._age_session(db_session, token)
        session.created_at = utcnow() - session_service.SESSION_ABSOLUTE_TIMEOUT + timedelta(days=1)
        db_session.commit()

        client.get("/api/boxes")

        assert session.expires_at <= session.created_at + session_service.SESSION_ABSOLUTE_TIMEOUT


# =============================================================================
# ADMIN PATHS
# =============================================================================


class TestAdminPaths:
    """The gate checks identity only; handlers check the role."""

    def test_customer_gets_403_and_denial_logged(self, customer_client, customer_profile):
        response = customer_client.get("/admin/dealers")

        assert response.status_code == 403
        assert response.get_json()["required_role"] == "admin"

        event = SecurityEvent.query.filter_by(event_type="ROLE_DENIED").one()
        assert event.profile_id == customer_profile.id
        assert event.resource == "/admin/dealers"

    def test_admin_lists_dealers(self, admin_client, active_dealer, inactive_dealer):
        response = admin_client.get("/admin/dealers?active=true")

        assert response.status_code == 200
        codes = [d["referral_code"] for d in response.get_json()["dealers"]]
        assert codes == ["SAVE10"]

    def test_admin_with_customer_cookie_never_sees_dealer_data(self, customer_client, active_dealer):
        response = customer_client.get("/admin/dealers")

        assert "SAVE10" not in response.get_data(as_text=True)


# =============================================================================
# SESSION STORE OUTAGE
# =============================================================================


class TestSessionStoreOutage:
    """A session store that cannot be read is a retryable 503, not a crash."""

    @pytest.fixture
    def store_down(self, monkeypatch):
        def failing_validate(token):
            raise OperationalError("SELECT session_tokens", {}, Exception("server closed the connection"))

        monkeypatch.setattr(session_service, "validate_session", failing_validate)

    @pytest.mark.parametrize("path", ["/health", "/v/SAVE10", "/api/boxes", "/dashboard"])
    def test_request_with_cookie_is_503(self, client, db_session, store_down, path):
        client.set_cookie("aura_session", "some-token")

        response = client.get(path)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "5"
        assert "connection" not in response.get_data(as_text=True)
        assert session_cookie_headers(response) == []

    def test_request_without_cookie_unaffected(self, client, db_session, store_down):
        response = client.get("/health")

        assert response.status_code == 200

    def test_failure_logged(self, client, db_session, store_down, caplog):
        client.set_cookie("aura_session", "some-token")

        with caplog.at_level("ERROR"):
            client.get("/health")

        assert "Session validation failed" in caplog.text
