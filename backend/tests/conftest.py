"""
Pytest fixtures for the Aura backend tests.

Provides test database setup, organization/dealer/profile fixtures, a
logged-in test client, and an in-memory stand-in for the Stripe module.
"""

from itertools import count
from types import SimpleNamespace

import pytest
import stripe
from aura import create_app
from aura.config import TestConfig
from aura.extensions import db
from aura.models import Organization, Dealer, Profile
from aura.services import session_service
from aura.services.billing_service import billing_gateway
from aura.services.identity_service import identity_provider


# =============================================================================
# STRIPE STAND-IN
# =============================================================================


class _FakeCustomers:
    def __init__(self, fake):
        self._fake = fake

    def list(self, email=None, limit=10, api_key=None):
        self._fake._maybe_fail("Customer.list")
        self._fake.calls.append(("Customer.list", {"email": email, "limit": limit}))
        matches = [c for c in self._fake.customers if c.email == email]
        return SimpleNamespace(data=matches[:limit])

    def create(self, idempotency_key=None, api_key=None, **params):
        self._fake._maybe_fail("Customer.create")
        self._fake.calls.append(("Customer.create", dict(params, idempotency_key=idempotency_key)))
        if idempotency_key in self._fake.idempotent_customers:
            return self._fake.idempotent_customers[idempotency_key]

        customer = SimpleNamespace(
            id=f"cus_test_{next(self._fake.ids)}",
            email=params.get("email"),
            name=params.get("name"),
            metadata=params.get("metadata", {}),
        )
        self._fake.customers.append(customer)
        if idempotency_key:
            self._fake.idempotent_customers[idempotency_key] = customer
        return customer


class _FakeCheckoutSessions:
    def __init__(self, fake):
        self._fake = fake

    def create(self, api_key=None, **params):
        self._fake._maybe_fail("checkout.Session.create")
        self._fake.calls.append(("checkout.Session.create", params))
        session_id = f"cs_test_{next(self._fake.ids)}"
        session = SimpleNamespace(
            id=session_id,
            url=f"https://checkout.stripe.test/c/pay/{session_id}",
            metadata=params.get("metadata"),
        )
        self._fake.sessions.append((session, params))
        return session


class FakeStripe:
    """
    Implements the slice of the stripe module BillingGateway calls.

    fail_with(method, exc) makes the next call to `method` raise `exc`.
    """

    def __init__(self):
        self.ids = count(1)
        self.customers = []
        self.idempotent_customers = {}
        self.sessions = []
        self.calls = []
        self._failures = {}
        self.Customer = _FakeCustomers(self)
        self.checkout = SimpleNamespace(Session=_FakeCheckoutSessions(self))

    def fail_with(self, method: str, exc: Exception):
        self._failures[method] = exc

    def _maybe_fail(self, method: str):
        exc = self._failures.pop(method, None)
        if exc is not None:
            raise exc

    def calls_to(self, method: str) -> list:
        return [params for name, params in self.calls if name == method]

    @property
    def last_session_params(self) -> dict:
        return self.sessions[-1][1]


# =============================================================================
# APP AND DATABASE
# =============================================================================


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def fake_stripe(monkeypatch):
    """Route BillingGateway calls to an in-memory Stripe."""
    fake = FakeStripe()
    monkeypatch.setattr(billing_gateway, "stripe", fake)
    return fake


@pytest.fixture(scope='function')
def stripe_timeout():
    return stripe.APIConnectionError("Request to Stripe timed out")


@pytest.fixture(scope='function')
def restore_identity_provider(app):
    """Re-bind the identity provider to its default transport after a test swaps it."""
    yield identity_provider
    identity_provider.init_app(app)


# =============================================================================
# DOMAIN FIXTURES
# =============================================================================


@pytest.fixture(scope='function')
def organization(db_session):
    org = Organization(name="Trail Outfitters", logo_url="https://cdn.example.com/trail.png", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def active_dealer(db_session, organization):
    """Active dealer holding SAVE10."""
    dealer = Dealer(organization_id=organization.id, referral_code="SAVE10", is_active=True)
    db_session.add(dealer)
    db_session.commit()
    return dealer


@pytest.fixture(scope='function')
def inactive_dealer(db_session, organization):
    """Deactivated dealer holding EXPIRED."""
    dealer = Dealer(organization_id=organization.id, referral_code="EXPIRED", is_active=False)
    db_session.add(dealer)
    db_session.commit()
    return dealer


@pytest.fixture(scope='function')
def customer_profile(db_session):
    profile = Profile(
        id="0b7c2a52-5f0e-4d43-9a4b-6f1f7e0c1a11",
        email="casey@example.com",
        display_name="Casey Rivera",
        role="customer",
    )
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture(scope='function')
def admin_profile(db_session):
    profile = Profile(
        id="9d1e4f80-2c3b-4a5d-8e6f-7a8b9c0d1e2f",
        email="ops@example.com",
        display_name="Ops Admin",
        role="admin",
    )
    db_session.add(profile)
    db_session.commit()
    return profile


def login(client, profile) -> str:
    """Create a session for `profile` and put its token in the client's cookie jar."""
    _, token = session_service.create_session(profile.id, user_agent="pytest")
    client.set_cookie(TestConfig.AUTH_COOKIE_NAME, token)
    return token


@pytest.fixture(scope='function')
def customer_client(client, customer_profile):
    login(client, customer_profile)
    return client


@pytest.fixture(scope='function')
def admin_client(client, admin_profile):
    login(client, admin_profile)
    return client


def session_cookie_headers(response) -> list[str]:
    """Set-Cookie headers for the session cookie on a response."""
    prefix = f"{TestConfig.AUTH_COOKIE_NAME}="
    return [h for h in response.headers.getlist("Set-Cookie") if h.startswith(prefix)]


def cookie_value(header: str) -> str:
    return header.split(";", 1)[0].split("=", 1)[1]
