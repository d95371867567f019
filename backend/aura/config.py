# backend/aura/config.py
from __future__ import annotations
import os


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw = os.environ.get(name, default)
    return tuple(p.strip() for p in raw.split(",") if p.strip())


def _engine_options(database_uri: str, timeout: float) -> dict:
    # sqlite takes a lock timeout, network drivers take a connect timeout
    if database_uri.startswith("sqlite"):
        return {"connect_args": {"timeout": timeout}}
    return {"pool_pre_ping": True, "connect_args": {"connect_timeout": int(timeout)}}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///aura.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    DB_TIMEOUT_SECONDS = float(os.environ.get("DB_TIMEOUT_SECONDS", "5"))
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI, DB_TIMEOUT_SECONDS)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Public base URL used for checkout and OAuth redirect targets
    APP_URL = os.environ.get("APP_URL", "http://localhost:3000").rstrip("/")

    # Billing provider (Stripe)
    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY", "")
    BOX_PRICE_IDS = {
        "starter": os.environ.get("STRIPE_PRICE_STARTER", "price_starter"),
        "voyager": os.environ.get("STRIPE_PRICE_VOYAGER", "price_voyager"),
        "bunker": os.environ.get("STRIPE_PRICE_BUNKER", "price_bunker"),
    }
    BILLING_TIMEOUT_SECONDS = float(os.environ.get("BILLING_TIMEOUT_SECONDS", "10"))

    # Identity provider (OAuth 2.0 authorization-code flow)
    IDENTITY_PROVIDER_URL = os.environ.get("IDENTITY_PROVIDER_URL", "http://localhost:9999/auth/v1").rstrip("/")
    IDENTITY_CLIENT_ID = os.environ.get("IDENTITY_CLIENT_ID", "aura-web")
    IDENTITY_CLIENT_SECRET = os.environ.get("IDENTITY_CLIENT_SECRET", "")
    IDENTITY_TIMEOUT_SECONDS = float(os.environ.get("IDENTITY_TIMEOUT_SECONDS", "10"))

    # Access gate
    # Auth token cookie. Flask's own signed session (OAuth state) keeps the SESSION_COOKIE_* keys
    AUTH_COOKIE_NAME = os.environ.get("AUTH_COOKIE_NAME", "aura_session")
    AUTH_COOKIE_SECURE = os.environ.get("AUTH_COOKIE_SECURE", "false").lower() == "true"
    SESSION_COOKIE_SECURE = AUTH_COOKIE_SECURE
    PROTECTED_PATHS = _env_list("PROTECTED_PATHS", "/dashboard,/account,/checkout,/orders,/subscription")
    ADMIN_PATHS = _env_list("ADMIN_PATHS", "/admin")
    LOGIN_PATH = "/auth/login"

    CORS_ALLOWED_ORIGINS = _env_list(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    APP_URL = "http://aura.test"
    STRIPE_SECRET_KEY = "sk_test_dummy"
    IDENTITY_PROVIDER_URL = "http://idp.test/auth/v1"
    IDENTITY_CLIENT_SECRET = "idp-secret"
    BOX_PRICE_IDS = {
        "starter": "price_starter_test",
        "voyager": "price_voyager_test",
        "bunker": "price_bunker_test",
    }
