# Overview: Client for the external identity provider (OAuth 2.0 authorization-code flow).

"""
Identity Provider Client

WHY: Credentials and account recovery live with the identity provider.
The application only needs to turn an authorization code into a verified
identity (subject id, email, name, avatar) once per login.

FLOW:
1. /auth/login redirects the browser to authorize_url(...)
2. The provider redirects back to /auth/callback?code=...&state=...
3. exchange_code(code) posts to the token endpoint, then reads userinfo

Every HTTP call carries IDENTITY_TIMEOUT_SECONDS. Transport errors,
timeouts and non-2xx responses raise IdentityProviderError.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from ..errors import ProviderError


class IdentityProviderError(ProviderError):
    """Code exchange or userinfo lookup failed."""


@dataclass(frozen=True)
class ProviderIdentity:
    id: str
    email: str
    full_name: str | None = None
    avatar_url: str | None = None


class IdentityProviderClient:
    """
    Thin OAuth client bound to the app config by init_app.

    Tests pass an httpx.MockTransport through init_app(transport=...).
    """

    def __init__(self):
        self.base_url = ""
        self.client_id = ""
        self.client_secret = ""
        self._http: httpx.Client | None = None

    def init_app(self, app, transport: httpx.BaseTransport | None = None) -> None:
        self.base_url = app.config["IDENTITY_PROVIDER_URL"]
        self.client_id = app.config["IDENTITY_CLIENT_ID"]
        self.client_secret = app.config["IDENTITY_CLIENT_SECRET"]
        if self._http is not None:
            self._http.close()
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=app.config["IDENTITY_TIMEOUT_SECONDS"],
            transport=transport,
        )
        app.extensions["identity_provider"] = self

    @property
    def http(self) -> httpx.Client:
        if self._http is None:
            raise RuntimeError("IdentityProviderClient used before init_app")
        return self._http

    def authorize_url(self, redirect_uri: str, state: str) -> str:
        query = urlencode({
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "scope": "openid email profile",
            "state": state,
        })
        return f"{self.base_url}/authorize?{query}"

    def exchange_code(self, code: str, redirect_uri: str) -> ProviderIdentity:
        """Trade an authorization code for the identity it was issued to."""
        token_data = self._request("POST", "/token", data={
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        })
        access_token = token_data.get("access_token")
        if not access_token:
            raise IdentityProviderError("Token response missing access_token")

        info = self._request("GET", "/userinfo", headers={"Authorization": f"Bearer {access_token}"})
        return _identity_from_userinfo(info)

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self.http.request(method, path, **kwargs)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise IdentityProviderError(
                f"Identity provider returned {exc.response.status_code} for {method} {path}"
            ) from exc
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Identity provider unreachable: {exc}") from exc
        except ValueError as exc:
            raise IdentityProviderError(f"Identity provider returned invalid JSON for {path}") from exc

        if not isinstance(data, dict):
            raise IdentityProviderError(f"Unexpected payload from {path}")
        return data


def _identity_from_userinfo(info: dict) -> ProviderIdentity:
    # OIDC claims first, then provider-specific user_metadata
    metadata = info.get("user_metadata") or {}
    subject = info.get("sub") or info.get("id")
    email = info.get("email")
    if not subject or not email:
        raise IdentityProviderError("Userinfo missing subject or email")

    return ProviderIdentity(
        id=str(subject),
        email=email,
        full_name=info.get("name") or metadata.get("full_name") or metadata.get("name"),
        avatar_url=info.get("picture") or metadata.get("avatar_url"),
    )


identity_provider = IdentityProviderClient()
